"""
Schemas for the host registry files.

Three JSON documents live under the global directory:

- ``hosts.json``: ``{"hosts": {<name>: HostRecord}}``
- ``state/host-usage.json``: ``{<name>: UsageRecord}``
- ``state/recent-connection.json``: a single RecentConnection

Validation goes through pydantic. The ``validate_*`` helpers never raise;
they return a ValidationOutcome whose ``errors`` are ``path: message``
strings suitable for logs and CLI output.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Generic, List, Literal, Optional, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    RootModel,
    ValidationInfo,
    field_validator,
)
from pydantic import ValidationError as PydanticValidationError


HOST_SOURCES = ("manual", "ssh_config", "imported")
HostSource = Literal["manual", "ssh_config", "imported"]

T = TypeVar("T")


def utc_now() -> str:
    """Current time as an ISO-8601 UTC string with millisecond precision."""
    stamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


_EMPTY_FIELD_MESSAGES = {
    "name": "Host name cannot be empty",
    "hostname": "Host hostname cannot be empty",
    "user": "Username cannot be empty",
}


class HostRecord(BaseModel):
    """A named SSH connection profile."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(description="Unique host name, also the registry key")
    hostname: str = Field(description="Address or DNS name to connect to")
    user: str = Field(description="SSH login user")
    port: int = Field(default=22, ge=1, le=65535, description="SSH port")
    identity_file: Optional[str] = Field(default=None, description="Private key path")
    description: Optional[str] = None
    created_at: str = Field(description="ISO-8601 creation time, set once")
    source: HostSource = "manual"
    connection_success_at: Optional[str] = None

    @field_validator("name", "hostname", "user")
    @classmethod
    def _not_empty(cls, value: str, info: ValidationInfo) -> str:
        if not value:
            raise ValueError(_EMPTY_FIELD_MESSAGES[info.field_name])
        return value

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for the hosts file, omitting unset optional fields."""
        return self.model_dump(exclude_none=True)

    @property
    def target(self) -> str:
        """``user@hostname:port`` display form."""
        return f"{self.user}@{self.hostname}:{self.port}"


class HostsConfig(BaseModel):
    """Top-level document of ``hosts.json``."""

    hosts: Dict[str, HostRecord] = Field(default_factory=dict)

    @field_validator("hosts")
    @classmethod
    def _keys_match_names(cls, hosts: Dict[str, HostRecord]) -> Dict[str, HostRecord]:
        for key, record in hosts.items():
            if key != record.name:
                raise ValueError("Host names must match their keys in the hosts object")
        return hosts

    def to_dict(self) -> Dict[str, Any]:
        return {"hosts": {name: record.to_dict() for name, record in self.hosts.items()}}


class UsageRecord(BaseModel):
    """Usage statistics of one host."""

    first_used: str
    last_used: str
    use_count: int = Field(default=0, ge=0)


class UsageData(RootModel[Dict[str, UsageRecord]]):
    """Top-level document of ``host-usage.json``."""

    root: Dict[str, UsageRecord] = Field(default_factory=dict)


class RecentConnection(BaseModel):
    """The single most recent connection target."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    host: str = Field(min_length=1)
    user: Optional[str] = None
    port: Optional[int] = Field(default=None, ge=1, le=65535)
    last_input_time: str = Field(alias="lastInputTime")
    last_connection_attempt: Optional[str] = Field(default=None, alias="lastConnectionAttempt")
    last_connection_success: Optional[bool] = Field(default=None, alias="lastConnectionSuccess")
    connection_attempts: int = Field(default=0, ge=0, alias="connectionAttempts")
    auth_type: Optional[Literal["key", "password"]] = Field(default=None, alias="authType")
    auth_value: Optional[str] = Field(default=None, alias="authValue")

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


@dataclass
class ValidationOutcome(Generic[T]):
    """Tagged result of a schema validation."""

    ok: bool
    data: Optional[T] = None
    errors: List[str] = field(default_factory=list)


def format_errors(exc: PydanticValidationError) -> List[str]:
    """Render pydantic errors as ``dotted.path: message`` strings."""
    messages = []
    for error in exc.errors():
        path = ".".join(str(part) for part in error["loc"])
        if error["type"] == "value_error" and "error" in error.get("ctx", {}):
            message = str(error["ctx"]["error"])
        else:
            message = error["msg"]
        messages.append(f"{path}: {message}" if path else message)
    return messages


def _validate(model: Any, data: Any) -> ValidationOutcome:
    try:
        return ValidationOutcome(ok=True, data=model.model_validate(data))
    except PydanticValidationError as e:
        return ValidationOutcome(ok=False, errors=format_errors(e))


def validate_host(data: Any) -> ValidationOutcome[HostRecord]:
    return _validate(HostRecord, data)


def validate_hosts_config(data: Any) -> ValidationOutcome[HostsConfig]:
    return _validate(HostsConfig, data)


def validate_usage(data: Any) -> ValidationOutcome[Dict[str, UsageRecord]]:
    outcome = _validate(UsageData, data)
    if outcome.ok:
        outcome.data = dict(outcome.data.root)
    return outcome


def validate_recent(data: Any) -> ValidationOutcome[RecentConnection]:
    return _validate(RecentConnection, data)
