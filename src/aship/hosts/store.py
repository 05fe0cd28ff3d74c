"""
JSON-backed host registry.

The store owns three files (hosts, usage statistics, recent connection).
A file that fails to parse or validate never blocks a command: the problem
is logged, the file is reset to an empty document and the store carries on
with empty data.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

from loguru import logger

from aship.config.settings import DirectoryLayout
from aship.engine.errors import (
    CorruptStoreError,
    DuplicateNameError,
    NotFoundError,
    ValidationError,
)
from aship.hosts.cache import HostCache
from aship.hosts.models import (
    HostRecord,
    HostsConfig,
    RecentConnection,
    UsageRecord,
    utc_now,
    validate_host,
    validate_hosts_config,
    validate_recent,
    validate_usage,
)
from aship.platform import fs


# Fields carried over when a host is replaced through remove-then-add
PRESERVED_ON_REPLACE = ("created_at", "source", "connection_success_at")


@dataclass
class HostChoice:
    """One entry of the host picker offered to the user."""

    name: str
    value: str
    kind: str  # "recent", "host" or "manual"
    description: str = ""


class HostStore:
    """
    CRUD access to the host registry.

    Args:
        layout: Directory layout providing the file paths
        cache: Cache to read through; a private one is created if omitted
        clock: Callable returning the current ISO-8601 timestamp
    """

    def __init__(
        self,
        layout: DirectoryLayout,
        cache: Optional[HostCache] = None,
        clock: Callable[[], str] = utc_now,
    ) -> None:
        self.hosts_file = Path(layout.hosts_file)
        self.usage_file = Path(layout.usage_file)
        self.recent_file = Path(layout.recent_file)
        self.cache = cache if cache is not None else HostCache()
        self._clock = clock

    # ------------------------------------------------------------------
    # Loading and saving
    # ------------------------------------------------------------------

    def _read_json(self, path: Path) -> Any:
        try:
            return json.loads(fs.read_file(path))
        except ValueError as e:
            raise CorruptStoreError(str(path), f"invalid JSON ({e})")

    def _read_hosts(self) -> HostsConfig:
        data = self._read_json(self.hosts_file)
        outcome = validate_hosts_config(data)
        if not outcome.ok:
            raise CorruptStoreError(str(self.hosts_file), "schema validation failed", outcome.errors)
        return outcome.data

    def _read_usage(self) -> Dict[str, UsageRecord]:
        data = self._read_json(self.usage_file)
        outcome = validate_usage(data)
        if not outcome.ok:
            raise CorruptStoreError(str(self.usage_file), "schema validation failed", outcome.errors)
        return outcome.data

    def _load(self) -> HostsConfig:
        if self.cache.hosts is not None:
            return self.cache.hosts

        if not self.hosts_file.exists():
            config = HostsConfig()
            self._save(config)
            return config

        try:
            config = self._read_hosts()
        except CorruptStoreError as e:
            logger.warning(f"{e}; resetting host registry to empty")
            config = HostsConfig()
            self._save(config)
            return config

        self.cache.hosts = config
        return config

    def _save(self, config: HostsConfig) -> None:
        fs.write_json(self.hosts_file, config.to_dict())
        self.cache.hosts = config

    def _load_usage(self) -> Dict[str, UsageRecord]:
        if self.cache.usage is not None:
            return self.cache.usage

        if not self.usage_file.exists():
            usage: Dict[str, UsageRecord] = {}
        else:
            try:
                usage = self._read_usage()
            except CorruptStoreError as e:
                logger.warning(f"{e}; resetting usage history to empty")
                usage = {}
                self._save_usage(usage)

        self.cache.usage = usage
        return usage

    def _save_usage(self, usage: Dict[str, UsageRecord]) -> None:
        fs.write_json(self.usage_file, {name: rec.model_dump() for name, rec in usage.items()})
        self.cache.usage = usage

    def invalidate(self) -> None:
        """Drop cached data so the next call re-reads the files."""
        self.cache.invalidate()

    # ------------------------------------------------------------------
    # Hosts
    # ------------------------------------------------------------------

    def list(self) -> List[HostRecord]:
        """Return all host records in file order."""
        return list(self._load().hosts.values())

    def get(self, name: str) -> Optional[HostRecord]:
        return self._load().hosts.get(name)

    def exists(self, name: str) -> bool:
        return name in self._load().hosts

    def require(self, name: str) -> HostRecord:
        """Like get() but raise NotFoundError when the host is absent."""
        record = self.get(name)
        if record is None:
            raise NotFoundError(name)
        return record

    def _build(self, data: Mapping[str, Any], name: str, stamps: Mapping[str, Any]) -> HostRecord:
        payload = {k: v for k, v in data.items() if v is not None}
        payload.update({k: v for k, v in stamps.items() if v is not None})
        payload["name"] = name
        outcome = validate_host(payload)
        if not outcome.ok:
            raise ValidationError(f'Invalid host data for "{name}"', outcome.errors)
        return outcome.data

    def _insert(self, record: HostRecord) -> HostRecord:
        config = self._load()
        if record.name in config.hosts:
            raise DuplicateNameError(record.name)
        hosts = dict(config.hosts)
        hosts[record.name] = record
        self._save(HostsConfig(hosts=hosts))
        logger.debug(f"Added host {record.name} ({record.target})")
        return record

    def add(self, data: Mapping[str, Any], name: Optional[str] = None) -> HostRecord:
        """
        Register a new host.

        ``name`` defaults to ``data["name"]`` and then to ``data["hostname"]``.
        ``created_at`` is always stamped with the current time;
        ``connection_success_at`` only when ``data`` carries none.

        Raises:
            DuplicateNameError: a host with that name already exists
            ValidationError: the resulting record is invalid
        """
        name = name or data.get("name") or data.get("hostname") or ""
        if self.exists(name):
            raise DuplicateNameError(name)

        now = self._clock()
        record = self._build(
            data,
            name,
            {
                "created_at": now,
                "connection_success_at": data.get("connection_success_at") or now,
            },
        )
        return self._insert(record)

    def replace(self, name: str, data: Mapping[str, Any]) -> HostRecord:
        """
        Edit a host by removing it and adding the new version.

        The new record may carry a different name. ``created_at``, ``source``
        and ``connection_success_at`` are copied from the old record. The new
        record is validated, and a rename checked for collisions, before the
        old one is removed.
        """
        old = self.require(name)
        new_name = data.get("name") or name
        if new_name != name and self.exists(new_name):
            raise DuplicateNameError(new_name)

        merged = {**old.to_dict(), **{k: v for k, v in data.items() if v is not None}}
        stamps = {key: getattr(old, key) for key in PRESERVED_ON_REPLACE}
        record = self._build(merged, new_name, stamps)

        usage = self._load_usage().get(name)
        self.remove(name)
        self._insert(record)
        if usage is not None:
            history = dict(self._load_usage())
            history[new_name] = usage
            self._save_usage(history)
        return record

    def remove(self, name: str) -> HostRecord:
        """
        Delete a host and its usage entry.

        Raises:
            NotFoundError: no host with that name
        """
        config = self._load()
        if name not in config.hosts:
            raise NotFoundError(name)

        hosts = dict(config.hosts)
        record = hosts.pop(name)
        self._save(HostsConfig(hosts=hosts))

        usage = self._load_usage()
        if name in usage:
            usage = dict(usage)
            del usage[name]
            self._save_usage(usage)

        logger.debug(f"Removed host {name}")
        return record

    def clear_hosts(self) -> int:
        """Remove every host and all usage history. Returns the host count."""
        count = len(self._load().hosts)
        self._save(HostsConfig())
        self._save_usage({})
        return count

    # ------------------------------------------------------------------
    # Usage history
    # ------------------------------------------------------------------

    def record_usage(self, name: str) -> UsageRecord:
        """
        Record one use of ``name``.

        ``first_used`` is kept from the first call; ``last_used`` and
        ``use_count`` are refreshed. The host need not exist anymore.
        """
        usage = dict(self._load_usage())
        now = self._clock()
        existing = usage.get(name)
        record = UsageRecord(
            first_used=existing.first_used if existing else now,
            last_used=now,
            use_count=(existing.use_count if existing else 0) + 1,
        )
        usage[name] = record
        self._save_usage(usage)
        return record

    def get_usage_history(self) -> Dict[str, UsageRecord]:
        return dict(self._load_usage())

    def get_usage(self, name: str) -> Optional[UsageRecord]:
        return self._load_usage().get(name)

    def clear_usage(self) -> None:
        self._save_usage({})

    # ------------------------------------------------------------------
    # Recent connection
    # ------------------------------------------------------------------

    def get_recent(self) -> Optional[RecentConnection]:
        """Return the recent connection, or None when absent or invalid."""
        if not self.recent_file.exists():
            return None
        try:
            data = self._read_json(self.recent_file)
        except CorruptStoreError as e:
            logger.warning(f"{e}; resetting recent connection")
            fs.write_json(self.recent_file, {})
            return None

        outcome = validate_recent(data)
        if not outcome.ok:
            # An empty object is the reset state, not worth a warning
            if data:
                logger.warning(
                    f"Invalid recent connection in {self.recent_file}: "
                    f"{'; '.join(outcome.errors)}"
                )
                fs.write_json(self.recent_file, {})
            return None
        return outcome.data

    def save_recent(self, data: Mapping[str, Any] | RecentConnection) -> RecentConnection:
        """Validate and overwrite the recent connection."""
        if isinstance(data, RecentConnection):
            recent = data
        else:
            outcome = validate_recent(dict(data))
            if not outcome.ok:
                raise ValidationError("Invalid recent connection", outcome.errors)
            recent = outcome.data
        fs.write_json(self.recent_file, recent.to_dict())
        return recent

    def clear_recent(self) -> None:
        fs.remove(self.recent_file, missing_ok=True)

    # ------------------------------------------------------------------
    # Choices
    # ------------------------------------------------------------------

    def sorted_by_usage(self) -> List[HostRecord]:
        """Hosts ordered by ``last_used`` descending; unused hosts last, by name."""
        usage = self._load_usage()
        hosts = sorted(self.list(), key=lambda h: h.name)
        used = [h for h in hosts if h.name in usage]
        unused = [h for h in hosts if h.name not in usage]
        used.sort(key=lambda h: usage[h.name].last_used, reverse=True)
        return used + unused

    def host_choices(self, limit: Optional[int] = None) -> List[HostChoice]:
        """
        Build the host picker list.

        The recent connection comes first, then stored hosts by recency of
        use, then a ``manual`` entry for typing a new target.
        """
        choices: List[HostChoice] = []
        recent = self.get_recent()
        if recent is not None:
            label = recent.host
            if recent.user:
                label = f"{recent.user}@{label}"
            if recent.port:
                label = f"{label}:{recent.port}"
            choices.append(HostChoice(name=f"Recent: {label}", value=recent.host, kind="recent"))

        usage = self._load_usage()
        for record in self.sorted_by_usage():
            if recent is not None and record.name == recent.host:
                continue
            description = record.description or ""
            if record.name in usage:
                description = f"used {usage[record.name].use_count}x"
            choices.append(
                HostChoice(
                    name=f"{record.name} ({record.target})",
                    value=record.name,
                    kind="host",
                    description=description,
                )
            )

        if limit is not None:
            choices = choices[:limit]
        choices.append(HostChoice(name="Enter connection details manually", value="manual", kind="manual"))
        return choices
