"""
Tests for host registry schemas.
"""

from aship.hosts.models import (
    validate_host,
    validate_hosts_config,
    validate_recent,
    validate_usage,
)


def _host(**overrides):
    data = {
        "name": "web-1",
        "hostname": "10.0.0.1",
        "user": "admin",
        "created_at": "2024-01-01T00:00:00.000Z",
    }
    data.update(overrides)
    return data


class TestHostValidation:
    """Field-level validation of host records."""

    def test_minimal_record_is_valid(self):
        outcome = validate_host(_host())
        assert outcome.ok
        assert outcome.data.port == 22
        assert outcome.data.source == "manual"

    def test_empty_fields_have_specific_messages(self):
        outcome = validate_host(_host(name="", hostname=""))
        assert not outcome.ok
        assert "name: Host name cannot be empty" in outcome.errors
        assert "hostname: Host hostname cannot be empty" in outcome.errors

    def test_unknown_source_rejected(self):
        outcome = validate_host(_host(source="ldap"))
        assert not outcome.ok
        assert outcome.errors[0].startswith("source:")

    def test_port_bounds(self):
        assert validate_host(_host(port=65535)).ok
        assert not validate_host(_host(port=0)).ok


class TestHostsConfigValidation:
    """Whole-file validation."""

    def test_keys_must_match_names(self):
        outcome = validate_hosts_config({"hosts": {"alias": _host()}})
        assert not outcome.ok
        assert outcome.errors == ["hosts: Host names must match their keys in the hosts object"]

    def test_nested_errors_carry_path(self):
        outcome = validate_hosts_config({"hosts": {"web-1": _host(port="many")}})
        assert not outcome.ok
        assert outcome.errors[0].startswith("hosts.web-1.port:")

    def test_empty_document_is_valid(self):
        outcome = validate_hosts_config({})
        assert outcome.ok
        assert outcome.data.hosts == {}


class TestUsageAndRecent:
    """Usage map and recent connection schemas."""

    def test_usage_negative_count_rejected(self):
        outcome = validate_usage({"web-1": {"first_used": "a", "last_used": "b", "use_count": -1}})
        assert not outcome.ok

    def test_usage_returns_plain_dict(self):
        outcome = validate_usage({"web-1": {"first_used": "a", "last_used": "b", "use_count": 2}})
        assert outcome.ok
        assert outcome.data["web-1"].use_count == 2

    def test_recent_auth_type(self):
        assert validate_recent({"host": "h", "lastInputTime": "t", "authType": "key"}).ok
        assert not validate_recent({"host": "h", "lastInputTime": "t", "authType": "token"}).ok
