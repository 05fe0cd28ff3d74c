"""
Tests for inventory generation from host records.
"""

import pytest

from aship.engine.errors import InvalidFilterPatternError
from aship.hosts.models import HostRecord
from aship.inventory.generator import (
    SSH_COMMON_ARGS,
    InventoryOptions,
    filter_hosts,
    generate,
    host_entry,
)
from aship.inventory.model import DEFAULT_GROUP


def record(name, hostname, source="manual", **extra):
    return HostRecord(
        name=name,
        hostname=hostname,
        user=extra.pop("user", "admin"),
        created_at="2024-01-01T00:00:00.000Z",
        source=source,
        **extra,
    )


@pytest.fixture
def records():
    return [
        record("web-1", "10.0.0.1"),
        record("web-2", "10.0.0.2", source="ssh_config"),
        record("db-1", "db.internal", source="imported", identity_file="/keys/db"),
        record("cache", "WEB-cache.example.com", source="ssh_config"),
    ]


class TestFilters:
    """Selection pipeline."""

    def test_regex_filter(self):
        model = generate([record("web-1", "10.0.0.1"), record("db-1", "10.0.0.2")], InventoryOptions(filter="web"))
        assert list(model.hosts) == ["web-1"]

    def test_regex_matches_hostname_case_insensitive(self, records):
        selected = filter_hosts(records, InventoryOptions(filter="^web-c"))
        assert [r.name for r in selected] == ["cache"]

    def test_source_filter(self, records):
        selected = filter_hosts(records, InventoryOptions(source="ssh_config"))
        assert [r.name for r in selected] == ["web-2", "cache"]

    def test_include_and_exclude(self, records):
        options = InventoryOptions(include_hosts=["web-1", "web-2", "db-1"], exclude_hosts=["web-2"])
        assert [r.name for r in filter_hosts(records, options)] == ["web-1", "db-1"]

    def test_filter_composition(self, records):
        both = generate(records, InventoryOptions(source="ssh_config", filter="web"))
        by_source = generate(records, InventoryOptions(source="ssh_config"))
        by_filter = generate(records, InventoryOptions(filter="web"))

        assert set(both.hosts) <= set(by_source.hosts)
        assert set(both.hosts) <= set(by_filter.hosts)
        assert set(both.hosts) == {"web-2", "cache"}

    def test_invalid_regex(self, records):
        with pytest.raises(InvalidFilterPatternError, match="Invalid filter pattern"):
            generate(records, InventoryOptions(filter="web["))


class TestConversion:
    """Host entries and groups."""

    def test_host_entry_fields(self):
        entry = host_entry(record("web-1", "10.0.0.1", port=2222))
        assert entry == {
            "ansible_host": "10.0.0.1",
            "ansible_user": "admin",
            "ansible_port": 2222,
            "ansible_ssh_common_args": SSH_COMMON_ARGS,
        }

    def test_identity_file_included(self, records):
        model = generate(records)
        assert model.hosts["db-1"]["ansible_ssh_private_key_file"] == "/keys/db"
        assert "ansible_ssh_private_key_file" not in model.hosts["web-1"]

    def test_default_group_membership(self, records):
        model = generate(records)
        assert list(model.children) == [DEFAULT_GROUP]
        assert model.children[DEFAULT_GROUP]["hosts"] == {
            "web-1": {}, "web-2": {}, "db-1": {}, "cache": {},
        }

    def test_custom_group(self, records):
        model = generate(records, InventoryOptions(group_name="prod", filter="db"))
        assert model.children == {"prod": {"hosts": {"db-1": {}}}}

    def test_generation_is_pure(self, records):
        snapshot = [r.model_dump() for r in records]
        first = generate(records, InventoryOptions(filter="web"))
        second = generate(records, InventoryOptions(filter="web"))

        assert first == second
        assert [r.model_dump() for r in records] == snapshot
