"""
Tests for the JSON-backed host registry.
"""

import json
from pathlib import Path

import pytest

from aship.engine.errors import DuplicateNameError, NotFoundError, ValidationError
from aship.hosts.cache import HostCache
from aship.hosts.store import HostStore


class TestAddAndGet:
    """Registering and reading hosts."""

    def test_add_applies_defaults(self, store):
        store.add({"hostname": "10.0.0.1", "user": "admin"}, "web-1")

        record = store.get("web-1")
        assert record is not None
        assert record.port == 22
        assert record.source == "manual"
        assert record.hostname == "10.0.0.1"

    def test_add_stamps_timestamps(self, store, clock):
        record = store.add({"hostname": "10.0.0.1", "user": "admin"}, "web-1")
        assert record.created_at == "2024-01-01T00:00:01.000Z"
        assert record.connection_success_at == record.created_at

    def test_add_keeps_existing_success_marker(self, store):
        record = store.add(
            {"hostname": "h", "user": "u", "connection_success_at": "2023-05-05T00:00:00.000Z"},
            "h",
        )
        assert record.connection_success_at == "2023-05-05T00:00:00.000Z"

    def test_name_defaults_to_hostname(self, store):
        record = store.add({"hostname": "app.example.com", "user": "deploy"})
        assert record.name == "app.example.com"

    def test_duplicate_name_rejected(self, store):
        store.add({"hostname": "10.0.0.1", "user": "admin"}, "web-1")

        with pytest.raises(DuplicateNameError, match='Host "web-1" already exists'):
            store.add({"hostname": "10.0.0.9", "user": "root"}, "web-1")

        assert [r.name for r in store.list()] == ["web-1"]
        assert store.get("web-1").hostname == "10.0.0.1"

    def test_invalid_port_rejected(self, store):
        with pytest.raises(ValidationError) as exc_info:
            store.add({"hostname": "h", "user": "u", "port": 70000}, "h")
        assert any(err.startswith("port:") for err in exc_info.value.errors)
        assert store.get("h") is None

    def test_empty_user_message(self, store):
        with pytest.raises(ValidationError) as exc_info:
            store.add({"hostname": "h", "user": ""}, "h")
        assert "user: Username cannot be empty" in exc_info.value.errors

    def test_get_missing_returns_none(self, store):
        assert store.get("nope") is None

    def test_require_missing_raises(self, store):
        with pytest.raises(NotFoundError, match='Host "nope" not found'):
            store.require("nope")

    def test_file_layout(self, populated_store):
        data = json.loads(Path(populated_store.hosts_file).read_text())
        assert set(data["hosts"]) == {"web-1", "web-2", "db-1"}
        assert data["hosts"]["web-2"]["port"] == 2222
        # Optional fields are omitted rather than written as null
        assert "identity_file" not in data["hosts"]["web-1"]


class TestRemove:
    """Removing hosts cascades to usage history."""

    def test_remove_deletes_host_and_usage(self, populated_store):
        populated_store.record_usage("web-1")
        populated_store.record_usage("web-2")

        populated_store.remove("web-1")

        assert populated_store.get("web-1") is None
        assert populated_store.get_usage("web-1") is None
        assert populated_store.get_usage("web-2") is not None

        usage_on_disk = json.loads(Path(populated_store.usage_file).read_text())
        assert "web-1" not in usage_on_disk

    def test_remove_missing_raises(self, store):
        with pytest.raises(NotFoundError):
            store.remove("ghost")


class TestReplace:
    """Editing is remove-then-add."""

    def test_replace_preserves_provenance(self, populated_store):
        before = populated_store.get("db-1")

        after = populated_store.replace("db-1", {"port": 5433})

        assert after.port == 5433
        assert after.hostname == "db.internal"
        assert after.created_at == before.created_at
        assert after.source == "imported"
        assert after.connection_success_at == before.connection_success_at

    def test_replace_rename_moves_usage(self, populated_store):
        populated_store.record_usage("web-1")

        populated_store.replace("web-1", {"name": "web-01"})

        assert populated_store.get("web-1") is None
        assert populated_store.get("web-01") is not None
        assert populated_store.get_usage("web-01").use_count == 1

    def test_replace_rename_collision_keeps_original(self, populated_store):
        with pytest.raises(DuplicateNameError):
            populated_store.replace("web-1", {"name": "web-2"})
        assert populated_store.get("web-1") is not None

    def test_replace_invalid_data_keeps_original(self, populated_store):
        with pytest.raises(ValidationError):
            populated_store.replace("web-1", {"port": 0})
        assert populated_store.get("web-1").port == 22

    def test_replace_missing_raises(self, store):
        with pytest.raises(NotFoundError):
            store.replace("ghost", {"port": 2})


class TestUsage:
    """Usage statistics."""

    def test_usage_monotonicity(self, populated_store):
        first = populated_store.record_usage("web-1")
        for _ in range(4):
            last = populated_store.record_usage("web-1")

        assert last.use_count == 5
        assert last.first_used == first.first_used
        assert last.last_used > first.last_used

    def test_usage_for_removed_host_is_allowed(self, store):
        record = store.record_usage("gone")
        assert record.use_count == 1

    def test_clear_usage(self, populated_store):
        populated_store.record_usage("web-1")
        populated_store.clear_usage()
        assert populated_store.get_usage_history() == {}

    def test_sorted_by_usage(self, populated_store):
        populated_store.record_usage("web-2")
        populated_store.record_usage("db-1")

        names = [r.name for r in populated_store.sorted_by_usage()]
        assert names == ["db-1", "web-2", "web-1"]


class TestSelfHealing:
    """Corrupt files are reset instead of failing."""

    def test_corrupt_json_resets_registry(self, layout, clock):
        layout.hosts_file.write_text("{not json")

        store = HostStore(layout, clock=clock)
        assert store.list() == []
        assert json.loads(layout.hosts_file.read_text()) == {"hosts": {}}

    def test_key_name_mismatch_resets_registry(self, layout, clock):
        layout.hosts_file.write_text(json.dumps({
            "hosts": {
                "alias": {
                    "name": "other",
                    "hostname": "h",
                    "user": "u",
                    "created_at": "2024-01-01T00:00:00.000Z",
                }
            }
        }))

        store = HostStore(layout, clock=clock)
        assert store.list() == []
        assert json.loads(layout.hosts_file.read_text()) == {"hosts": {}}

    def test_corrupt_usage_resets(self, layout, clock):
        layout.usage_file.write_text(json.dumps({"web-1": {"use_count": -3}}))

        store = HostStore(layout, clock=clock)
        assert store.get_usage_history() == {}
        assert json.loads(layout.usage_file.read_text()) == {}

    def test_missing_file_is_created(self, layout, clock):
        store = HostStore(layout, clock=clock)
        assert store.list() == []
        assert layout.hosts_file.exists()


class TestCache:
    """Explicit cache ownership."""

    def test_shared_cache_sees_writes(self, layout, clock):
        cache = HostCache()
        a = HostStore(layout, cache, clock=clock)
        b = HostStore(layout, cache, clock=clock)

        a.add({"hostname": "h", "user": "u"}, "h")
        assert b.get("h") is not None

    def test_invalidate_rereads_disk(self, populated_store):
        path = Path(populated_store.hosts_file)
        data = json.loads(path.read_text())
        del data["hosts"]["db-1"]
        path.write_text(json.dumps(data))

        assert populated_store.get("db-1") is not None
        populated_store.invalidate()
        assert populated_store.get("db-1") is None


class TestRecentConnection:
    """The single recent-connection slot."""

    def test_missing_returns_none(self, store):
        assert store.get_recent() is None

    def test_save_and_get(self, store):
        store.save_recent({"host": "web-1", "user": "admin", "lastInputTime": "t1"})

        recent = store.get_recent()
        assert recent.host == "web-1"
        assert recent.connection_attempts == 0

    def test_save_overwrites(self, store):
        store.save_recent({"host": "a", "lastInputTime": "t1"})
        store.save_recent({"host": "b", "lastInputTime": "t2"})
        assert store.get_recent().host == "b"

    def test_file_uses_camel_case_keys(self, store):
        store.save_recent({"host": "a", "lastInputTime": "t1", "connectionAttempts": 2})
        data = json.loads(Path(store.recent_file).read_text())
        assert data == {"host": "a", "lastInputTime": "t1", "connectionAttempts": 2}

    def test_invalid_file_is_reset(self, store):
        Path(store.recent_file).write_text(json.dumps({"host": ""}))

        assert store.get_recent() is None
        assert json.loads(Path(store.recent_file).read_text()) == {}

    def test_save_invalid_raises(self, store):
        with pytest.raises(ValidationError):
            store.save_recent({"host": "a"})

    def test_clear_ignores_missing_file(self, store):
        store.clear_recent()
        store.save_recent({"host": "a", "lastInputTime": "t1"})
        store.clear_recent()
        assert store.get_recent() is None


class TestHostChoices:
    """Picker ordering."""

    def test_recent_then_usage_then_manual(self, populated_store):
        populated_store.record_usage("db-1")
        populated_store.save_recent({"host": "web-2", "lastInputTime": "t"})

        choices = populated_store.host_choices()

        assert [c.kind for c in choices] == ["recent", "host", "host", "manual"]
        assert [c.value for c in choices] == ["web-2", "db-1", "web-1", "manual"]

    def test_no_hosts_still_offers_manual(self, store):
        choices = store.host_choices()
        assert len(choices) == 1
        assert choices[0].kind == "manual"
