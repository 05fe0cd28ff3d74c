"""
Tests for the asyncssh connectivity probe.
"""

import asyncio

import asyncssh
import pytest

from aship.connections import ssh_probe
from aship.hosts.models import HostRecord


@pytest.fixture
def record():
    return HostRecord(
        name="web-1",
        hostname="10.0.0.1",
        user="admin",
        port=2222,
        identity_file="~/.ssh/web",
        created_at="2024-01-01T00:00:00.000Z",
    )


class FakeResult:
    def __init__(self, exit_status):
        self.exit_status = exit_status


class FakeConnection:
    def __init__(self, exit_status=0):
        self.exit_status = exit_status
        self.commands = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def run(self, command, check=False, timeout=None):
        self.commands.append(command)
        return FakeResult(self.exit_status)


def fake_connect(connection=None, error=None, calls=None):
    def connect(**kwargs):
        if calls is not None:
            calls.append(kwargs)
        if error is not None:
            raise error
        return connection
    return connect


class TestConnectKwargs:
    def test_kwargs(self, record):
        kwargs = ssh_probe.connect_kwargs(record, timeout=5)

        assert kwargs["host"] == "10.0.0.1"
        assert kwargs["port"] == 2222
        assert kwargs["username"] == "admin"
        assert kwargs["known_hosts"] is None
        assert kwargs["connect_timeout"] == 5
        assert kwargs["client_keys"][0].endswith("/.ssh/web")

    def test_no_identity(self, record):
        record.identity_file = None
        assert "client_keys" not in ssh_probe.connect_kwargs(record)


class TestProbe:
    @pytest.mark.asyncio
    async def test_success(self, record, monkeypatch):
        connection = FakeConnection()
        calls = []
        monkeypatch.setattr(asyncssh, "connect", fake_connect(connection, calls=calls))

        result = await ssh_probe.probe(record)

        assert result.success
        assert result.host == "web-1"
        assert "admin@10.0.0.1:2222" in result.message
        assert connection.commands == ["true"]
        assert calls[0]["username"] == "admin"

    @pytest.mark.asyncio
    async def test_command_failure(self, record, monkeypatch):
        monkeypatch.setattr(asyncssh, "connect", fake_connect(FakeConnection(exit_status=1)))

        result = await ssh_probe.probe(record)

        assert not result.success
        assert "exit status 1" in result.message

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        ConnectionRefusedError("refused"),
        asyncio.TimeoutError(),
        asyncssh.PermissionDenied("denied"),
    ])
    async def test_connection_errors(self, record, monkeypatch, error):
        monkeypatch.setattr(asyncssh, "connect", fake_connect(error=error))

        result = await ssh_probe.probe(record)

        assert not result.success
        assert result.message

    def test_probe_sync(self, record, monkeypatch):
        monkeypatch.setattr(asyncssh, "connect", fake_connect(FakeConnection()))
        assert ssh_probe.probe_sync(record).success
