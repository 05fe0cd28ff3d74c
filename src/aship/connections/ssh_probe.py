"""
aship SSH probe (asyncssh)

Checks that a registry host accepts an SSH login and can run a trivial
command.
"""

import asyncio
import os
import time
from dataclasses import dataclass

import asyncssh

from aship.hosts.models import HostRecord


DEFAULT_TIMEOUT = 10


@dataclass
class ProbeResult:
    """Outcome of one connectivity probe."""

    host: str
    success: bool
    message: str
    duration: float = 0.0


def connect_kwargs(record: HostRecord, timeout: int = DEFAULT_TIMEOUT) -> dict:
    """asyncssh.connect() arguments for a host record."""
    kwargs = {
        "host": record.hostname,
        "port": record.port,
        "username": record.user,
        # Registry hosts are not pinned in known_hosts
        "known_hosts": None,
        "connect_timeout": timeout,
    }
    if record.identity_file:
        kwargs["client_keys"] = [os.path.expanduser(record.identity_file)]
    return kwargs


async def probe(record: HostRecord, timeout: int = DEFAULT_TIMEOUT) -> ProbeResult:
    """
    Open an SSH session to ``record`` and run ``true``.

    Never raises for connection problems; they are reported in the result.
    """
    start = time.monotonic()
    try:
        async with asyncssh.connect(**connect_kwargs(record, timeout)) as conn:
            result = await conn.run("true", check=False, timeout=timeout)
    except (OSError, asyncssh.Error, asyncio.TimeoutError) as e:
        return ProbeResult(
            host=record.name,
            success=False,
            message=str(e) or e.__class__.__name__,
            duration=time.monotonic() - start,
        )

    duration = time.monotonic() - start
    if result.exit_status == 0:
        return ProbeResult(record.name, True, f"Connected to {record.target}", duration)
    return ProbeResult(
        record.name,
        False,
        f"Command failed with exit status {result.exit_status}",
        duration,
    )


def probe_sync(record: HostRecord, timeout: int = DEFAULT_TIMEOUT) -> ProbeResult:
    return asyncio.run(probe(record, timeout))
