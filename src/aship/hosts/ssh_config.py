"""
OpenSSH client config reading and writing.

Only the keys that map onto a host record are understood: ``HostName``,
``User``, ``Port`` and ``IdentityFile``. ``Host`` patterns containing
wildcards are skipped together with their options.
"""

import getpass
import os
import re
from typing import Any, Dict, Iterable, List, Optional

from aship.hosts.models import HostRecord


DEFAULT_SSH_CONFIG = "~/.ssh/config"

_WILDCARD_CHARS = set("*?!")


def default_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return os.environ.get("USER", "root")


def _split_option(line: str) -> Optional[tuple]:
    # "Key value", "Key=value" and "Key = value" are all valid
    match = re.match(r"^(\S+?)\s*(?:=|\s)\s*(.+)$", line)
    if not match:
        return None
    return match.group(1).lower(), match.group(2).strip().strip('"')


def parse_ssh_config(text: str, user: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Extract host candidates from ssh config text.

    Every non-wildcard alias on a ``Host`` line becomes one candidate dict
    with ``name``, ``hostname``, ``user``, ``port`` and optionally
    ``identity_file``. ``hostname`` defaults to the alias and ``user`` to
    the current login user.
    """
    fallback_user = user or default_user()
    hosts: List[Dict[str, Any]] = []
    current: List[Dict[str, Any]] = []

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue

        option = _split_option(line)
        if option is None:
            continue
        key, value = option

        if key == "host":
            current = []
            for alias in value.split():
                if _WILDCARD_CHARS & set(alias):
                    continue
                entry = {"name": alias, "hostname": alias, "user": fallback_user, "port": 22}
                hosts.append(entry)
                current.append(entry)
            continue
        if key == "match":
            current = []
            continue

        for entry in current:
            if key == "hostname":
                entry["hostname"] = value
            elif key == "user":
                entry["user"] = value
            elif key == "port":
                try:
                    entry["port"] = int(value)
                except ValueError:
                    entry["port"] = 22
            elif key == "identityfile":
                entry["identity_file"] = os.path.expanduser(value)

    return hosts


def render_ssh_config(records: Iterable[HostRecord]) -> str:
    """Render records as ``Host`` blocks."""
    blocks = []
    for record in records:
        lines = [f"Host {record.name}"]
        if record.description:
            lines.insert(0, f"# {record.description}")
        lines.append(f"    HostName {record.hostname}")
        lines.append(f"    User {record.user}")
        if record.port != 22:
            lines.append(f"    Port {record.port}")
        if record.identity_file:
            lines.append(f"    IdentityFile {record.identity_file}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks) + ("\n" if blocks else "")
