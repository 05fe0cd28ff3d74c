"""
Inventory generation from host records.

generate() is pure: it filters the records, converts each survivor into a
host entry and places it in one child group. No I/O happens here.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from aship.engine.errors import InvalidFilterPatternError
from aship.hosts.models import HostRecord
from aship.inventory.model import DEFAULT_GROUP, InventoryModel


# Always added to generated entries; registry hosts are not in known_hosts
SSH_COMMON_ARGS = "-o StrictHostKeyChecking=no -o UserKnownHostsFile=/dev/null"


@dataclass
class InventoryOptions:
    """Selection and grouping options for generate()."""

    source: Optional[str] = None
    filter: Optional[str] = None
    include_hosts: Optional[Sequence[str]] = None
    exclude_hosts: Optional[Sequence[str]] = None
    group_name: str = DEFAULT_GROUP
    force: bool = False
    backup: bool = False


def compile_filter(pattern: str) -> "re.Pattern[str]":
    """Compile a case-insensitive host filter."""
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as e:
        raise InvalidFilterPatternError(pattern, str(e))


def filter_hosts(records: Iterable[HostRecord], options: InventoryOptions) -> List[HostRecord]:
    """
    Apply the selection stages in order: source, regex, include, exclude.

    Raises:
        InvalidFilterPatternError: ``options.filter`` is not a valid regex
    """
    selected = list(records)

    if options.source:
        selected = [h for h in selected if h.source == options.source]

    if options.filter:
        regex = compile_filter(options.filter)
        selected = [h for h in selected if regex.search(h.name) or regex.search(h.hostname)]

    if options.include_hosts:
        wanted = set(options.include_hosts)
        selected = [h for h in selected if h.name in wanted]

    if options.exclude_hosts:
        unwanted = set(options.exclude_hosts)
        selected = [h for h in selected if h.name not in unwanted]

    return selected


def host_entry(record: HostRecord) -> Dict[str, Any]:
    """Inventory variables for one host."""
    entry: Dict[str, Any] = {
        "ansible_host": record.hostname,
        "ansible_user": record.user,
        "ansible_port": record.port,
        "ansible_ssh_common_args": SSH_COMMON_ARGS,
    }
    if record.identity_file:
        entry["ansible_ssh_private_key_file"] = record.identity_file
    return entry


def generate(records: Iterable[HostRecord], options: Optional[InventoryOptions] = None) -> InventoryModel:
    """Build an InventoryModel from the records selected by ``options``."""
    options = options or InventoryOptions()
    group_name = options.group_name or DEFAULT_GROUP

    model = InventoryModel()
    members: Dict[str, Dict[str, Any]] = {}
    for record in filter_hosts(records, options):
        model.hosts[record.name] = host_entry(record)
        members[record.name] = {}

    model.children[group_name] = {"hosts": members}
    return model
