"""
In-memory representation of an Ansible inventory document.

Only the ``all`` group is modelled structurally::

    all:
      hosts:    {<host>: {<var>: <value>}}
      children: {<group>: {hosts: {<host>: {}}}}

Anything else found in a loaded document (``all.vars``, top-level groups
next to ``all``) is carried along untouched so that writing the model back
does not lose it.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List


DEFAULT_GROUP = "aship_hosts"

HostVars = Dict[str, Any]


@dataclass
class InventoryModel:
    """Structured inventory: default host collection plus child groups."""

    hosts: Dict[str, HostVars] = field(default_factory=dict)
    children: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    # Keys of ``all`` other than hosts/children, e.g. ``vars``
    all_extra: Dict[str, Any] = field(default_factory=dict)
    # Top-level keys other than ``all``
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Return the document form; the result shares no state with the model."""
        all_group: Dict[str, Any] = copy.deepcopy(self.all_extra)
        all_group["hosts"] = copy.deepcopy(self.hosts)
        all_group["children"] = copy.deepcopy(self.children)
        document: Dict[str, Any] = {"all": all_group}
        for key, value in self.extra.items():
            document[key] = copy.deepcopy(value)
        return document

    def group_members(self, group: str) -> List[str]:
        members = self.children.get(group, {}).get("hosts") or {}
        return list(members)

    def host_names(self) -> List[str]:
        return list(self.hosts)

    def group_names(self) -> List[str]:
        return list(self.children)

    def summary(self) -> Dict[str, Any]:
        """Host count and member count per child group."""
        return {
            "hosts": len(self.hosts),
            "groups": {name: len(self.group_members(name)) for name in self.children},
        }
