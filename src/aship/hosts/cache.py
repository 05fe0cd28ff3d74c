"""In-memory cache shared by HostStore instances."""

from dataclasses import dataclass
from typing import Dict, Optional

from aship.hosts.models import HostsConfig, UsageRecord


@dataclass
class HostCache:
    """
    Parsed copies of the host and usage files.

    A cache is owned by whoever creates the store. Passing the same cache
    to several stores lets them share one parse; ``invalidate()`` forces
    the next access to re-read from disk.
    """

    hosts: Optional[HostsConfig] = None
    usage: Optional[Dict[str, UsageRecord]] = None

    def invalidate(self) -> None:
        self.hosts = None
        self.usage = None

    @property
    def loaded(self) -> bool:
        return self.hosts is not None
