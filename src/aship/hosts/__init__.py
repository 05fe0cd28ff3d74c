"""
Host registry: schemas, the JSON-backed store and import/export helpers.
"""

from aship.hosts.cache import HostCache
from aship.hosts.models import HostRecord, RecentConnection, UsageRecord
from aship.hosts.store import HostChoice, HostStore

__all__ = [
    "HostCache",
    "HostChoice",
    "HostRecord",
    "HostStore",
    "RecentConnection",
    "UsageRecord",
]
