"""
Run-mode resolution.

Decides which inventory file ansible-playbook receives when the user names
registry hosts (``-H``), passes an inventory (``-i``), both, or neither.

    hosts  inventory  mode     result
    -----  ---------  -------  ----------------------------------------
    no     no         any      None (ansible's own default inventory)
    yes    no         any      fresh scratch inventory of the hosts
    no     yes        any      the inventory path, untouched
    yes    yes        replace  fresh scratch inventory of the hosts
    yes    yes        inject   scratch copy of the inventory, hosts injected
    yes    yes        merge    inventory merged with the hosts, new scratch file

Every scratch file is tracked and removed by cleanup(). cleanup() only
ever deletes files inside the scratch directory.
"""

from __future__ import annotations

import enum
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from loguru import logger

from aship.engine.errors import AshipError, NotFoundError
from aship.hosts.models import HostRecord
from aship.hosts.store import HostStore
from aship.inventory.codec import InventoryFormat, load_inventory, save_inventory
from aship.inventory.generator import InventoryOptions, generate
from aship.inventory.injector import inject, merge
from aship.platform import fs
from aship.platform.paths import PathLike, is_within, safe_join


class RunMode(str, enum.Enum):
    REPLACE = "replace"
    INJECT = "inject"
    MERGE = "merge"


DEFAULT_MODE = RunMode.INJECT


@dataclass
class ResolvedInventory:
    """The inventory chosen for one run."""

    path: Optional[str]
    # "default", "generated", "custom", or a RunMode value
    strategy: str
    scratch: bool = False


class RunModeResolver:
    """
    Resolve the inventory for a run and own the scratch files it creates.

    Args:
        store: Host registry used to look up named hosts
        scratch_dir: Directory for temporary inventories
        clock: Returns milliseconds used in scratch file names
    """

    def __init__(
        self,
        store: HostStore,
        scratch_dir: PathLike,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        self.store = store
        self.scratch_dir = str(scratch_dir)
        self._clock = clock or (lambda: int(time.time() * 1000))
        self._scratch: List[str] = []

    @property
    def scratch_files(self) -> List[str]:
        return list(self._scratch)

    def lookup(self, names: Sequence[str]) -> List[HostRecord]:
        """Return the records for ``names``, failing if any is missing."""
        records = []
        missing = []
        for name in names:
            record = self.store.get(name)
            if record is None:
                missing.append(name)
            else:
                records.append(record)
        if missing:
            error = NotFoundError(missing[0])
            if len(missing) > 1:
                error.details = f"also missing: {', '.join(missing[1:])}"
            raise error
        return records

    def _scratch_path(self, name: str) -> str:
        fs.makedirs(self.scratch_dir)
        path = safe_join(self.scratch_dir, name)
        counter = 1
        stem, suffix = os.path.splitext(path)
        while os.path.exists(path):
            path = f"{stem}-{counter}{suffix}"
            counter += 1
        return self.track(path)

    def track(self, path: str) -> str:
        """Register ``path`` for deletion by cleanup()."""
        self._scratch.append(path)
        return path

    def _generate_for(self, names: Sequence[str]) -> str:
        records = self.lookup(names)
        model = generate(records, InventoryOptions(include_hosts=list(names)))
        path = self._scratch_path(f"aship-{self._clock()}.yml")
        save_inventory(path, model, InventoryFormat.YAML)
        logger.debug(f"Generated inventory for {len(records)} host(s): {path}")
        return path

    def _inject_into_copy(self, names: Sequence[str], inventory: str) -> str:
        if not Path(inventory).is_file():
            raise NotFoundError(inventory, kind="Inventory file")
        records = self.lookup(names)
        path = self._scratch_path(f"temp-{self._clock()}-{os.path.basename(inventory)}")
        fs.copy_file(inventory, path)
        inject(path, records, InventoryOptions(include_hosts=list(names), force=True))
        return path

    def _merge_into_new(self, names: Sequence[str], inventory: str) -> str:
        loaded = load_inventory(inventory)
        records = self.lookup(names)
        generated = generate(records, InventoryOptions(include_hosts=list(names)))
        path = self._scratch_path(f"merged-{self._clock()}.yml")
        save_inventory(path, merge(loaded.model, generated), InventoryFormat.YAML)
        return path

    def resolve(
        self,
        hosts: Sequence[str] = (),
        inventory: Optional[str] = None,
        mode: RunMode | str = DEFAULT_MODE,
    ) -> ResolvedInventory:
        """Pick or build the inventory for one run."""
        try:
            mode = RunMode(mode)
        except ValueError:
            raise AshipError(f"Unknown inventory mode: {mode}", "Use replace, inject or merge")

        hosts = list(hosts)
        if not hosts and not inventory:
            return ResolvedInventory(path=None, strategy="default")
        if not hosts:
            return ResolvedInventory(path=inventory, strategy="custom")
        if not inventory:
            return ResolvedInventory(self._generate_for(hosts), "generated", scratch=True)

        if mode is RunMode.REPLACE:
            path = self._generate_for(hosts)
        elif mode is RunMode.INJECT:
            path = self._inject_into_copy(hosts, inventory)
        else:
            path = self._merge_into_new(hosts, inventory)
        return ResolvedInventory(path=path, strategy=mode.value, scratch=True)

    def cleanup(self) -> List[str]:
        """
        Delete tracked scratch files. Failures are logged, never raised.

        Returns the paths actually removed.
        """
        removed = []
        for path in self._scratch:
            if not is_within(self.scratch_dir, path):
                logger.warning(f"Refusing to delete {path}: outside {self.scratch_dir}")
                continue
            try:
                fs.remove(path, missing_ok=True)
                removed.append(path)
            except OSError as e:
                logger.warning(f"Failed to remove temporary inventory {path}: {e}")
        self._scratch = []
        return removed
