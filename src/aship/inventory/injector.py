"""
Merging generated hosts into existing inventories.

Merge law: on any key collision the overlay wins. merge() is a shallow
union of the default host collections and of the child-group maps; a group
present on both sides is replaced wholesale by the overlay's version.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from loguru import logger

from aship.engine.errors import ConflictDetectedError, NotFoundError
from aship.hosts.models import HostRecord
from aship.inventory.codec import InventoryFormat, load_inventory, save_inventory
from aship.inventory.generator import InventoryOptions, generate
from aship.inventory.model import InventoryModel
from aship.platform import fs
from aship.platform.paths import PathLike


BACKUP_SUFFIX = ".backup"


@dataclass
class InjectionPreview:
    """How each generated host would land in a target inventory."""

    to_add: List[str] = field(default_factory=list)
    to_update: List[str] = field(default_factory=list)
    to_skip: List[str] = field(default_factory=list)
    groups_to_create: List[str] = field(default_factory=list)
    conflicts: List[str] = field(default_factory=list)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "add": list(self.to_add),
            "update": list(self.to_update),
            "skip": list(self.to_skip),
            "groups_to_create": list(self.groups_to_create),
            "conflicts": list(self.conflicts),
        }


@dataclass
class InjectionResult:
    path: str
    format: InventoryFormat
    added: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    backup_path: Optional[str] = None


def merge(base: InventoryModel, overlay: InventoryModel) -> InventoryModel:
    """Return a new model with ``overlay`` laid over ``base``."""
    return InventoryModel(
        hosts={**copy.deepcopy(base.hosts), **copy.deepcopy(overlay.hosts)},
        children={**copy.deepcopy(base.children), **copy.deepcopy(overlay.children)},
        all_extra={**copy.deepcopy(base.all_extra), **copy.deepcopy(overlay.all_extra)},
        extra={**copy.deepcopy(base.extra), **copy.deepcopy(overlay.extra)},
    )


def classify(target: InventoryModel, candidate: InventoryModel, force: bool = False) -> InjectionPreview:
    """
    Sort every candidate host into add, update or skip.

    Only presence is compared, never host variables.
    """
    result = InjectionPreview()
    for name in candidate.hosts:
        if name not in target.hosts:
            result.to_add.append(name)
        elif force:
            result.to_update.append(name)
        else:
            result.to_skip.append(name)
            result.conflicts.append(f'Host "{name}" already exists')

    result.groups_to_create = [g for g in candidate.children if g not in target.children]
    return result


def preview(
    path: PathLike,
    records: Iterable[HostRecord],
    options: Optional[InventoryOptions] = None,
) -> InjectionPreview:
    """Dry-run of inject(): load the target and classify without writing."""
    options = options or InventoryOptions()
    target = load_inventory(path).model
    return classify(target, generate(records, options), options.force)


def backup_path_for(path: PathLike) -> str:
    return f"{path}{BACKUP_SUFFIX}"


def inject(
    path: PathLike,
    records: Iterable[HostRecord],
    options: Optional[InventoryOptions] = None,
) -> InjectionResult:
    """
    Inject generated hosts into the inventory at ``path``.

    The target must already exist. Without ``options.force`` any host that
    is already present aborts the whole operation before anything is
    written. The file is written back in the format it was read in.

    Raises:
        NotFoundError: ``path`` does not exist
        UnparseableInventoryError: ``path`` is not a JSON or YAML inventory
        ConflictDetectedError: hosts already present and force not set
    """
    options = options or InventoryOptions()
    path_str = str(path)
    if not Path(path_str).is_file():
        raise NotFoundError(path_str, kind="Inventory file")

    backup = None
    if options.backup:
        backup = backup_path_for(path_str)
        fs.copy_file(path_str, backup)
        logger.info(f"Backed up {path_str} to {backup}")

    loaded = load_inventory(path_str)
    generated = generate(records, options)
    plan = classify(loaded.model, generated, options.force)

    if not options.force and plan.to_skip:
        raise ConflictDetectedError(plan.to_skip)

    save_inventory(path_str, merge(loaded.model, generated), loaded.format)
    logger.debug(f"Injected {len(generated.hosts)} host(s) into {path_str}")

    return InjectionResult(
        path=path_str,
        format=loaded.format,
        added=plan.to_add,
        updated=plan.to_update,
        backup_path=backup,
    )
