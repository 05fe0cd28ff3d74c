"""
Inventory serialization.

Two textual forms are supported, JSON and YAML. Decoding tries JSON first
and falls back to YAML; the result records which one succeeded so a file
can be written back in the format it was read in.

YAML output uses sorted keys so repeated encodes of an unchanged model are
byte-identical.
"""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from aship.engine.errors import NotFoundError, UnparseableInventoryError
from aship.inventory.model import InventoryModel
from aship.platform import fs
from aship.platform.paths import PathLike


class InventoryFormat(str, enum.Enum):
    YAML = "yaml"
    JSON = "json"

    @classmethod
    def for_path(cls, path: PathLike, default: "InventoryFormat | None" = None) -> "InventoryFormat":
        """Guess the format from a file extension."""
        suffix = Path(str(path)).suffix.lower()
        if suffix == ".json":
            return cls.JSON
        if suffix in (".yml", ".yaml"):
            return cls.YAML
        return default or cls.YAML


@dataclass
class DecodeResult:
    """Outcome of decode(): the parsed data and the format that worked."""

    format: Optional[InventoryFormat]
    data: Any = None
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.format is not None


@dataclass
class LoadedInventory:
    path: str
    model: InventoryModel
    format: InventoryFormat


def encode(model: InventoryModel, fmt: InventoryFormat = InventoryFormat.YAML) -> str:
    """Serialize ``model`` to text in ``fmt``."""
    document = model.to_dict()
    if InventoryFormat(fmt) is InventoryFormat.JSON:
        return json.dumps(document, indent=2) + "\n"
    return yaml.safe_dump(
        document,
        sort_keys=True,
        default_flow_style=False,
        allow_unicode=True,
        width=1000,
    )


def _try_json(text: str) -> tuple[bool, Any, str]:
    try:
        return True, json.loads(text), ""
    except ValueError as e:
        return False, None, f"json: {e}"


def _try_yaml(text: str) -> tuple[bool, Any, str]:
    try:
        return True, yaml.safe_load(text), ""
    except yaml.YAMLError as e:
        return False, None, f"yaml: {e}"


def decode(text: str) -> DecodeResult:
    """Parse inventory text as JSON, then as YAML. Never raises."""
    ok, data, json_error = _try_json(text)
    if ok:
        return DecodeResult(InventoryFormat.JSON, data)

    ok, data, yaml_error = _try_yaml(text)
    if ok:
        return DecodeResult(InventoryFormat.YAML, data)

    return DecodeResult(None, errors=[json_error, yaml_error])


def _mapping(value: Any, where: str) -> Dict[str, Any]:
    """Treat YAML nulls as empty mappings; reject anything else that is not one."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise UnparseableInventoryError(details=f"{where} must be a mapping, got {type(value).__name__}")
    return value


def normalize(raw: Any) -> InventoryModel:
    """
    Build an InventoryModel from parsed data.

    Guarantees the default host collection and the children map exist.
    Host entries and groups written as bare keys in YAML (null values) become
    empty mappings.

    Raises:
        UnparseableInventoryError: the data is not an inventory mapping
    """
    if not isinstance(raw, dict):
        raise UnparseableInventoryError(details="inventory root must be a mapping")

    all_group = dict(_mapping(raw.get("all"), "all"))
    hosts = {
        str(name): dict(_mapping(hostvars, f"all.hosts.{name}"))
        for name, hostvars in _mapping(all_group.pop("hosts", None), "all.hosts").items()
    }

    children: Dict[str, Dict[str, Any]] = {}
    for group, body in _mapping(all_group.pop("children", None), "all.children").items():
        group_body = dict(_mapping(body, f"all.children.{group}"))
        if "hosts" in group_body:
            group_body["hosts"] = {
                str(name): (value if value is not None else {})
                for name, value in _mapping(group_body["hosts"], f"all.children.{group}.hosts").items()
            }
        children[str(group)] = group_body

    extra = {key: value for key, value in raw.items() if key != "all"}
    return InventoryModel(hosts=hosts, children=children, all_extra=all_group, extra=extra)


def parse(text: str, path: Optional[str] = None) -> tuple[InventoryModel, InventoryFormat]:
    """decode() + normalize(), raising when the text is not an inventory."""
    result = decode(text)
    if not result.ok:
        raise UnparseableInventoryError(path, "; ".join(result.errors))
    try:
        return normalize(result.data), result.format
    except UnparseableInventoryError as e:
        raise UnparseableInventoryError(path, e.details)


def load_inventory(path: PathLike) -> LoadedInventory:
    """
    Read and parse an inventory file.

    Raises:
        NotFoundError: the file does not exist
        UnparseableInventoryError: the file is not a JSON or YAML inventory
    """
    path_str = str(path)
    if not Path(path_str).is_file():
        raise NotFoundError(path_str, kind="Inventory file")
    try:
        text = fs.read_file(path_str)
    except UnicodeDecodeError as e:
        raise UnparseableInventoryError(path_str, str(e))
    model, fmt = parse(text, path_str)
    return LoadedInventory(path=path_str, model=model, format=fmt)


def save_inventory(path: PathLike, model: InventoryModel, fmt: InventoryFormat) -> None:
    """Atomically write ``model`` to ``path`` in ``fmt``."""
    fs.atomic_write(path, encode(model, fmt))
