"""
Bulk import and export of host records.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

import yaml
from loguru import logger

from aship.engine.errors import AshipError, ParseError
from aship.hosts.models import HostRecord, UsageRecord
from aship.hosts.ssh_config import render_ssh_config
from aship.hosts.store import HostStore
from aship.inventory.codec import InventoryFormat, encode
from aship.inventory.generator import InventoryOptions, generate
from aship.inventory.model import DEFAULT_GROUP


EXPORT_FORMATS = ("json", "yaml", "ssh-config", "ansible")


@dataclass
class ImportSummary:
    imported: List[str] = field(default_factory=list)
    replaced: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)


def match_wildcard(name: str, pattern: str) -> bool:
    """Shell-style ``*`` match on the whole name, ignoring case."""
    regex = "^" + ".*".join(re.escape(part) for part in pattern.split("*")) + "$"
    return re.match(regex, name, re.IGNORECASE) is not None


def _host_list(data: Any, path: str) -> List[Dict[str, Any]]:
    if isinstance(data, list):
        items = data
    elif isinstance(data, dict) and isinstance(data.get("hosts"), list):
        items = data["hosts"]
    elif isinstance(data, dict) and isinstance(data.get("hosts"), dict):
        items = [{"name": key, **(value or {})} for key, value in data["hosts"].items()]
    else:
        raise ParseError(
            "expected a list of hosts, {hosts: [...]} or {hosts: {name: host}}",
            file_path=path,
        )
    return [dict(item) for item in items if isinstance(item, dict)]


def load_host_file(path: str) -> List[Dict[str, Any]]:
    """Read host candidates from a JSON or YAML file."""
    text = Path(path).read_text(encoding="utf-8")
    suffix = Path(path).suffix.lower()
    try:
        if suffix == ".json":
            data = json.loads(text)
        else:
            # YAML also accepts JSON documents
            data = yaml.safe_load(text)
    except (ValueError, yaml.YAMLError) as e:
        raise ParseError(str(e), file_path=path)
    return _host_list(data, path)


def import_hosts(
    store: HostStore,
    candidates: Iterable[Mapping[str, Any]],
    source: str,
    pattern: Optional[str] = None,
    overwrite: bool = False,
) -> ImportSummary:
    """
    Add candidate hosts to the store.

    Existing names are skipped unless ``overwrite`` is set, in which case
    they are removed and added again. Invalid candidates are
    reported in ``failed`` and do not stop the import.
    """
    summary = ImportSummary()
    for candidate in candidates:
        name = candidate.get("name") or candidate.get("hostname")
        if not name:
            summary.failed["<unnamed>"] = "missing name and hostname"
            continue
        # YAML keys such as 101 load as ints
        name = str(name)
        if pattern and not match_wildcard(name, pattern):
            continue

        data = {**candidate, "name": name, "source": source}
        try:
            if store.exists(name):
                if not overwrite:
                    summary.skipped.append(name)
                    continue
                store.remove(name)
                store.add(data, name)
                summary.replaced.append(name)
            else:
                store.add(data, name)
                summary.imported.append(name)
        except AshipError as e:
            logger.warning(f"Skipping {name}: {e}")
            summary.failed[name] = str(e)
    return summary


def export_hosts(
    records: Iterable[HostRecord],
    fmt: str = "json",
    usage: Optional[Mapping[str, UsageRecord]] = None,
    group: str = DEFAULT_GROUP,
) -> str:
    """
    Render records in one of EXPORT_FORMATS.

    ``usage`` is embedded in json/yaml exports when given.
    """
    records = sorted(records, key=lambda r: r.name)
    if fmt == "ssh-config":
        return render_ssh_config(records)
    if fmt == "ansible":
        model = generate(records, InventoryOptions(group_name=group))
        return encode(model, InventoryFormat.YAML)

    document: Dict[str, Any] = {"hosts": [record.to_dict() for record in records]}
    if usage is not None:
        document["usage"] = {
            name: record.model_dump() for name, record in usage.items()
            if any(r.name == name for r in records)
        }

    if fmt == "json":
        return json.dumps(document, indent=2) + "\n"
    if fmt == "yaml":
        return yaml.safe_dump(document, sort_keys=False, default_flow_style=False)
    raise AshipError(f"Unknown export format: {fmt}", f"Use one of {', '.join(EXPORT_FORMATS)}")
