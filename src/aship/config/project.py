"""
Project configuration (``aship.yml``).

A project file names playbooks, declares variables with defaults and
describes tags::

    name: demo
    playbooks:
      deploy: playbooks/deploy.yml
    vars:
      app_port:
        type: int
        default: 3000
        min: 1000
    tags:
      setup: "Setup application environment"
      default: [setup]
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from aship.engine.errors import ProjectConfigError
from aship.hosts.models import format_errors


PROJECT_FILE_NAMES = ("aship.yml", "aship.yaml")

VariableType = Literal["string", "int", "bool", "choice", "list", "password", "multiselect"]


class VariableDefinition(BaseModel):
    """One entry under ``vars``."""

    type: VariableType
    description: Optional[str] = None
    default: Any = None
    required: bool = False
    choices: Optional[List[str]] = None
    min: Optional[float] = None
    max: Optional[float] = None
    pattern: Optional[str] = None
    group: Optional[str] = None

    @model_validator(mode="after")
    def _check_type_options(self) -> "VariableDefinition":
        if self.type in ("choice", "multiselect") and not self.choices:
            raise ValueError(
                "Choice and multiselect type variables must have at least one choice defined"
            )
        if (self.min is not None or self.max is not None) and self.type != "int":
            raise ValueError("Min/max values can only be used with 'int' type variables")
        if self.pattern is not None and self.type != "string":
            raise ValueError("Pattern can only be used with 'string' type variables")
        return self


class AnsibleSettings(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    config_path: Optional[str] = Field(default=None, alias="configPath")


class ProjectConfig(BaseModel):
    """Validated ``aship.yml``."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    description: Optional[str] = None
    playbooks: Dict[str, str] = Field(default_factory=dict)
    vars: Dict[str, VariableDefinition] = Field(default_factory=dict)
    tags: Dict[str, Union[str, List[str]]] = Field(default_factory=dict)
    ansible: Optional[AnsibleSettings] = None

    # Directory the file was loaded from; playbook paths are relative to it
    _root: Path = Path(".")

    @property
    def root(self) -> Path:
        return self._root

    def resolve_playbook(self, name_or_path: str) -> str:
        """Map a playbook name to its path; anything else is taken as a path."""
        if name_or_path in self.playbooks:
            return str(self._root / self.playbooks[name_or_path])
        return name_or_path

    def default_variables(self) -> Dict[str, Any]:
        return {name: var.default for name, var in self.vars.items() if var.default is not None}

    def missing_required(self, provided: Mapping[str, Any]) -> List[str]:
        """Required variables with neither a default nor a provided value."""
        return [
            name for name, var in self.vars.items()
            if var.required and var.default is None and name not in provided
        ]

    def normalize_tags(self) -> "NormalizedTags":
        return normalize_tags(self.tags)


@dataclass
class NormalizedTags:
    tags: Dict[str, str] = field(default_factory=dict)
    default: List[str] = field(default_factory=list)
    groups: Dict[str, List[str]] = field(default_factory=dict)

    def expand(self, names: Sequence[str]) -> List[str]:
        """
        Replace ``default`` and tag group names by their member tags.

        Other names pass through. Order is kept and duplicates dropped.
        """
        expanded: List[str] = []
        for name in names:
            if name == "default" and self.default:
                members = self.default
            else:
                members = self.groups.get(name, [name])
            for tag in members:
                if tag not in expanded:
                    expanded.append(tag)
        return expanded


def normalize_tags(raw: Mapping[str, Union[str, List[str]]]) -> NormalizedTags:
    """
    Split the flat tags mapping.

    ``name: "text"`` describes a tag, ``tags: [...]`` lists undescribed tags,
    ``default: [...]`` preselects tags and any other list is a tag group.
    """
    result = NormalizedTags()
    for key, value in (raw or {}).items():
        if isinstance(value, str):
            result.tags[key] = value
        elif key == "default":
            result.default = list(value)
        elif key == "tags":
            for tag in value:
                result.tags.setdefault(tag, tag)
        else:
            result.groups[key] = list(value)
    return result


def load_project_config(path: Union[str, Path]) -> ProjectConfig:
    """Load and validate an ``aship.yml`` file."""
    path = Path(path)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ProjectConfigError("project file not found", file_path=str(path))
    except yaml.YAMLError as e:
        raise ProjectConfigError(str(e), file_path=str(path))

    try:
        config = ProjectConfig.model_validate(data or {})
    except PydanticValidationError as e:
        errors = format_errors(e)
        raise ProjectConfigError("invalid project configuration", str(path), "; ".join(errors))

    config._root = path.parent
    return config


def find_project_config(start: Union[str, Path, None] = None) -> Optional[Path]:
    """Look for a project file in ``start`` and its parents."""
    directory = Path(start or Path.cwd()).resolve()
    for candidate_dir in [directory, *directory.parents]:
        for name in PROJECT_FILE_NAMES:
            candidate = candidate_dir / name
            if candidate.is_file():
                return candidate
    return None
