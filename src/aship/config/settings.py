"""
Global settings and directory layout.

The global directory is resolved from, in order:

1. the ``ASHIP_GLOBAL_DIR`` environment variable
2. ``aship_dir`` in a ``.ashiprc`` file (current directory, then home,
   then ``~/.config/aship/config``). Both ``key = value`` lines and a JSON
   object are accepted.
3. ``~/.aship``
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from loguru import logger

from aship.platform.paths import expand


APP_NAME = "aship"
RC_FILE_NAME = f".{APP_NAME}rc"
DEFAULT_DIR_NAME = f".{APP_NAME}"
ENV_GLOBAL_DIR = "ASHIP_GLOBAL_DIR"
ENV_LOG_LEVEL = "ASHIP_LOG_LEVEL"
DIR_KEY = "aship_dir"
LOG_LEVEL_KEY = "log_level"


@dataclass
class DirectoryLayout:
    """Concrete paths below the global aship directory."""

    root: Path

    @property
    def hosts_file(self) -> Path:
        return self.root / "hosts.json"

    @property
    def state_dir(self) -> Path:
        return self.root / "state"

    @property
    def usage_file(self) -> Path:
        return self.state_dir / "host-usage.json"

    @property
    def recent_file(self) -> Path:
        return self.state_dir / "recent-connection.json"

    @property
    def logs_dir(self) -> Path:
        return self.root / "logs"

    @property
    def log_file(self) -> Path:
        return self.logs_dir / "aship.log"

    @property
    def temp_dir(self) -> Path:
        return self.root / "temp"

    @property
    def inventories_dir(self) -> Path:
        """Scratch directory for per-run inventories."""
        return self.temp_dir / "inventories"

    @property
    def session_dir(self) -> Path:
        return self.temp_dir / "session"

    @property
    def cache_dir(self) -> Path:
        return self.root / "cache"

    @property
    def config_dir(self) -> Path:
        return self.root / "config"

    def directories(self) -> List[Path]:
        return [
            self.root,
            self.state_dir,
            self.logs_dir,
            self.temp_dir,
            self.inventories_dir,
            self.session_dir,
            self.cache_dir,
            self.config_dir,
        ]

    def initialize(self) -> None:
        """Create every directory of the layout."""
        for directory in self.directories():
            directory.mkdir(parents=True, exist_ok=True)


@dataclass
class AshipSettings:
    """Resolved global settings."""

    global_dir: Path
    log_level: str = "INFO"
    rc_file: Optional[Path] = None
    extra: Dict[str, str] = field(default_factory=dict)

    @property
    def layout(self) -> DirectoryLayout:
        return DirectoryLayout(self.global_dir)


def find_rc_file(cwd: Path, home: Path) -> Optional[Path]:
    """Return the first ``.ashiprc`` found in the search order, if any."""
    candidates = [
        cwd / RC_FILE_NAME,
        home / RC_FILE_NAME,
        home / ".config" / APP_NAME / "config",
    ]
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def parse_rc(content: str) -> Dict[str, str]:
    """Parse rc file content in either JSON or ``key = value`` form."""
    if content.strip().startswith("{"):
        data = json.loads(content)
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items()}

    values: Dict[str, str] = {}
    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith(("#", ";")) or "=" not in line:
            continue
        key, _, value = line.partition("=")
        values[key.strip()] = value.strip()
    return values


def load_settings(
    env: Optional[Mapping[str, str]] = None,
    cwd: Optional[Path] = None,
    home: Optional[Path] = None,
) -> AshipSettings:
    """Resolve settings from the environment and rc files."""
    env = os.environ if env is None else env
    cwd = Path.cwd() if cwd is None else cwd
    home = Path.home() if home is None else home

    rc_file = find_rc_file(cwd, home)
    rc_values: Dict[str, str] = {}
    if rc_file is not None:
        try:
            rc_values = parse_rc(rc_file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Error reading configuration file {rc_file}: {e}")

    if env.get(ENV_GLOBAL_DIR):
        global_dir = Path(expand(env[ENV_GLOBAL_DIR]))
    elif rc_values.get(DIR_KEY):
        global_dir = Path(expand(rc_values[DIR_KEY]))
    else:
        global_dir = home / DEFAULT_DIR_NAME

    log_level = env.get(ENV_LOG_LEVEL) or rc_values.get(LOG_LEVEL_KEY) or "INFO"

    extra = {k: v for k, v in rc_values.items() if k not in (DIR_KEY, LOG_LEVEL_KEY)}
    return AshipSettings(
        global_dir=global_dir,
        log_level=log_level.upper(),
        rc_file=rc_file,
        extra=extra,
    )
