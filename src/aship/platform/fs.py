"""
Filesystem operations for the JSON stores and inventory files.
"""

import json
import os
import shutil
import tempfile
from typing import Any, Union

from . import IS_WINDOWS
from .paths import PathLike


def read_file(path: PathLike, encoding: str = "utf-8") -> str:
    """Read entire file as string."""
    with open(path, "r", encoding=encoding) as f:
        return f.read()


def atomic_write(
    path: PathLike,
    content: Union[str, bytes],
    encoding: str = "utf-8"
) -> None:
    """
    Atomically write content to a file.

    Writes to a temporary file in the target directory, then renames it
    over the target so readers never see a partial file. Missing parent
    directories are created.
    """
    path_str = str(path)
    dir_path = os.path.dirname(path_str) or "."
    os.makedirs(dir_path, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(dir=dir_path, prefix=".tmp_")
    try:
        with os.fdopen(fd, "wb") as handle:
            if isinstance(content, bytes):
                handle.write(content)
            else:
                handle.write(content.encode(encoding))

        if IS_WINDOWS and os.path.exists(path_str):
            os.remove(path_str)

        os.replace(tmp_path, path_str)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


def write_json(path: PathLike, data: Any) -> None:
    """Write ``data`` as indented JSON with a trailing newline."""
    atomic_write(path, json.dumps(data, indent=2) + "\n")


def makedirs(path: PathLike, exist_ok: bool = True) -> None:
    """Create directory and all parent directories."""
    os.makedirs(str(path), exist_ok=exist_ok)


def remove(path: PathLike, missing_ok: bool = False) -> None:
    """Remove a file."""
    try:
        os.remove(str(path))
    except FileNotFoundError:
        if not missing_ok:
            raise


def copy_file(src: PathLike, dst: PathLike) -> None:
    """Copy a file, preserving metadata where possible."""
    shutil.copy2(str(src), str(dst))
