"""
Path handling helpers.

Expansion of user paths and containment checks for scratch directories.
"""

import os
from typing import Union


PathLike = Union[str, os.PathLike]


def expand(path: PathLike) -> str:
    """Expand both ~ and environment variables."""
    return os.path.expandvars(os.path.expanduser(str(path)))


def safe_join(base: PathLike, *parts: PathLike) -> str:
    """
    Safely join paths, preventing path traversal attacks.

    Raises ValueError if the result would escape the base directory.
    """
    base_resolved = os.path.abspath(str(base))
    result = os.path.abspath(os.path.join(base_resolved, *[str(p) for p in parts]))

    if not is_within(base_resolved, result):
        raise ValueError(f"Path traversal detected: {result} escapes {base_resolved}")

    return result


def is_within(base: PathLike, path: PathLike) -> bool:
    """Check that ``path`` lies strictly inside directory ``base``.

    Symlinks are resolved on both sides so a link pointing out of the
    directory does not count as inside.
    """
    base_real = os.path.realpath(str(base))
    path_real = os.path.realpath(str(path))
    return path_real.startswith(base_real + os.sep)
