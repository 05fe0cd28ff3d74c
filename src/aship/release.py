# Copyright (c) 2024 aship Contributors
# MIT License

"""aship release metadata."""

from __future__ import annotations

__version__ = "0.3.0"
__author__ = "aship Contributors"
__codename__ = "Harbor"

# Version info tuple for programmatic comparison
VERSION_INFO = (0, 3, 0)
