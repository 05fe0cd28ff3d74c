# Copyright (c) 2024 aship Contributors
# MIT License

"""
aship: host registry and inventory tooling for ansible-playbook.

Keeps a registry of named SSH hosts and turns any subset of them into an
Ansible inventory, either as a fresh file or injected into an existing one.

Features:
    - Host registry with usage tracking and a recent-connection slot
    - Inventory generation with source / regex / include / exclude filters
    - Conflict-aware injection into YAML or JSON inventories
    - ``aship run`` wrapper that resolves replace / inject / merge modes

This package exposes the CLI entry point and release metadata.
"""

from __future__ import annotations

from aship.release import __version__, __author__, __codename__

__all__ = [
    "__version__",
    "__author__",
    "__codename__",
]
