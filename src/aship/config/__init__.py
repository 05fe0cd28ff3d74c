"""
aship configuration: global directory layout and project (aship.yml) files.
"""

from aship.config.settings import AshipSettings, DirectoryLayout, load_settings

__all__ = ["AshipSettings", "DirectoryLayout", "load_settings"]
