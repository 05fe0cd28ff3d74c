"""
Platform helpers for filesystem access.

Small portable wrappers around os / shutil used by the stores and the
inventory writer.
"""

import platform as _platform

IS_WINDOWS = _platform.system() == "Windows"
