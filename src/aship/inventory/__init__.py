"""
Inventory model, codec, generator and injection engine.
"""

from aship.inventory.model import InventoryModel, DEFAULT_GROUP
from aship.inventory.codec import InventoryFormat, decode, encode, normalize
from aship.inventory.generator import InventoryOptions, generate
from aship.inventory.injector import InjectionPreview, inject, merge, preview

__all__ = [
    "DEFAULT_GROUP",
    "InjectionPreview",
    "InventoryFormat",
    "InventoryModel",
    "InventoryOptions",
    "decode",
    "encode",
    "generate",
    "inject",
    "merge",
    "normalize",
    "preview",
]
