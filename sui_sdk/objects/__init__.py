"""
Object lookups and gas selection.
"""

from .resolver import ObjectResolver, coin_struct_type

__all__ = ["ObjectResolver", "coin_struct_type"]
