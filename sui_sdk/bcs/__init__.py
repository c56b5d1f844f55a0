"""
Canonical binary (BCS) codec used for transaction bytes and pure arguments.
"""

from .codec import BcsDecodeError, BcsEncodeError, BcsReader, BcsWriter, decode_all

__all__ = ["BcsWriter", "BcsReader", "BcsEncodeError", "BcsDecodeError", "decode_all"]
