"""
Utility helpers for the Python SDK.

Re-exports:
- bytes: hex/base64 helpers and ULEB128 encode/decode
- hash: BLAKE2b-256 and base58 digest rendering
- retry: backoff schedules shared by the RPC client and the submitter
"""

from .bytes import (ensure_bytes, from_b64, from_hex, to_b64, to_hex,
                    uleb128_decode, uleb128_encode)
from .hash import blake2b_256, digest_from_base58, digest_to_base58
from .retry import BackoffState, RetryPolicy, backoff_delay

__all__ = [
    # bytes
    "to_hex",
    "from_hex",
    "to_b64",
    "from_b64",
    "ensure_bytes",
    "uleb128_encode",
    "uleb128_decode",
    # hash
    "blake2b_256",
    "digest_to_base58",
    "digest_from_base58",
    # retry
    "BackoffState",
    "RetryPolicy",
    "backoff_delay",
]
