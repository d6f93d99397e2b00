"""
Deterministic hashing utilities.

Provides content checksums for model artifact blobs and
normalization parameters.
"""

import hashlib
import json
from typing import Any


def hash_bytes(data: bytes) -> str:
    """
    Compute SHA-256 hex digest of a byte string.

    Args:
        data: Raw bytes.

    Returns:
        Hex digest string.
    """
    return hashlib.sha256(data).hexdigest()


def hash_mapping(mapping: dict[str, Any]) -> str:
    """
    Compute hash of a JSON-serializable mapping.

    Keys are sorted so that logically equal mappings hash equally.

    Args:
        mapping: Mapping to hash.

    Returns:
        Hex digest string (first 12 characters).
    """
    payload = json.dumps(mapping, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode()).hexdigest()[:12]
