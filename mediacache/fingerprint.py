"""Order-independent hashing of structured request values."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel


def canonicalize(value: Any) -> Any:
    """Reduce ``value`` to plain JSON types with a deterministic layout.

    Mapping keys are stringified and sorted; sets are sorted by their own
    canonical encoding so member order never matters.
    """
    if isinstance(value, BaseModel):
        return canonicalize(value.model_dump(mode="json", exclude_none=True))
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Mapping):
        items = {str(key): canonicalize(item) for key, item in value.items()}
        return dict(sorted(items.items()))
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    if isinstance(value, (set, frozenset)):
        members = [canonicalize(item) for item in value]
        return sorted(members, key=_encode)
    if isinstance(value, (list, tuple)):
        return [canonicalize(item) for item in value]
    return str(value)


def _encode(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def fingerprint(value: Any) -> str:
    """Return the SHA-256 hex digest of the canonical form of ``value``.

    Structurally equal values hash identically regardless of key insertion
    order. Collisions are not detected: two inputs sharing a digest share a
    cache entry.
    """
    encoded = _encode(canonicalize(value))
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()
