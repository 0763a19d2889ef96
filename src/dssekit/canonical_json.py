"""
canonical_json.py — Deterministic JSON canonicalization.

Used when a payload is signed with --canonicalize-json so that logically
identical JSON documents produce identical signed bytes.

Canonical form (JCS-like, reference: RFC 8785):
- UTF-8 encoding
- Object keys sorted lexicographically by Unicode codepoint
- No insignificant whitespace
- Numbers: Python json module defaults for finite int/float
- No NaN/Infinity (raises ValueError)
"""

from __future__ import annotations
import json
from typing import Any

from .errors import DecodeError


def canonical_dumps(obj: Any) -> str:
    """Return canonical JSON string with sorted keys and no whitespace."""
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )


def canonical_bytes(obj: Any) -> bytes:
    """Return canonical JSON as UTF-8 bytes."""
    return canonical_dumps(obj).encode("utf-8")


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-finite number {name} is not valid JSON")


def canonicalize_json_bytes(data: bytes) -> bytes:
    """Parse *data* as JSON and return its canonical encoding.

    Raises:
        DecodeError: if *data* is not valid UTF-8 JSON.
    """
    try:
        value = json.loads(data.decode("utf-8"), parse_constant=_reject_constant)
        # Overflowing literals such as 1e999 parse to inf and fail here;
        # deeply nested documents exceed the recursion limit
        return canonical_bytes(value)
    except (UnicodeDecodeError, ValueError, RecursionError) as exc:
        raise DecodeError(f"payload is not valid JSON: {exc}") from exc
