"""Deterministic cache key generation."""

import hashlib
import json
from typing import Any

# Cache key prefix for tax estimates
CALC_TAX_PREFIX = "calc:tax"


def _deep_sort(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {k: _deep_sort(obj[k]) for k in sorted(obj, key=str)}
    if isinstance(obj, (list, tuple)):
        return [_deep_sort(item) for item in obj]
    return obj


def generate_cache_key(data: Any, prefix: str = "") -> str:
    """
    Generate a deterministic key for any JSON-like data.

    Mapping order never changes the key; list order does.

    Args:
        data: Data to hash
        prefix: Optional namespace prefix (e.g. "calc:tax")

    Returns:
        "prefix:hash" or just the 16-character hash
    """
    normalized = json.dumps(_deep_sort(data), default=str, separators=(",", ":"))
    digest = hashlib.md5(normalized.encode()).hexdigest()[:16]
    return f"{prefix}:{digest}" if prefix else digest
