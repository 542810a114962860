"""
Substance name normalization.

Normalized names are the only identity used for cache keys and for matching
upstream records back to the names found on a page.
"""

import re
from typing import Any

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalize_name(raw: Any) -> str:
    """Lowercase and strip everything outside [a-z0-9]. Non-strings give ''."""
    if not raw or not isinstance(raw, str):
        return ""
    return _NON_ALNUM.sub("", raw.lower())


def cache_key(prefix: str, raw: Any) -> str | None:
    """Source-prefixed cache key, or None when the name has no usable key."""
    normalized = normalize_name(raw)
    if not normalized:
        return None
    return f"{prefix}_{normalized}"
