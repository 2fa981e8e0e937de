"""
Hashing and Text Normalization

Risk results and loaded catalogues carry a SHA-256 over a canonical JSON
form of their decision-relevant fields, so a stored result can be
recomputed later and compared byte for byte.

Canonical form: sorted keys, compact separators, non-ASCII kept as-is,
aware datetimes converted to UTC with millisecond precision and a ``Z``
suffix, sets as sorted lists, enums as their values.
"""
from __future__ import annotations

import hashlib
import json
import re
import unicodedata
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

_UTC_FORMAT = "%Y-%m-%dT%H:%M:%S.%f"
_WHITESPACE = re.compile(r"\s+")


def _encode(obj: Any) -> Any:
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, datetime):
        if obj.tzinfo is None:
            return obj.strftime(_UTC_FORMAT)[:-3]
        return obj.astimezone(timezone.utc).strftime(_UTC_FORMAT)[:-3] + "Z"
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=str)
    raise TypeError(f"{type(obj).__name__} has no canonical JSON form")


def canonical_json(obj: Any) -> str:
    """
    Deterministic JSON text for ``obj``.

    Example:
        >>> canonical_json({"b": 1, "a": 2})
        '{"a":2,"b":1}'
    """
    return json.dumps(obj, default=_encode, ensure_ascii=False, separators=(",", ":"), sort_keys=True)


def content_hash(obj: Any) -> str:
    """Hex SHA-256 of ``canonical_json(obj)``."""
    return text_hash(canonical_json(obj))


def text_hash(text: str) -> str:
    """Hex SHA-256 of a UTF-8 string; audit records store this instead of narratives."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def normalize_for_matching(text: str) -> str:
    """
    Fold text for keyword comparison.

    Accents are stripped after NFKD decomposition, case is folded to lower
    and whitespace runs collapse to one space.

    Example:
        >>> normalize_for_matching("  Ofreció un SOBORNO\\n al inspector ")
        'ofrecio un soborno al inspector'
    """
    decomposed = unicodedata.normalize("NFKD", text)
    unaccented = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _WHITESPACE.sub(" ", unaccented.lower()).strip()
