# query_gateway/query/identifiers.py
"""Identifier safety checks for column, table and alias names.

Values are always bound as parameters; identifiers cannot be, so every name
that ends up in query text must pass through ``safe_identifier`` first.
"""

import re
from typing import Any

from .errors import UnsafeIdentifier

SAFE_IDENTIFIER_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def is_safe_identifier(name: Any) -> bool:
    """Check a name against the safe identifier pattern without raising."""
    return isinstance(name, str) and SAFE_IDENTIFIER_PATTERN.fullmatch(name) is not None


def safe_identifier(name: Any, label: str) -> str:
    """Return the stripped name, or raise UnsafeIdentifier naming the offending input."""
    candidate = str(name if name is not None else "").strip()
    if not SAFE_IDENTIFIER_PATTERN.fullmatch(candidate):
        raise UnsafeIdentifier(f"Unsafe {label}: {name!r}")
    return candidate
