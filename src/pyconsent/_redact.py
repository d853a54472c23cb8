"""Helpers for safe debug logging.

Write keys identify a customer's sources and the preference cookie can
carry a user's choices. This module masks both before they reach DEBUG logs.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "cookie",
        "set-cookie",
        "authorization",
    }
)

_WRITE_KEY_FIELDS: frozenset[str] = frozenset({"writekey", "write_key", "otherwritekeys", "other_write_keys"})


def mask_write_key(write_key: str, *, visible: int = 4) -> str:
    """Return *write_key* with everything but the last *visible* chars masked."""
    if len(write_key) <= visible:
        return "*" * len(write_key)
    return "*" * (len(write_key) - visible) + write_key[-visible:]


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a redacted copy of *value* suitable for debug logs."""
    if _depth > 20:
        return "<max-depth>"

    if value is None:
        return None

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, Mapping):
        redacted: dict[str, Any] = {}
        for k, v in value.items():
            key = str(k)
            lowered = key.lower()
            if lowered in _SENSITIVE_VALUE_KEYS:
                redacted[key] = "<redacted>"
            elif lowered in _WRITE_KEY_FIELDS:
                if isinstance(v, str):
                    redacted[key] = mask_write_key(v)
                elif isinstance(v, Sequence):
                    redacted[key] = [mask_write_key(str(item)) for item in v]
                else:
                    redacted[key] = "<redacted>"
            else:
                redacted[key] = redact_for_log(v, max_string=max_string, _depth=_depth + 1)
        return redacted

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [redact_for_log(v, max_string=max_string, _depth=_depth + 1) for v in value]

    # Fallback: represent unknown objects without dumping internals.
    return repr(value)
