"""Helpers for safe debug logging.

Gateway requests carry the signed proposal: creator credentials, nonce and
signature, plus base64 payloads that can be large. :func:`redact_for_log`
masks the secrets, replaces payload fields with their size, and keeps the
routing fields (transaction id, function, args) readable.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel

_SECRET_KEYS: frozenset[str] = frozenset(
    {
        "signature",
        "credentials",
        "creator",
        "privatekey",
        "nonce",
        "authorization",
    }
)

# Opaque base64 payloads; only their size is useful in a log line.
_PAYLOAD_KEYS: frozenset[str] = frozenset({"envelope", "result"})


def _summarise_payload(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"
    if isinstance(value, str):
        # base64 expands 3 bytes to 4 characters
        return f"<base64:~{len(value) * 3 // 4}b>"
    return "<payload>"


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a redacted copy of *value* suitable for debug logs.

    Pydantic models (``Proposal``, ``EndorsedTransaction``) are redacted by
    their field names.
    """
    if _depth > 20:
        return "<max-depth>"

    if value is None or isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, BaseModel):
        value = value.model_dump()

    if isinstance(value, Mapping):
        redacted: dict[str, Any] = {}
        for k, v in value.items():
            key = str(k)
            lowered = key.lower()
            if lowered in _SECRET_KEYS:
                redacted[key] = "<redacted>"
            elif lowered in _PAYLOAD_KEYS:
                redacted[key] = _summarise_payload(v)
            else:
                redacted[key] = redact_for_log(v, max_string=max_string, _depth=_depth + 1)
        return redacted

    if isinstance(value, Sequence):
        return [redact_for_log(v, max_string=max_string, _depth=_depth + 1) for v in value]

    return repr(value)
