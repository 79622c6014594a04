"""Deterministic JSON encoding for world state values.

Every value written to the ledger goes through :func:`canonical_json` so
that any replica, in any language, serializing the same logical record
produces the same bytes (and therefore the same digest):

* object keys sorted recursively,
* compact separators (``,`` / ``:``), UTF-8, no ASCII escaping,
* integral finite floats written as integers (``0`` rather than ``0.0``),
  matching JavaScript number formatting,
* NaN / infinity rejected.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping, Sequence
from typing import Any

from pyvledger.exceptions import SerializationError


def sort_keys_recursive(value: Any) -> Any:
    """Return a copy of *value* with every mapping's keys in sorted order."""
    if isinstance(value, Mapping):
        return {str(k): sort_keys_recursive(value[k]) for k in sorted(value, key=str)}
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [sort_keys_recursive(v) for v in value]
    if isinstance(value, float):
        if not math.isfinite(value):
            raise SerializationError(f"non-finite number cannot be encoded: {value!r}")
        if value.is_integer():
            return int(value)
    return value


def canonical_json(value: Any) -> bytes:
    """Encode *value* as canonical JSON bytes."""
    try:
        text = json.dumps(
            sort_keys_recursive(value),
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"value is not JSON-serializable: {exc}") from exc
    return text.encode("utf-8")


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def parse_json(data: bytes | str) -> Any:
    """Decode stored JSON bytes, raising :class:`SerializationError` on failure.

    Only standard JSON is accepted: the ``NaN`` and ``Infinity`` tokens that
    :func:`json.loads` allows by default are rejected.
    """
    try:
        text = data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else data
        return json.loads(text, parse_constant=_reject_constant)
    except ValueError as exc:
        raise SerializationError(f"stored value is not JSON: {exc}") from exc
