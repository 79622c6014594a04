"""Base enum for ledger status values.

Status enums inherit from :class:`LedgerEnum` which adds an ``UNKNOWN``
member at ``-1`` and a ``_missing_`` hook that returns ``UNKNOWN`` for
any code without a mapped member, so a newer peer reporting a code this
library does not know yet never breaks status parsing.
"""

from __future__ import annotations

import enum


class LedgerEnum(enum.IntEnum):
    """Base for integer status enums.

    Every subclass **must** define ``UNKNOWN = -1``.
    """

    @classmethod
    def _missing_(cls, value: object) -> LedgerEnum:
        if hasattr(cls, "UNKNOWN"):
            unknown: LedgerEnum = cls.UNKNOWN  # type: ignore[attr-defined]
            return unknown
        return next(iter(cls))
