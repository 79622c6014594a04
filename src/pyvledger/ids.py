"""Vehicle id generation."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class IdSequence:
    """Caller-owned counter producing ``<prefix><n>`` vehicle ids.

    Each application context creates its own sequence; nothing is shared
    at module level.
    """

    prefix: str = "org1_"
    start: int = 4

    def __post_init__(self) -> None:
        self._next = self.start

    def next(self) -> str:
        value = f"{self.prefix}{self._next}"
        self._next += 1
        return value

    def peek(self) -> str:
        return f"{self.prefix}{self._next}"
