"""Versioned in-memory world state.

:class:`WorldState` is the committed key-value state held by a replica.
Every write stamps the key with a new monotonically increasing version,
which is what commit-time MVCC validation compares against.
"""

from __future__ import annotations

import bisect
from collections.abc import AsyncIterator, Iterator, Mapping
from typing import Protocol

#: Commit sequence number stamped on a key by the write that produced it.
Version = int


class LedgerStateStore(Protocol):
    """Structural state interface used by contract transaction functions.

    Keeping this a protocol lets the contract run against the committed
    :class:`WorldState` directly (tests) or against a recording
    :class:`pyvledger.state.simulation.SimulationStub` (endorsement).
    """

    async def get_state(self, key: str) -> bytes | None:
        ...

    async def put_state(self, key: str, value: bytes) -> None:
        ...

    async def delete_state(self, key: str) -> None:
        ...

    def get_state_by_range(self, start_key: str, end_key: str) -> AsyncIterator[tuple[str, bytes]]:
        ...


def _check_key(key: str) -> None:
    if not isinstance(key, str) or not key:
        raise ValueError("state key must be a non-empty string")


class WorldState:
    """Committed state: sorted keys, values and per-key versions."""

    def __init__(self) -> None:
        self._values: dict[str, tuple[bytes, Version]] = {}
        self._keys: list[str] = []
        self._sequence: Version = 0

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    @property
    def sequence(self) -> Version:
        """Version stamped by the most recent write."""
        return self._sequence

    def get(self, key: str) -> bytes | None:
        entry = self._values.get(key)
        return entry[0] if entry is not None else None

    def get_version(self, key: str) -> Version | None:
        entry = self._values.get(key)
        return entry[1] if entry is not None else None

    def keys_in_range(self, start_key: str, end_key: str) -> list[str]:
        """Sorted keys in ``[start_key, end_key)``; empty *end_key* means open-ended."""
        lo = bisect.bisect_left(self._keys, start_key) if start_key else 0
        hi = bisect.bisect_left(self._keys, end_key) if end_key else len(self._keys)
        return self._keys[lo:hi]

    def versions_in_range(self, start_key: str, end_key: str) -> dict[str, Version]:
        return {key: self._values[key][1] for key in self.keys_in_range(start_key, end_key)}

    def apply_writes(self, writes: Mapping[str, bytes | None]) -> Version:
        """Apply a write set atomically under one new version.

        ``None`` values delete the key. Returns the version used.
        """
        self._sequence += 1
        version = self._sequence
        for key, value in writes.items():
            _check_key(key)
            if value is None:
                self._remove(key)
            else:
                self._store(key, value, version)
        return version

    def _store(self, key: str, value: bytes, version: Version) -> None:
        if key not in self._values:
            bisect.insort(self._keys, key)
        self._values[key] = (bytes(value), version)

    def _remove(self, key: str) -> None:
        if self._values.pop(key, None) is None:
            return
        idx = bisect.bisect_left(self._keys, key)
        del self._keys[idx]

    def iter_range(self, start_key: str, end_key: str) -> Iterator[tuple[str, bytes, Version]]:
        """Lazily yield committed ``(key, value, version)`` in ascending order.

        The key list is captured when iteration starts; keys removed while
        iterating are skipped.
        """
        for key in self.keys_in_range(start_key, end_key):
            entry = self._values.get(key)
            if entry is not None:
                yield key, entry[0], entry[1]

    # ------------------------------------------------------------------
    # LedgerStateStore interface (writes apply immediately)
    # ------------------------------------------------------------------

    async def get_state(self, key: str) -> bytes | None:
        _check_key(key)
        return self.get(key)

    async def put_state(self, key: str, value: bytes) -> None:
        self.apply_writes({key: value})

    async def delete_state(self, key: str) -> None:
        self.apply_writes({key: None})

    async def get_state_by_range(self, start_key: str, end_key: str) -> AsyncIterator[tuple[str, bytes]]:
        for key, value, _version in self.iter_range(start_key, end_key):
            yield key, value
