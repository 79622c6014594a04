"""Transaction simulation against committed state.

A :class:`SimulationStub` is handed to the contract during endorsement.
Reads go to the committed :class:`WorldState` and are recorded with the
version they observed; writes are buffered in a write set and never become
visible to the simulating transaction itself. The resulting
:class:`ReadWriteSet` is what commit-time validation checks.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass, field

from pyvledger.state.store import Version, WorldState, _check_key


@dataclass(slots=True)
class RangeRead:
    """Keys and versions observed by one range scan.

    When the caller stopped iterating early, ``exhausted`` is ``False``
    and only keys up to and including ``last_key`` were observed.
    """

    start_key: str
    end_key: str
    versions: dict[str, Version] = field(default_factory=dict)
    exhausted: bool = False
    last_key: str | None = None


@dataclass(slots=True)
class ReadWriteSet:
    reads: dict[str, Version | None] = field(default_factory=dict)
    range_reads: list[RangeRead] = field(default_factory=list)
    writes: dict[str, bytes | None] = field(default_factory=dict)

    @property
    def is_read_only(self) -> bool:
        return not self.writes


class SimulationStub:
    """Recording :class:`~pyvledger.state.store.LedgerStateStore` for one transaction."""

    def __init__(self, world: WorldState) -> None:
        self._world = world
        self.rwset = ReadWriteSet()

    async def get_state(self, key: str) -> bytes | None:
        _check_key(key)
        if key not in self.rwset.reads:
            self.rwset.reads[key] = self._world.get_version(key)
        return self._world.get(key)

    async def put_state(self, key: str, value: bytes) -> None:
        _check_key(key)
        self.rwset.writes[key] = bytes(value)

    async def delete_state(self, key: str) -> None:
        _check_key(key)
        self.rwset.writes[key] = None

    async def get_state_by_range(self, start_key: str, end_key: str) -> AsyncIterator[tuple[str, bytes]]:
        record = RangeRead(start_key=start_key, end_key=end_key)
        self.rwset.range_reads.append(record)
        for key, value, version in self._world.iter_range(start_key, end_key):
            record.versions[key] = version
            record.last_key = key
            yield key, value
        record.exhausted = True
