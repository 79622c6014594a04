"""World state layer.

Committed key-value state plus the recording stub used to simulate
transactions during endorsement.
"""

from pyvledger.state.simulation import RangeRead, ReadWriteSet, SimulationStub
from pyvledger.state.store import LedgerStateStore, Version, WorldState

__all__ = [
    "LedgerStateStore",
    "RangeRead",
    "ReadWriteSet",
    "SimulationStub",
    "Version",
    "WorldState",
]
