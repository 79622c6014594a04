"""Contract layer: transaction functions executed by endorsing peers."""

from pyvledger.contract._base import Contract, TransactionContext, TransactionFunction, transaction
from pyvledger.contract.vehicle_platform import VehiclePlatform

__all__ = [
    "Contract",
    "TransactionContext",
    "TransactionFunction",
    "VehiclePlatform",
    "transaction",
]
