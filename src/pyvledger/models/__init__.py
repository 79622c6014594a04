"""Data models for pyvledger."""

from pyvledger.models._base import LedgerEnum
from pyvledger.models.transaction import CommitStatus, EndorsedTransaction, Proposal, StatusCode
from pyvledger.models.vehicle import VehicleRecord

__all__ = [
    "CommitStatus",
    "EndorsedTransaction",
    "LedgerEnum",
    "Proposal",
    "StatusCode",
    "VehicleRecord",
]
