"""pyvledger - vehicle asset contract and async transaction gateway client."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyvledger")
except PackageNotFoundError:
    __version__ = "0+local"
from pyvledger.canonical import canonical_json
from pyvledger.config import GatewayConfig
from pyvledger.contract import TransactionContext, VehiclePlatform, transaction
from pyvledger.exceptions import (
    AlreadyExistsError,
    CommitRejectedError,
    ContractError,
    DeadlineExceededError,
    EndorsementError,
    EvaluationError,
    GatewayError,
    IdentityError,
    LedgerConfigError,
    LedgerError,
    NotFoundError,
    OrderingError,
    SerializationError,
    SubmitError,
    ValidationError,
)
from pyvledger.gateway import CallOptions, Commit, Gateway, Network
from pyvledger.identity import Identity, Signer, generate_identity, load_identity, load_signer
from pyvledger.ids import IdSequence
from pyvledger.local import LocalNetwork
from pyvledger.models import CommitStatus, EndorsedTransaction, Proposal, StatusCode, VehicleRecord
from pyvledger.state import LedgerStateStore, WorldState

__all__ = [
    "__version__",
    "AlreadyExistsError",
    "CallOptions",
    "Commit",
    "CommitRejectedError",
    "CommitStatus",
    "ContractError",
    "DeadlineExceededError",
    "EndorsedTransaction",
    "EndorsementError",
    "EvaluationError",
    "Gateway",
    "GatewayConfig",
    "GatewayError",
    "IdSequence",
    "Identity",
    "IdentityError",
    "LedgerConfigError",
    "LedgerError",
    "LedgerStateStore",
    "LocalNetwork",
    "Network",
    "NotFoundError",
    "OrderingError",
    "Proposal",
    "SerializationError",
    "Signer",
    "StatusCode",
    "SubmitError",
    "TransactionContext",
    "ValidationError",
    "VehiclePlatform",
    "VehicleRecord",
    "WorldState",
    "canonical_json",
    "generate_identity",
    "load_identity",
    "load_signer",
    "transaction",
]
