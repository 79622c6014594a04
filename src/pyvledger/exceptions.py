"""Custom exception hierarchy for pyvledger."""

from __future__ import annotations

from typing import Any


class LedgerError(Exception):
    """Base exception for all pyvledger errors."""


class LedgerConfigError(LedgerError):
    """Invalid or missing configuration."""


class IdentityError(LedgerError):
    """Credential or private key could not be loaded or used."""


class SerializationError(LedgerError):
    """Value cannot be canonically encoded, or stored bytes are not JSON."""


class ContractError(LedgerError):
    """Transaction function rejected the invocation.

    Contract errors travel back to the caller unchanged: an evaluate or
    submit that fails inside the contract raises the same subclass on the
    client side, with ``transaction_id`` filled in when known.
    """

    #: Wire name used by the gateway error payload.
    kind: str = "ContractError"

    def __init__(self, message: str, *, transaction_id: str = "") -> None:
        self.transaction_id = transaction_id
        super().__init__(message)


class NotFoundError(ContractError):
    """Vehicle key is absent from the world state."""

    kind = "NotFound"


class AlreadyExistsError(ContractError):
    """Vehicle key is already present in the world state."""

    kind = "AlreadyExists"


class ValidationError(ContractError):
    """Transaction arguments could not be parsed into typed fields.

    Raised before any state is read or written.
    """

    kind = "Validation"


class GatewayError(LedgerError):
    """Failure in the client-side transaction pipeline."""

    def __init__(
        self,
        message: str,
        *,
        transaction_id: str = "",
        code: Any = None,
    ) -> None:
        self.transaction_id = transaction_id
        self.code = code
        super().__init__(message)


class EvaluationError(GatewayError):
    """Query could not be executed by the target peer."""


class EndorsementError(GatewayError):
    """Proposal could not be endorsed (transport, signature, peer failure)."""


class SubmitError(GatewayError):
    """Endorsed transaction failed after the endorsement phase."""


class OrderingError(SubmitError):
    """Ordering service did not accept the endorsed transaction."""


class CommitRejectedError(SubmitError):
    """Transaction was ordered but invalidated at commit.

    ``code`` is the :class:`pyvledger.models.transaction.StatusCode`
    reported by the committing peer (e.g. ``MVCC_READ_CONFLICT``).
    """


class DeadlineExceededError(GatewayError):
    """A pipeline stage did not complete before its deadline.

    Distinct from every other outcome: the transaction may still commit
    later. ``stage`` names the phase that timed out (``"evaluate"``,
    ``"endorse"``, ``"submit"`` or ``"commit_status"``).
    """

    def __init__(
        self,
        message: str,
        *,
        stage: str,
        transaction_id: str = "",
    ) -> None:
        self.stage = stage
        super().__init__(message, transaction_id=transaction_id)


_CONTRACT_ERRORS: dict[str, type[ContractError]] = {
    cls.kind: cls for cls in (ContractError, NotFoundError, AlreadyExistsError, ValidationError)
}


def contract_error_from_kind(kind: str, message: str, *, transaction_id: str = "") -> ContractError:
    """Rebuild a contract exception from its wire ``kind``."""
    cls = _CONTRACT_ERRORS.get(kind, ContractError)
    return cls(message, transaction_id=transaction_id)
