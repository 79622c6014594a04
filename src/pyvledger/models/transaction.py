"""Transaction pipeline models: proposals, endorsements, commit status."""

from __future__ import annotations

import base64
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pyvledger.canonical import canonical_json
from pyvledger.models._base import LedgerEnum


class StatusCode(LedgerEnum):
    """Transaction validation code reported at commit."""

    UNKNOWN = -1
    VALID = 0
    NIL_ENVELOPE = 1
    BAD_PAYLOAD = 2
    BAD_COMMON_HEADER = 3
    BAD_CREATOR_SIGNATURE = 4
    INVALID_ENDORSER_TRANSACTION = 5
    INVALID_CONFIG_TRANSACTION = 6
    UNSUPPORTED_TX_PAYLOAD = 7
    BAD_PROPOSAL_TXID = 8
    DUPLICATE_TXID = 9
    ENDORSEMENT_POLICY_FAILURE = 10
    MVCC_READ_CONFLICT = 11
    PHANTOM_READ_CONFLICT = 12
    UNKNOWN_TX_TYPE = 13
    TARGET_CHAIN_NOT_FOUND = 14
    MARSHAL_TX_ERROR = 15
    NIL_TXACTION = 16
    EXPIRED_CHAINCODE = 17
    CHAINCODE_VERSION_CONFLICT = 18
    BAD_HEADER_EXTENSION = 19
    BAD_CHANNEL_HEADER = 20
    BAD_RESPONSE_PAYLOAD = 21
    BAD_RWSET = 22
    ILLEGAL_WRITESET = 23
    INVALID_WRITESET = 24
    INVALID_CHAINCODE = 25
    NOT_VALIDATED = 254
    INVALID_OTHER_REASON = 255


class CommitStatus(BaseModel):
    """Final outcome of an ordered transaction."""

    model_config = ConfigDict(frozen=True)

    transaction_id: str
    code: StatusCode
    block_number: int | None = None

    @field_validator("code", mode="before")
    @classmethod
    def _coerce_code(cls, value: Any) -> StatusCode:
        if isinstance(value, StatusCode):
            return value
        return StatusCode(int(value))

    @property
    def successful(self) -> bool:
        return self.code == StatusCode.VALID


def _b64(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


class Proposal(BaseModel):
    """A signed transaction invocation.

    ``transaction_id`` is derived from ``nonce`` and the creator's
    credentials (see :func:`pyvledger._proposal.compute_transaction_id`).
    ``signature`` covers the SHA-256 digest of :meth:`header_bytes`.
    """

    model_config = ConfigDict(frozen=True)

    transaction_id: str
    nonce: bytes
    channel: str
    chaincode: str
    function: str
    args: tuple[str, ...] = ()
    msp_id: str
    creator: bytes
    signature: bytes = b""

    def header_bytes(self) -> bytes:
        """Canonical bytes of every field except the signature."""
        return canonical_json(self._wire_fields())

    def _wire_fields(self) -> dict[str, Any]:
        return {
            "transactionId": self.transaction_id,
            "nonce": _b64(self.nonce),
            "channel": self.channel,
            "chaincode": self.chaincode,
            "function": self.function,
            "args": list(self.args),
            "mspId": self.msp_id,
            "creator": _b64(self.creator),
        }

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict with bytes fields base64 encoded."""
        wire = self._wire_fields()
        wire["signature"] = _b64(self.signature)
        return wire


class EndorsedTransaction(BaseModel):
    """A proposal that passed endorsement, ready for ordering.

    ``result`` is the tentative payload computed by the endorsing peer. It
    is provisional until the transaction is committed as ``VALID``.
    ``envelope`` is opaque to the client and is handed back unchanged on
    submit.
    """

    model_config = ConfigDict(frozen=True)

    proposal: Proposal
    result: bytes = b""
    envelope: bytes = b""
    endorsements: list[str] = Field(default_factory=list)

    @property
    def transaction_id(self) -> str:
        return self.proposal.transaction_id
