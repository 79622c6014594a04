"""Signed proposal building.

A transaction id is ``SHA-256(nonce || creator)`` in lowercase hex, so it
is unique per invocation and bound to the submitting identity.
"""

from __future__ import annotations

import hashlib
import secrets
from collections.abc import Sequence

from pyvledger.identity import Identity, Signer
from pyvledger.models.transaction import Proposal

NONCE_SIZE = 24


def compute_transaction_id(nonce: bytes, creator: bytes) -> str:
    return hashlib.sha256(nonce + creator).hexdigest()


def proposal_digest(proposal: Proposal) -> bytes:
    """SHA-256 digest of the proposal header (the bytes that get signed)."""
    return hashlib.sha256(proposal.header_bytes()).digest()


def build_proposal(
    identity: Identity,
    signer: Signer,
    *,
    channel: str,
    chaincode: str,
    function: str,
    args: Sequence[str],
    nonce: bytes | None = None,
) -> Proposal:
    """Build and sign a proposal for *function* with string *args*.

    Parameters
    ----------
    identity : Identity
        Creator attached to the proposal.
    signer : Signer
        Signs the header digest.
    channel, chaincode : str
        Deployment the proposal targets.
    function : str
        Transaction function name.
    args : sequence of str
        Positional arguments, passed through as strings.
    nonce : bytes or None
        Random nonce; generated when omitted.

    Returns
    -------
    Proposal
        Signed proposal.
    """
    if nonce is None:
        nonce = secrets.token_bytes(NONCE_SIZE)
    unsigned = Proposal(
        transaction_id=compute_transaction_id(nonce, identity.credentials),
        nonce=nonce,
        channel=channel,
        chaincode=chaincode,
        function=function,
        args=tuple(str(a) for a in args),
        msp_id=identity.msp_id,
        creator=identity.credentials,
    )
    signature = signer(proposal_digest(unsigned))
    return unsigned.model_copy(update={"signature": signature})
