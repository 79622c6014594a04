"""In-process network for tests and local runs.

:class:`LocalNetwork` satisfies the gateway :class:`~pyvledger._transport.Transport`
protocol without a peer or an ordering service. It is a single replica:

1. **endorse**: verify the proposal signature, then simulate the contract
   against committed state while recording a read/write set;
2. **submit**: append the endorsed transaction to the pending batch;
3. **cut_block**: validate the batch in submission order. Reads whose
   version changed since simulation invalidate the transaction
   (``MVCC_READ_CONFLICT``), as do range scans that would now see a
   different key set (``PHANTOM_READ_CONFLICT``). Only valid transactions
   apply their writes.

With ``auto_commit`` a block is cut ``block_delay`` seconds after the first
pending submission; otherwise blocks are cut by calling :meth:`cut_block`,
which lets tests endorse several transactions against the same state
before any of them commits.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass

from pyvledger._proposal import compute_transaction_id, proposal_digest
from pyvledger.contract._base import Contract, TransactionContext
from pyvledger.contract.vehicle_platform import VehiclePlatform
from pyvledger.exceptions import (
    ContractError,
    EndorsementError,
    EvaluationError,
    GatewayError,
    IdentityError,
    LedgerError,
    OrderingError,
)
from pyvledger.identity import verify_signature
from pyvledger.models.transaction import CommitStatus, EndorsedTransaction, Proposal, StatusCode
from pyvledger.state.simulation import ReadWriteSet, SimulationStub
from pyvledger.state.store import WorldState

_logger = logging.getLogger(__name__)

PEER_NAME = "peer0.local"


@dataclass(slots=True)
class _OrderedTx:
    transaction_id: str
    rwset: ReadWriteSet


class LocalNetwork:
    """Single-replica endorse/order/commit pipeline held in memory."""

    def __init__(
        self,
        contract: Contract | None = None,
        *,
        world: WorldState | None = None,
        auto_commit: bool = True,
        block_delay: float = 0.0,
        verify_signatures: bool = True,
    ) -> None:
        self.contract = contract if contract is not None else VehiclePlatform()
        self.world = world if world is not None else WorldState()
        self.auto_commit = auto_commit
        self.block_delay = block_delay
        self.verify_signatures = verify_signatures
        self._endorsed: dict[str, ReadWriteSet] = {}
        self._pending: list[_OrderedTx] = []
        self._ordered_ids: set[str] = set()
        self._statuses: dict[str, CommitStatus] = {}
        self._waiters: dict[str, asyncio.Future[CommitStatus]] = {}
        self._block_number = 0
        self._cut_task: asyncio.Task[list[CommitStatus]] | None = None

    @property
    def block_height(self) -> int:
        return self._block_number

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def endorsed_count(self) -> int:
        """Endorsed transactions not yet submitted."""
        return len(self._endorsed)

    # ------------------------------------------------------------------
    # Endorsement
    # ------------------------------------------------------------------

    def _check_proposal(self, proposal: Proposal, error_cls: type[GatewayError]) -> None:
        tx_id = proposal.transaction_id
        if compute_transaction_id(proposal.nonce, proposal.creator) != tx_id:
            raise error_cls(
                f"Transaction id {tx_id} does not match nonce and creator",
                transaction_id=tx_id,
                code=StatusCode.BAD_PROPOSAL_TXID,
            )
        if not self.verify_signatures:
            return
        try:
            valid = verify_signature(proposal.creator, proposal_digest(proposal), proposal.signature)
        except IdentityError as exc:
            raise error_cls(f"Invalid creator: {exc}", transaction_id=tx_id, code=StatusCode.BAD_CREATOR_SIGNATURE) from exc
        if not valid:
            raise error_cls(
                "Proposal signature does not match creator",
                transaction_id=tx_id,
                code=StatusCode.BAD_CREATOR_SIGNATURE,
            )

    async def _simulate(self, proposal: Proposal, error_cls: type[GatewayError]) -> tuple[bytes, ReadWriteSet]:
        """Run the contract against committed state.

        Contract errors reach the caller unchanged; any other library failure
        during execution is raised as *error_cls*.
        """
        stub = SimulationStub(self.world)
        tx_id = proposal.transaction_id
        ctx = TransactionContext(stub=stub, transaction_id=tx_id, msp_id=proposal.msp_id)
        try:
            result = await self.contract.invoke(ctx, proposal.function, proposal.args)
        except ContractError:
            raise
        except LedgerError as exc:
            raise error_cls(
                f"{proposal.function} failed during execution: {exc}",
                transaction_id=tx_id,
            ) from exc
        return result, stub.rwset

    async def evaluate(self, proposal: Proposal) -> bytes:
        self._check_proposal(proposal, EvaluationError)
        result, _rwset = await self._simulate(proposal, EvaluationError)
        return result

    async def endorse(self, proposal: Proposal) -> EndorsedTransaction:
        self._check_proposal(proposal, EndorsementError)
        result, rwset = await self._simulate(proposal, EndorsementError)
        self._endorsed[proposal.transaction_id] = rwset
        _logger.debug(
            "Endorsed tx=%s reads=%d writes=%d",
            proposal.transaction_id,
            len(rwset.reads),
            len(rwset.writes),
        )
        return EndorsedTransaction(
            proposal=proposal,
            result=result,
            envelope=proposal.transaction_id.encode("ascii"),
            endorsements=[PEER_NAME],
        )

    # ------------------------------------------------------------------
    # Ordering and commit
    # ------------------------------------------------------------------

    async def submit(self, endorsed: EndorsedTransaction) -> None:
        tx_id = endorsed.transaction_id
        rwset = self._endorsed.pop(tx_id, None)
        if rwset is None:
            raise OrderingError(
                f"Transaction {tx_id} was not endorsed by this network or was already submitted",
                transaction_id=tx_id,
            )
        self._pending.append(_OrderedTx(transaction_id=tx_id, rwset=rwset))
        if tx_id not in self._waiters:
            self._waiters[tx_id] = asyncio.get_running_loop().create_future()
        if self.auto_commit:
            self._schedule_cut()

    def _schedule_cut(self) -> None:
        if self._cut_task is not None and not self._cut_task.done():
            return
        self._cut_task = asyncio.get_running_loop().create_task(self._delayed_cut())

    async def _delayed_cut(self) -> list[CommitStatus]:
        await asyncio.sleep(self.block_delay)
        return await self.cut_block()

    def _validate(self, tx: _OrderedTx) -> StatusCode:
        if tx.transaction_id in self._ordered_ids:
            return StatusCode.DUPLICATE_TXID
        for key, version in tx.rwset.reads.items():
            if self.world.get_version(key) != version:
                return StatusCode.MVCC_READ_CONFLICT
        for scan in tx.rwset.range_reads:
            current = self.world.versions_in_range(scan.start_key, scan.end_key)
            if not scan.exhausted:
                last = scan.last_key
                current = {k: v for k, v in current.items() if last is not None and k <= last}
            if current != scan.versions:
                return StatusCode.PHANTOM_READ_CONFLICT
        return StatusCode.VALID

    async def cut_block(self) -> list[CommitStatus]:
        """Validate and commit every pending transaction as one block."""
        batch, self._pending = self._pending, []
        if not batch:
            return []
        self._block_number += 1
        block = self._block_number
        statuses: list[CommitStatus] = []
        for tx in batch:
            code = self._validate(tx)
            self._ordered_ids.add(tx.transaction_id)
            if code == StatusCode.VALID and tx.rwset.writes:
                self.world.apply_writes(tx.rwset.writes)
            status = CommitStatus(transaction_id=tx.transaction_id, code=code, block_number=block)
            # A duplicate never replaces the status of the first occurrence.
            self._statuses.setdefault(tx.transaction_id, status)
            statuses.append(status)
            if code != StatusCode.VALID:
                _logger.info("tx=%s invalidated in block %d: %s", tx.transaction_id, block, code.name)
            waiter = self._waiters.pop(tx.transaction_id, None)
            if waiter is not None and not waiter.done():
                waiter.set_result(status)
        _logger.debug("Committed block %d with %d transaction(s)", block, len(batch))
        return statuses

    async def commit_status(self, transaction_id: str) -> CommitStatus:
        status = self._statuses.get(transaction_id)
        if status is not None:
            return status
        waiter = self._waiters.get(transaction_id)
        if waiter is None:
            raise GatewayError(f"Unknown transaction {transaction_id}", transaction_id=transaction_id)
        # Shield so one caller's deadline does not cancel the shared waiter.
        return await asyncio.shield(waiter)

    async def close(self) -> None:
        task = self._cut_task
        self._cut_task = None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        for waiter in self._waiters.values():
            if not waiter.done():
                waiter.cancel()
        self._waiters.clear()
        self._endorsed.clear()
