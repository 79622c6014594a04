"""High-level async gateway client.

Three ways to run a transaction:

* :meth:`Contract.evaluate_transaction` asks one peer and never reaches
  ordering; nothing is written.
* :meth:`Contract.submit_transaction` endorses, orders and waits until
  the transaction is committed, raising if it was invalidated.
* :meth:`Contract.submit_async` endorses and orders, then returns a
  :class:`Commit` straight away. ``commit.result`` is the endorsement
  payload and is only provisional until ``await commit.get_status()``
  reports ``successful``.

Each stage has its own deadline. Expiry raises
:class:`~pyvledger.exceptions.DeadlineExceededError`. Nothing here
retries; retry policy belongs to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import Any, TypeVar

import aiohttp
from pydantic import BaseModel, ConfigDict, Field

from pyvledger._proposal import build_proposal
from pyvledger._transport import Transport, open_connection
from pyvledger.config import GatewayConfig
from pyvledger.exceptions import CommitRejectedError, DeadlineExceededError, LedgerError
from pyvledger.identity import Identity, Signer
from pyvledger.models.transaction import CommitStatus, EndorsedTransaction, Proposal

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class CallOptions(BaseModel):
    """Per-call deadline overrides in seconds; ``None`` uses the config value."""

    model_config = ConfigDict(frozen=True)

    evaluate_timeout: float | None = Field(default=None, gt=0)
    endorse_timeout: float | None = Field(default=None, gt=0)
    submit_timeout: float | None = Field(default=None, gt=0)
    commit_status_timeout: float | None = Field(default=None, gt=0)


async def _with_deadline(
    awaitable: Awaitable[T],
    *,
    stage: str,
    timeout: float,
    transaction_id: str,
) -> T:
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except TimeoutError as exc:
        raise DeadlineExceededError(
            f"{stage} for transaction {transaction_id} exceeded its {timeout:g}s deadline",
            stage=stage,
            transaction_id=transaction_id,
        ) from exc


class Commit:
    """Handle for a transaction submitted with :meth:`Contract.submit_async`.

    The two halves resolve at different times: :attr:`result` is known as
    soon as endorsement finishes, while :meth:`get_status` suspends until
    the transaction is committed (or invalidated).
    """

    def __init__(
        self,
        transport: Transport,
        endorsed: EndorsedTransaction,
        *,
        commit_status_timeout: float,
    ) -> None:
        self._transport = transport
        self._endorsed = endorsed
        self._timeout = commit_status_timeout
        self._status: CommitStatus | None = None
        self._status_task: asyncio.Task[CommitStatus] | None = None

    @property
    def transaction_id(self) -> str:
        return self._endorsed.transaction_id

    @property
    def result(self) -> bytes:
        """Endorsement payload. Provisional until the status is successful."""
        return self._endorsed.result

    def _status_request(self) -> asyncio.Task[CommitStatus]:
        task = self._status_task
        if task is None or (task.done() and (task.cancelled() or task.exception() is not None)):
            _logger.debug("Waiting for commit of tx=%s", self.transaction_id)
            task = asyncio.ensure_future(self._transport.commit_status(self.transaction_id))
            self._status_task = task
        return task

    async def get_status(self, *, timeout: float | None = None) -> CommitStatus:
        """Wait for the final commit status.

        Concurrent callers share one status request, and each waits under
        its own deadline. The first resolved status is cached; later calls
        return it without contacting the network again.
        """
        if self._status is not None:
            return self._status
        status = await _with_deadline(
            asyncio.shield(self._status_request()),
            stage="commit_status",
            timeout=timeout if timeout is not None else self._timeout,
            transaction_id=self.transaction_id,
        )
        if self._status is None:
            self._status = status
            _logger.debug(
                "tx=%s committed code=%s block=%s",
                self.transaction_id,
                status.code.name,
                status.block_number,
            )
        return self._status


class Contract:
    """Proxy for one deployed contract on one channel."""

    def __init__(self, gateway: Gateway, channel: str, chaincode: str) -> None:
        self._gateway = gateway
        self._channel = channel
        self._chaincode = chaincode

    @property
    def chaincode_name(self) -> str:
        return self._chaincode

    @property
    def channel_name(self) -> str:
        return self._channel

    def new_proposal(self, name: str, *args: str) -> Proposal:
        return self._gateway.new_proposal(self._channel, self._chaincode, name, args)

    async def evaluate_transaction(self, name: str, *args: str, options: CallOptions | None = None) -> bytes:
        """Query one peer and return the raw result bytes."""
        transport = self._gateway.require_transport()
        timeouts = self._gateway.resolve_options(options)
        proposal = self.new_proposal(name, *args)
        _logger.debug("Evaluate %s tx=%s", name, proposal.transaction_id)
        return await _with_deadline(
            transport.evaluate(proposal),
            stage="evaluate",
            timeout=timeouts.evaluate_timeout,
            transaction_id=proposal.transaction_id,
        )

    async def submit_async(self, name: str, *args: str, options: CallOptions | None = None) -> Commit:
        """Endorse and order *name*, returning before the commit completes."""
        transport = self._gateway.require_transport()
        timeouts = self._gateway.resolve_options(options)
        proposal = self.new_proposal(name, *args)
        tx_id = proposal.transaction_id

        _logger.debug("Endorse %s tx=%s", name, tx_id)
        endorsed = await _with_deadline(
            transport.endorse(proposal),
            stage="endorse",
            timeout=timeouts.endorse_timeout,
            transaction_id=tx_id,
        )

        _logger.debug("Submit %s tx=%s for ordering", name, tx_id)
        await _with_deadline(
            transport.submit(endorsed),
            stage="submit",
            timeout=timeouts.submit_timeout,
            transaction_id=tx_id,
        )
        return Commit(transport, endorsed, commit_status_timeout=timeouts.commit_status_timeout)

    async def submit_transaction(self, name: str, *args: str, options: CallOptions | None = None) -> None:
        """Submit *name* and wait until it is committed.

        Raises
        ------
        CommitRejectedError
            The transaction was ordered but invalidated (e.g. an MVCC read
            conflict with a concurrent transaction).
        """
        commit = await self.submit_async(name, *args, options=options)
        status = await commit.get_status()
        if not status.successful:
            raise CommitRejectedError(
                f"Transaction {status.transaction_id} failed to commit with status code "
                f"{int(status.code)} ({status.code.name})",
                transaction_id=status.transaction_id,
                code=status.code,
            )


class Network:
    """A channel reachable through the gateway."""

    def __init__(self, gateway: Gateway, name: str) -> None:
        self._gateway = gateway
        self.name = name

    def get_contract(self, chaincode: str | None = None) -> Contract:
        return Contract(self._gateway, self.name, chaincode or self._gateway.config.chaincode_name)


class Gateway:
    """Async gateway session sharing one transport connection.

    Usage::

        async with Gateway(config, identity=identity, signer=signer) as gateway:
            contract = gateway.get_network().get_contract()
            data = await contract.evaluate_transaction("GetAllVehicles")
    """

    def __init__(
        self,
        config: GatewayConfig,
        *,
        identity: Identity,
        signer: Signer,
        transport: Transport | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config
        self._identity = identity
        self._signer = signer
        self._external_transport = transport is not None
        self._transport = transport
        self._http_session = session

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> Gateway:
        if self._transport is None:
            self._transport = await open_connection(self._config, session=self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        transport = self._transport
        if transport is None:
            return
        if not self._external_transport:
            self._transport = None
            await transport.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @property
    def config(self) -> GatewayConfig:
        return self._config

    @property
    def identity(self) -> Identity:
        return self._identity

    def require_transport(self) -> Transport:
        if self._transport is None:
            raise LedgerError("Gateway not connected. Use 'async with Gateway(...) as gateway:'")
        return self._transport

    def resolve_options(self, options: CallOptions | None) -> CallOptions:
        """Fill unset per-call deadlines from the configuration."""
        opts = options or CallOptions()
        return CallOptions(
            evaluate_timeout=opts.evaluate_timeout or self._config.evaluate_timeout,
            endorse_timeout=opts.endorse_timeout or self._config.endorse_timeout,
            submit_timeout=opts.submit_timeout or self._config.submit_timeout,
            commit_status_timeout=opts.commit_status_timeout or self._config.commit_status_timeout,
        )

    def new_proposal(self, channel: str, chaincode: str, name: str, args: tuple[str, ...]) -> Proposal:
        return build_proposal(
            self._identity,
            self._signer,
            channel=channel,
            chaincode=chaincode,
            function=name,
            args=args,
        )

    def get_network(self, name: str | None = None) -> Network:
        return Network(self, name or self._config.channel_name)
