from __future__ import annotations

import asyncio

import pydantic
import pytest

from pyvledger.canonical import parse_json
from pyvledger.config import GatewayConfig
from pyvledger.exceptions import (
    AlreadyExistsError,
    CommitRejectedError,
    DeadlineExceededError,
    GatewayError,
    LedgerError,
    NotFoundError,
)
from pyvledger.gateway import CallOptions, Gateway
from pyvledger.identity import Identity, Signer
from pyvledger.local import LocalNetwork
from pyvledger.models import CommitStatus, EndorsedTransaction, Proposal, StatusCode


class _FakeTransport:
    def __init__(
        self,
        *,
        delay: float = 0.0,
        status_delay: float = 0.0,
        code: StatusCode = StatusCode.VALID,
        result: bytes = b"{}",
    ) -> None:
        self.delay = delay
        self.status_delay = status_delay
        self.code = code
        self.result = result
        self.proposals: list[Proposal] = []
        self.submitted: list[str] = []
        self.status_calls = 0
        self.closed = False

    async def evaluate(self, proposal: Proposal) -> bytes:
        self.proposals.append(proposal)
        await asyncio.sleep(self.delay)
        return self.result

    async def endorse(self, proposal: Proposal) -> EndorsedTransaction:
        self.proposals.append(proposal)
        await asyncio.sleep(self.delay)
        return EndorsedTransaction(proposal=proposal, result=self.result)

    async def submit(self, endorsed: EndorsedTransaction) -> None:
        self.submitted.append(endorsed.transaction_id)

    async def commit_status(self, transaction_id: str) -> CommitStatus:
        self.status_calls += 1
        await asyncio.sleep(self.status_delay)
        return CommitStatus(transaction_id=transaction_id, code=self.code, block_number=1)

    async def close(self) -> None:
        self.closed = True


def _gateway(config: GatewayConfig, identity_pair: tuple[Identity, Signer], transport: object) -> Gateway:
    identity, signer = identity_pair
    return Gateway(config, identity=identity, signer=signer, transport=transport)  # type: ignore[arg-type]


# ------------------------------------------------------------------
# Against the in-process network
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_submit_then_evaluate(config: GatewayConfig, identity_pair: tuple[Identity, Signer]) -> None:
    network = LocalNetwork()
    async with _gateway(config, identity_pair, network) as gateway:
        contract = gateway.get_network().get_contract()

        assert await contract.submit_transaction("CreateVehicle", "org1_4", "Org1") is None
        record = parse_json(await contract.evaluate_transaction("ReadVehicle", "org1_4"))

    assert record["ID"] == "org1_4"
    assert record["Org"] == "Org1"
    await network.close()


@pytest.mark.asyncio
async def test_contract_errors_reach_the_caller(config: GatewayConfig, identity_pair: tuple[Identity, Signer]) -> None:
    network = LocalNetwork()
    async with _gateway(config, identity_pair, network) as gateway:
        contract = gateway.get_network().get_contract()

        with pytest.raises(NotFoundError) as exc_info:
            await contract.evaluate_transaction("ReadVehicle", "ghost")
        assert len(exc_info.value.transaction_id) == 64

        await contract.submit_transaction("CreateVehicle", "v1", "Org1")
        with pytest.raises(AlreadyExistsError):
            await contract.submit_transaction("CreateVehicle", "v1", "Org1")

    assert network.block_height == 1
    await network.close()


@pytest.mark.asyncio
async def test_submit_async_result_is_available_before_commit(
    config: GatewayConfig,
    identity_pair: tuple[Identity, Signer],
) -> None:
    network = LocalNetwork(auto_commit=False)
    async with _gateway(config, identity_pair, network) as gateway:
        contract = gateway.get_network().get_contract()
        commit = await contract.submit_async("CreateVehicle", "v1", "Org1")

        assert parse_json(commit.result)["ID"] == "v1"
        assert "v1" not in network.world

        await network.cut_block()
        status = await commit.get_status()

    assert status.successful
    assert status.transaction_id == commit.transaction_id
    assert "v1" in network.world


# ------------------------------------------------------------------
# Deadlines and commit outcomes
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_slow_evaluate_raises_deadline_exceeded(
    config: GatewayConfig,
    identity_pair: tuple[Identity, Signer],
) -> None:
    transport = _FakeTransport(delay=1.0)
    contract = _gateway(config, identity_pair, transport).get_network().get_contract()

    with pytest.raises(DeadlineExceededError) as exc_info:
        await contract.evaluate_transaction("GetAllVehicles", options=CallOptions(evaluate_timeout=0.01))

    assert exc_info.value.stage == "evaluate"
    assert exc_info.value.transaction_id == transport.proposals[0].transaction_id


@pytest.mark.asyncio
async def test_slow_endorse_raises_before_submit(config: GatewayConfig, identity_pair: tuple[Identity, Signer]) -> None:
    transport = _FakeTransport(delay=1.0)
    contract = _gateway(config, identity_pair, transport).get_network().get_contract()

    with pytest.raises(DeadlineExceededError) as exc_info:
        await contract.submit_transaction("InitLedger", options=CallOptions(endorse_timeout=0.01))

    assert exc_info.value.stage == "endorse"
    assert transport.submitted == []


@pytest.mark.asyncio
async def test_slow_commit_status_raises_deadline_exceeded(
    config: GatewayConfig,
    identity_pair: tuple[Identity, Signer],
) -> None:
    transport = _FakeTransport(status_delay=1.0)
    contract = _gateway(config, identity_pair, transport).get_network().get_contract()
    commit = await contract.submit_async("InitLedger")

    with pytest.raises(DeadlineExceededError) as exc_info:
        await commit.get_status(timeout=0.01)

    assert exc_info.value.stage == "commit_status"
    assert transport.submitted == [commit.transaction_id]


@pytest.mark.asyncio
async def test_invalidated_commit_raises_commit_rejected(
    config: GatewayConfig,
    identity_pair: tuple[Identity, Signer],
) -> None:
    transport = _FakeTransport(code=StatusCode.MVCC_READ_CONFLICT)
    contract = _gateway(config, identity_pair, transport).get_network().get_contract()

    with pytest.raises(CommitRejectedError) as exc_info:
        await contract.submit_transaction("UseVehicle", "org2_1", "alice")

    assert exc_info.value.code == StatusCode.MVCC_READ_CONFLICT
    assert "11" in str(exc_info.value)


@pytest.mark.asyncio
async def test_commit_status_is_cached(config: GatewayConfig, identity_pair: tuple[Identity, Signer]) -> None:
    transport = _FakeTransport()
    contract = _gateway(config, identity_pair, transport).get_network().get_contract()
    commit = await contract.submit_async("InitLedger")

    first, second = await asyncio.gather(commit.get_status(), commit.get_status())
    third = await commit.get_status()

    assert first is second is third
    assert transport.status_calls == 1


@pytest.mark.asyncio
async def test_concurrent_status_waiters_keep_their_own_deadlines(
    config: GatewayConfig,
    identity_pair: tuple[Identity, Signer],
) -> None:
    transport = _FakeTransport(status_delay=0.5)
    contract = _gateway(config, identity_pair, transport).get_network().get_contract()
    commit = await contract.submit_async("InitLedger")

    patient = asyncio.create_task(commit.get_status())
    await asyncio.sleep(0)

    with pytest.raises(DeadlineExceededError) as exc_info:
        await commit.get_status(timeout=0.05)
    assert exc_info.value.stage == "commit_status"
    assert not patient.done()

    status = await patient
    assert status.successful
    assert await commit.get_status(timeout=0.05) is status
    assert transport.status_calls == 1


@pytest.mark.asyncio
async def test_status_request_is_retried_after_a_failure(
    config: GatewayConfig,
    identity_pair: tuple[Identity, Signer],
) -> None:
    transport = _FakeTransport()
    contract = _gateway(config, identity_pair, transport).get_network().get_contract()
    commit = await contract.submit_async("InitLedger")

    async def _unreachable(transaction_id: str) -> CommitStatus:
        transport.status_calls += 1
        raise GatewayError("peer unreachable", transaction_id=transaction_id)

    fallback = transport.commit_status
    transport.commit_status = _unreachable  # type: ignore[method-assign]
    with pytest.raises(GatewayError, match="unreachable"):
        await commit.get_status()

    transport.commit_status = fallback  # type: ignore[method-assign]
    assert (await commit.get_status()).successful
    assert transport.status_calls == 2


# ------------------------------------------------------------------
# Gateway lifecycle and options
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_unconnected_gateway_raises(config: GatewayConfig, identity_pair: tuple[Identity, Signer]) -> None:
    identity, signer = identity_pair
    contract = Gateway(config, identity=identity, signer=signer).get_network().get_contract()

    with pytest.raises(LedgerError, match="not connected"):
        await contract.evaluate_transaction("GetAllVehicles")


@pytest.mark.asyncio
async def test_external_transport_is_not_closed(config: GatewayConfig, identity_pair: tuple[Identity, Signer]) -> None:
    transport = _FakeTransport()
    async with _gateway(config, identity_pair, transport):
        pass

    assert transport.closed is False


def test_network_and_contract_names(config: GatewayConfig, identity_pair: tuple[Identity, Signer]) -> None:
    gateway = _gateway(config, identity_pair, _FakeTransport())

    default = gateway.get_network().get_contract()
    other = gateway.get_network("fleet").get_contract("fleet-cc")

    assert (default.channel_name, default.chaincode_name) == ("vehicle", "vehicle-chaincode")
    assert (other.channel_name, other.chaincode_name) == ("fleet", "fleet-cc")


def test_resolve_options_fills_from_config(identity_pair: tuple[Identity, Signer]) -> None:
    gateway = _gateway(GatewayConfig(endorse_timeout=3.0), identity_pair, _FakeTransport())

    resolved = gateway.resolve_options(CallOptions(evaluate_timeout=0.5))

    assert resolved.evaluate_timeout == 0.5
    assert resolved.endorse_timeout == 3.0
    assert resolved.commit_status_timeout == 60.0


def test_call_options_reject_non_positive_timeouts() -> None:
    with pytest.raises(pydantic.ValidationError):
        CallOptions(submit_timeout=0)
