from __future__ import annotations

import logging
from pathlib import Path

import pytest

from pyvledger import application
from pyvledger.canonical import parse_json
from pyvledger.config import GatewayConfig
from pyvledger.exceptions import NotFoundError
from pyvledger.gateway import Gateway
from pyvledger.identity import Identity, Signer
from pyvledger.ids import IdSequence
from pyvledger.local import LocalNetwork


@pytest.mark.asyncio
async def test_run_local_leaves_expected_state(config: GatewayConfig) -> None:
    ids = IdSequence()

    network = await application.run_local(config, ids)

    assert "org1_4" not in network.world
    org2_1 = parse_json(network.world.get("org2_1") or b"")
    assert org2_1["IsUsing"] is True
    assert org2_1["User"] == "user1"
    assert len(network.world) == 6
    assert ids.peek() == "org1_5"


@pytest.mark.asyncio
async def test_use_vehicle_logs_provisional_user(
    config: GatewayConfig,
    identity_pair: tuple[Identity, Signer],
    caplog: pytest.LogCaptureFixture,
) -> None:
    identity, signer = identity_pair
    network = LocalNetwork()
    async with Gateway(config, identity=identity, signer=signer, transport=network) as gateway:
        contract = gateway.get_network().get_contract()
        await application.init_ledger(contract)

        with caplog.at_level(logging.INFO, logger="pyvledger.application"):
            status = await application.use_vehicle(contract, "org1_2", "carol")

    assert status.successful
    assert "taken into use by carol (pending commit)" in caplog.text
    await network.close()


@pytest.mark.asyncio
async def test_update_nonexistent_vehicle_returns_the_error(
    config: GatewayConfig,
    identity_pair: tuple[Identity, Signer],
) -> None:
    identity, signer = identity_pair
    network = LocalNetwork()
    async with Gateway(config, identity=identity, signer=signer, transport=network) as gateway:
        error = await application.update_nonexistent_vehicle(gateway.get_network().get_contract())

    assert isinstance(error, NotFoundError)
    assert network.block_height == 0
    await network.close()


def test_main_local_exits_cleanly() -> None:
    assert application.main(["--local"]) == 0


def test_main_reports_missing_credentials(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("CRYPTO_PATH", str(tmp_path))
    monkeypatch.delenv("CERT_PATH", raising=False)
    assert application.main([]) == 1
