"""Sample vehicle application.

Seeds the ledger, creates a vehicle, lists and reads vehicles, takes one
into use (asynchronous submit) and deletes the created vehicle. Run with
``--local`` to use an in-process :class:`~pyvledger.local.LocalNetwork`
instead of a gateway peer.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from collections.abc import Sequence
from typing import Any

from pyvledger.canonical import parse_json
from pyvledger.config import GatewayConfig
from pyvledger.exceptions import CommitRejectedError, LedgerError, NotFoundError
from pyvledger.gateway import Contract, Gateway
from pyvledger.identity import generate_identity, load_identity, load_signer
from pyvledger.ids import IdSequence
from pyvledger.local import LocalNetwork
from pyvledger.models.transaction import CommitStatus
from pyvledger.models.vehicle import VehicleRecord

_logger = logging.getLogger(__name__)


async def init_ledger(contract: Contract) -> None:
    """Submit ``InitLedger``. Typically run once after deployment."""
    _logger.info("Submit Transaction: InitLedger, creates the initial set of vehicles on the ledger")
    await contract.submit_transaction("InitLedger")
    _logger.info("Transaction committed successfully")


async def get_all_vehicles(contract: Contract) -> list[Any]:
    """Evaluate ``GetAllVehicles`` and return the decoded list."""
    _logger.info("Evaluate Transaction: GetAllVehicles, returns all the current vehicles on the ledger")
    result = parse_json(await contract.evaluate_transaction("GetAllVehicles"))
    _logger.info("Result: %s", result)
    return result if isinstance(result, list) else []


async def create_vehicle(contract: Contract, vehicle_id: str, org: str = "Org1") -> None:
    _logger.info("Submit Transaction: CreateVehicle %s for %s", vehicle_id, org)
    await contract.submit_transaction("CreateVehicle", vehicle_id, org)
    _logger.info("Transaction committed successfully")


async def read_vehicle(contract: Contract, vehicle_id: str) -> VehicleRecord:
    _logger.info("Evaluate Transaction: ReadVehicle %s", vehicle_id)
    vehicle = VehicleRecord.from_ledger_bytes(await contract.evaluate_transaction("ReadVehicle", vehicle_id))
    _logger.info("Result: %s", vehicle.to_ledger_dict())
    return vehicle


async def delete_vehicle(contract: Contract, vehicle_id: str) -> None:
    _logger.info("Submit Transaction: DeleteVehicle %s", vehicle_id)
    await contract.submit_transaction("DeleteVehicle", vehicle_id)
    _logger.info("Transaction committed successfully")


async def use_vehicle(contract: Contract, vehicle_id: str, user: str) -> CommitStatus:
    """Take *vehicle_id* into use without blocking on the commit.

    The endorsement result is reported right away but only as provisional;
    the commit status decides whether the change actually landed.
    """
    _logger.info("Async Submit Transaction: UseVehicle %s by %s", vehicle_id, user)
    commit = await contract.submit_async("UseVehicle", vehicle_id, user)
    provisional = VehicleRecord.from_ledger_bytes(commit.result)
    _logger.info("Vehicle %s is being taken into use by %s (pending commit)", provisional.id, provisional.user)

    _logger.info("Waiting for transaction commit")
    status = await commit.get_status()
    if not status.successful:
        raise CommitRejectedError(
            f"Transaction {status.transaction_id} failed to commit with status code {int(status.code)}",
            transaction_id=status.transaction_id,
            code=status.code,
        )
    _logger.info("Transaction committed successfully")
    return status


async def update_nonexistent_vehicle(contract: Contract, vehicle_id: str = "vehicle70") -> NotFoundError | None:
    """Update a vehicle that does not exist; the contract must refuse."""
    _logger.info("Submit Transaction: UpdateVehicle %s, which does not exist and should return an error", vehicle_id)
    try:
        await contract.submit_transaction("UpdateVehicle", vehicle_id, "Org1", "0", "0", "50", "false", "")
    except NotFoundError as exc:
        _logger.info("Successfully caught the error: %s", exc)
        return exc
    _logger.error("FAILED to return an error")
    return None


async def run(contract: Contract, ids: IdSequence) -> None:
    """Run the full sample sequence against *contract*."""
    new_id = ids.next()

    await init_ledger(contract)
    await create_vehicle(contract, new_id)
    await read_vehicle(contract, new_id)
    await get_all_vehicles(contract)
    await use_vehicle(contract, "org2_1", "user1")
    await read_vehicle(contract, "org2_1")
    await delete_vehicle(contract, new_id)
    await get_all_vehicles(contract)
    await update_nonexistent_vehicle(contract)


async def run_local(config: GatewayConfig, ids: IdSequence) -> LocalNetwork:
    """Run the sample against a fresh in-process network and return it."""
    identity, signer = generate_identity(config.msp_id)
    network = LocalNetwork()
    try:
        async with Gateway(config, identity=identity, signer=signer, transport=network) as gateway:
            await run(gateway.get_network().get_contract(), ids)
    finally:
        await network.close()
    return network


async def run_remote(config: GatewayConfig, ids: IdSequence) -> None:
    """Run the sample against the gateway peer named by *config*."""
    identity = await load_identity(config)
    signer = await load_signer(config)
    async with Gateway(config, identity=identity, signer=signer) as gateway:
        await run(gateway.get_network().get_contract(), ids)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Vehicle platform sample application")
    parser.add_argument("--local", action="store_true", help="Run against an in-process network")
    parser.add_argument("--id-prefix", default="org1_", help="Prefix for generated vehicle ids")
    parser.add_argument("--id-start", type=int, default=4, help="First generated vehicle number")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = GatewayConfig.from_env()
    for key, value in config.describe().items():
        _logger.info("%-18s %s", f"{key}:", value)

    ids = IdSequence(prefix=args.id_prefix, start=args.id_start)
    try:
        if args.local:
            asyncio.run(run_local(config, ids))
        else:
            asyncio.run(run_remote(config, ids))
    except LedgerError:
        _logger.exception("FAILED to run the application")
        return 1
    return 0
