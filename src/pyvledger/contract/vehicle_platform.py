"""Vehicle platform contract.

Every write goes through :meth:`VehicleRecord.to_ledger_bytes`, which
encodes with recursively sorted keys, so all replicas store byte-identical
values for the same logical record.

The contract holds no locks: two transactions that read and write the same
key concurrently are arbitrated by MVCC validation at commit, and
``UseVehicle`` reassigns a vehicle that is already in use.
"""

from __future__ import annotations

import logging
from typing import Any

from pyvledger._constants import SEED_VEHICLES
from pyvledger.canonical import parse_json
from pyvledger.contract._base import (
    Contract,
    FiniteFloat,
    NonEmptyStr,
    OptionalStr,
    TransactionContext,
    transaction,
)
from pyvledger.exceptions import AlreadyExistsError, NotFoundError, SerializationError
from pyvledger.models.vehicle import VehicleRecord

_logger = logging.getLogger(__name__)


class VehiclePlatform(Contract):
    """Create, read, update, delete, use and list vehicle records."""

    aliases = {
        "UpdateAsset": "UpdateVehicle",
        "DeleteAsset": "DeleteVehicle",
    }

    @transaction("InitLedger")
    async def init_ledger(self, ctx: TransactionContext) -> None:
        """Write the seed vehicles, overwriting any existing seed keys."""
        for seed in SEED_VEHICLES:
            vehicle = VehicleRecord.model_validate(seed)
            await ctx.stub.put_state(vehicle.id, vehicle.to_ledger_bytes())
        _logger.info("Seeded %d vehicles", len(SEED_VEHICLES))

    @transaction("CreateVehicle")
    async def create_vehicle(self, ctx: TransactionContext, vehicle_id: NonEmptyStr, org: str) -> VehicleRecord:
        if await self.vehicle_exists(ctx, vehicle_id):
            raise AlreadyExistsError(f"The vehicle {vehicle_id} already exists")

        vehicle = VehicleRecord(id=vehicle_id, org=org)
        await ctx.stub.put_state(vehicle_id, vehicle.to_ledger_bytes())
        return vehicle

    @transaction("ReadVehicle", submit=False)
    async def read_vehicle(self, ctx: TransactionContext, vehicle_id: NonEmptyStr) -> bytes:
        """Return the stored bytes for *vehicle_id* unchanged."""
        data = await ctx.stub.get_state(vehicle_id)
        if not data:
            raise NotFoundError(f"The vehicle {vehicle_id} does not exist")
        return data

    @transaction("UpdateVehicle")
    async def update_vehicle(
        self,
        ctx: TransactionContext,
        vehicle_id: NonEmptyStr,
        org: str,
        latitude: FiniteFloat,
        longitude: FiniteFloat,
        battery: int,
        is_using: bool,
        user: OptionalStr,
    ) -> None:
        """Overwrite every field of an existing vehicle."""
        if not await self.vehicle_exists(ctx, vehicle_id):
            raise NotFoundError(f"The vehicle {vehicle_id} does not exist")

        updated = VehicleRecord(
            id=vehicle_id,
            org=org,
            latitude=latitude,
            longitude=longitude,
            battery=battery,
            is_using=is_using,
            user=user,
        )
        await ctx.stub.put_state(vehicle_id, updated.to_ledger_bytes())

    @transaction("DeleteVehicle")
    async def delete_vehicle(self, ctx: TransactionContext, vehicle_id: NonEmptyStr) -> None:
        if not await self.vehicle_exists(ctx, vehicle_id):
            raise NotFoundError(f"The vehicle {vehicle_id} does not exist")
        await ctx.stub.delete_state(vehicle_id)

    @transaction("VehicleExists", submit=False)
    async def vehicle_exists(self, ctx: TransactionContext, vehicle_id: str) -> bool:
        if not vehicle_id:
            return False
        data = await ctx.stub.get_state(vehicle_id)
        return bool(data)

    @transaction("UseVehicle")
    async def use_vehicle(self, ctx: TransactionContext, vehicle_id: NonEmptyStr, user: str) -> VehicleRecord:
        """Mark *vehicle_id* as in use by *user*; other fields are left as stored."""
        data = await self.read_vehicle(ctx, vehicle_id)
        vehicle = VehicleRecord.from_ledger_bytes(data)
        updated = vehicle.model_copy(update={"is_using": True, "user": user})
        await ctx.stub.put_state(vehicle_id, updated.to_ledger_bytes())
        return updated

    @transaction("GetAllVehicles", submit=False)
    async def get_all_vehicles(self, ctx: TransactionContext) -> list[Any]:
        """Every stored value in key order.

        Values that are not valid JSON are returned as raw strings instead
        of failing the scan.
        """
        results: list[Any] = []
        async for key, value in ctx.stub.get_state_by_range("", ""):
            try:
                results.append(parse_json(value))
            except SerializationError as exc:
                _logger.warning("Key %s holds non-JSON value: %s", key, exc)
                results.append(value.decode("utf-8", errors="replace"))
        return results
