"""Vehicle record model."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from pyvledger._constants import DOC_TYPE
from pyvledger.canonical import canonical_json, parse_json
from pyvledger.exceptions import SerializationError


class VehicleRecord(BaseModel):
    """A vehicle asset as stored in the world state.

    Field names map to the JSON keys written on the ledger (``ID``,
    ``Org``, ``Latitude`` ...). Unknown keys found in stored records are
    kept so partial updates leave them untouched.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
        populate_by_name=True,
    )

    id: str = Field(alias="ID", min_length=1)
    """Ledger key; immutable once created."""
    org: str = Field(alias="Org")
    """Owning organization (e.g. ``"Org1"``)."""
    latitude: float = Field(default=0.0, alias="Latitude", allow_inf_nan=False)
    longitude: float = Field(default=0.0, alias="Longitude", allow_inf_nan=False)
    battery: int = Field(default=100, alias="Battery")
    """Charge level in percent. The 0-100 range is not enforced."""
    is_using: bool = Field(default=False, alias="IsUsing")
    user: str | None = Field(default=None, alias="User")
    """Current user, ``None`` when nobody has taken the vehicle."""
    doc_type: str = Field(default=DOC_TYPE, alias="docType")

    @field_validator("doc_type")
    @classmethod
    def _check_doc_type(cls, value: str) -> str:
        if value != DOC_TYPE:
            raise ValueError(f"docType must be {DOC_TYPE!r}, got {value!r}")
        return value

    def to_ledger_dict(self) -> dict[str, Any]:
        """Ledger JSON keys mapped to values."""
        return self.model_dump(by_alias=True)

    def to_ledger_bytes(self) -> bytes:
        """Canonical serialized form written to the world state."""
        return canonical_json(self.to_ledger_dict())

    @classmethod
    def from_ledger_bytes(cls, data: bytes) -> VehicleRecord:
        """Parse stored bytes back into a record."""
        payload = parse_json(data)
        if not isinstance(payload, dict):
            raise SerializationError(f"vehicle record must be a JSON object, got {type(payload).__name__}")
        try:
            return cls.model_validate(payload)
        except PydanticValidationError as exc:
            raise SerializationError(f"stored vehicle record is malformed: {exc}") from exc
