"""Internal constants shared across the library."""

from __future__ import annotations

from typing import Any

DOC_TYPE = "vehicle"

DEFAULT_CHANNEL = "vehicle"
DEFAULT_CHAINCODE = "vehicle-chaincode"
DEFAULT_MSP_ID = "Org1MSP"
DEFAULT_PEER_ENDPOINT = "localhost:7051"
DEFAULT_PEER_HOST_ALIAS = "peer0.org1.example.com"

# Per-stage deadlines in seconds.
EVALUATE_TIMEOUT = 5.0
ENDORSE_TIMEOUT = 15.0
SUBMIT_TIMEOUT = 5.0
COMMIT_STATUS_TIMEOUT = 60.0

# ------------------------------------------------------------------
# Seed data written by InitLedger (3 vehicles per organization)
# ------------------------------------------------------------------

SEED_VEHICLES: tuple[dict[str, Any], ...] = (
    {"ID": "org1_1", "Org": "Org1", "Latitude": 35.6453, "Longitude": 128.4253, "Battery": 83},
    {"ID": "org1_2", "Org": "Org1", "Latitude": 35.6443, "Longitude": 128.4553, "Battery": 43},
    {"ID": "org1_3", "Org": "Org1", "Latitude": 35.6413, "Longitude": 128.4953, "Battery": 23},
    {"ID": "org2_1", "Org": "Org2", "Latitude": 35.1453, "Longitude": 128.3253, "Battery": 95},
    {"ID": "org2_2", "Org": "Org2", "Latitude": 35.1553, "Longitude": 128.3453, "Battery": 100},
    {"ID": "org2_3", "Org": "Org2", "Latitude": 35.1153, "Longitude": 128.3153, "Battery": 43},
)
