from __future__ import annotations

import pytest

from pyvledger.config import GatewayConfig
from pyvledger.identity import Identity, Signer, generate_identity


@pytest.fixture
def config() -> GatewayConfig:
    return GatewayConfig(use_tls=False)


@pytest.fixture
def identity_pair() -> tuple[Identity, Signer]:
    return generate_identity("Org1MSP")
