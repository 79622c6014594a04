from __future__ import annotations

from pathlib import Path

import pytest

from pyvledger.config import GatewayConfig
from pyvledger.exceptions import LedgerConfigError


def test_defaults() -> None:
    config = GatewayConfig()

    assert config.channel_name == "vehicle"
    assert config.chaincode_name == "vehicle-chaincode"
    assert config.msp_id == "Org1MSP"
    assert config.peer_endpoint == "localhost:7051"
    assert config.base_url == "https://localhost:7051"
    assert config.resolved_cert_path.name == "cert.pem"
    assert config.resolved_key_directory_path.name == "keystore"
    assert config.resolved_tls_cert_path == config.crypto_path / "peers" / "peer0.org1.example.com" / "tls" / "ca.crt"


def test_from_env_reads_variables() -> None:
    env = {
        "CHANNEL_NAME": "mychannel",
        "CHAINCODE_NAME": "fleet",
        "MSP_ID": "Org2MSP",
        "PEER_ENDPOINT": "peer:9051",
        "CRYPTO_PATH": "/crypto/org2",
        "CERT_PATH": "/certs/user.pem",
        "COMMIT_STATUS_TIMEOUT": "12.5",
        "PEER_HOST_ALIAS": "",
    }

    config = GatewayConfig.from_env(env)

    assert config.channel_name == "mychannel"
    assert config.chaincode_name == "fleet"
    assert config.msp_id == "Org2MSP"
    assert config.peer_endpoint == "peer:9051"
    assert config.peer_host_alias == "peer0.org1.example.com"
    assert config.crypto_path == Path("/crypto/org2")
    assert config.resolved_cert_path == Path("/certs/user.pem")
    assert config.resolved_key_directory_path == Path("/crypto/org2/users/User1@org1.example.com/msp/keystore")
    assert config.commit_status_timeout == 12.5


def test_from_env_overrides_take_precedence() -> None:
    config = GatewayConfig.from_env(
        {"CHANNEL_NAME": "env", "EVALUATE_TIMEOUT": "bad"},
        channel_name="explicit",
        evaluate_timeout=1.0,
    )

    assert config.channel_name == "explicit"
    assert config.evaluate_timeout == 1.0


def test_from_env_rejects_non_numeric_timeout() -> None:
    with pytest.raises(LedgerConfigError, match="ENDORSE_TIMEOUT"):
        GatewayConfig.from_env({"ENDORSE_TIMEOUT": "soon"})


@pytest.mark.parametrize("field", ["evaluate_timeout", "endorse_timeout", "submit_timeout", "commit_status_timeout"])
def test_non_positive_timeouts_are_rejected(field: str) -> None:
    with pytest.raises(LedgerConfigError):
        GatewayConfig(**{field: 0})


def test_describe_lists_resolved_paths() -> None:
    described = GatewayConfig(crypto_path=Path("/crypto")).describe()

    assert described["channelName"] == "vehicle"
    assert described["tlsCertPath"] == "/crypto/peers/peer0.org1.example.com/tls/ca.crt"
