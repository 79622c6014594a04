"""Client configuration for pyvledger."""

from __future__ import annotations

import dataclasses
import os
from pathlib import Path
from typing import Any

from pyvledger._constants import (
    COMMIT_STATUS_TIMEOUT,
    DEFAULT_CHAINCODE,
    DEFAULT_CHANNEL,
    DEFAULT_MSP_ID,
    DEFAULT_PEER_ENDPOINT,
    DEFAULT_PEER_HOST_ALIAS,
    ENDORSE_TIMEOUT,
    EVALUATE_TIMEOUT,
    SUBMIT_TIMEOUT,
)
from pyvledger.exceptions import LedgerConfigError

_DEFAULT_CRYPTO_PATH = Path("test-network/organizations/peerOrganizations/org1.example.com")


@dataclasses.dataclass(frozen=True)
class GatewayConfig:
    """Gateway connection configuration.

    Built once at startup and passed explicitly to the identity and
    connection factories.

    Parameters
    ----------
    channel_name : str
        Channel the contract is deployed on.
    chaincode_name : str
        Name the contract was deployed under.
    msp_id : str
        Membership service provider id of the client organization.
    crypto_path : Path
        Root of the organization's crypto material.
    key_directory_path : Path or None
        Directory holding the user's private key. Defaults to
        ``<crypto_path>/users/User1@org1.example.com/msp/keystore``.
    cert_path : Path or None
        User certificate. Defaults to
        ``<crypto_path>/users/User1@org1.example.com/msp/signcerts/cert.pem``.
    tls_cert_path : Path or None
        Peer TLS CA certificate. Defaults to
        ``<crypto_path>/peers/peer0.org1.example.com/tls/ca.crt``.
    peer_endpoint : str
        Gateway peer ``host:port``.
    peer_host_alias : str
        TLS server name expected on the peer certificate.
    use_tls : bool
        Connect with HTTPS using the peer TLS CA certificate.
    evaluate_timeout, endorse_timeout, submit_timeout, commit_status_timeout : float
        Per-stage deadlines in seconds.
    """

    channel_name: str = DEFAULT_CHANNEL
    chaincode_name: str = DEFAULT_CHAINCODE
    msp_id: str = DEFAULT_MSP_ID
    crypto_path: Path = _DEFAULT_CRYPTO_PATH
    key_directory_path: Path | None = None
    cert_path: Path | None = None
    tls_cert_path: Path | None = None
    peer_endpoint: str = DEFAULT_PEER_ENDPOINT
    peer_host_alias: str = DEFAULT_PEER_HOST_ALIAS
    use_tls: bool = True
    evaluate_timeout: float = EVALUATE_TIMEOUT
    endorse_timeout: float = ENDORSE_TIMEOUT
    submit_timeout: float = SUBMIT_TIMEOUT
    commit_status_timeout: float = COMMIT_STATUS_TIMEOUT

    def __post_init__(self) -> None:
        for name in ("evaluate_timeout", "endorse_timeout", "submit_timeout", "commit_status_timeout"):
            if getattr(self, name) <= 0:
                raise LedgerConfigError(f"{name} must be positive")
        if not self.peer_endpoint:
            raise LedgerConfigError("peer_endpoint must not be empty")

    @property
    def resolved_key_directory_path(self) -> Path:
        if self.key_directory_path is not None:
            return Path(self.key_directory_path)
        return Path(self.crypto_path) / "users" / "User1@org1.example.com" / "msp" / "keystore"

    @property
    def resolved_cert_path(self) -> Path:
        if self.cert_path is not None:
            return Path(self.cert_path)
        return Path(self.crypto_path) / "users" / "User1@org1.example.com" / "msp" / "signcerts" / "cert.pem"

    @property
    def resolved_tls_cert_path(self) -> Path:
        if self.tls_cert_path is not None:
            return Path(self.tls_cert_path)
        return Path(self.crypto_path) / "peers" / "peer0.org1.example.com" / "tls" / "ca.crt"

    @property
    def base_url(self) -> str:
        scheme = "https" if self.use_tls else "http"
        return f"{scheme}://{self.peer_endpoint}"

    def describe(self) -> dict[str, str]:
        """Resolved settings, suitable for logging at startup."""
        return {
            "channelName": self.channel_name,
            "chaincodeName": self.chaincode_name,
            "mspId": self.msp_id,
            "cryptoPath": str(self.crypto_path),
            "keyDirectoryPath": str(self.resolved_key_directory_path),
            "certPath": str(self.resolved_cert_path),
            "tlsCertPath": str(self.resolved_tls_cert_path),
            "peerEndpoint": self.peer_endpoint,
            "peerHostAlias": self.peer_host_alias,
        }

    @classmethod
    def from_env(cls, env: dict[str, str] | None = None, **overrides: Any) -> GatewayConfig:
        """Create configuration from environment variables.

        Reads ``CHANNEL_NAME``, ``CHAINCODE_NAME``, ``MSP_ID``,
        ``CRYPTO_PATH``, ``KEY_DIRECTORY_PATH``, ``CERT_PATH``,
        ``TLS_CERT_PATH``, ``PEER_ENDPOINT``, ``PEER_HOST_ALIAS`` and the
        ``*_TIMEOUT`` variables. Explicit keyword arguments override
        environment values.

        Parameters
        ----------
        env
            Mapping to read instead of ``os.environ``.
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        GatewayConfig
            Populated configuration.
        """
        source = os.environ if env is None else env

        _ENV_STR_MAP = {
            "CHANNEL_NAME": "channel_name",
            "CHAINCODE_NAME": "chaincode_name",
            "MSP_ID": "msp_id",
            "PEER_ENDPOINT": "peer_endpoint",
            "PEER_HOST_ALIAS": "peer_host_alias",
        }
        _ENV_PATH_MAP = {
            "CRYPTO_PATH": "crypto_path",
            "KEY_DIRECTORY_PATH": "key_directory_path",
            "CERT_PATH": "cert_path",
            "TLS_CERT_PATH": "tls_cert_path",
        }
        _ENV_TIMEOUT_MAP = {
            "EVALUATE_TIMEOUT": "evaluate_timeout",
            "ENDORSE_TIMEOUT": "endorse_timeout",
            "SUBMIT_TIMEOUT": "submit_timeout",
            "COMMIT_STATUS_TIMEOUT": "commit_status_timeout",
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = source.get(env_key)
            if val:
                config_kwargs[field_name] = val

        for env_key, field_name in _ENV_PATH_MAP.items():
            val = source.get(env_key)
            if val:
                config_kwargs[field_name] = Path(val)

        for env_key, field_name in _ENV_TIMEOUT_MAP.items():
            val = source.get(env_key)
            if val and field_name not in overrides:
                try:
                    config_kwargs[field_name] = float(val)
                except ValueError as exc:
                    raise LedgerConfigError(f"{env_key} must be a number, got {val!r}") from exc

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
