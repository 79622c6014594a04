"""Client identity and transaction signing.

An :class:`Identity` is the MSP id plus PEM credentials (certificate or
public key) sent with every proposal. A :data:`Signer` signs the SHA-256
digest of a proposal header with the matching EC private key. Signatures
are DER-encoded ECDSA, normalised to low-S form as peers require.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path

from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import (
    Prehashed,
    decode_dss_signature,
    encode_dss_signature,
)
from pydantic import BaseModel, ConfigDict, Field

from pyvledger.config import GatewayConfig
from pyvledger.exceptions import IdentityError

Signer = Callable[[bytes], bytes]
"""Signs a 32-byte SHA-256 digest, returning a DER ECDSA signature."""

# Group orders for the curves peers accept, used for low-S normalisation.
_CURVE_ORDERS: dict[str, int] = {
    "secp256r1": 0xFFFFFFFF00000000FFFFFFFFFFFFFFFFBCE6FAADA7179E84F3B9CAC2FC632551,
    "secp384r1": int(
        "FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFC7634D81F4372DDF581A0DB248B0A77AECEC196ACCC52973",
        16,
    ),
}


class Identity(BaseModel):
    """Client identity attached to proposals."""

    model_config = ConfigDict(frozen=True)

    msp_id: str = Field(min_length=1)
    credentials: bytes = Field(min_length=1)


def _low_s(signature: bytes, curve: ec.EllipticCurve) -> bytes:
    order = _CURVE_ORDERS.get(curve.name)
    if order is None:
        return signature
    r, s = decode_dss_signature(signature)
    if s > order // 2:
        s = order - s
    return encode_dss_signature(r, s)


def new_private_key_signer(private_key: ec.EllipticCurvePrivateKey) -> Signer:
    """Build a :data:`Signer` over an EC private key."""

    def sign(digest: bytes) -> bytes:
        if len(digest) != hashes.SHA256.digest_size:
            raise IdentityError(f"digest must be {hashes.SHA256.digest_size} bytes, got {len(digest)}")
        signature = private_key.sign(digest, ec.ECDSA(Prehashed(hashes.SHA256())))
        return _low_s(signature, private_key.curve)

    return sign


def load_private_key(pem: bytes) -> ec.EllipticCurvePrivateKey:
    """Parse an unencrypted PEM EC private key."""
    try:
        key = serialization.load_pem_private_key(pem, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise IdentityError(f"Cannot load private key: {exc}") from exc
    if not isinstance(key, ec.EllipticCurvePrivateKey):
        raise IdentityError(f"Private key must be an EC key, got {type(key).__name__}")
    return key


def public_key_from_credentials(credentials: bytes) -> ec.EllipticCurvePublicKey:
    """Extract the EC public key from a PEM certificate or PEM public key."""
    try:
        if b"BEGIN CERTIFICATE" in credentials:
            key = x509.load_pem_x509_certificate(credentials).public_key()
        else:
            key = serialization.load_pem_public_key(credentials)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise IdentityError(f"Cannot load credentials: {exc}") from exc
    if not isinstance(key, ec.EllipticCurvePublicKey):
        raise IdentityError(f"Credentials must carry an EC public key, got {type(key).__name__}")
    return key


def verify_signature(credentials: bytes, digest: bytes, signature: bytes) -> bool:
    """Return ``True`` when *signature* over *digest* matches *credentials*."""
    public_key = public_key_from_credentials(credentials)
    try:
        public_key.verify(signature, digest, ec.ECDSA(Prehashed(hashes.SHA256())))
    except InvalidSignature:
        return False
    return True


def generate_identity(msp_id: str, curve: ec.EllipticCurve | None = None) -> tuple[Identity, Signer]:
    """Create an ephemeral key pair; credentials are the PEM public key."""
    private_key = ec.generate_private_key(curve or ec.SECP256R1())
    credentials = private_key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return Identity(msp_id=msp_id, credentials=credentials), new_private_key_signer(private_key)


def _read_bytes(path: Path, what: str) -> bytes:
    try:
        return path.read_bytes()
    except OSError as exc:
        raise IdentityError(f"Cannot read {what} at {path}: {exc}") from exc


def _first_key_file(directory: Path) -> Path:
    try:
        files = sorted(p for p in directory.iterdir() if p.is_file())
    except OSError as exc:
        raise IdentityError(f"Cannot list key directory {directory}: {exc}") from exc
    if not files:
        raise IdentityError(f"No private key found in {directory}")
    return files[0]


async def load_identity(config: GatewayConfig) -> Identity:
    """Read the user certificate named by *config*."""
    path = config.resolved_cert_path
    credentials = await asyncio.to_thread(_read_bytes, path, "certificate")
    return Identity(msp_id=config.msp_id, credentials=credentials)


async def load_signer(config: GatewayConfig) -> Signer:
    """Load the first private key in the configured key directory."""

    def _load() -> ec.EllipticCurvePrivateKey:
        key_path = _first_key_file(config.resolved_key_directory_path)
        return load_private_key(_read_bytes(key_path, "private key"))

    private_key = await asyncio.to_thread(_load)
    return new_private_key_signer(private_key)
