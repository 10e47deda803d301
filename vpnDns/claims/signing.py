"""ECDSA/SHA3-512 signatures over claimed IP addresses.

The claimant signs the exact UTF-8 bytes of its dotted-quad address with a
P-256 private key; the reconciler verifies the detached signature with the
matching public key. Signatures travel as hex-encoded DER bytes.
"""
from __future__ import annotations

import binascii
from pathlib import Path
from typing import Union

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec

from vpnDns.claims.models import SIGNATURE_HEX_MAX, SIGNATURE_HEX_MIN, IpClaim
from vpnDns.logging_config import get_logger

logger = get_logger("signing")

SIGNATURE_ALGORITHM = ec.ECDSA(hashes.SHA3_512())

# DER length varies with the random nonce; re-sign until it fits the band
MAX_SIGNING_ATTEMPTS = 16

PathLike = Union[str, Path]


class KeyMaterialError(Exception):
    """A key file is missing, unreadable or not an EC key."""


class SigningError(Exception):
    """No signature inside the accepted length band could be produced."""


def _read_pem(path: PathLike) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as exc:
        raise KeyMaterialError(f"Cannot read key file {path}: {exc}") from exc


def load_private_key(path: PathLike) -> ec.EllipticCurvePrivateKey:
    data = _read_pem(path)
    try:
        key = serialization.load_pem_private_key(data, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise KeyMaterialError(f"Invalid private key in {path}: {exc}") from exc
    if not isinstance(key, ec.EllipticCurvePrivateKey):
        raise KeyMaterialError(f"Private key in {path} is not an EC key")
    return key


def load_public_key(path: PathLike) -> ec.EllipticCurvePublicKey:
    data = _read_pem(path)
    try:
        key = serialization.load_pem_public_key(data)
    except (ValueError, UnsupportedAlgorithm) as exc:
        raise KeyMaterialError(f"Invalid public key in {path}: {exc}") from exc
    if not isinstance(key, ec.EllipticCurvePublicKey):
        raise KeyMaterialError(f"Public key in {path} is not an EC key")
    return key


def sign_ip(ip: str, private_key: ec.EllipticCurvePrivateKey) -> bytes:
    """Return a DER signature over ``ip`` whose hex form fits the wire band."""
    payload = ip.encode("utf-8")
    for attempt in range(1, MAX_SIGNING_ATTEMPTS + 1):
        signature = private_key.sign(payload, SIGNATURE_ALGORITHM)
        if SIGNATURE_HEX_MIN <= len(signature) * 2 <= SIGNATURE_HEX_MAX:
            return signature
        logger.debug(
            "Signature outside accepted length band, re-signing",
            extra={"attempt": attempt, "outcome": "retry"},
        )
    raise SigningError(
        f"Could not produce a {SIGNATURE_HEX_MIN}-{SIGNATURE_HEX_MAX} hex-char signature "
        f"in {MAX_SIGNING_ATTEMPTS} attempts; is the key on the P-256 curve?"
    )


def verify_ip_signature(
    ip: str,
    signature_hex: str,
    public_key: ec.EllipticCurvePublicKey,
) -> bool:
    """Check a hex-encoded signature over the exact ``ip`` string."""
    try:
        signature = binascii.unhexlify(signature_hex.upper())
    except (binascii.Error, ValueError):
        return False
    try:
        public_key.verify(signature, ip.encode("utf-8"), SIGNATURE_ALGORITHM)
    except InvalidSignature:
        return False
    return True


class ClaimVerifier:
    """Verifies claims against the reconciler's static public key."""

    def __init__(self, public_key: ec.EllipticCurvePublicKey):
        self._public_key = public_key

    @classmethod
    def from_path(cls, path: PathLike) -> "ClaimVerifier":
        verifier = cls(load_public_key(path))
        logger.info(
            "Loaded claim verification key",
            extra={"state": "ready", "outcome": "success"},
        )
        return verifier

    def verify(self, claim: IpClaim) -> bool:
        valid = verify_ip_signature(claim.ip, claim.signature, self._public_key)
        if not valid:
            logger.warning(
                "Claim signature rejected",
                extra={"ip": claim.ip, "reason": "bad_signature", "outcome": "rejected"},
            )
        return valid
