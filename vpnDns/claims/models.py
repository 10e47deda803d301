"""Wire models for IP claims submitted by the claimant."""
from __future__ import annotations

import re
from typing import Literal

from pydantic import BaseModel, Field, field_validator

# Four dot-separated groups of 1-3 digits
DOTTED_QUAD_PATTERN = re.compile(r"[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}")

# Hex length band of a DER-encoded ECDSA P-256 signature (70-72 bytes)
SIGNATURE_HEX_MIN = 140
SIGNATURE_HEX_MAX = 144
SIGNATURE_PATTERN = re.compile(
    rf"[A-F0-9]{{{SIGNATURE_HEX_MIN},{SIGNATURE_HEX_MAX}}}"
)


def is_dotted_quad(ip: str) -> bool:
    """Return True for an IPv4 dotted quad with every octet in 0-255."""
    if not DOTTED_QUAD_PATTERN.fullmatch(ip):
        return False
    return all(int(octet) <= 255 for octet in ip.split("."))


def normalize_signature(signature: str) -> str:
    """Upper-case a hex signature and check it against the accepted band.

    Raises:
        ValueError: if the value is not hex or has the wrong length
    """
    normalized = signature.upper()
    if not SIGNATURE_PATTERN.fullmatch(normalized):
        raise ValueError("signature must be 140-144 hexadecimal characters")
    return normalized


class IpClaim(BaseModel):
    """A claimant's signed statement of its current public IPv4 address."""
    ip: str
    signature: str

    @field_validator("ip", mode="before")
    @classmethod
    def _check_ip(cls, value: object) -> str:
        if not isinstance(value, str) or not is_dotted_quad(value):
            raise ValueError("ip must be a dotted-quad IPv4 address")
        return value

    @field_validator("signature", mode="before")
    @classmethod
    def _check_signature(cls, value: object) -> str:
        if not isinstance(value, str):
            raise ValueError("signature must be a string")
        return normalize_signature(value)


class ClaimResponse(BaseModel):
    message: Literal["success", "error"] = Field(default="error")

    @classmethod
    def success(cls) -> "ClaimResponse":
        return cls(message="success")

    @classmethod
    def error(cls) -> "ClaimResponse":
        return cls(message="error")
