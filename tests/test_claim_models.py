from __future__ import annotations

import pytest
from pydantic import ValidationError

from vpnDns.claims.models import ClaimResponse, IpClaim, is_dotted_quad, normalize_signature

VALID_SIGNATURE = "ab" * 71


@pytest.mark.parametrize("ip", ["203.0.113.7", "0.0.0.0", "255.255.255.255", "10.01.1.1"])
def test_dotted_quad_accepts_in_range_addresses(ip):
    assert is_dotted_quad(ip)


@pytest.mark.parametrize(
    "ip",
    [
        "999.999.999.999",
        "256.1.1.1",
        "1.2.3",
        "1.2.3.4.5",
        "abc.def.gh.i",
        "1.2.3.4\n",
        " 1.2.3.4",
        "1234.1.1.1",
        "",
    ],
)
def test_dotted_quad_rejects_malformed_addresses(ip):
    assert not is_dotted_quad(ip)


def test_signature_is_uppercased():
    assert normalize_signature(VALID_SIGNATURE) == VALID_SIGNATURE.upper()


@pytest.mark.parametrize("length", [138, 139, 145, 146])
def test_signature_outside_length_band_rejected(length):
    with pytest.raises(ValueError):
        normalize_signature("a" * length)


@pytest.mark.parametrize("length", [140, 142, 144])
def test_signature_inside_length_band_accepted(length):
    assert normalize_signature("f" * length) == "F" * length


def test_non_hex_signature_rejected():
    with pytest.raises(ValueError):
        normalize_signature("g" * 142)


def test_claim_model_normalizes_signature():
    claim = IpClaim.model_validate({"ip": "203.0.113.7", "signature": VALID_SIGNATURE})
    assert claim.signature == VALID_SIGNATURE.upper()


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"ip": "203.0.113.7"},
        {"signature": VALID_SIGNATURE},
        {"ip": 3405803783, "signature": VALID_SIGNATURE},
        {"ip": "203.0.113.7", "signature": None},
        {"ip": "999.999.999.999", "signature": VALID_SIGNATURE},
    ],
)
def test_claim_model_rejects_bad_payloads(payload):
    with pytest.raises(ValidationError):
        IpClaim.model_validate(payload)


def test_claim_response_constructors():
    assert ClaimResponse.success().model_dump() == {"message": "success"}
    assert ClaimResponse.error().model_dump() == {"message": "error"}
