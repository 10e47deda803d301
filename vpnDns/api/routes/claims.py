"""Claim submission endpoint: verify a signed IP, then reconcile DNS."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from vpnDns.api.services import ReconcilerServices, get_services
from vpnDns.claims.models import ClaimResponse, IpClaim
from vpnDns.logging_config import get_logger
from vpnDns.provider.digitalocean import ProviderError

logger = get_logger("api")
router = APIRouter(prefix="/api", tags=["vpn"])


def _reject(reason: str, **fields) -> ClaimResponse:
    # The caller only ever sees the opaque error; the reason stays in the log
    logger.warning(
        "Claim rejected",
        extra={"reason": reason, "outcome": "rejected", **fields},
    )
    return ClaimResponse.error()


@router.post("/vpn", response_model=ClaimResponse)
async def submit_claim(
    request: Request,
    services: ReconcilerServices = Depends(get_services),
) -> ClaimResponse:
    """
    Accept ``{ip, signature}`` and, if the signature verifies, make the
    managed A record point at ``ip``.

    Always answers HTTP 200 with ``{"message": "success" | "error"}``.
    Malformed claims are rejected before any cryptographic work, and
    claims that fail verification never reach the DNS provider.
    """
    try:
        body = await request.json()
    except (ValueError, RecursionError):
        return _reject("invalid_json")

    try:
        claim = IpClaim.model_validate(body)
    except ValidationError as exc:
        return _reject("malformed_claim", error_type=type(exc).__name__)

    if not services.verifier.verify(claim):
        return _reject("bad_signature", ip=claim.ip)

    try:
        result = await services.reconciler.reconcile(claim.ip)
    except ProviderError as exc:
        logger.error(
            f"DNS reconciliation failed: {exc}",
            extra={
                "ip": claim.ip,
                "operation": exc.operation,
                "status_code": exc.status,
                "outcome": "error",
                "error_type": type(exc).__name__,
            },
        )
        return ClaimResponse.error()

    logger.info(
        "Claim accepted",
        extra={"ip": claim.ip, "dns_action": result.outcome.value, "outcome": "success"},
    )
    return ClaimResponse.success()
