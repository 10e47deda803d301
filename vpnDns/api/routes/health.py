"""Health and dependency status endpoint."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from vpnDns.api.models import ok
from vpnDns.api.services import ReconcilerServices, get_services
from vpnDns.logging_config import get_logger

logger = get_logger("api")
router = APIRouter(prefix="/health", tags=["health"])


async def _check_provider(services: ReconcilerServices) -> dict:
    """Check that the DNS provider answers for the managed domain."""
    probe = getattr(services.provider, "get_domain", None)
    if probe is None:
        return {"status": "unknown", "message": "Provider has no health probe"}
    try:
        await probe()
        return {"status": "healthy", "message": "Reachable"}
    except Exception as exc:
        return {"status": "unhealthy", "message": str(exc)[:100]}


@router.get("")
async def health(request: Request, services: ReconcilerServices = Depends(get_services)):
    """
    Report reconciler status.

    The verification key is loaded at startup, so a running app is always
    able to verify claims; the provider check tells whether accepted
    claims can currently be applied.
    """
    provider = await _check_provider(services)
    overall_status = "healthy" if provider["status"] != "unhealthy" else "degraded"

    logger.info(
        "Health check performed",
        extra={"state": overall_status, "outcome": "success"},
    )
    return ok(
        {
            "status": overall_status,
            "api_base": str(request.base_url).rstrip("/"),
            "record": services.info,
            "checks": {"provider": provider},
        }
    )
