"""Explicitly constructed collaborators for the reconciler API.

The app never reaches for module-level singletons: a ReconcilerServices
instance is built once (at startup, or by the caller in tests) and handed to
request handlers through the ``get_services`` dependency.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict

from fastapi import HTTPException, Request, status

from vpnDns.claims.signing import ClaimVerifier
from vpnDns.config import ReconcilerConfig
from vpnDns.logging_config import get_logger, sanitize_log_data
from vpnDns.provider.digitalocean import DigitalOceanClient
from vpnDns.reconciler.reconcile import RecordReconciler, RecordStore

logger = get_logger("api")


@dataclass
class ReconcilerServices:
    verifier: ClaimVerifier
    provider: RecordStore
    reconciler: RecordReconciler
    info: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_config(cls, config: ReconcilerConfig) -> "ReconcilerServices":
        """Load the public key and wire the provider client and reconciler.

        Raises:
            KeyMaterialError: if the public key cannot be loaded
        """
        logger.debug(f"Reconciler config: {sanitize_log_data(config.model_dump())}")
        logger.info(
            "Building reconciler services",
            extra={
                "domain": config.provider.domain,
                "record_name": config.provider.record_name,
                "state": "startup",
            },
        )
        verifier = ClaimVerifier.from_path(config.public_key_path)
        provider = DigitalOceanClient.from_config(config.provider)
        reconciler = RecordReconciler(
            provider,
            record_name=config.provider.record_name,
            ttl=config.provider.ttl,
        )
        return cls(
            verifier=verifier,
            provider=provider,
            reconciler=reconciler,
            info={"domain": config.provider.domain, "record_name": config.provider.record_name},
        )

    async def close(self) -> None:
        close = getattr(self.provider, "close", None)
        if close is not None:
            await close()


def get_services(request: Request) -> ReconcilerServices:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail="Reconciler not initialised")
    return services
