"""Configuration loader for the reconciler service and the claimant."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError


def _clean(val: str | None, default: str | None = None) -> str | None:
    """
    Clean environment variable values that may carry spurious quotes.

    Values exported from .env files or service managers are sometimes
    wrapped in quotes; strip them so URLs and tokens are usable.
    """
    if not val:
        return default
    cleaned = val.strip().strip("\"").strip("'")
    return cleaned or default


def _read_yaml(path: str) -> Dict[str, Any]:
    cfg_path = Path(path)
    if not cfg_path.exists():
        raise FileNotFoundError(f"vpnDns config not found: {cfg_path}")
    return yaml.safe_load(cfg_path.read_text()) or {}


class ProviderConfig(BaseModel):
    """Connection details for the DNS provider API."""
    api_base: str = Field(default="https://api.digitalocean.com/v2")
    api_token: str = Field(default="")
    domain: str = Field(default="example.com")
    record_name: str = Field(default="vpn", min_length=1)
    ttl: int = Field(default=1800, ge=30)
    timeout_seconds: float = Field(default=10.0, gt=0)
    page_size: int = Field(default=200, ge=1, le=200)


class ReconcilerConfig(BaseModel):
    public_key_path: str = Field(default="keys/public.pem")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080, ge=1, le=65535)
    provider: ProviderConfig = Field(default_factory=ProviderConfig)

    @classmethod
    def load(cls, path: str) -> "ReconcilerConfig":
        try:
            raw = _read_yaml(path)
            reconciler = raw.get("reconciler", raw)
            return cls(**reconciler)
        except ValidationError as exc:
            raise ValueError(f"Invalid reconciler config: {exc}") from exc

    @classmethod
    def from_env(cls, path: Optional[str] = None) -> "ReconcilerConfig":
        """Load from an optional YAML file, then apply VPNDNS_* overrides."""
        path = path or _clean(os.getenv("VPNDNS_CONFIG"))
        cfg = cls.load(path) if path else cls()

        env_fields = {
            "public_key_path": _clean(os.getenv("VPNDNS_PUBLIC_KEY")),
            "host": _clean(os.getenv("VPNDNS_API_HOST")),
            "port": _clean(os.getenv("VPNDNS_API_PORT")),
        }
        provider_fields = {
            "api_base": _clean(os.getenv("VPNDNS_DO_API_BASE")),
            "api_token": _clean(os.getenv("VPNDNS_DO_TOKEN")),
            "domain": _clean(os.getenv("VPNDNS_DOMAIN")),
            "record_name": _clean(os.getenv("VPNDNS_RECORD_NAME")),
            "ttl": _clean(os.getenv("VPNDNS_RECORD_TTL")),
            "timeout_seconds": _clean(os.getenv("VPNDNS_PROVIDER_TIMEOUT")),
        }
        try:
            merged = cfg.model_dump()
            merged.update({k: v for k, v in env_fields.items() if v is not None})
            merged["provider"].update({k: v for k, v in provider_fields.items() if v is not None})
            return cls(**merged)
        except ValidationError as exc:
            raise ValueError(f"Invalid reconciler environment: {exc}") from exc


class ClaimantConfig(BaseModel):
    private_key_path: str = Field(default="keys/private.pem")
    ip_service_url: str = Field(default="https://ifconfig.me/ip")
    reconciler_url: str = Field(default="https://example.com/api/vpn")
    interval_seconds: int = Field(default=300, ge=10)
    timeout_seconds: float = Field(default=10.0, gt=0)

    @classmethod
    def load(cls, path: str) -> "ClaimantConfig":
        try:
            raw = _read_yaml(path)
            claimant = raw.get("claimant", raw)
            return cls(**claimant)
        except ValidationError as exc:
            raise ValueError(f"Invalid claimant config: {exc}") from exc

    @classmethod
    def from_env(cls, path: Optional[str] = None) -> "ClaimantConfig":
        path = path or _clean(os.getenv("VPNDNS_CONFIG"))
        cfg = cls.load(path) if path else cls()

        env_fields = {
            "private_key_path": _clean(os.getenv("VPNDNS_PRIVATE_KEY")),
            "ip_service_url": _clean(os.getenv("VPNDNS_IP_SERVICE_URL")),
            "reconciler_url": _clean(os.getenv("VPNDNS_RECONCILER_URL")),
            "interval_seconds": _clean(os.getenv("VPNDNS_CLAIM_INTERVAL")),
            "timeout_seconds": _clean(os.getenv("VPNDNS_CLIENT_TIMEOUT")),
        }
        try:
            merged = cfg.model_dump()
            merged.update({k: v for k, v in env_fields.items() if v is not None})
            return cls(**merged)
        except ValidationError as exc:
            raise ValueError(f"Invalid claimant environment: {exc}") from exc
