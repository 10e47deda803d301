"""Async client for the DigitalOcean domain-records API."""
from __future__ import annotations

import asyncio
import time
from typing import Any, Dict, List, Optional

import aiohttp
from pydantic import BaseModel, ValidationError

from vpnDns.config import ProviderConfig
from vpnDns.logging_config import get_logger

logger = get_logger("provider")

DEFAULT_API_BASE = "https://api.digitalocean.com/v2"


class ProviderError(Exception):
    """The DNS provider was unreachable, timed out or rejected a call."""

    def __init__(self, operation: str, message: str, status: Optional[int] = None):
        super().__init__(f"{operation}: {message}")
        self.operation = operation
        self.status = status


class DnsRecord(BaseModel):
    id: int
    type: str
    name: str
    data: str
    ttl: Optional[int] = None
    priority: Optional[int] = None
    port: Optional[int] = None
    weight: Optional[int] = None
    flags: Optional[int] = None
    tag: Optional[str] = None


class DigitalOceanClient:
    """
    Thin wrapper over the four record endpoints the reconciler needs.

    Every call is bounded by ``timeout_seconds`` and every failure mode
    (transport error, timeout, non-2xx status, unparseable body) surfaces
    as ProviderError. The client never retries.
    """

    def __init__(
        self,
        api_token: str,
        domain: str,
        api_base: str = DEFAULT_API_BASE,
        timeout_seconds: float = 10.0,
        page_size: int = 200,
    ):
        self.api_token = api_token
        self.domain = domain
        self.api_base = api_base.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.page_size = page_size
        self._session: Optional[aiohttp.ClientSession] = None

    @classmethod
    def from_config(cls, cfg: ProviderConfig) -> "DigitalOceanClient":
        return cls(
            api_token=cfg.api_token,
            domain=cfg.domain,
            api_base=cfg.api_base,
            timeout_seconds=cfg.timeout_seconds,
            page_size=cfg.page_size,
        )

    @property
    def records_url(self) -> str:
        return f"{self.api_base}/domains/{self.domain}/records"

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={
                    "Authorization": f"Bearer {self.api_token}",
                    "Content-Type": "application/json",
                },
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            )
        return self._session

    async def _request(
        self,
        operation: str,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        session = await self._get_session()
        start_time = time.time()
        try:
            async with session.request(method, url, params=params, json=payload) as resp:
                if resp.status >= 300:
                    body = await resp.text()
                    raise ProviderError(
                        operation, f"HTTP {resp.status}: {body[:200]}", status=resp.status
                    )
                data = await resp.json(content_type=None)
        except asyncio.TimeoutError as exc:
            logger.warning(
                f"DNS provider timeout during {operation}",
                extra={"operation": operation, "outcome": "timeout"},
            )
            raise ProviderError(operation, "timed out") from exc
        except aiohttp.ClientError as exc:
            logger.warning(
                f"DNS provider unreachable during {operation}: {exc}",
                extra={"operation": operation, "outcome": "error", "error_type": type(exc).__name__},
            )
            raise ProviderError(operation, str(exc)) from exc
        except ValueError as exc:
            raise ProviderError(operation, f"invalid JSON body: {exc}") from exc

        logger.debug(
            f"DNS provider {operation} completed",
            extra={
                "operation": operation,
                "status_code": resp.status,
                "duration": round((time.time() - start_time) * 1000, 2),
                "outcome": "success",
            },
        )
        if not isinstance(data, dict):
            raise ProviderError(operation, "unexpected response body")
        return data

    @staticmethod
    def _parse_record(operation: str, data: Dict[str, Any]) -> DnsRecord:
        try:
            return DnsRecord(**data["domain_record"])
        except (KeyError, TypeError, ValidationError) as exc:
            raise ProviderError(operation, f"malformed record: {exc}") from exc

    async def list_records(self) -> List[DnsRecord]:
        """Return every record of the domain, following pagination links."""
        records: List[DnsRecord] = []
        url: Optional[str] = self.records_url
        params: Optional[Dict[str, Any]] = {"per_page": self.page_size}
        seen: set[str] = set()

        while url and url not in seen:
            seen.add(url)
            data = await self._request("list_records", "GET", url, params=params)
            for raw in data.get("domain_records") or []:
                try:
                    records.append(DnsRecord(**raw))
                except (TypeError, ValidationError) as exc:
                    raise ProviderError("list_records", f"malformed record: {exc}") from exc
            url = ((data.get("links") or {}).get("pages") or {}).get("next")
            # The next link already carries the paging query string
            params = None

        logger.debug(
            "Listed DNS records",
            extra={"domain": self.domain, "records": len(records)},
        )
        return records

    async def get_record(self, record_id: int) -> DnsRecord:
        data = await self._request("get_record", "GET", f"{self.records_url}/{record_id}")
        return self._parse_record("get_record", data)

    async def create_record(self, record_type: str, name: str, data: str, ttl: int) -> DnsRecord:
        payload = {
            "type": record_type,
            "name": name,
            "data": data,
            "ttl": ttl,
            "priority": None,
            "port": None,
            "weight": None,
            "flags": None,
            "tag": None,
        }
        body = await self._request("create_record", "POST", self.records_url, payload=payload)
        return self._parse_record("create_record", body)

    async def update_record(self, record_id: int, record_type: str, data: str) -> DnsRecord:
        payload = {"type": record_type, "data": data}
        body = await self._request(
            "update_record", "PATCH", f"{self.records_url}/{record_id}", payload=payload
        )
        return self._parse_record("update_record", body)

    async def get_domain(self) -> Dict[str, Any]:
        """Fetch the managed domain; used as a reachability probe."""
        data = await self._request("get_domain", "GET", f"{self.api_base}/domains/{self.domain}")
        return data.get("domain") or {}

    async def close(self) -> None:
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
