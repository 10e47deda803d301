"""Claimant: discover the public IP, sign it and submit it to the reconciler."""
from __future__ import annotations

import asyncio
import time
from typing import Optional

import aiohttp
from cryptography.hazmat.primitives.asymmetric import ec

from vpnDns.claims.models import is_dotted_quad
from vpnDns.claims.signing import load_private_key, sign_ip
from vpnDns.config import ClaimantConfig
from vpnDns.logging_config import get_logger

logger = get_logger("claimant")


class ClaimantError(Exception):
    """The IP service or the reconciler could not be reached."""


async def discover_public_ip(session: aiohttp.ClientSession, url: str) -> str:
    """Ask a what-is-my-IP service for our address. No retry."""
    try:
        async with session.get(url) as resp:
            resp.raise_for_status()
            text = await resp.text()
    except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
        raise ClaimantError(f"IP discovery via {url} failed: {exc}") from exc

    ip = text.strip()
    if not is_dotted_quad(ip):
        raise ClaimantError(f"IP service {url} returned {ip[:40]!r}, not an IPv4 address")
    logger.debug("Discovered public IP", extra={"ip": ip, "url": url})
    return ip


def sign(ip: str, private_key: ec.EllipticCurvePrivateKey) -> bytes:
    return sign_ip(ip, private_key)


async def submit(session: aiohttp.ClientSession, url: str, ip: str, signature: bytes) -> str:
    """
    POST the claim to the reconciler and return its ``message`` field.

    The reconciler answers 200 for both accepted and rejected claims, so
    the returned message is only informational.
    """
    body = {"ip": ip, "signature": signature.hex()}
    try:
        async with session.post(url, json=body) as resp:
            resp.raise_for_status()
            data = await resp.json(content_type=None)
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
        raise ClaimantError(f"Claim submission to {url} failed: {exc}") from exc

    message = data.get("message", "unknown") if isinstance(data, dict) else "unknown"
    logger.info(
        f"Reconciler answered {message}",
        extra={"ip": ip, "url": url, "outcome": message},
    )
    return message


async def run_once(config: ClaimantConfig, session: Optional[aiohttp.ClientSession] = None) -> str:
    """One discover, sign, submit cycle. The private key is re-read each time."""
    private_key = load_private_key(config.private_key_path)
    owns_session = session is None
    if session is None:
        session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=config.timeout_seconds))

    start_time = time.time()
    try:
        ip = await discover_public_ip(session, config.ip_service_url)
        signature = sign(ip, private_key)
        message = await submit(session, config.reconciler_url, ip, signature)
    finally:
        if owns_session:
            await session.close()

    logger.info(
        "Claim cycle complete",
        extra={
            "ip": ip,
            "duration": round((time.time() - start_time) * 1000, 2),
            "outcome": message,
        },
    )
    return message


async def run_forever(config: ClaimantConfig, max_cycles: Optional[int] = None) -> None:
    """
    Submit a claim every ``interval_seconds``.

    A failed cycle is logged and the loop carries on; the next cycle is
    what repairs any DNS drift.
    """
    logger.info(
        "Claimant starting",
        extra={"url": config.reconciler_url, "state": "starting"},
    )
    cycles = 0
    while max_cycles is None or cycles < max_cycles:
        cycles += 1
        try:
            await run_once(config)
        except ClaimantError as exc:
            logger.error(
                f"Claim cycle failed: {exc}",
                extra={"outcome": "error", "error_type": type(exc).__name__},
            )
        if max_cycles is None or cycles < max_cycles:
            await asyncio.sleep(config.interval_seconds)
