"""Bring the managed "A" record into agreement with a validated IP."""
from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Protocol

from vpnDns.logging_config import get_logger
from vpnDns.provider.digitalocean import DnsRecord

logger = get_logger("reconciler")

RECORD_TYPE = "A"
DEFAULT_RECORD_NAME = "vpn"
DEFAULT_TTL = 1800

# Record id used when no matching record exists yet
ABSENT_RECORD_ID = 0


class RecordStore(Protocol):
    """The subset of the DNS provider client the reconciler drives."""

    async def list_records(self) -> List[DnsRecord]: ...

    async def get_record(self, record_id: int) -> DnsRecord: ...

    async def create_record(self, record_type: str, name: str, data: str, ttl: int) -> DnsRecord: ...

    async def update_record(self, record_id: int, record_type: str, data: str) -> DnsRecord: ...


class ReconcileOutcome(Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


@dataclass
class ReconcileResult:
    outcome: ReconcileOutcome
    record_id: int
    previous_data: Optional[str] = None

    @property
    def mutated(self) -> bool:
        return self.outcome is not ReconcileOutcome.UNCHANGED


class RecordReconciler:
    """
    Read-compare-write loop over the provider's record store.

    Each call re-reads the store; nothing is cached between claims, so
    out-of-band edits are always observed. Provider failures propagate
    unchanged and leave the record as it was before the failing call.
    """

    def __init__(self, store: RecordStore, record_name: str = DEFAULT_RECORD_NAME, ttl: int = DEFAULT_TTL):
        self.store = store
        self.record_name = record_name
        self.ttl = ttl

    async def locate(self) -> int:
        """Return the id of the managed record, or ABSENT_RECORD_ID."""
        for record in await self.store.list_records():
            if record.name == self.record_name and record.type == RECORD_TYPE:
                return record.id
        return ABSENT_RECORD_ID

    async def reconcile(self, target_ip: str) -> ReconcileResult:
        start_time = time.time()
        record_id = await self.locate()

        if record_id == ABSENT_RECORD_ID:
            created = await self.store.create_record(RECORD_TYPE, self.record_name, target_ip, self.ttl)
            result = ReconcileResult(ReconcileOutcome.CREATED, created.id)
        else:
            current = await self.store.get_record(record_id)
            if current.data == target_ip:
                result = ReconcileResult(ReconcileOutcome.UNCHANGED, record_id, current.data)
            else:
                await self.store.update_record(record_id, RECORD_TYPE, target_ip)
                result = ReconcileResult(ReconcileOutcome.UPDATED, record_id, current.data)

        logger.info(
            f"Record {self.record_name} {result.outcome.value}",
            extra={
                "ip": target_ip,
                "record_id": result.record_id,
                "record_name": self.record_name,
                "dns_action": result.outcome.value,
                "duration": round((time.time() - start_time) * 1000, 2),
                "outcome": "success",
            },
        )
        return result
