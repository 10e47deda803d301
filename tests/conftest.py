from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

import pytest

from vpnDns.claims.keygen import generate_key_pair
from vpnDns.claims.signing import load_private_key, load_public_key, sign_ip
from vpnDns.provider.digitalocean import DnsRecord, ProviderError

MUTATING_OPERATIONS = ("create_record", "update_record")


class FakeRecordStore:
    """In-memory stand-in for the DNS provider that records every call."""

    def __init__(self, records: Iterable[DnsRecord] = (), fail_on: Iterable[str] = ()):
        self.records: Dict[int, DnsRecord] = {r.id: r for r in records}
        self.fail_on = set(fail_on)
        self.calls: List[Tuple[str, tuple]] = []
        self._next_id = 1000

    def _enter(self, operation: str, *args) -> None:
        self.calls.append((operation, args))
        if operation in self.fail_on:
            raise ProviderError(operation, "simulated outage")

    def count(self, operation: str) -> int:
        return sum(1 for op, _ in self.calls if op == operation)

    @property
    def mutating_calls(self) -> List[Tuple[str, tuple]]:
        return [c for c in self.calls if c[0] in MUTATING_OPERATIONS]

    async def list_records(self) -> List[DnsRecord]:
        self._enter("list_records")
        return list(self.records.values())

    async def get_record(self, record_id: int) -> DnsRecord:
        self._enter("get_record", record_id)
        return self.records[record_id]

    async def create_record(self, record_type: str, name: str, data: str, ttl: int) -> DnsRecord:
        self._enter("create_record", record_type, name, data, ttl)
        self._next_id += 1
        record = DnsRecord(id=self._next_id, type=record_type, name=name, data=data, ttl=ttl)
        self.records[record.id] = record
        return record

    async def update_record(self, record_id: int, record_type: str, data: str) -> DnsRecord:
        self._enter("update_record", record_id, record_type, data)
        record = self.records[record_id].model_copy(update={"data": data})
        self.records[record_id] = record
        return record

    async def get_domain(self) -> dict:
        self._enter("get_domain")
        return {"name": "example.com"}


def a_record(record_id: int, data: str, name: str = "vpn", record_type: str = "A") -> DnsRecord:
    return DnsRecord(id=record_id, type=record_type, name=name, data=data, ttl=1800)


@pytest.fixture(scope="session")
def key_dir(tmp_path_factory):
    directory = tmp_path_factory.mktemp("keys")
    generate_key_pair(directory)
    return directory


@pytest.fixture(scope="session")
def private_key(key_dir):
    return load_private_key(key_dir / "private.pem")


@pytest.fixture(scope="session")
def public_key(key_dir):
    return load_public_key(key_dir / "public.pem")


@pytest.fixture(scope="session")
def other_private_key(tmp_path_factory):
    directory = tmp_path_factory.mktemp("other-keys")
    generate_key_pair(directory)
    return load_private_key(directory / "private.pem")


@pytest.fixture
def sign_hex(private_key):
    def _sign(ip: str, key: Optional[object] = None) -> str:
        return sign_ip(ip, key or private_key).hex()
    return _sign
