from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from vpnDns.api.server import create_app
from vpnDns.api.services import ReconcilerServices
from vpnDns.claims.signing import ClaimVerifier
from vpnDns.config import ProviderConfig, ReconcilerConfig
from vpnDns.reconciler.reconcile import RecordReconciler

from conftest import FakeRecordStore, a_record

IP = "203.0.113.7"


def make_client(public_key, store: FakeRecordStore) -> TestClient:
    services = ReconcilerServices(
        verifier=ClaimVerifier(public_key),
        provider=store,
        reconciler=RecordReconciler(store),
        info={"domain": "example.com", "record_name": "vpn"},
    )
    return TestClient(create_app(services=services))


def test_first_claim_creates_record(public_key, sign_hex):
    store = FakeRecordStore()
    client = make_client(public_key, store)

    resp = client.post("/api/vpn", json={"ip": IP, "signature": sign_hex(IP)})

    assert resp.status_code == 200
    assert resp.json() == {"message": "success"}
    assert store.mutating_calls == [("create_record", ("A", "vpn", IP, 1800))]
    assert "X-Request-ID" in resp.headers


def test_repeated_claim_makes_no_mutation(public_key, sign_hex):
    store = FakeRecordStore()
    client = make_client(public_key, store)
    client.post("/api/vpn", json={"ip": IP, "signature": sign_hex(IP)})

    resp = client.post("/api/vpn", json={"ip": IP, "signature": sign_hex(IP)})

    assert resp.json() == {"message": "success"}
    assert len(store.mutating_calls) == 1


def test_changed_ip_is_patched(public_key, sign_hex):
    store = FakeRecordStore([a_record(7, "198.51.100.1")])
    client = make_client(public_key, store)

    resp = client.post("/api/vpn", json={"ip": IP, "signature": sign_hex(IP).upper()})

    assert resp.json() == {"message": "success"}
    assert store.mutating_calls == [("update_record", (7, "A", IP))]


def test_tampered_ip_is_rejected_without_dns_calls(public_key, sign_hex):
    store = FakeRecordStore()
    client = make_client(public_key, store)

    resp = client.post("/api/vpn", json={"ip": "203.0.113.8", "signature": sign_hex(IP)})

    assert resp.status_code == 200
    assert resp.json() == {"message": "error"}
    assert store.calls == []


def test_foreign_key_signature_is_rejected(public_key, sign_hex, other_private_key):
    store = FakeRecordStore()
    client = make_client(public_key, store)

    resp = client.post("/api/vpn", json={"ip": IP, "signature": sign_hex(IP, other_private_key)})

    assert resp.json() == {"message": "error"}
    assert store.calls == []


def test_provider_outage_returns_error_without_mutation(public_key, sign_hex):
    store = FakeRecordStore(fail_on=["list_records"])
    client = make_client(public_key, store)

    resp = client.post("/api/vpn", json={"ip": IP, "signature": sign_hex(IP)})

    assert resp.status_code == 200
    assert resp.json() == {"message": "error"}
    assert store.mutating_calls == []


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"ip": IP},
        {"signature": "ab" * 71},
        {"ip": "999.999.999.999", "signature": "ab" * 71},
        {"ip": "1.2.3", "signature": "ab" * 71},
        {"ip": "abc.def.gh.i", "signature": "ab" * 71},
        {"ip": IP, "signature": "ab" * 10},
        {"ip": IP, "signature": "xy" * 71},
        {"ip": [IP], "signature": "ab" * 71},
        [IP, "ab" * 71],
    ],
)
def test_malformed_claims_never_reach_provider(public_key, payload):
    store = FakeRecordStore()
    client = make_client(public_key, store)

    resp = client.post("/api/vpn", json=payload)

    assert resp.status_code == 200
    assert resp.json() == {"message": "error"}
    assert store.calls == []


def test_non_json_body_is_rejected(public_key):
    store = FakeRecordStore()
    client = make_client(public_key, store)

    resp = client.post("/api/vpn", content=b"ip=1.2.3.4", headers={"Content-Type": "application/json"})

    assert resp.json() == {"message": "error"}

    nested = b"[" * 100000 + b"]" * 100000
    resp = client.post("/api/vpn", content=nested, headers={"Content-Type": "application/json"})

    assert resp.status_code == 200
    assert resp.json() == {"message": "error"}
    assert store.calls == []


def test_health_reports_provider_status(public_key):
    client = make_client(public_key, FakeRecordStore())
    body = client.get("/health").json()
    assert body["status"] == "ok"
    assert body["data"]["status"] == "healthy"
    assert body["data"]["record"] == {"domain": "example.com", "record_name": "vpn"}

    degraded = make_client(public_key, FakeRecordStore(fail_on=["get_domain"]))
    body = degraded.get("/health").json()
    assert body["data"]["status"] == "degraded"
    assert body["data"]["checks"]["provider"]["status"] == "unhealthy"


def test_app_without_services_is_unavailable():
    client = TestClient(create_app())
    resp = client.get("/health")
    assert resp.status_code == 503


def test_startup_builds_services_from_config(key_dir):
    config = ReconcilerConfig(
        public_key_path=str(key_dir / "public.pem"),
        provider=ProviderConfig(api_token="tok", domain="example.com"),
    )
    app = create_app(config=config)
    with TestClient(app):
        assert app.state.services is not None
        assert app.state.services.info["domain"] == "example.com"
    assert app.state.services is None
