"""Shared response helpers for the API layer."""
from __future__ import annotations


def ok(data: object) -> dict:
    return {"status": "ok", "data": data}
