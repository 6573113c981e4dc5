#!/usr/bin/env python3
"""Smoke test for the member redemption flow.

Usage (HTTP):
    python tooling/smoke_redemption.py --base-url http://localhost:8000 --api-key <INTERNAL_API_KEY>

Usage (in-process, no network sockets required):
    python tooling/smoke_redemption.py --in-process

The script checks:
1. API health (`/healthz`)
2. Member enrollment (`POST /api/v1/members`) with the welcome bonus
3. Balance lookup (`/api/v1/users/me/points`)
4. Single gift redemption (`POST /api/v1/gifts/{id}/redeem`)
5. Points history and redemption observability snapshot
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
import uuid
from typing import Any

import httpx
from httpx import ASGITransport


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Gift points redemption smoke test")
    parser.add_argument(
        "--base-url",
        default="http://localhost:8000",
        help="Base URL of the FastAPI service (ignored with --in-process)",
    )
    parser.add_argument("--api-key", help="Value for X-API-Key on operator routes.")
    parser.add_argument(
        "--gift-id",
        help="Gift to redeem (required for HTTP mode; seeded automatically in-process).",
    )
    parser.add_argument("--timeout", type=float, default=10.0, help="Request timeout in seconds")
    parser.add_argument(
        "--in-process",
        action="store_true",
        help="Run requests directly against the ASGI app without binding network sockets.",
    )
    return parser.parse_args()


async def _request(
    client: httpx.AsyncClient,
    method: str,
    path: str,
    *,
    headers: dict[str, str] | None = None,
    payload: dict[str, Any] | None = None,
) -> dict[str, Any]:
    response = await client.request(method, path, headers=headers, json=payload)
    response.raise_for_status()
    return response.json()


async def _run_checks(client: httpx.AsyncClient, api_key: str, gift_id: str) -> dict[str, Any]:
    health = await _request(client, "GET", "/healthz")
    if health.get("status") != "ok":
        raise RuntimeError(f"Unexpected health response: {health}")

    operator_headers = {"X-API-Key": api_key}
    email = f"smoke-{uuid.uuid4().hex[:8]}@giftpoints.dev"
    member = await _request(
        client,
        "POST",
        "/api/v1/members",
        headers=operator_headers,
        payload={"email": email, "displayName": "Smoke Test"},
    )
    member_headers = {"X-Session-User": member["userId"]}

    balance = await _request(client, "GET", "/api/v1/users/me/points", headers=member_headers)
    if balance["balance"] != member["bonusPoints"]:
        raise RuntimeError(f"Welcome bonus not reflected in balance: {balance}")

    receipt = await _request(
        client,
        "POST",
        f"/api/v1/gifts/{gift_id}/redeem",
        headers=member_headers,
        payload={"quantity": 1},
    )

    after = await _request(client, "GET", "/api/v1/users/me/points", headers=member_headers)
    if after["balance"] != balance["balance"] - receipt["pointsSpent"]:
        raise RuntimeError(f"Balance did not drop by the points spent: {after}")

    history = await _request(client, "GET", "/api/v1/users/me/points/history", headers=member_headers)
    if not history["data"] or history["data"][0]["balanceAfter"] != after["balance"]:
        raise RuntimeError(f"Points history does not end at the current balance: {history}")

    snapshot = await _request(client, "GET", "/api/v1/observability/redemptions", headers=operator_headers)
    if snapshot.get("redemptions", {}).get("succeeded", 0) < 1:
        raise RuntimeError(f"Redemption not counted in observability snapshot: {snapshot}")

    return receipt


async def _ensure_gift_fixture() -> str:
    from giftpoints_api.db.base import Base  # type: ignore import-position
    from giftpoints_api.db.session import async_session, engine  # type: ignore import-position
    from giftpoints_api.models.gift import Gift  # type: ignore import-position

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        gift = Gift(name="Smoke Test Voucher", points_required=100, stock=1000, is_active=True)
        session.add(gift)
        await session.commit()
        return str(gift.id)


async def run_http(base_url: str, timeout: float, api_key: str, gift_id: str) -> dict[str, Any]:
    async with httpx.AsyncClient(base_url=base_url, timeout=timeout) as client:
        return await _run_checks(client, api_key, gift_id)


async def run_in_process(timeout: float, api_key: str) -> dict[str, Any]:
    from giftpoints_api.app import create_app  # type: ignore import-position

    app = create_app()
    gift_id = await _ensure_gift_fixture()
    transport = ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver", timeout=timeout) as client:
        return await _run_checks(client, api_key, gift_id)


def resolve_api_key(args_api_key: str | None) -> str:
    if args_api_key:
        return args_api_key
    return os.environ.get("INTERNAL_API_KEY", "")


def main() -> int:
    args = parse_args()
    api_key = resolve_api_key(args.api_key)

    if args.in_process:
        receipt = asyncio.run(run_in_process(args.timeout, api_key))
    else:
        if not args.gift_id:
            raise SystemExit("--gift-id is required for the HTTP smoke test.")
        receipt = asyncio.run(run_http(args.base_url, args.timeout, api_key, args.gift_id))

    print(f"Redemption smoke test passed ✅ {receipt['message']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
