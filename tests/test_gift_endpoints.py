from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from giftpoints_api.models.gift import Gift
from giftpoints_api.models.ledger import PointTransaction
from giftpoints_api.models.redemption import Redemption
from giftpoints_api.services.inventory import StockGuard


def _client(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_redeem_endpoint_returns_receipt(app_with_db, create_member, create_gift) -> None:
    app, session_factory = app_with_db
    user_id = await create_member(session_factory, "http@example.com", points=250)
    gift_id = await create_gift(session_factory, "Coffee Mug", points_required=100, stock=5)

    async with _client(app) as client:
        response = await client.post(
            f"/api/v1/gifts/{gift_id}/redeem",
            json={"quantity": 2},
            headers={"X-Session-User": str(user_id)},
        )
        assert response.status_code == 201
        body = response.json()
        assert body["pointsSpent"] == 200
        assert body["message"] == "Successfully redeemed 2x Coffee Mug"
        assert body["redemption"]["quantity"] == 2
        assert body["redemption"]["status"] == "completed"

        balance = await client.get("/api/v1/users/me/points", headers={"X-Session-User": str(user_id)})
        assert balance.json() == {"balance": 50}

    async with session_factory() as session:
        assert (await session.get(Gift, gift_id)).stock == 3


@pytest.mark.asyncio
async def test_redeem_endpoint_maps_domain_errors(app_with_db, create_member, create_gift) -> None:
    app, session_factory = app_with_db
    user_id = await create_member(session_factory, "errors@example.com", points=50)
    gift_id = await create_gift(session_factory, "Coffee Mug", points_required=100, stock=1)
    headers = {"X-Session-User": str(user_id)}

    async with _client(app) as client:
        poor = await client.post(f"/api/v1/gifts/{gift_id}/redeem", json={"quantity": 1}, headers=headers)
        assert poor.status_code == 400
        assert poor.json()["detail"] == "Insufficient points. Required: 100, Available: 50"

        missing = await client.post(f"/api/v1/gifts/{uuid4()}/redeem", json={"quantity": 1}, headers=headers)
        assert missing.status_code == 404
        assert missing.json()["detail"] == "Gift not found"

        too_many = await client.post(f"/api/v1/gifts/{gift_id}/redeem", json={"quantity": 2}, headers=headers)
        assert too_many.status_code == 400
        assert too_many.json()["detail"] == "Insufficient stock. Available: 1"

        invalid = await client.post(f"/api/v1/gifts/{gift_id}/redeem", json={"quantity": 0}, headers=headers)
        assert invalid.status_code == 422


@pytest.mark.asyncio
async def test_store_outage_mid_redeem_returns_503_and_rolls_back(
    app_with_db, create_member, create_gift, monkeypatch
) -> None:
    app, session_factory = app_with_db
    user_id = await create_member(session_factory, "outage@example.com", points=500)
    gift_id = await create_gift(session_factory, "Coffee Mug", points_required=100, stock=5)

    async def lost_connection(self, gift_id, quantity):
        raise OperationalError("UPDATE gifts", {}, ConnectionError("server closed the connection"))

    monkeypatch.setattr(StockGuard, "reserve", lost_connection)

    async with _client(app) as client:
        response = await client.post(
            f"/api/v1/gifts/{gift_id}/redeem",
            json={"quantity": 1},
            headers={"X-Session-User": str(user_id)},
        )
        assert response.status_code == 503
        assert response.json() == {"detail": "Ledger store unavailable, please retry"}

    async with session_factory() as session:
        redemptions = (await session.execute(select(func.count(Redemption.id)))).scalar_one()
        ledger_rows = (
            await session.execute(select(func.count(PointTransaction.id)).where(PointTransaction.user_id == user_id))
        ).scalar_one()
        stock = (await session.get(Gift, gift_id)).stock
    assert redemptions == 0
    assert ledger_rows == 1
    assert stock == 5


@pytest.mark.asyncio
async def test_member_session_header_is_required(app_with_db, create_gift) -> None:
    app, session_factory = app_with_db
    gift_id = await create_gift(session_factory, "Coffee Mug", points_required=100, stock=1)

    async with _client(app) as client:
        missing = await client.post(f"/api/v1/gifts/{gift_id}/redeem", json={"quantity": 1})
        assert missing.status_code == 401

        malformed = await client.post(
            f"/api/v1/gifts/{gift_id}/redeem",
            json={"quantity": 1},
            headers={"X-Session-User": "not-a-uuid"},
        )
        assert malformed.status_code == 400

        unknown = await client.post(
            f"/api/v1/gifts/{gift_id}/redeem",
            json={"quantity": 1},
            headers={"X-Session-User": str(uuid4())},
        )
        assert unknown.status_code == 404


@pytest.mark.asyncio
async def test_redeem_multiple_endpoint(app_with_db, create_member, create_gift) -> None:
    app, session_factory = app_with_db
    user_id = await create_member(session_factory, "multi@example.com", points=1000)
    mug_id = await create_gift(session_factory, "Mug", points_required=100, stock=5)
    lamp_id = await create_gift(session_factory, "Lamp", points_required=300, stock=1)
    headers = {"X-Session-User": str(user_id)}

    async with _client(app) as client:
        empty = await client.post("/api/v1/gifts/redeem/multiple", json={"items": []}, headers=headers)
        assert empty.status_code == 422

        rejected = await client.post(
            "/api/v1/gifts/redeem/multiple",
            json={"items": [{"giftId": str(mug_id), "quantity": 1}, {"giftId": str(lamp_id), "quantity": 2}]},
            headers=headers,
        )
        assert rejected.status_code == 400

        response = await client.post(
            "/api/v1/gifts/redeem/multiple",
            json={"items": [{"giftId": str(mug_id), "quantity": 2}, {"giftId": str(lamp_id), "quantity": 1}]},
            headers=headers,
        )
        assert response.status_code == 201
        body = response.json()
        assert body["totalPointsSpent"] == 500
        assert body["message"] == "Successfully redeemed 2 items"
        assert [line["giftId"] for line in body["redemptions"]] == [str(mug_id), str(lamp_id)]
        assert {line["batchId"] for line in body["redemptions"]} == {body["batchId"]}

    async with session_factory() as session:
        rows = (await session.execute(select(Redemption))).scalars().all()
    assert len(rows) == 2


@pytest.mark.asyncio
async def test_rating_endpoint_reports_aggregates(app_with_db, create_member, create_gift) -> None:
    app, session_factory = app_with_db
    user_id = await create_member(session_factory, "stars@example.com", points=500)
    gift_id = await create_gift(session_factory, "Blender", points_required=100, stock=5)
    headers = {"X-Session-User": str(user_id)}

    async with _client(app) as client:
        redeemed = await client.post(f"/api/v1/gifts/{gift_id}/redeem", json={"quantity": 1}, headers=headers)
        redemption_id = redeemed.json()["redemption"]["id"]

        response = await client.post(
            f"/api/v1/gifts/{gift_id}/rating",
            json={"redemptionId": redemption_id, "stars": 4, "review": "Solid"},
            headers=headers,
        )
        assert response.status_code == 201
        body = response.json()
        assert body["stars"] == 4
        assert body["avgRating"] == 4.0
        assert body["totalReviews"] == 1
        assert body["starRating"] == 4.0

        again = await client.post(
            f"/api/v1/gifts/{gift_id}/rating",
            json={"redemptionId": redemption_id, "stars": 5},
            headers=headers,
        )
        assert again.status_code == 400
        assert again.json()["detail"] == "You have already rated this redemption"

        out_of_range = await client.post(
            f"/api/v1/gifts/{gift_id}/rating",
            json={"redemptionId": redemption_id, "stars": 6},
            headers=headers,
        )
        assert out_of_range.status_code == 422
