from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.dialects import postgresql

from giftpoints_api.models.gift import Gift
from giftpoints_api.services.errors import AlreadyRatedError, NotEligibleError
from giftpoints_api.services.ratings import RatingAggregator, star_rating_bucket
from giftpoints_api.services.redemption import RedemptionOrchestrator


async def _redeem(factory, user_id, gift_id):
    async with factory() as session:
        receipt = await RedemptionOrchestrator(session).redeem(user_id, gift_id, 1)
    return receipt.redemption.id


@pytest.mark.parametrize(
    ("average", "expected"),
    [
        (Decimal("4.30"), 4.5),
        (Decimal("3.20"), 3.0),
        (Decimal("3.60"), 3.5),
        (Decimal("3.90"), 4.0),
        (Decimal("4.25"), 4.5),
        (Decimal("4.74"), 4.5),
        (0, 0.0),
        (None, 0.0),
    ],
)
def test_star_rating_bucket_rounds_half_up_to_half_stars(average, expected) -> None:
    assert star_rating_bucket(average) == expected


@pytest.mark.asyncio
async def test_rating_updates_gift_aggregates_once(session_factory, create_member, create_gift) -> None:
    user_id = await create_member(session_factory, "rater@example.com", points=500)
    gift_id = await create_gift(session_factory, "Blender", points_required=100, stock=5)
    redemption_id = await _redeem(session_factory, user_id, gift_id)

    async with session_factory() as session:
        rating = await RatingAggregator(session).add_rating(user_id, gift_id, redemption_id, 4, "Works well")

    assert rating.stars == 4
    assert rating.review == "Works well"

    async with session_factory() as session:
        with pytest.raises(AlreadyRatedError, match="already rated"):
            await RatingAggregator(session).add_rating(user_id, gift_id, redemption_id, 1)

    async with session_factory() as session:
        gift = await session.get(Gift, gift_id)
    assert gift.total_reviews == 1
    assert Decimal(str(gift.avg_rating)) == Decimal("4.00")


@pytest.mark.asyncio
async def test_average_is_rounded_to_two_decimals(session_factory, create_member, create_gift) -> None:
    user_id = await create_member(session_factory, "avg@example.com", points=1000)
    gift_id = await create_gift(session_factory, "Kettle", points_required=100, stock=5)

    for stars in (4, 4, 5):
        redemption_id = await _redeem(session_factory, user_id, gift_id)
        async with session_factory() as session:
            await RatingAggregator(session).add_rating(user_id, gift_id, redemption_id, stars)

    async with session_factory() as session:
        gift = await session.get(Gift, gift_id)
    assert gift.total_reviews == 3
    assert Decimal(str(gift.avg_rating)) == Decimal("4.33")
    assert star_rating_bucket(gift.avg_rating) == 4.5


@pytest.mark.asyncio
async def test_only_the_redeemer_may_rate(session_factory, create_member, create_gift) -> None:
    owner_id = await create_member(session_factory, "owner@example.com", points=500)
    stranger_id = await create_member(session_factory, "stranger@example.com", points=500)
    gift_id = await create_gift(session_factory, "Toaster", points_required=100, stock=5)
    other_gift_id = await create_gift(session_factory, "Fan", points_required=100, stock=5)
    redemption_id = await _redeem(session_factory, owner_id, gift_id)

    async with session_factory() as session:
        aggregator = RatingAggregator(session)
        with pytest.raises(NotEligibleError, match="only rate gifts you have redeemed"):
            await aggregator.add_rating(stranger_id, gift_id, redemption_id, 5)
        with pytest.raises(NotEligibleError):
            await aggregator.add_rating(owner_id, other_gift_id, redemption_id, 5)
        with pytest.raises(ValueError):
            await aggregator.add_rating(owner_id, gift_id, redemption_id, 6)

    async with session_factory() as session:
        gift = await session.get(Gift, gift_id)
    assert gift.total_reviews == 0


@pytest.mark.asyncio
async def test_rating_unknown_gift_is_not_eligible(session_factory, create_member, create_gift) -> None:
    user_id = await create_member(session_factory, "ghost@example.com", points=500)
    gift_id = await create_gift(session_factory, "Speaker", points_required=100, stock=5)
    redemption_id = await _redeem(session_factory, user_id, gift_id)

    async with session_factory() as session:
        with pytest.raises(NotEligibleError):
            await RatingAggregator(session).add_rating(user_id, uuid4(), redemption_id, 5)


@pytest.mark.asyncio
async def test_rejected_ratings_are_counted_as_failures(
    session_factory, create_member, create_gift, reset_redemption_store
) -> None:
    user_id = await create_member(session_factory, "counted@example.com", points=500)
    gift_id = await create_gift(session_factory, "Radio", points_required=100, stock=5)
    redemption_id = await _redeem(session_factory, user_id, gift_id)

    async with session_factory() as session:
        aggregator = RatingAggregator(session)
        with pytest.raises(NotEligibleError):
            await aggregator.add_rating(user_id, gift_id, uuid4(), 3)
        await aggregator.add_rating(user_id, gift_id, redemption_id, 3)
        with pytest.raises(AlreadyRatedError):
            await aggregator.add_rating(user_id, gift_id, redemption_id, 4)

    snapshot = reset_redemption_store.snapshot().as_dict()
    assert snapshot["failures"] == {"not_eligible": 1, "already_rated": 1}
    assert snapshot["ratings"]["total"] == 1


@pytest.mark.asyncio
async def test_rating_takes_no_key_update_locks(session_factory, create_member, create_gift, monkeypatch) -> None:
    user_id = await create_member(session_factory, "locks@example.com", points=500)
    gift_id = await create_gift(session_factory, "Lamp", points_required=100, stock=5)
    redemption_id = await _redeem(session_factory, user_id, gift_id)

    async with session_factory() as session:
        locking_sql: list[str] = []
        original_execute = session.execute

        async def recording_execute(statement, *args, **kwargs):
            if getattr(statement, "_for_update_arg", None) is not None:
                locking_sql.append(str(statement.compile(dialect=postgresql.dialect())))
            return await original_execute(statement, *args, **kwargs)

        monkeypatch.setattr(session, "execute", recording_execute)
        await RatingAggregator(session).add_rating(user_id, gift_id, redemption_id, 5)

    assert locking_sql
    assert all("FOR NO KEY UPDATE" in sql for sql in locking_sql)
