"""Gift ratings and their running aggregates."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from giftpoints_api.db.session import unit_of_work
from giftpoints_api.models.gift import Gift
from giftpoints_api.models.redemption import Rating, Redemption, RedemptionStatus
from giftpoints_api.observability.redemptions import get_redemption_store
from giftpoints_api.services.errors import AlreadyRatedError, GiftNotFoundError, LedgerError, NotEligibleError

_AVERAGE_QUANTUM = Decimal("0.01")


def star_rating_bucket(avg_rating: Decimal | float | int | None) -> float:
    """Round an average rating half-up to the nearest half star."""

    if avg_rating is None:
        return 0.0
    doubled = (Decimal(str(avg_rating)) * 2).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return float(doubled / 2)


def _quantize_average(value: Decimal | float | int | None) -> Decimal:
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(_AVERAGE_QUANTUM, rounding=ROUND_HALF_UP)


class RatingAggregator:
    """Records one rating per redemption and keeps gift averages current."""

    def __init__(self, db_session: AsyncSession) -> None:
        self._db = db_session

    async def add_rating(
        self,
        user_id: UUID,
        gift_id: UUID,
        redemption_id: UUID,
        stars: int,
        review: str | None = None,
    ) -> Rating:
        if not 1 <= stars <= 5:
            raise ValueError("Rating must be between 1 and 5 stars")

        store = get_redemption_store()
        try:
            async with unit_of_work(self._db):
                redemption_stmt = select(Redemption.id).where(
                    Redemption.id == redemption_id,
                    Redemption.user_id == user_id,
                    Redemption.gift_id == gift_id,
                    Redemption.status == RedemptionStatus.COMPLETED,
                )
                if (await self._db.execute(redemption_stmt)).scalar_one_or_none() is None:
                    raise NotEligibleError()

                existing = await self._db.execute(select(Rating.id).where(Rating.redemption_id == redemption_id))
                if existing.scalar_one_or_none() is not None:
                    raise AlreadyRatedError()

                # Per-gift aggregation lock, compatible with FK KEY SHARE checks.
                gift_stmt = (
                    select(Gift)
                    .where(Gift.id == gift_id)
                    .with_for_update(key_share=True)
                    .execution_options(populate_existing=True)
                )
                gift = (await self._db.execute(gift_stmt)).scalar_one_or_none()
                if gift is None:
                    raise GiftNotFoundError(gift_id)

                rating = Rating(
                    user_id=user_id,
                    gift_id=gift_id,
                    redemption_id=redemption_id,
                    stars=stars,
                    review=review,
                )
                self._db.add(rating)
                try:
                    await self._db.flush()
                except IntegrityError as exc:
                    raise AlreadyRatedError() from exc

                aggregate_stmt = select(func.avg(Rating.stars), func.count(Rating.id)).where(
                    Rating.gift_id == gift_id
                )
                average, count = (await self._db.execute(aggregate_stmt)).one()
                gift.avg_rating = _quantize_average(average)
                gift.total_reviews = int(count or 0)
                await self._db.flush()
        except LedgerError as exc:
            store.record_failure(exc.code)
            logger.info(
                "Gift rating rejected",
                user_id=str(user_id),
                gift_id=str(gift_id),
                redemption_id=str(redemption_id),
                reason=exc.code,
            )
            raise

        store.record_rating(stars)
        logger.info(
            "Recorded gift rating",
            gift_id=str(gift_id),
            redemption_id=str(redemption_id),
            stars=stars,
            avg_rating=str(gift.avg_rating),
            total_reviews=gift.total_reviews,
        )
        return rating


__all__ = ["RatingAggregator", "star_rating_bucket"]
