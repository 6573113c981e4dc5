"""Rating exports."""

from .aggregator import RatingAggregator, star_rating_bucket  # noqa: F401
