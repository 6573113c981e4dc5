"""Gift inventory exports."""

from .stock_guard import StockGuard  # noqa: F401
