from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from threading import Lock
from typing import Dict


@dataclass
class RedemptionSnapshot:
    redemptions: Dict[str, int]
    failures: Dict[str, int]
    batches: Dict[str, int]
    ledger: Dict[str, int]
    ratings: Dict[str, int]

    def as_dict(self) -> Dict[str, object]:
        return {
            "redemptions": dict(self.redemptions),
            "failures": dict(self.failures),
            "batches": dict(self.batches),
            "ledger": dict(self.ledger),
            "ratings": dict(self.ratings),
        }


class RedemptionObservabilityStore:
    """Count committed redemption, ledger and rating outcomes for dashboards."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._redemptions: Dict[str, int] = defaultdict(int)
        self._failures: Dict[str, int] = defaultdict(int)
        self._batches: Dict[str, int] = defaultdict(int)
        self._ledger: Dict[str, int] = defaultdict(int)
        self._ratings: Dict[str, int] = defaultdict(int)

    def record_redemption(self, *, quantity: int, points: int) -> None:
        with self._lock:
            self._redemptions["succeeded"] += 1
            self._redemptions["units"] += quantity
            self._redemptions["points_spent"] += points

    def record_batch(self, *, items: int, points: int) -> None:
        with self._lock:
            self._batches["succeeded"] += 1
            self._batches["items"] += items
            self._batches["max_items"] = max(self._batches["max_items"], items)
            self._redemptions["points_spent"] += points

    def record_failure(self, code: str) -> None:
        with self._lock:
            self._failures[code or "unknown"] += 1

    def record_ledger_credit(self, amount: int) -> None:
        with self._lock:
            self._ledger["credits"] += 1
            self._ledger["points_credited"] += amount

    def record_ledger_debit(self, amount: int) -> None:
        with self._lock:
            self._ledger["debits"] += 1
            self._ledger["points_debited"] += amount

    def record_rating(self, stars: int) -> None:
        with self._lock:
            self._ratings["total"] += 1
            self._ratings[f"stars:{stars}"] += 1

    def snapshot(self) -> RedemptionSnapshot:
        with self._lock:
            return RedemptionSnapshot(
                redemptions=dict(self._redemptions),
                failures=dict(self._failures),
                batches=dict(self._batches),
                ledger=dict(self._ledger),
                ratings=dict(self._ratings),
            )

    def reset(self) -> None:
        with self._lock:
            self._redemptions.clear()
            self._failures.clear()
            self._batches.clear()
            self._ledger.clear()
            self._ratings.clear()


_STORE = RedemptionObservabilityStore()


def get_redemption_store() -> RedemptionObservabilityStore:
    return _STORE


__all__ = ["get_redemption_store", "RedemptionObservabilityStore", "RedemptionSnapshot"]
