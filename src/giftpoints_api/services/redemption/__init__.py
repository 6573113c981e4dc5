"""Redemption workflow exports."""

from .orchestrator import (  # noqa: F401
    BatchRedemptionReceipt,
    RedemptionItem,
    RedemptionOrchestrator,
    RedemptionReceipt,
)
