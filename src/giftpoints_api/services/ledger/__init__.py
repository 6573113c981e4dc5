"""Points ledger exports."""

from .balance_ledger import BalanceLedger  # noqa: F401
