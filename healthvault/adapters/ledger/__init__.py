"""Ledger adapters.

The simulated ledger stands in for the health vault contract until a real
chain client and a real encrypted-input scheme are wired in.
"""

from .simulated_ledger import LedgerSubmissionSimulator

__all__ = ["LedgerSubmissionSimulator"]
