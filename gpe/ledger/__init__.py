"""Ledger collaborators.

Public API:
    LedgerPort      - Abstract interface to the external ledger
    InMemoryLedger  - Dict-backed ledger for tests and dev
"""

from gpe.ledger.memory import InMemoryLedger
from gpe.ledger.port import LedgerPort

__all__ = [
    "LedgerPort",
    "InMemoryLedger",
]
