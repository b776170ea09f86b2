"""
Quadvote token backends

Provides:
  - ReservableTokenLedger : in-memory free/reserved balances implementing TokenLedger
"""

from .reserve import ReservableTokenLedger

__all__ = [
    "ReservableTokenLedger",
]
