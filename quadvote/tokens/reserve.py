"""
Reservable Token Ledger

In-memory ``TokenLedger`` with free and reserved balances per account.
``reserve`` moves funds from free to reserved; ``release`` moves them back.
Used as the deposit backend for development and tests.
"""

from decimal import Decimal
from typing import Any, Dict, Optional

from ..logger import get_logger
from ..exceptions import InsufficientBalanceError, TokenLedgerError
from ..voting.interfaces import TokenLedger

logger = get_logger(__name__)


class ReservableTokenLedger(TokenLedger):
    """
    Free/reserved balance bookkeeping.

    Total holdings of an account (free + reserved) only change through
    ``deposit`` and ``withdraw``.
    """

    def __init__(self, balances: Optional[Dict[str, Any]] = None):
        self._free: Dict[str, Decimal] = {}
        self._reserved: Dict[str, Decimal] = {}
        for account, amount in (balances or {}).items():
            self.deposit(account, Decimal(str(amount)))

    # ── Queries ───────────────────────────────────────────────────────

    def free_balance_of(self, account: str) -> Decimal:
        return self._free.get(account, Decimal("0"))

    def reserved_balance_of(self, account: str) -> Decimal:
        return self._reserved.get(account, Decimal("0"))

    def total_balance_of(self, account: str) -> Decimal:
        return self.free_balance_of(account) + self.reserved_balance_of(account)

    # ── Funding ───────────────────────────────────────────────────────

    def deposit(self, account: str, amount: Decimal):
        if amount < 0:
            raise TokenLedgerError("Deposit amount cannot be negative")
        self._free[account] = self.free_balance_of(account) + amount

    def withdraw(self, account: str, amount: Decimal):
        if amount < 0:
            raise TokenLedgerError("Withdraw amount cannot be negative")
        free = self.free_balance_of(account)
        if free < amount:
            raise InsufficientBalanceError(
                f"Insufficient free balance: {free} < {amount}"
            )
        self._free[account] = free - amount

    # ── TokenLedger ───────────────────────────────────────────────────

    def reserve(self, account: str, amount: Decimal) -> None:
        free = self.free_balance_of(account)
        if free < amount:
            raise InsufficientBalanceError(
                f"{account} cannot reserve {amount}: free balance {free}"
            )
        self._free[account] = free - amount
        self._reserved[account] = self.reserved_balance_of(account) + amount
        logger.debug(f"Reserved {amount} for account={account}")

    def release(self, account: str, amount: Decimal) -> None:
        reserved = self.reserved_balance_of(account)
        if reserved < amount:
            raise TokenLedgerError(
                f"{account} has only {reserved} reserved, cannot release {amount}"
            )
        self._reserved[account] = reserved - amount
        self._free[account] = self.free_balance_of(account) + amount
        logger.debug(f"Released {amount} for account={account}")

    def to_dict(self) -> Dict[str, Any]:
        accounts = sorted(set(self._free) | set(self._reserved))
        return {
            account: {
                "free": str(self.free_balance_of(account)),
                "reserved": str(self.reserved_balance_of(account)),
            }
            for account in accounts
        }

    def __repr__(self) -> str:
        return f"<ReservableTokenLedger accounts={len(set(self._free) | set(self._reserved))}>"
