"""
Collaborator interfaces consumed by the voting state machine.

Authentication, deposit accounting and event delivery live outside the
ledger. The state machine receives implementations of these abstract
classes at construction and never reaches them any other way.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional


@dataclass(frozen=True)
class Origin:
    """
    Where a call comes from.

    ``account`` is None for unsigned calls.
    """
    account: Optional[str] = None
    signature: Optional[bytes] = None

    @classmethod
    def signed(cls, account: str, signature: Optional[bytes] = None) -> "Origin":
        return cls(account=account, signature=signature)

    @classmethod
    def unsigned(cls) -> "Origin":
        return cls()

    @property
    def is_signed(self) -> bool:
        return self.account is not None


class AuthProvider(ABC):
    """Resolves the authenticated caller of an operation."""

    @abstractmethod
    def verify(self, origin: Any) -> str:
        """
        Return the caller's account id.

        Raises UnauthorizedError if the origin cannot be authenticated.
        """


class TokenLedger(ABC):
    """Locks and unlocks the registration deposit."""

    @abstractmethod
    def reserve(self, account: str, amount: Decimal) -> None:
        """Raises InsufficientBalanceError if *account* cannot cover *amount*."""

    @abstractmethod
    def release(self, account: str, amount: Decimal) -> None:
        """Raises TokenLedgerError if *amount* cannot be unlocked."""


class EventSink(ABC):
    """Receives domain events after a transition commits."""

    @abstractmethod
    def emit(self, event: Any) -> None:
        ...
