"""
Ledger events and event sinks.

One event per successful operation, emitted after the transition has
committed. Events are immutable records with a ``to_dict`` wire form.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Type, TypeVar

from ..logger import get_logger
from ..constants import (
    EVENT_PROPOSAL_ADDED,
    EVENT_USER_REGISTERED,
    EVENT_USER_UNREGISTERED,
    EVENT_VOTE_DEPOSITED,
)
from .interfaces import EventSink
from .proposals import format_proposal_id

logger = get_logger(__name__)

E = TypeVar("E")


# ══════════════════════════════════════════════════════════════════════
#  EVENTS
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ProposalAdded:
    """Emitted when a proposal is created or overwritten."""
    proposer: str
    proposal_id: bytes
    timestamp: float = field(default_factory=time.time)

    name = EVENT_PROPOSAL_ADDED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.name,
            "proposer": self.proposer,
            "proposalId": format_proposal_id(self.proposal_id),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class UserRegistered:
    """Emitted when an account registers (or re-registers)."""
    account: str
    timestamp: float = field(default_factory=time.time)

    name = EVENT_USER_REGISTERED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.name,
            "account": self.account,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class UserUnregistered:
    """
    Emitted when an account unregisters.

    ``refunded`` is False when the token ledger failed to release the
    deposit; the voting rights are removed either way.
    """
    account: str
    refunded: bool = True
    timestamp: float = field(default_factory=time.time)

    name = EVENT_USER_UNREGISTERED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.name,
            "account": self.account,
            "refunded": self.refunded,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class VoteDeposited:
    """Emitted for every accepted vote delta."""
    voter: str
    proposal_id: bytes
    delta: int
    timestamp: float = field(default_factory=time.time)

    name = EVENT_VOTE_DEPOSITED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.name,
            "voter": self.voter,
            "proposalId": format_proposal_id(self.proposal_id),
            "delta": self.delta,
            "timestamp": self.timestamp,
        }


# ══════════════════════════════════════════════════════════════════════
#  SINKS
# ══════════════════════════════════════════════════════════════════════

class InMemoryEventSink(EventSink):
    """Keeps every emitted event in order."""

    def __init__(self, max_events: Optional[int] = None):
        self._events: List[Any] = []
        self._max_events = max_events

    def emit(self, event: Any) -> None:
        self._events.append(event)
        if self._max_events is not None and len(self._events) > self._max_events:
            del self._events[: len(self._events) - self._max_events]

    @property
    def events(self) -> List[Any]:
        return list(self._events)

    def of_type(self, event_type: Type[E]) -> List[E]:
        return [e for e in self._events if isinstance(e, event_type)]

    @property
    def last(self) -> Optional[Any]:
        return self._events[-1] if self._events else None

    def clear(self):
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)

    def __repr__(self) -> str:
        return f"<InMemoryEventSink events={len(self._events)}>"


class LoggingEventSink(EventSink):
    """Writes each event to the ledger log at INFO."""

    def __init__(self, name: str = "quadvote.events"):
        self._logger = get_logger(name)

    def emit(self, event: Any) -> None:
        payload = event.to_dict() if hasattr(event, "to_dict") else {"event": repr(event)}
        details = " ".join(
            f"{k}={v}" for k, v in payload.items() if k not in ("event", "timestamp")
        )
        self._logger.info(f"[{payload.get('event', 'event')}] {details}")
