"""
Voter Store and Vote Ledger

``VoterStore`` maps each registered account to its remaining credit.
``VoteLedger`` maps each account to its single live position: the
proposal it currently backs and the signed net number of votes.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional

from ..constants import INITIAL_CREDITS
from ..exceptions import InvariantViolation
from .proposals import (
    ProposalId,
    format_proposal_id,
    normalize_proposal_id,
    parse_proposal_id,
)


# ══════════════════════════════════════════════════════════════════════
#  VOTER STORE
# ══════════════════════════════════════════════════════════════════════

class VoterStore:
    """Map of account → remaining credit."""

    def __init__(self, initial_credits: int = INITIAL_CREDITS):
        self._initial_credits = initial_credits
        self._credits: Dict[str, int] = {}

    @property
    def initial_credits(self) -> int:
        return self._initial_credits

    def register(self, account: str) -> int:
        """Set (or reset) the account's credit to the full budget."""
        self._credits[account] = self._initial_credits
        return self._initial_credits

    def set_credit(self, account: str, credit: int):
        if account not in self._credits:
            raise InvariantViolation(f"Credit update for unregistered account {account}")
        if not 0 <= credit <= self._initial_credits:
            raise InvariantViolation(
                f"Credit {credit} for {account} outside [0, {self._initial_credits}]"
            )
        self._credits[account] = credit

    def remove(self, account: str) -> bool:
        return self._credits.pop(account, None) is not None

    def is_registered(self, account: str) -> bool:
        return account in self._credits

    def credit_of(self, account: str) -> Optional[int]:
        return self._credits.get(account)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._credits.keys()))

    def __len__(self) -> int:
        return len(self._credits)

    def snapshot(self) -> Dict[str, int]:
        return dict(self._credits)

    def restore(self, snapshot: Dict[str, int]):
        self._credits = dict(snapshot)

    def saved(self, account: str) -> Optional[int]:
        return self._credits.get(account)

    def reinstate(self, account: str, credit: Optional[int]):
        if credit is None:
            self._credits.pop(account, None)
        else:
            self._credits[account] = credit

    def to_dict(self) -> Dict[str, int]:
        return dict(self._credits)

    @classmethod
    def from_dict(cls, data: Dict[str, int], initial_credits: int = INITIAL_CREDITS) -> "VoterStore":
        store = cls(initial_credits=initial_credits)
        store._credits = {account: int(credit) for account, credit in data.items()}
        return store

    def __repr__(self) -> str:
        return f"<VoterStore voters={len(self._credits)}>"


# ══════════════════════════════════════════════════════════════════════
#  VOTE LEDGER
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class VoteEntry:
    """A voter's live position on one proposal."""
    proposal_id: bytes
    net_votes: int

    @property
    def cost(self) -> int:
        """Credits consumed by this position."""
        return self.net_votes ** 2

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proposalId": format_proposal_id(self.proposal_id),
            "netVotes": self.net_votes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VoteEntry":
        return cls(
            proposal_id=parse_proposal_id(data["proposalId"]),
            net_votes=int(data["netVotes"]),
        )


class VoteLedger:
    """
    Map of account → VoteEntry.

    An entry exists only while the account's net position is nonzero;
    ``put`` with zero net votes removes it.
    """

    def __init__(self):
        self._entries: Dict[str, VoteEntry] = {}

    def get(self, account: str) -> Optional[VoteEntry]:
        return self._entries.get(account)

    def net_votes_on(self, account: str, proposal_id: ProposalId) -> int:
        """Net votes *account* holds on *proposal_id*; 0 for any other position."""
        entry = self._entries.get(account)
        if entry is None or entry.proposal_id != normalize_proposal_id(proposal_id):
            return 0
        return entry.net_votes

    def put(self, account: str, proposal_id: ProposalId, net_votes: int) -> Optional[VoteEntry]:
        """Upsert the account's position, or remove it when *net_votes* is 0."""
        if net_votes == 0:
            self._entries.pop(account, None)
            return None
        entry = VoteEntry(proposal_id=normalize_proposal_id(proposal_id), net_votes=net_votes)
        self._entries[account] = entry
        return entry

    def remove(self, account: str) -> Optional[VoteEntry]:
        return self._entries.pop(account, None)

    def items(self):
        return list(self._entries.items())

    def __contains__(self, account: str) -> bool:
        return account in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def snapshot(self) -> Dict[str, VoteEntry]:
        return dict(self._entries)

    def restore(self, snapshot: Dict[str, VoteEntry]):
        self._entries = dict(snapshot)

    def saved(self, account: str) -> Optional[VoteEntry]:
        return self._entries.get(account)

    def reinstate(self, account: str, entry: Optional[VoteEntry]):
        if entry is None:
            self._entries.pop(account, None)
        else:
            self._entries[account] = entry

    def to_dict(self) -> Dict[str, Any]:
        return {account: e.to_dict() for account, e in self._entries.items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VoteLedger":
        ledger = cls()
        ledger._entries = {account: VoteEntry.from_dict(e) for account, e in data.items()}
        return ledger

    def __repr__(self) -> str:
        return f"<VoteLedger positions={len(self._entries)}>"
