"""
Proposal Store

Holds every proposal ever created, keyed by its opaque byte identifier.
A proposal carries its proposer, an active flag and the signed tally of
all vote deltas cast against it. Proposals are never deleted.
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, Iterator, List, Optional, Union

from ..logger import get_logger
from ..constants import PROPOSAL_ID_ENCODING
from ..exceptions import (
    EmptyProposalIdError,
    InvariantViolation,
    ProposalNotFoundError,
)

logger = get_logger(__name__)

ProposalId = Union[bytes, bytearray, str]


def normalize_proposal_id(proposal_id: ProposalId) -> bytes:
    """Return the canonical ``bytes`` form of a proposal identifier."""
    if isinstance(proposal_id, str):
        return proposal_id.encode(PROPOSAL_ID_ENCODING)
    if isinstance(proposal_id, (bytes, bytearray, memoryview)):
        return bytes(proposal_id)
    raise TypeError(
        f"Proposal id must be bytes or str, not {type(proposal_id).__name__}"
    )


def format_proposal_id(proposal_id: bytes) -> str:
    """Log/serialization form of a proposal id: ``0x`` + hex."""
    return "0x" + proposal_id.hex()


def parse_proposal_id(raw: ProposalId) -> bytes:
    """Inverse of ``format_proposal_id``; un-prefixed values are raw ids."""
    if isinstance(raw, str) and raw.startswith("0x"):
        return bytes.fromhex(raw[2:])
    return normalize_proposal_id(raw)


# ══════════════════════════════════════════════════════════════════════
#  PROPOSAL
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Proposal:
    """
    A proposal voters stake credits on.

    Fields:
        id:        Opaque identifier supplied by the proposer
        proposer:  Account that created (or last overwrote) the proposal
        active:    Always True; there is no close operation
        tally:     Signed sum of every vote delta cast against this id
    """
    id: bytes
    proposer: str
    active: bool = True
    tally: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": format_proposal_id(self.id),
            "proposer": self.proposer,
            "active": self.active,
            "tally": self.tally,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Proposal":
        return cls(
            id=parse_proposal_id(data["id"]),
            proposer=data["proposer"],
            active=data.get("active", True),
            tally=int(data.get("tally", 0)),
        )

    def __repr__(self) -> str:
        return (
            f"<Proposal {format_proposal_id(self.id)} "
            f"proposer={self.proposer} tally={self.tally}>"
        )


# ══════════════════════════════════════════════════════════════════════
#  PROPOSAL STORE
# ══════════════════════════════════════════════════════════════════════

class ProposalStore:
    """
    Map of proposal id → Proposal.

    ``create`` overwrites an existing id, resetting its tally and proposer.
    """

    def __init__(self):
        self._proposals: Dict[bytes, Proposal] = {}

    # ── Mutation ──────────────────────────────────────────────────────

    def create(self, proposer: str, proposal_id: ProposalId) -> Proposal:
        """
        Insert a fresh proposal with a zero tally.

        Raises EmptyProposalIdError if *proposal_id* is empty.
        """
        pid = normalize_proposal_id(proposal_id)
        if not pid:
            raise EmptyProposalIdError("Proposal id cannot be empty")

        previous = self._proposals.get(pid)
        if previous is not None:
            logger.warning(
                f"Proposal {format_proposal_id(pid)} overwritten: "
                f"proposer={previous.proposer} tally={previous.tally} discarded"
            )

        proposal = Proposal(id=pid, proposer=proposer)
        self._proposals[pid] = proposal
        return proposal

    def adjust_tally(self, proposal_id: ProposalId, delta: int) -> int:
        """
        Add *delta* to the proposal's tally and return the new tally.

        Callers check existence first, so a missing proposal here is an
        InvariantViolation rather than a user error.
        """
        pid = normalize_proposal_id(proposal_id)
        proposal = self._proposals.get(pid)
        if proposal is None:
            raise InvariantViolation(
                f"Tally adjustment on missing proposal {format_proposal_id(pid)}"
            )
        proposal = replace(proposal, tally=proposal.tally + delta)
        self._proposals[pid] = proposal
        return proposal.tally

    # ── Lookup ────────────────────────────────────────────────────────

    def exists(self, proposal_id: ProposalId) -> bool:
        return normalize_proposal_id(proposal_id) in self._proposals

    def get(self, proposal_id: ProposalId) -> Optional[Proposal]:
        return self._proposals.get(normalize_proposal_id(proposal_id))

    def get_or_raise(self, proposal_id: ProposalId) -> Proposal:
        proposal = self.get(proposal_id)
        if proposal is None:
            raise ProposalNotFoundError(
                f"Proposal {format_proposal_id(normalize_proposal_id(proposal_id))} not found"
            )
        return proposal

    # ── Enumeration ───────────────────────────────────────────────────

    def ids(self) -> List[bytes]:
        return list(self._proposals.keys())

    def __iter__(self) -> Iterator[Proposal]:
        return iter(list(self._proposals.values()))

    def __len__(self) -> int:
        return len(self._proposals)

    # ── Snapshots ─────────────────────────────────────────────────────

    def snapshot(self) -> Dict[bytes, Proposal]:
        return dict(self._proposals)

    def restore(self, snapshot: Dict[bytes, Proposal]):
        self._proposals = dict(snapshot)

    def saved(self, proposal_id: ProposalId) -> Optional[Proposal]:
        """Current record for *proposal_id*, for a later ``reinstate``."""
        return self._proposals.get(normalize_proposal_id(proposal_id))

    def reinstate(self, proposal_id: ProposalId, proposal: Optional[Proposal]):
        """Put back a record taken with ``saved``; None means absent."""
        pid = normalize_proposal_id(proposal_id)
        if proposal is None:
            self._proposals.pop(pid, None)
        else:
            self._proposals[pid] = proposal

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            format_proposal_id(pid): p.to_dict()
            for pid, p in self._proposals.items()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProposalStore":
        store = cls()
        for entry in data.values():
            proposal = Proposal.from_dict(entry)
            store._proposals[proposal.id] = proposal
        return store

    def __repr__(self) -> str:
        return f"<ProposalStore proposals={len(self._proposals)}>"
