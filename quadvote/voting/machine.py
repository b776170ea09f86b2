"""
Quadratic Voting State Machine

Implements:
  - create_proposal / register / unregister / cast_vote
  - Quadratic cost: a net position of n votes costs n**2 credits
  - One live position per voter
  - All-or-nothing store updates; the deposit refund on unregister is
    best effort
  - Ledger audit of tally and credit invariants
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from ..logger import get_logger
from ..constants import INITIAL_CREDITS, REGISTRATION_DEPOSIT
from ..exceptions import (
    InvalidProposalError,
    InvalidVoteError,
    InvariantViolation,
    NotEnoughCreditsError,
    NotRegisteredError,
)
from .events import ProposalAdded, UserRegistered, UserUnregistered, VoteDeposited
from .interfaces import AuthProvider, EventSink, TokenLedger
from .proposals import (
    Proposal,
    ProposalId,
    ProposalStore,
    format_proposal_id,
    normalize_proposal_id,
)
from .voters import VoteEntry, VoteLedger, VoterStore

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  AUDIT
# ══════════════════════════════════════════════════════════════════════

@dataclass
class AuditReport:
    """
    Result of checking the ledger invariants.

    tally_mismatches:   proposal id → (recorded tally, sum of live positions)
    credit_mismatches:  account → (recorded credit, expected credit)
    over_budget:        accounts whose position costs more than the budget
    orphan_positions:   accounts holding a position without a voter record
    dangling_positions: accounts whose position references no proposal
    """
    tally_mismatches: Dict[bytes, Tuple[int, int]] = field(default_factory=dict)
    credit_mismatches: Dict[str, Tuple[int, int]] = field(default_factory=dict)
    over_budget: List[str] = field(default_factory=list)
    orphan_positions: List[str] = field(default_factory=list)
    dangling_positions: List[str] = field(default_factory=list)

    @property
    def is_consistent(self) -> bool:
        return not (
            self.tally_mismatches
            or self.credit_mismatches
            or self.over_budget
            or self.orphan_positions
            or self.dangling_positions
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "consistent": self.is_consistent,
            "tallyMismatches": {
                format_proposal_id(pid): {"recorded": rec, "expected": exp}
                for pid, (rec, exp) in self.tally_mismatches.items()
            },
            "creditMismatches": {
                account: {"recorded": rec, "expected": exp}
                for account, (rec, exp) in self.credit_mismatches.items()
            },
            "overBudget": list(self.over_budget),
            "orphanPositions": list(self.orphan_positions),
            "danglingPositions": list(self.dangling_positions),
        }


# ══════════════════════════════════════════════════════════════════════
#  UNDO JOURNAL
# ══════════════════════════════════════════════════════════════════════

class _UndoJournal:
    """
    Prior values of the store keys a transition is about to write.

    Each store exposes ``saved(key)`` and ``reinstate(key, value)``, with
    None standing for an absent key.
    """

    def __init__(self):
        self._entries: List[Tuple[Any, Any, Any]] = []

    def touch(self, store, key):
        self._entries.append((store, key, store.saved(key)))

    def rollback(self):
        # Reverse order so a key touched twice ends at its first saved value
        for store, key, value in reversed(self._entries):
            store.reinstate(key, value)

    def __len__(self) -> int:
        return len(self._entries)


# ══════════════════════════════════════════════════════════════════════
#  STATE MACHINE
# ══════════════════════════════════════════════════════════════════════

class VotingStateMachine:
    """
    Quadratic voting ledger.

    Responsibilities:
        - Resolve the caller through the AuthProvider
        - Validate every precondition before touching a store
        - Lock/unlock the registration deposit through the TokenLedger
        - Keep proposal tallies, voter credits and vote positions in step
        - Emit one event per committed transition
    """

    def __init__(
        self,
        auth: AuthProvider,
        tokens: TokenLedger,
        events: EventSink,
        proposals: Optional[ProposalStore] = None,
        voters: Optional[VoterStore] = None,
        votes: Optional[VoteLedger] = None,
        registration_deposit: Decimal = REGISTRATION_DEPOSIT,
        initial_credits: Optional[int] = None,
    ):
        """
        Args:
            auth:                  Resolves origins to account ids
            tokens:                Holds the registration deposit
            events:                Receives committed events
            proposals/voters/votes: Stores to operate on (fresh ones if omitted)
            registration_deposit:  Amount reserved on register
            initial_credits:       Credit budget; defaults to the voter store's
        """
        self._auth = auth
        self._tokens = tokens
        self._events = events

        if initial_credits is not None and initial_credits < 1:
            raise ValueError(f"initial_credits must be >= 1, got {initial_credits}")
        if voters is None:
            voters = VoterStore(
                INITIAL_CREDITS if initial_credits is None else initial_credits
            )
        elif initial_credits is not None and initial_credits != voters.initial_credits:
            raise ValueError(
                f"initial_credits={initial_credits} conflicts with "
                f"voter store budget {voters.initial_credits}"
            )

        self._proposals = proposals if proposals is not None else ProposalStore()
        self._voters = voters
        self._votes = votes if votes is not None else VoteLedger()
        self._deposit = registration_deposit

    @classmethod
    def from_config(
        cls,
        config,
        auth: Optional[AuthProvider] = None,
        tokens: Optional[TokenLedger] = None,
        events: Optional[EventSink] = None,
    ) -> "VotingStateMachine":
        """
        Build a machine from a QuadVoteConfig.

        Collaborators that are not supplied default to the in-memory ones:
        SignedOriginAuth, a ReservableTokenLedger prefunded from
        ``[ledger] balances`` and an InMemoryEventSink.
        """
        # Lazy imports to avoid circular dependencies
        from ..tokens.reserve import ReservableTokenLedger
        from .events import InMemoryEventSink
        from .origin import SignedOriginAuth

        config.validate()
        return cls(
            auth=auth or SignedOriginAuth(),
            tokens=tokens or ReservableTokenLedger(config.ledger.balances),
            events=events or InMemoryEventSink(),
            registration_deposit=config.voting.registration_deposit,
            initial_credits=config.voting.initial_credits,
        )

    # ── Properties ────────────────────────────────────────────────────

    @property
    def initial_credits(self) -> int:
        return self._voters.initial_credits

    @property
    def registration_deposit(self) -> Decimal:
        return self._deposit

    @property
    def proposals(self) -> ProposalStore:
        return self._proposals

    @property
    def voters(self) -> VoterStore:
        return self._voters

    @property
    def votes(self) -> VoteLedger:
        return self._votes

    # ── Transactions ──────────────────────────────────────────────────

    @contextmanager
    def _transaction(self, operation: str):
        """
        Yield an undo journal; if the body raises, every key touched
        through it is put back.
        """
        journal = _UndoJournal()
        try:
            yield journal
        except Exception as exc:
            journal.rollback()
            if isinstance(exc, InvariantViolation):
                logger.error(
                    f"{operation} aborted, {len(journal)} ledger keys rolled back: {exc}"
                )
            raise

    # ── Create proposal ───────────────────────────────────────────────

    def create_proposal(self, origin: Any, proposal_id: ProposalId) -> Proposal:
        """
        Create (or overwrite) a proposal with a zero tally.

        Raises EmptyProposalIdError for an empty id.
        """
        proposer = self._auth.verify(origin)
        pid = normalize_proposal_id(proposal_id)

        with self._transaction("create_proposal") as journal:
            journal.touch(self._proposals, pid)
            proposal = self._proposals.create(proposer, pid)

        logger.info(
            f"Proposal {format_proposal_id(proposal.id)} added by proposer={proposer}"
        )
        self._events.emit(ProposalAdded(proposer=proposer, proposal_id=proposal.id))
        return proposal

    # ── Registration ──────────────────────────────────────────────────

    def register(self, origin: Any) -> int:
        """
        Reserve the deposit and grant the full credit budget.

        Re-registering resets credit to the full budget and reserves the
        deposit again. Returns the new credit.

        Raises InsufficientBalanceError if the deposit cannot be reserved.
        """
        account = self._auth.verify(origin)

        if self._voters.is_registered(account):
            logger.warning(f"Re-registration resets credit for account={account}")

        # Reserve first: a refused deposit leaves the stores untouched
        self._tokens.reserve(account, self._deposit)
        with self._transaction("register") as journal:
            journal.touch(self._voters, account)
            credit = self._voters.register(account)

        logger.info(f"Registered account={account} credit={credit}")
        self._events.emit(UserRegistered(account=account))
        return credit

    def unregister(self, origin: Any) -> Optional[VoteEntry]:
        """
        Remove the caller's voting rights and refund the deposit.

        The live position (if any) is reversed out of its proposal's tally.
        A refund failure is logged and reported on the emitted event but
        never undoes the removal. Returns the removed position.

        Raises NotRegisteredError if the caller is not registered.
        """
        account = self._auth.verify(origin)

        if not self._voters.is_registered(account):
            raise NotRegisteredError(f"{account} is not registered")

        with self._transaction("unregister") as journal:
            journal.touch(self._votes, account)
            journal.touch(self._voters, account)
            entry = self._votes.remove(account)
            if entry is not None:
                journal.touch(self._proposals, entry.proposal_id)
                self._proposals.adjust_tally(entry.proposal_id, -entry.net_votes)
            self._voters.remove(account)

        refunded = True
        try:
            self._tokens.release(account, self._deposit)
        except Exception as exc:
            refunded = False
            logger.warning(
                f"Deposit refund failed for account={account}: "
                f"{type(exc).__name__}: {exc}"
            )

        if entry is not None:
            logger.info(
                f"Unregistered account={account}, reversed {entry.net_votes} "
                f"from {format_proposal_id(entry.proposal_id)}"
            )
        else:
            logger.info(f"Unregistered account={account}")
        self._events.emit(UserUnregistered(account=account, refunded=refunded))
        return entry

    # ── Cast vote ─────────────────────────────────────────────────────

    def cast_vote(self, origin: Any, delta: int, proposal_id: ProposalId) -> Optional[VoteEntry]:
        """
        Move the caller's net position on *proposal_id* by *delta*.

        A position held on a different proposal is replaced, not reversed:
        that proposal keeps its tally until the voter unregisters.

        Returns the new position, or None when it returns to zero.

        Raises:
            InvalidVoteError:       delta is not an int
            InvalidProposalError:   proposal does not exist
            NotRegisteredError:     caller is not registered
            NotEnoughCreditsError:  (net + delta)**2 exceeds the budget
        """
        voter = self._auth.verify(origin)

        if isinstance(delta, bool) or not isinstance(delta, int):
            raise InvalidVoteError(f"Vote delta must be an integer, got {delta!r}")

        pid = normalize_proposal_id(proposal_id)
        if not self._proposals.exists(pid):
            raise InvalidProposalError(f"Proposal {format_proposal_id(pid)} does not exist")
        if not self._voters.is_registered(voter):
            raise NotRegisteredError(f"{voter} is not registered")

        previous = self._votes.get(voter)
        if previous is not None and previous.proposal_id != pid:
            logger.warning(
                f"voter={voter} moves from {format_proposal_id(previous.proposal_id)} "
                f"to {format_proposal_id(pid)}; old tally keeps {previous.net_votes}"
            )

        new_net = self._votes.net_votes_on(voter, pid) + delta
        cost = new_net ** 2
        budget = self._voters.initial_credits
        if cost > budget:
            raise NotEnoughCreditsError(
                f"{voter}: {new_net} net votes cost {cost} credits, budget is {budget}"
            )

        with self._transaction("cast_vote") as journal:
            journal.touch(self._voters, voter)
            journal.touch(self._votes, voter)
            journal.touch(self._proposals, pid)
            self._voters.set_credit(voter, budget - cost)
            entry = self._votes.put(voter, pid, new_net)
            tally = self._proposals.adjust_tally(pid, delta)

        logger.info(
            f"Vote voter={voter} delta={delta} on {format_proposal_id(pid)} "
            f"(net={new_net}, credit={budget - cost}, tally={tally})"
        )
        self._events.emit(VoteDeposited(voter=voter, proposal_id=pid, delta=delta))
        return entry

    # ── Queries ───────────────────────────────────────────────────────

    def proposal(self, proposal_id: ProposalId) -> Optional[Proposal]:
        return self._proposals.get(proposal_id)

    def tally_of(self, proposal_id: ProposalId) -> Optional[int]:
        proposal = self._proposals.get(proposal_id)
        return proposal.tally if proposal is not None else None

    def credit_of(self, account: str) -> Optional[int]:
        return self._voters.credit_of(account)

    def vote_of(self, account: str) -> Optional[VoteEntry]:
        return self._votes.get(account)

    def is_registered(self, account: str) -> bool:
        return self._voters.is_registered(account)

    # ── Audit ─────────────────────────────────────────────────────────

    def audit(self) -> AuditReport:
        """
        Check tally and credit invariants across the three stores.

        A voter who moved to another proposal, or re-registered while
        holding a position, shows up here as a mismatch.
        """
        report = AuditReport()
        budget = self._voters.initial_credits

        expected_tallies: Dict[bytes, int] = {pid: 0 for pid in self._proposals.ids()}
        for account, entry in self._votes.items():
            if entry.proposal_id in expected_tallies:
                expected_tallies[entry.proposal_id] += entry.net_votes
            else:
                report.dangling_positions.append(account)
            if not self._voters.is_registered(account):
                report.orphan_positions.append(account)
            if entry.cost > budget:
                report.over_budget.append(account)

        for proposal in self._proposals:
            expected = expected_tallies[proposal.id]
            if proposal.tally != expected:
                report.tally_mismatches[proposal.id] = (proposal.tally, expected)

        for account in self._voters:
            entry = self._votes.get(account)
            expected = budget - (entry.cost if entry is not None else 0)
            credit = self._voters.credit_of(account)
            if credit != expected:
                report.credit_mismatches[account] = (credit, expected)

        if not report.is_consistent:
            logger.warning(f"Ledger audit found inconsistencies: {report.to_dict()}")
        return report

    # ── Export / import ───────────────────────────────────────────────

    def export_state(self) -> Dict[str, Any]:
        return {
            "initialCredits": self._voters.initial_credits,
            "proposals": self._proposals.to_dict(),
            "voters": self._voters.to_dict(),
            "votes": self._votes.to_dict(),
        }

    def import_state(self, state: Dict[str, Any]):
        """Replace the contents of all three stores with *state*."""
        credits = state.get("initialCredits", self._voters.initial_credits)
        if credits != self._voters.initial_credits:
            raise InvariantViolation(
                f"State exported with budget {credits}, ledger uses "
                f"{self._voters.initial_credits}"
            )
        proposals = ProposalStore.from_dict(state.get("proposals", {}))
        voters = VoterStore.from_dict(state.get("voters", {}), credits)
        votes = VoteLedger.from_dict(state.get("votes", {}))
        self._proposals.restore(proposals.snapshot())
        self._voters.restore(voters.snapshot())
        self._votes.restore(votes.snapshot())
        logger.info(
            f"Imported ledger: {len(proposals)} proposals, "
            f"{len(voters)} voters, {len(votes)} positions"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proposals": len(self._proposals),
            "voters": len(self._voters),
            "positions": len(self._votes),
            "initialCredits": self._voters.initial_credits,
            "registrationDeposit": str(self._deposit),
        }

    def __repr__(self) -> str:
        return (
            f"<VotingStateMachine proposals={len(self._proposals)} "
            f"voters={len(self._voters)} positions={len(self._votes)}>"
        )


def build_state_machine(
    config,
    auth: Optional[AuthProvider] = None,
    tokens: Optional[TokenLedger] = None,
    events: Optional[EventSink] = None,
) -> VotingStateMachine:
    """Validate *config* and wire a VotingStateMachine from it."""
    return VotingStateMachine.from_config(config, auth=auth, tokens=tokens, events=events)
