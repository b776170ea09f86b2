"""
Quadratic Voting Ledger

Provides:
  - Proposal / ProposalStore                      (proposals.py)
  - VoterStore / VoteEntry / VoteLedger           (voters.py)
  - Origin / AuthProvider / TokenLedger / EventSink (interfaces.py)
  - SignedOriginAuth                              (origin.py)
  - ProposalAdded / UserRegistered / UserUnregistered / VoteDeposited,
    InMemoryEventSink / LoggingEventSink          (events.py)
  - VotingStateMachine / AuditReport / build_state_machine (machine.py)
"""

from .proposals import (
    Proposal,
    ProposalStore,
    format_proposal_id,
    normalize_proposal_id,
    parse_proposal_id,
)
from .voters import (
    VoteEntry,
    VoteLedger,
    VoterStore,
)
from .interfaces import (
    AuthProvider,
    EventSink,
    Origin,
    TokenLedger,
)
from .origin import (
    SignedOriginAuth,
    sign_origin,
)
from .events import (
    InMemoryEventSink,
    LoggingEventSink,
    ProposalAdded,
    UserRegistered,
    UserUnregistered,
    VoteDeposited,
)
from .machine import (
    AuditReport,
    VotingStateMachine,
    build_state_machine,
)

__all__ = [
    # Stores
    "Proposal",
    "ProposalStore",
    "format_proposal_id",
    "normalize_proposal_id",
    "parse_proposal_id",
    "VoteEntry",
    "VoteLedger",
    "VoterStore",
    # Collaborators
    "AuthProvider",
    "EventSink",
    "Origin",
    "TokenLedger",
    "SignedOriginAuth",
    "sign_origin",
    # Events
    "InMemoryEventSink",
    "LoggingEventSink",
    "ProposalAdded",
    "UserRegistered",
    "UserUnregistered",
    "VoteDeposited",
    # State machine
    "AuditReport",
    "VotingStateMachine",
    "build_state_machine",
]
