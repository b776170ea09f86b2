"""
Quadvote Exceptions

Exception taxonomy for the quadratic voting ledger.

Every ``VotingError`` is a recoverable rejection of caller input and is
raised before any store is touched. ``InvariantViolation`` is not a
``VotingError``: it signals corrupted ledger data or a programming bug and
aborts the running operation.
"""


class QuadVoteException(Exception):
    """Base exception for quadvote."""
    pass


class VotingError(QuadVoteException):
    """Recoverable rejection of a ledger operation."""
    pass


# ── Validation ───────────────────────────────────────────────────────

class ValidationError(VotingError):
    """Malformed input, rejected before any lookup."""
    pass


class EmptyProposalIdError(ValidationError):
    """Proposal identifier is empty."""
    pass


class InvalidVoteError(ValidationError):
    """Vote delta is not an integer."""
    pass


# ── State ────────────────────────────────────────────────────────────

class StateError(VotingError):
    """Operation does not fit the current ledger state."""
    pass


class InvalidProposalError(StateError):
    """Vote targets a proposal that was never created."""
    pass


class NotRegisteredError(StateError):
    """Account has no voter record."""
    pass


class ProposalNotFoundError(StateError):
    """Lookup of an unknown proposal identifier."""
    pass


# ── Resources ────────────────────────────────────────────────────────

class ResourceError(VotingError):
    """Account lacks the balance or credit the operation needs."""
    pass


class InsufficientBalanceError(ResourceError):
    """Token ledger refused to reserve the registration deposit."""
    pass


class NotEnoughCreditsError(ResourceError):
    """Quadratic cost of the new position exceeds the credit budget."""
    pass


# ── Authentication ───────────────────────────────────────────────────

class UnauthorizedError(VotingError):
    """Origin could not be resolved to a signed account."""
    pass


# ── Internal / collaborators ─────────────────────────────────────────

class InvariantViolation(QuadVoteException):
    """Ledger data contradicts a check made earlier in the same operation."""
    pass


class TokenLedgerError(QuadVoteException):
    """Token ledger failed to release a reserved deposit."""
    pass


class ConfigurationError(QuadVoteException):
    """Configuration error."""
    pass
