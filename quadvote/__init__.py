"""
Quadvote Package

Quadratic-cost voting ledger. Core imports are lazily loaded so that
importing a submodule does not pull in the whole package:

    from quadvote.voting import VotingStateMachine, Origin
    from quadvote.tokens import ReservableTokenLedger
    from quadvote.exceptions import NotEnoughCreditsError
"""

__version__ = "0.1.0"


# Lazy imports to avoid loading everything at package import
def __getattr__(name):
    """Lazy module loading."""
    if name == 'VotingStateMachine':
        from .voting import VotingStateMachine
        return VotingStateMachine
    elif name == 'Origin':
        from .voting import Origin
        return Origin
    elif name == 'ReservableTokenLedger':
        from .tokens import ReservableTokenLedger
        return ReservableTokenLedger
    elif name == 'build_state_machine':
        from .voting import build_state_machine
        return build_state_machine
    elif name == 'load_config':
        from .config import load_config
        return load_config
    raise AttributeError(f"module 'quadvote' has no attribute {name!r}")

__all__ = [
    'VotingStateMachine', 'Origin', 'ReservableTokenLedger',
    'build_state_machine', 'load_config',
]
