"""
Quadvote Configuration

Loads quadvote.toml at startup. Environment variables override TOML values.
"""

from .loader import (
    LedgerSectionConfig,
    LoggingSectionConfig,
    QuadVoteConfig,
    VotingSectionConfig,
    load_config,
)

__all__ = [
    "LedgerSectionConfig",
    "LoggingSectionConfig",
    "QuadVoteConfig",
    "VotingSectionConfig",
    "load_config",
]
