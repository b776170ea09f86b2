"""
Quadvote TOML Configuration Loader

Loads quadvote.toml with environment variable overrides. Every section is a
dataclass with ``from_dict`` and, where it can be overridden, ``apply_env``.

Environment variable mapping:
    [voting] initial_credits        → QUADVOTE_INITIAL_CREDITS
    [voting] registration_deposit   → QUADVOTE_REGISTRATION_DEPOSIT
    [logging] level                 → QUADVOTE_LOG_LEVEL
    [logging] file_output           → QUADVOTE_LOG_FILE_OUTPUT
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import tomllib as tomli  # Python 3.11+
except ImportError:
    import tomli  # type: ignore[no-redef]

from ..constants import INITIAL_CREDITS, REGISTRATION_DEPOSIT
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _to_decimal(value: Any, name: str) -> Decimal:
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ConfigurationError(f"{name} is not a number: {value!r}") from exc


def _to_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} is not an integer: {value!r}")
    number = _to_decimal(value, name)
    if not number.is_finite() or number != number.to_integral_value():
        raise ConfigurationError(f"{name} is not an integer: {value!r}")
    return int(number)


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass
class VotingSectionConfig:
    """[voting] section."""
    initial_credits: int = INITIAL_CREDITS
    registration_deposit: Decimal = REGISTRATION_DEPOSIT

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VotingSectionConfig":
        return cls(
            initial_credits=_to_int(
                data.get("initial_credits", INITIAL_CREDITS), "initial_credits"
            ),
            registration_deposit=_to_decimal(
                data.get("registration_deposit", REGISTRATION_DEPOSIT),
                "registration_deposit",
            ),
        )

    def apply_env(self) -> None:
        """Override from environment variables."""
        if v := os.environ.get("QUADVOTE_INITIAL_CREDITS"):
            self.initial_credits = _to_int(v, "QUADVOTE_INITIAL_CREDITS")
        if v := os.environ.get("QUADVOTE_REGISTRATION_DEPOSIT"):
            self.registration_deposit = _to_decimal(v, "QUADVOTE_REGISTRATION_DEPOSIT")


@dataclass
class LedgerSectionConfig:
    """[ledger] section: prefunded balances for the in-memory token ledger."""
    balances: Dict[str, Decimal] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LedgerSectionConfig":
        raw = data.get("balances", {})
        return cls(
            balances={
                account: _to_decimal(amount, f"balances.{account}")
                for account, amount in raw.items()
            },
        )


@dataclass
class LoggingSectionConfig:
    """[logging] section."""
    level: str = "INFO"
    file_output: bool = False
    file: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingSectionConfig":
        return cls(
            level=str(data.get("level", "INFO")).upper(),
            file_output=data.get("file_output", False),
            file=data.get("file", ""),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("QUADVOTE_LOG_LEVEL"):
            self.level = v.upper()
        if v := os.environ.get("QUADVOTE_LOG_FILE_OUTPUT"):
            self.file_output = v.lower() in ("1", "true", "yes")


# -----------------------------------------------------------------------
# Top-level config
# -----------------------------------------------------------------------

@dataclass
class QuadVoteConfig:
    """
    Unified ledger configuration.

    Loads every section of quadvote.toml and applies environment variable
    overrides.
    """
    voting: VotingSectionConfig = field(default_factory=VotingSectionConfig)
    ledger: LedgerSectionConfig = field(default_factory=LedgerSectionConfig)
    logging: LoggingSectionConfig = field(default_factory=LoggingSectionConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuadVoteConfig":
        """Create QuadVoteConfig from a parsed TOML dict."""
        return cls(
            voting=VotingSectionConfig.from_dict(data.get("voting", {})),
            ledger=LedgerSectionConfig.from_dict(data.get("ledger", {})),
            logging=LoggingSectionConfig.from_dict(data.get("logging", {})),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "QuadVoteConfig":
        """
        Load configuration from a TOML file.

        A missing file yields the defaults (with env overrides applied).
        """
        path = Path(config_path)
        if not path.exists():
            logger.warning("Config file not found: %s, using defaults", config_path)
            cfg = cls()
            cfg.apply_env()
            return cfg

        with open(path, "rb") as f:
            try:
                raw = tomli.load(f)
            except tomli.TOMLDecodeError as exc:
                raise ConfigurationError(f"Invalid TOML in {config_path}: {exc}") from exc

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        return cfg

    def apply_env(self) -> None:
        """Apply environment variable overrides to all sections."""
        self.voting.apply_env()
        self.logging.apply_env()

    def validate(self) -> bool:
        """
        Validate all configuration sections.

        Raises:
            ConfigurationError: on invalid config
        """
        if self.voting.initial_credits < 1:
            raise ConfigurationError("initial_credits must be >= 1")
        if self.voting.registration_deposit < 0:
            raise ConfigurationError("registration_deposit cannot be negative")
        for account, amount in self.ledger.balances.items():
            if amount < 0:
                raise ConfigurationError(f"Negative prefunded balance for {account}")
        if self.logging.level not in _LOG_LEVELS:
            raise ConfigurationError(f"Invalid log level: {self.logging.level}")
        return True

    def configure_logging(self) -> None:
        """Re-apply the [logging] section to the quadvote logging system."""
        from ..logger import configure_logging

        configure_logging(
            log_level=self.logging.level,
            log_file=Path(self.logging.file) if self.logging.file else None,
            file_output=self.logging.file_output,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict (for diagnostics)."""
        return {
            "voting": {
                "initial_credits": self.voting.initial_credits,
                "registration_deposit": str(self.voting.registration_deposit),
            },
            "ledger": {
                "balances": {a: str(b) for a, b in self.ledger.balances.items()},
            },
            "logging": {
                "level": self.logging.level,
                "file_output": self.logging.file_output,
                "file": self.logging.file,
            },
        }


def load_config(path: Optional[str] = None, apply_logging: bool = True) -> QuadVoteConfig:
    """
    Load and validate ledger configuration.

    Resolution order:
        1. Explicit *path* argument
        2. QUADVOTE_CONFIG env var
        3. ./quadvote.toml in current directory
        4. Defaults (with env overrides)

    With *apply_logging* the [logging] section is applied immediately.
    """
    if path is None:
        path = os.environ.get("QUADVOTE_CONFIG", "quadvote.toml")

    cfg = QuadVoteConfig.from_file(path)
    cfg.validate()
    if apply_logging:
        cfg.configure_logging()
    return cfg
