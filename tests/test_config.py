"""
Configuration and Logging Test Suite

Coverage:
  - QuadVoteConfig: defaults, TOML loading, env overrides, validation
  - constants: boolean parsing and config wrappers
  - logger: format validation and terminal sanitization
"""

import os
import sys
from decimal import Decimal

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from quadvote.config import QuadVoteConfig, load_config
from quadvote.constants import (
    INITIAL_CREDITS,
    REGISTRATION_DEPOSIT,
    ConfigBool,
    ConfigString,
    parse_bool,
)
from quadvote.exceptions import ConfigurationError
from quadvote.logger import LogManager, TerminalSafeFormatter, get_logger


SAMPLE_TOML = """
[voting]
initial_credits = 64
registration_deposit = "12.5"

[ledger.balances]
alice = 100
bob = "7.25"

[logging]
level = "debug"
"""


@pytest.fixture
def clean_env(monkeypatch):
    for key in (
        "QUADVOTE_CONFIG",
        "QUADVOTE_INITIAL_CREDITS",
        "QUADVOTE_REGISTRATION_DEPOSIT",
        "QUADVOTE_LOG_LEVEL",
        "QUADVOTE_LOG_FILE_OUTPUT",
    ):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


# ══════════════════════════════════════════════════════════════════════
#  CONFIG LOADER
# ══════════════════════════════════════════════════════════════════════


class TestQuadVoteConfig:

    def test_defaults(self):
        cfg = QuadVoteConfig()
        assert cfg.voting.initial_credits == INITIAL_CREDITS
        assert cfg.voting.registration_deposit == REGISTRATION_DEPOSIT
        assert cfg.ledger.balances == {}
        assert cfg.logging.level == "INFO"
        assert cfg.validate() is True

    def test_from_file(self, tmp_path, clean_env):
        path = tmp_path / "quadvote.toml"
        path.write_text(SAMPLE_TOML)
        cfg = QuadVoteConfig.from_file(str(path))
        assert cfg.voting.initial_credits == 64
        assert cfg.voting.registration_deposit == Decimal("12.5")
        assert cfg.ledger.balances == {"alice": Decimal(100), "bob": Decimal("7.25")}
        assert cfg.logging.level == "DEBUG"

    def test_example_config_loads(self, clean_env):
        cfg = QuadVoteConfig.from_file(os.path.join(ROOT, "quadvote.example.toml"))
        assert cfg.validate() is True
        assert cfg.voting.initial_credits == INITIAL_CREDITS
        assert cfg.voting.registration_deposit == REGISTRATION_DEPOSIT
        assert cfg.ledger.balances["alice"] == Decimal(5000)

    def test_missing_file_uses_defaults(self, tmp_path, clean_env):
        cfg = QuadVoteConfig.from_file(str(tmp_path / "absent.toml"))
        assert cfg.voting.initial_credits == INITIAL_CREDITS

    def test_invalid_toml(self, tmp_path, clean_env):
        path = tmp_path / "broken.toml"
        path.write_text("[voting\ninitial_credits = ")
        with pytest.raises(ConfigurationError):
            QuadVoteConfig.from_file(str(path))

    def test_env_overrides(self, tmp_path, clean_env):
        path = tmp_path / "quadvote.toml"
        path.write_text(SAMPLE_TOML)
        clean_env.setenv("QUADVOTE_INITIAL_CREDITS", "81")
        clean_env.setenv("QUADVOTE_REGISTRATION_DEPOSIT", "3")
        clean_env.setenv("QUADVOTE_LOG_FILE_OUTPUT", "yes")
        cfg = QuadVoteConfig.from_file(str(path))
        assert cfg.voting.initial_credits == 81
        assert cfg.voting.registration_deposit == Decimal(3)
        assert cfg.logging.file_output is True

    def test_load_config_from_env_path(self, tmp_path, clean_env):
        path = tmp_path / "custom.toml"
        path.write_text(SAMPLE_TOML)
        clean_env.setenv("QUADVOTE_CONFIG", str(path))
        assert load_config(apply_logging=False).voting.initial_credits == 64

    def test_configure_logging_sets_level(self):
        import logging
        cfg = QuadVoteConfig.from_dict({"logging": {"level": "warning"}})
        try:
            cfg.configure_logging()
            assert logging.getLogger().level == logging.WARNING
        finally:
            QuadVoteConfig().configure_logging()
        assert logging.getLogger().level == logging.INFO

    def test_load_config_validates(self, tmp_path, clean_env):
        path = tmp_path / "bad.toml"
        path.write_text("[voting]\ninitial_credits = 0\n")
        with pytest.raises(ConfigurationError):
            load_config(str(path))

    @pytest.mark.parametrize("data", [
        {"voting": {"registration_deposit": -1}},
        {"ledger": {"balances": {"alice": -5}}},
        {"logging": {"level": "LOUD"}},
    ])
    def test_validate_rejects(self, data):
        with pytest.raises(ConfigurationError):
            QuadVoteConfig.from_dict(data).validate()

    def test_non_numeric_deposit(self):
        with pytest.raises(ConfigurationError):
            QuadVoteConfig.from_dict({"voting": {"registration_deposit": "lots"}})

    @pytest.mark.parametrize("credits", ["lots", 2.5, True, "nan"])
    def test_non_integer_credits(self, credits):
        with pytest.raises(ConfigurationError):
            QuadVoteConfig.from_dict({"voting": {"initial_credits": credits}})

    def test_integral_float_credits_accepted(self):
        cfg = QuadVoteConfig.from_dict({"voting": {"initial_credits": 64.0}})
        assert cfg.voting.initial_credits == 64

    def test_non_integer_credits_env(self, clean_env):
        clean_env.setenv("QUADVOTE_INITIAL_CREDITS", "eighty")
        with pytest.raises(ConfigurationError):
            QuadVoteConfig().apply_env()
        clean_env.setenv("QUADVOTE_INITIAL_CREDITS", "1.5")
        with pytest.raises(ConfigurationError):
            QuadVoteConfig().apply_env()

    def test_to_dict(self):
        data = QuadVoteConfig.from_dict({"ledger": {"balances": {"alice": 5}}}).to_dict()
        assert data["voting"]["initial_credits"] == INITIAL_CREDITS
        assert data["ledger"]["balances"] == {"alice": "5"}


# ══════════════════════════════════════════════════════════════════════
#  CONSTANTS
# ══════════════════════════════════════════════════════════════════════


class TestConstants:

    @pytest.mark.parametrize("raw,expected", [
        ("True", True),
        (" false ", False),
        ("TRUE", True),
        ("yes", "yes"),
        ("", ""),
    ])
    def test_parse_bool(self, raw, expected):
        assert parse_bool(raw) == expected

    def test_config_wrappers_keep_default(self):
        s = ConfigString("DEBUG", "INFO")
        assert s == "DEBUG"
        assert s.default() == "INFO"
        b = ConfigBool(False, True)
        assert b == False  # noqa: E712
        assert b.default() is True
        assert str(b) == "False"


# ══════════════════════════════════════════════════════════════════════
#  LOGGER
# ══════════════════════════════════════════════════════════════════════


class TestLogger:

    def test_singleton(self):
        assert LogManager() is LogManager()
        assert LogManager().is_configured

    def test_get_logger_name(self):
        assert get_logger("quadvote.test").name == "quadvote.test"

    def test_sanitize_strips_escapes(self):
        dirty = "proposal \x1b[31mred\x1b[0m\r\x07id"
        assert TerminalSafeFormatter.sanitize(dirty) == "proposal redid"

    def test_invalid_log_format_falls_back(self):
        assert LogManager.validate_log_format("(asctime)s broken") == str(
            LogManager.validate_log_format("")
        )

    def test_invalid_date_format_falls_back(self):
        fallback = LogManager.validate_date_format("")
        assert LogManager.validate_date_format("not a date") == fallback
        assert LogManager.validate_date_format("%Y-%m-%d") == "%Y-%m-%d"
