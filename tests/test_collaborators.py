"""
Collaborator Test Suite

Coverage:
  - ReservableTokenLedger: deposit / withdraw / reserve / release
  - SignedOriginAuth: unsigned origins, malformed accounts, keyed signatures
  - Events and sinks: to_dict wire form, InMemoryEventSink, LoggingEventSink
"""

import logging
import os
import sys
from decimal import Decimal

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from quadvote.exceptions import (
    InsufficientBalanceError,
    TokenLedgerError,
    UnauthorizedError,
)
from quadvote.tokens import ReservableTokenLedger
from quadvote.voting import (
    InMemoryEventSink,
    LoggingEventSink,
    Origin,
    ProposalAdded,
    SignedOriginAuth,
    UserRegistered,
    UserUnregistered,
    VoteDeposited,
    sign_origin,
)


# ══════════════════════════════════════════════════════════════════════
#  TOKEN LEDGER
# ══════════════════════════════════════════════════════════════════════


class TestReservableTokenLedger:

    def test_prefunded_balances(self):
        ledger = ReservableTokenLedger({"alice": 1500, "bob": "2.5"})
        assert ledger.free_balance_of("alice") == Decimal(1500)
        assert ledger.free_balance_of("bob") == Decimal("2.5")
        assert ledger.free_balance_of("carol") == Decimal(0)

    def test_reserve_moves_to_reserved(self):
        ledger = ReservableTokenLedger({"alice": 1500})
        ledger.reserve("alice", Decimal(1000))
        assert ledger.free_balance_of("alice") == Decimal(500)
        assert ledger.reserved_balance_of("alice") == Decimal(1000)
        assert ledger.total_balance_of("alice") == Decimal(1500)

    def test_reserve_insufficient(self):
        ledger = ReservableTokenLedger({"alice": 999})
        with pytest.raises(InsufficientBalanceError):
            ledger.reserve("alice", Decimal(1000))
        assert ledger.free_balance_of("alice") == Decimal(999)
        assert ledger.reserved_balance_of("alice") == Decimal(0)

    def test_release(self):
        ledger = ReservableTokenLedger({"alice": 1000})
        ledger.reserve("alice", Decimal(1000))
        ledger.release("alice", Decimal(1000))
        assert ledger.free_balance_of("alice") == Decimal(1000)
        assert ledger.reserved_balance_of("alice") == Decimal(0)

    def test_release_more_than_reserved(self):
        ledger = ReservableTokenLedger({"alice": 1000})
        with pytest.raises(TokenLedgerError):
            ledger.release("alice", Decimal(1))

    def test_deposit_and_withdraw(self):
        ledger = ReservableTokenLedger()
        ledger.deposit("alice", Decimal(10))
        ledger.withdraw("alice", Decimal(4))
        assert ledger.free_balance_of("alice") == Decimal(6)
        with pytest.raises(InsufficientBalanceError):
            ledger.withdraw("alice", Decimal(7))
        with pytest.raises(TokenLedgerError):
            ledger.deposit("alice", Decimal(-1))

    def test_to_dict(self):
        ledger = ReservableTokenLedger({"alice": 1000})
        ledger.reserve("alice", Decimal(400))
        assert ledger.to_dict() == {"alice": {"free": "600", "reserved": "400"}}


# ══════════════════════════════════════════════════════════════════════
#  AUTH
# ══════════════════════════════════════════════════════════════════════


class TestSignedOriginAuth:

    def test_signed_origin(self):
        assert SignedOriginAuth().verify(Origin.signed("alice")) == "alice"

    def test_unsigned_origin(self):
        with pytest.raises(UnauthorizedError):
            SignedOriginAuth().verify(Origin.unsigned())

    def test_non_origin(self):
        with pytest.raises(UnauthorizedError):
            SignedOriginAuth().verify("alice")

    @pytest.mark.parametrize("account", ["", "has space", "x" * 129, "tab\tbed"])
    def test_malformed_account(self, account):
        with pytest.raises(UnauthorizedError):
            SignedOriginAuth().verify(Origin.signed(account))

    def test_keyed_signature_required(self):
        auth = SignedOriginAuth({"alice": b"secret"})
        with pytest.raises(UnauthorizedError):
            auth.verify(Origin.signed("alice"))
        with pytest.raises(UnauthorizedError):
            auth.verify(Origin.signed("alice", sign_origin("alice", b"wrong")))
        good = Origin.signed("alice", sign_origin("alice", b"secret"))
        assert auth.verify(good) == "alice"

    def test_add_secret(self):
        auth = SignedOriginAuth()
        auth.add_secret("bob", b"k")
        with pytest.raises(UnauthorizedError):
            auth.verify(Origin.signed("bob"))


# ══════════════════════════════════════════════════════════════════════
#  EVENTS
# ══════════════════════════════════════════════════════════════════════


class TestEvents:

    def test_proposal_added_to_dict(self):
        data = ProposalAdded(proposer="alice", proposal_id=b"\xab", timestamp=1.0).to_dict()
        assert data == {
            "event": "ProposalAdded",
            "proposer": "alice",
            "proposalId": "0xab",
            "timestamp": 1.0,
        }

    def test_vote_deposited_to_dict(self):
        data = VoteDeposited(voter="bob", proposal_id=b"p", delta=-3).to_dict()
        assert data["event"] == "VoteDeposited"
        assert data["delta"] == -3
        assert data["proposalId"] == "0x70"

    def test_unregistered_defaults_refunded(self):
        assert UserUnregistered(account="alice").refunded is True

    def test_events_are_frozen(self):
        event = UserRegistered(account="alice")
        with pytest.raises(AttributeError):
            event.account = "bob"


class TestEventSinks:

    def test_in_memory_sink(self):
        sink = InMemoryEventSink()
        sink.emit(UserRegistered(account="alice"))
        sink.emit(VoteDeposited(voter="alice", proposal_id=b"p", delta=1))
        assert len(sink) == 2
        assert isinstance(sink.last, VoteDeposited)
        assert [e.account for e in sink.of_type(UserRegistered)] == ["alice"]
        sink.clear()
        assert sink.last is None

    def test_in_memory_sink_cap(self):
        sink = InMemoryEventSink(max_events=2)
        for account in ("a", "b", "c"):
            sink.emit(UserRegistered(account=account))
        assert [e.account for e in sink.events] == ["b", "c"]

    def test_logging_sink(self, caplog):
        sink = LoggingEventSink()
        with caplog.at_level(logging.INFO, logger="quadvote.events"):
            sink.emit(VoteDeposited(voter="alice", proposal_id=b"p", delta=2))
        assert "[VoteDeposited]" in caplog.text
        assert "voter=alice" in caplog.text
        assert "delta=2" in caplog.text
