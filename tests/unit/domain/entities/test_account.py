"""Unit tests for the Account entity."""

from decimal import Decimal

import pytest

from margin_engine.domain.entities import Account
from margin_engine.domain.exceptions_trading import InsufficientFundsException


class TestAccount:
    """Test account ledger operations."""

    def test_available_funds_default_to_balance_minus_used(self):
        account = Account(user_id="u", balance=Decimal("100"), used_margin=Decimal("30"))
        assert account.available_funds == Decimal("70")

    def test_stored_available_funds_are_kept(self):
        account = Account(
            user_id="u",
            balance=Decimal("100"),
            used_margin=Decimal("30"),
            available_funds=Decimal("-5"),
        )

        account.settle_close(Decimal("30"), Decimal("0"))

        assert account.available_funds == Decimal("25")

    def test_reserve_margin(self, account):
        account.reserve_margin(Decimal("2.2"), symbol="EURUSD")

        assert account.used_margin == Decimal("2.2")
        assert account.available_funds == Decimal("9997.8")
        assert account.balance == Decimal("10000")
        assert account.updated_at is not None

    def test_reserve_more_than_available(self):
        account = Account(user_id="u", balance=Decimal("10"))

        with pytest.raises(InsufficientFundsException) as exc_info:
            account.reserve_margin(Decimal("10.01"))

        assert exc_info.value.required_amount == Decimal("10.01")
        assert account.used_margin == Decimal("0")
        assert account.available_funds == Decimal("10")

    def test_reserve_exactly_available(self):
        account = Account(user_id="u", balance=Decimal("10"))
        account.reserve_margin(Decimal("10"))
        assert account.available_funds == Decimal("0")

    def test_settle_close_with_profit(self, account):
        account.reserve_margin(Decimal("2.2"))

        account.settle_close(Decimal("2.2"), Decimal("5"))

        assert account.used_margin == Decimal("0")
        assert account.available_funds == Decimal("10005")
        assert account.balance == Decimal("10005")
        assert account.realized_pnl == Decimal("5")

    def test_settle_close_loss_may_leave_available_negative(self):
        account = Account(user_id="u", balance=Decimal("10"))
        account.reserve_margin(Decimal("10"))

        account.settle_close(Decimal("10"), Decimal("-25"))

        assert account.available_funds == Decimal("-15")
        assert account.balance == Decimal("-15")

    def test_cannot_release_more_than_used(self, account):
        account.reserve_margin(Decimal("1"))
        with pytest.raises(ValueError):
            account.settle_close(Decimal("2"), Decimal("0"))

    def test_equity_and_free_margin(self):
        account = Account(user_id="u", balance=Decimal("1000"), used_margin=Decimal("100"))

        assert account.equity(Decimal("-50")) == Decimal("950")
        assert account.free_margin(Decimal("-50")) == Decimal("850")

    @pytest.mark.parametrize(
        "fields",
        [
            {"user_id": ""},
            {"user_id": "u", "used_margin": Decimal("-1")},
            {"user_id": "u", "margin_call_level": Decimal("0")},
        ],
    )
    def test_validation(self, fields):
        with pytest.raises(ValueError):
            Account(**fields)
