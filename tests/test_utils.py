"""Tests for utils.py."""

from finance_agent.models import BudgetStatus, ChatRole
from finance_agent.utils import format_currency, format_percent, get_enum_value


class TestGetEnumValue:
    """Tests for get_enum_value()."""

    def test_enum_returns_value(self):
        assert get_enum_value(ChatRole.MODEL) == "model"
        assert get_enum_value(BudgetStatus.DANGER) == "danger"

    def test_string_returns_string(self):
        assert get_enum_value("warning") == "warning"

    def test_none_returns_empty_string(self):
        assert get_enum_value(None) == ""


class TestFormatCurrency:
    """Tests for format_currency()."""

    def test_thousands_separator(self):
        assert format_currency(138000) == "CHF 138'000"
        assert format_currency(1250000) == "CHF 1'250'000"

    def test_decimals(self):
        assert format_currency(18040, 2) == "CHF 18'040.00"
        assert format_currency(2559.6, 2) == "CHF 2'559.60"

    def test_small_and_negative(self):
        assert format_currency(200) == "CHF 200"
        assert format_currency(-1500) == "CHF -1'500"

    def test_other_currency(self):
        assert format_currency(1000, currency="EUR") == "EUR 1'000"

    def test_infinity(self):
        assert format_currency(float("inf")) == "CHF ∞"


class TestFormatPercent:
    """Tests for format_percent()."""

    def test_default_one_decimal(self):
        assert format_percent(0.1307) == "13.1%"

    def test_decimals(self):
        assert format_percent(0.015, 2) == "1.50%"
        assert format_percent(0.33, 0) == "33%"
