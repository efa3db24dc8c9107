"""Tests for the user-message classifier rules."""

import pytest

from finance_agent.conversation.classifiers import (
    MatchKind,
    age_rule,
    classify,
    extract_age,
    extract_retirement_targets,
    is_confirmation,
    is_short,
    is_value_shaped,
    long_message_rule,
    parse_amount,
    retirement_age_rule,
    retirement_income_rule,
    short_response_rule,
    token_count,
)


class TestExtractAge:
    """Tests for extract_age()."""

    @pytest.mark.parametrize("text,expected", [
        ("I am 30 years old", 30),
        ("I'm 45 yrs old", 45),
        ("I am 52", 52),
        ("my age is 38", 38),
        ("age: 61", 61),
        ("27 years", 27),
    ])
    def test_age_phrases(self, text, expected):
        assert extract_age(text) == expected

    def test_retirement_age_is_not_current_age(self):
        assert extract_age("I want to retire at age 60") is None

    def test_current_age_next_to_retirement_age(self):
        assert extract_age("I am 35 and want to retire at age 60") == 35

    @pytest.mark.parametrize("text", ["I am 0", "I am 150", "no numbers here"])
    def test_out_of_range_or_missing(self, text):
        assert extract_age(text) is None


class TestRules:
    """Tests for the individual rules."""

    def test_age_rule(self):
        match = age_rule("I am 30 years old")
        assert match.kind == MatchKind.AGE
        assert match.value == 30

    def test_retirement_age_rule(self):
        match = retirement_age_rule("I'd like to retire at 62")
        assert match.kind == MatchKind.RETIREMENT_AGE
        assert match.value == 62

    def test_retirement_income_rule_multiplies_by_thousand(self):
        assert retirement_income_rule("I need 80k CHF in retirement").value == 80000
        assert retirement_income_rule("about 72.5k per year").value == 72500

    def test_retirement_income_needs_unit(self):
        assert retirement_income_rule("80k") is None

    def test_short_response_rule_skips_facts(self):
        facts = [age_rule("I am 30")]
        assert short_response_rule("I am 30", facts) is None
        assert short_response_rule("35", []).kind == MatchKind.SHORT_RESPONSE

    def test_long_message_rule(self):
        assert long_message_rule("yes", []) is None
        assert long_message_rule("How much tax will I pay this year?", []).kind == (
            MatchKind.LONG_MESSAGE
        )


class TestClassify:
    """Tests for classify() rule ordering."""

    def test_blank_input(self):
        assert classify("") == []
        assert classify("   ") == []

    def test_bare_number_is_short_response(self):
        assert [m.kind for m in classify("35")] == [MatchKind.SHORT_RESPONSE]

    def test_short_age_statement_is_a_fact(self):
        assert [m.kind for m in classify("I am 30 years old")] == [MatchKind.AGE]

    def test_facts_come_before_shape(self):
        kinds = [m.kind for m in classify("I want to retire at age 60 with 80k CHF per year")]
        assert kinds == [
            MatchKind.RETIREMENT_AGE,
            MatchKind.RETIREMENT_INCOME,
            MatchKind.LONG_MESSAGE,
        ]


class TestShapes:
    """Tests for the shape helpers."""

    def test_token_count(self):
        assert token_count("  one two   three ") == 3

    def test_is_short(self):
        assert is_short("one two three four five")
        assert not is_short("one two three four five six")
        assert not is_short("   ")
        assert is_short("one two three", max_tokens=3)

    @pytest.mark.parametrize("text", ["35", "1.5k", "2M", "3.5%", "CHF 900'000", "1m chf", "120,000"])
    def test_value_shaped(self, text):
        assert is_value_shaped(text)

    @pytest.mark.parametrize("text", ["yes", "about 35", "35 years", "k"])
    def test_not_value_shaped(self, text):
        assert not is_value_shaped(text)

    @pytest.mark.parametrize("text", ["yes", "Yes", "ok", "sure", "no", "correct"])
    def test_confirmation(self, text):
        assert is_confirmation(text)

    def test_confirmation_is_whole_message(self):
        assert not is_confirmation("yes please")


class TestParseAmount:
    """Tests for parse_amount()."""

    @pytest.mark.parametrize("text,expected", [
        ("1.5m", 1_500_000),
        ("85k", 85_000),
        ("900'000 CHF", 900_000),
        ("CHF 1,200,000", 1_200_000),
        ("2 million", 2_000_000),
        ("5 mio", 5_000_000),
        ("3 months", 3),
        ("42", 42),
    ])
    def test_amounts(self, text, expected):
        assert parse_amount(text) == pytest.approx(expected)

    def test_no_number(self):
        assert parse_amount("no numbers here") is None


class TestExtractRetirementTargets:
    """Tests for extract_retirement_targets()."""

    def test_collects_from_several_messages(self):
        targets = extract_retirement_targets([
            "I am 30 years old",
            "I want to retire at age 60",
            "I'd like 80k CHF per year",
        ])
        assert targets == {
            "current_age": 30,
            "target_retirement_age": 60,
            "target_annual_income": 80000,
        }

    def test_later_messages_win(self):
        targets = extract_retirement_targets(["retire at 60", "actually retire at 58"])
        assert targets == {"target_retirement_age": 58}

    def test_nothing_found(self):
        assert extract_retirement_targets(["hello", "what about taxes?"]) == {}
