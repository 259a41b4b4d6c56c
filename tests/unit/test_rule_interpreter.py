"""
Unit Tests for the declarative rule interpreter
"""

import pytest

from app.domain.strategy.rule_interpreter import (
    apply_rules,
    build_facts,
    first_match,
    matches,
    matching_reasons,
    render,
    validate_condition,
)

FACTS = {"vix": 22.0, "hy_oas": 480.0, "btc_trend": "bearish", "liquidity_score": 38.0}


class TestMatches:

    def test_empty_condition_always_matches(self):
        assert matches(None, FACTS)
        assert matches({}, FACTS)

    def test_every_field_and_operator_must_hold(self):
        assert matches({"vix": {"gt": 20, "lt": 25}}, FACTS)
        assert not matches({"vix": {"gt": 20}, "hy_oas": {"lt": 450}}, FACTS)

    def test_any_all_and_at_least(self):
        assert matches({"any": [{"vix": {"gt": 30}}, {"btc_trend": {"eq": "bearish"}}]}, FACTS)
        assert not matches({"all": [{"vix": {"gt": 30}}, {"btc_trend": {"eq": "bearish"}}]}, FACTS)
        cond = {"at_least": {"count": 2, "of": [
            {"vix": {"gt": 20}},
            {"hy_oas": {"gt": 500}},
            {"liquidity_score": {"lt": 40}},
        ]}}
        assert matches(cond, FACTS)

    def test_in_and_abs_operators(self):
        assert matches({"btc_trend": {"in": ["bearish", "neutral"]}}, FACTS)
        assert matches({"vix": {"abs_gt": 20}}, {"vix": -21.0})
        assert matches({"vix": {"abs_lt": 5}}, {"vix": -4.0})


class TestApplyRules:

    def test_group_acts_as_if_elif(self):
        rules = [
            {"group": "credit", "when": {"hy_oas": {"gt": 450}}, "delta": -30, "reason": "stress"},
            {"group": "credit", "delta": 10, "reason": "calm"},
            {"delta": 5, "reason": "always"},
        ]
        applied = apply_rules(rules, FACTS)
        assert [r.reason for r in applied] == ["stress", "always"]
        assert [r.bucket for r in applied] == ["hurts", "helps"]

    def test_group_falls_through_to_default(self):
        rules = [
            {"group": "g", "when": {"vix": {"gt": 40}}, "delta": 10, "reason": "high"},
            {"group": "g", "delta": -5, "reason": "VIX {vix:g}"},
        ]
        applied = apply_rules(rules, FACTS)
        assert len(applied) == 1
        assert applied[0].delta == -5
        assert applied[0].reason == "VIX 22"

    def test_zero_delta_with_explicit_bucket(self):
        applied = apply_rules([{"delta": 0, "bucket": "helps", "reason": "structural"}], FACTS)
        assert applied[0].bucket == "helps"
        assert applied[0].delta == 0


def test_matching_reasons_and_first_match():
    entries = [
        {"when": {"vix": {"gt": 30}}, "reason": "panic"},
        {"when": {"btc_trend": {"eq": "bearish"}}, "reason": "BTC {btc_trend}"},
    ]
    assert matching_reasons(entries, FACTS) == ["BTC bearish"]
    rows = [{"when": {"vix": {"gt": 30}}, "name": "a"}, {"name": "default"}]
    assert first_match(rows, FACTS)["name"] == "default"
    assert render("HY {hy_oas:g}bp", FACTS) == "HY 480bp"


def test_build_facts_adds_btc_distance(mock_inputs):
    facts = build_facts(mock_inputs)
    assert facts["btc_trend"] == "bearish"
    assert facts["btc_distance_pct"] == pytest.approx(-12.5)
    assert facts["btc_distance_abs"] == pytest.approx(12.5)
    assert facts["btc_above_ma"] is False


class TestValidateCondition:

    def test_accepts_known_fields(self):
        validate_condition({"hy_oas": {"gt": 450}, "any": [{"vix": {"ge": 25}}]}, "here")

    @pytest.mark.parametrize("condition, message", [
        ({"nope": {"gt": 1}}, "unknown field"),
        ({"vix": {"between": 1}}, "unknown operator"),
        ({"vix": {"in": 5}}, "needs a list"),
        ({"any": []}, "non-empty list"),
        ({"at_least": {"count": 3, "of": [{"vix": {"gt": 1}}]}}, "count out of range"),
    ])
    def test_rejects_malformed(self, condition, message):
        with pytest.raises(ValueError, match=message):
            validate_condition(condition, "scoring.test")
