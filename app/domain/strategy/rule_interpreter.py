"""
Declarative rule interpreter.

Scoring rules, gates, cautions and the regime table are plain data loaded
from YAML. This module is the only place that evaluates them.

Condition grammar:
    {field: {op: value, ...}, ...}     every field/op pair must hold
    {"all": [cond, ...]}                every sub-condition holds
    {"any": [cond, ...]}                at least one holds
    {"at_least": {"count": n, "of": [cond, ...]}}
An empty or missing condition always matches.
"""

import operator
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from app.domain.models import MACRO_INPUT_ALIASES, MacroInputs

OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "lt": operator.lt,
    "le": operator.le,
    "gt": operator.gt,
    "ge": operator.ge,
    "eq": operator.eq,
    "ne": operator.ne,
    "in": lambda left, right: left in right,
    "abs_gt": lambda left, right: abs(left) > right,
    "abs_lt": lambda left, right: abs(left) < right,
}

COMBINATORS = ("all", "any", "at_least")

DERIVED_FACTS = ("btc_distance_pct", "btc_distance_abs", "btc_above_ma")

KNOWN_FACTS = frozenset(MACRO_INPUT_ALIASES) | frozenset(DERIVED_FACTS)


@dataclass(frozen=True)
class AppliedRule:
    delta: int
    reason: str
    bucket: str


def build_facts(inputs: MacroInputs) -> Dict[str, Any]:
    """Flatten inputs into the namespace conditions and templates read from"""
    facts: Dict[str, Any] = {}
    for name in MACRO_INPUT_ALIASES:
        value = getattr(inputs, name)
        facts[name] = value.value if isinstance(value, Enum) else value
    distance = inputs.btc_distance_pct
    facts["btc_distance_pct"] = distance
    facts["btc_distance_abs"] = abs(distance)
    facts["btc_above_ma"] = inputs.btc_price > inputs.btc_200dma
    return facts


def validate_condition(condition: Optional[Mapping[str, Any]], where: str) -> None:
    """Raise ValueError for unknown fields, operators or malformed combinators"""
    if not condition:
        return
    if not isinstance(condition, Mapping):
        raise ValueError(f"{where}: condition must be a mapping")
    for key, spec in condition.items():
        if key in ("all", "any"):
            if not isinstance(spec, list) or not spec:
                raise ValueError(f"{where}: '{key}' needs a non-empty list")
            for i, sub in enumerate(spec):
                validate_condition(sub, f"{where}.{key}[{i}]")
        elif key == "at_least":
            if not isinstance(spec, Mapping) or "count" not in spec or "of" not in spec:
                raise ValueError(f"{where}: 'at_least' needs count and of")
            if not 1 <= int(spec["count"]) <= len(spec["of"]):
                raise ValueError(f"{where}: 'at_least' count out of range")
            for i, sub in enumerate(spec["of"]):
                validate_condition(sub, f"{where}.at_least[{i}]")
        else:
            if key not in KNOWN_FACTS:
                raise ValueError(f"{where}: unknown field '{key}'")
            if not isinstance(spec, Mapping) or not spec:
                raise ValueError(f"{where}: field '{key}' needs an operator mapping")
            for op, value in spec.items():
                if op not in OPERATORS:
                    raise ValueError(f"{where}: unknown operator '{op}' on '{key}'")
                if op == "in" and not isinstance(value, list):
                    raise ValueError(f"{where}: 'in' on '{key}' needs a list")


def matches(condition: Optional[Mapping[str, Any]], facts: Mapping[str, Any]) -> bool:
    if not condition:
        return True
    for key, spec in condition.items():
        if key == "all":
            ok = all(matches(sub, facts) for sub in spec)
        elif key == "any":
            ok = any(matches(sub, facts) for sub in spec)
        elif key == "at_least":
            ok = sum(1 for sub in spec["of"] if matches(sub, facts)) >= int(spec["count"])
        else:
            ok = all(OPERATORS[op](facts[key], value) for op, value in spec.items())
        if not ok:
            return False
    return True


def render(template: str, facts: Mapping[str, Any]) -> str:
    return template.format_map(facts)


def apply_rules(rules: Sequence[Mapping[str, Any]], facts: Mapping[str, Any]) -> List[AppliedRule]:
    """
    Walk rules in order. Rules sharing a group behave as if/elif: once one
    member of a group applies, the rest of that group is skipped.
    """
    settled_groups = set()
    applied: List[AppliedRule] = []
    for rule in rules:
        group = rule.get("group")
        if group is not None and group in settled_groups:
            continue
        if not matches(rule.get("when"), facts):
            continue
        if group is not None:
            settled_groups.add(group)
        delta = int(rule.get("delta", 0))
        bucket = rule.get("bucket") or ("hurts" if delta < 0 else "helps")
        applied.append(AppliedRule(delta=delta, reason=render(rule["reason"], facts), bucket=bucket))
    return applied


def matching_reasons(entries: Sequence[Mapping[str, Any]], facts: Mapping[str, Any]) -> List[str]:
    """Rendered reasons of every entry whose condition holds (gates, cautions)"""
    return [render(e["reason"], facts) for e in entries if matches(e.get("when"), facts)]


def first_match(rows: Sequence[Mapping[str, Any]], facts: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
    for row in rows:
        if matches(row.get("when"), facts):
            return row
    return None
