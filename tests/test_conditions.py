from __future__ import annotations

from typing import Any

from document_rules.conditions import evaluate_condition, find_unknown_fields, find_unknown_operators, resolve_field
from document_rules.configs import WORK_PERMIT_OUTSIDE_CANADA
from document_rules.models import ApplicationConfig, DocumentGroupConfig, DocumentRuleConfig, RuleCondition, SlotRole


def _cond(field: str, operator: str, value: Any = None) -> RuleCondition:
    return RuleCondition(field=field, operator=operator, value=value)


def _config_with_rule(condition: RuleCondition) -> ApplicationConfig:
    return ApplicationConfig(
        application_type="Test",
        groups=(
            DocumentGroupConfig(
                id="g",
                title="G",
                slots=(
                    DocumentRuleConfig(
                        id="slot",
                        label="Slot",
                        role=SlotRole.APPLICANT,
                        document_type="doc",
                        visibility_rule=condition,
                    ),
                ),
            ),
        ),
    )


def test_missing_condition_always_applies() -> None:
    assert evaluate_condition(None, {}) is True


def test_resolve_field_walks_dot_path() -> None:
    facts = {"a": {"b": {"c": 3}}, "history": [{"country": "India"}]}
    assert resolve_field(facts, "a.b.c") == 3
    assert resolve_field(facts, "a.x.c") is None
    assert resolve_field(facts, "a.b.c.d") is None
    assert resolve_field(facts, "history.0.country") == "India"
    assert resolve_field(facts, "history.5.country") is None


def test_eq_is_strict() -> None:
    assert evaluate_condition(_cond("flag", "eq", True), {"flag": True}) is True
    assert evaluate_condition(_cond("flag", "eq", True), {"flag": 1}) is False
    assert evaluate_condition(_cond("n", "eq", 1), {"n": "1"}) is False
    assert evaluate_condition(_cond("n", "eq", 2), {"n": 2.0}) is True


def test_neq_passes_on_absent_field() -> None:
    assert evaluate_condition(_cond("spouseRelationType", "neq", "none"), {}) is True
    assert evaluate_condition(_cond("spouseRelationType", "neq", "none"), {"spouseRelationType": "none"}) is False


def test_exists_treats_false_as_present_and_empty_string_as_absent() -> None:
    condition = _cond("x", "exists")
    assert evaluate_condition(condition, {"x": False}) is True
    assert evaluate_condition(condition, {"x": 0}) is True
    assert evaluate_condition(condition, {"x": ""}) is False
    assert evaluate_condition(condition, {"x": None}) is False
    assert evaluate_condition(condition, {}) is False


def test_contains_requires_an_array() -> None:
    assert evaluate_condition(_cond("tags", "contains", "a"), {"tags": ["a", "b"]}) is True
    assert evaluate_condition(_cond("tags", "contains", "a"), {"tags": "abc"}) is False
    assert evaluate_condition(_cond("tags", "contains", True), {"tags": [1]}) is False
    assert evaluate_condition(_cond("tags", "contains", "a"), {}) is False


def test_gt_coerces_numbers_and_nan_is_false() -> None:
    assert evaluate_condition(_cond("n", "gt", 3), {"n": "5"}) is True
    assert evaluate_condition(_cond("n", "gt", "3"), {"n": 2}) is False
    assert evaluate_condition(_cond("n", "gt", 0), {"n": "abc"}) is False
    assert evaluate_condition(_cond("n", "gt", -1), {}) is False
    assert evaluate_condition(_cond("n", "gt", 0), {"n": True}) is True


def test_unknown_operator_fails_closed() -> None:
    condition = _cond("n", "between", [1, 2])
    assert evaluate_condition(condition, {"n": 1}) is False
    assert find_unknown_operators(_config_with_rule(condition)) == ["slot 'slot' uses unsupported operator 'between'"]


def test_unknown_fact_keys_are_reported() -> None:
    assert find_unknown_fields(WORK_PERMIT_OUTSIDE_CANADA) == []
    problems = find_unknown_fields(_config_with_rule(_cond("spouseFamilyNmae", "exists")))
    assert problems == ["slot 'slot' references unknown fact 'spouseFamilyNmae'"]
