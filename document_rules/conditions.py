"""Evaluation of single rule conditions against a fact bag.

Conditions never raise: an unresolvable field reads as ``None`` and an
unsupported operator evaluates to ``False`` so one malformed rule cannot break
the evaluation of a whole checklist.
"""
from __future__ import annotations

import math
from collections.abc import Iterator, Mapping
from enum import Enum
from typing import Any

from .models import ApplicationConfig, DocumentRuleConfig, Operator, RuleCondition

_ARRAY_TYPES = (list, tuple, set, frozenset)


class FactKey(str, Enum):
    """Top-level keys of the evaluation fact bag."""

    DOCUMENTS = "documents"
    SPOUSE_RELATION_TYPE = "spouseRelationType"
    SPOUSE_FAMILY_NAME = "spouseFamilyName"
    CURRENTLY_IN_CANADA = "currentlyInCanada"
    CURRENT_STATUS = "currentStatus"
    PERSONAL_HISTORY = "personalHistory"
    CHILDREN = "children"
    MARITAL_STATUS = "maritalStatus"


KNOWN_FACT_KEYS = frozenset(key.value for key in FactKey)


def resolve_field(facts: Mapping[str, Any] | None, path: str) -> Any:
    current: Any = facts
    for part in path.split("."):
        if isinstance(current, Mapping):
            current = current.get(part)
        elif isinstance(current, (list, tuple)) and part.isdigit():
            index = int(part)
            current = current[index] if index < len(current) else None
        else:
            return None
        if current is None:
            return None
    return current


def strict_equals(left: Any, right: Any) -> bool:
    # bool is an int subclass; True must not equal 1
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left is right
    if _is_number(left) and _is_number(right):
        return left == right
    if type(left) is not type(right):
        return False
    return left == right


def to_number(value: Any) -> float:
    if isinstance(value, bool):
        return float(value)
    if _is_number(value):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan


def evaluate_condition(condition: RuleCondition | None, facts: Mapping[str, Any] | None) -> bool:
    if condition is None:
        return True

    value = resolve_field(facts, condition.field)
    operator = condition.operator

    if operator == Operator.EQ.value:
        return strict_equals(value, condition.value)
    if operator == Operator.NEQ.value:
        return not strict_equals(value, condition.value)
    if operator == Operator.EXISTS.value:
        # False is a present answer; only absence and "" fail
        return value is not None and value != ""
    if operator == Operator.CONTAINS.value:
        return isinstance(value, _ARRAY_TYPES) and any(strict_equals(item, condition.value) for item in value)
    if operator == Operator.GT.value:
        return to_number(value) > to_number(condition.value)
    return False


def iter_conditions(config: ApplicationConfig) -> Iterator[tuple[str, RuleCondition]]:
    """Yield ``(slot_id, condition)`` for every condition referenced by a config."""
    for group in config.groups:
        templates: list[DocumentRuleConfig] = list(group.slots)
        if group.generator is not None:
            templates.append(group.generator.template)
        for template in templates:
            for condition in (template.visibility_rule, template.unlock_rule):
                if condition is not None:
                    yield template.id, condition


def find_unknown_operators(config: ApplicationConfig) -> list[str]:
    supported = {operator.value for operator in Operator}
    return [
        f"slot '{slot_id}' uses unsupported operator '{condition.operator}'"
        for slot_id, condition in iter_conditions(config)
        if condition.operator not in supported
    ]


def find_unknown_fields(config: ApplicationConfig, known_keys: frozenset[str] = KNOWN_FACT_KEYS) -> list[str]:
    return [
        f"slot '{slot_id}' references unknown fact '{condition.field}'"
        for slot_id, condition in iter_conditions(config)
        if condition.field.split(".", maxsplit=1)[0] not in known_keys
    ]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
