from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from typing import Any

from .models import DocumentGroupConfig, DocumentRuleConfig, GeneratorConfig

_PLACEHOLDER = re.compile(r"\{([a-z_]+)\}")
_WHITESPACE = re.compile(r"\s")

DEFAULT_EXCLUDED_COUNTRIES = ("Canada",)

SlotGenerator = Callable[[GeneratorConfig, Mapping[str, Any]], list[DocumentRuleConfig]]

_GENERATORS: dict[str, SlotGenerator] = {}


def substitute(text: str, substitutions: Mapping[str, str]) -> str:
    """Replace ``{name}`` tokens present in ``substitutions``; unknown tokens are left as-is."""
    return _PLACEHOLDER.sub(lambda match: substitutions.get(match.group(1), match.group(0)), text)


def expand_template(template: DocumentRuleConfig, substitutions: Mapping[str, str]) -> DocumentRuleConfig:
    update: dict[str, Any] = {
        "id": substitute(template.id, substitutions),
        "label": substitute(template.label, substitutions),
    }
    if template.lock_message is not None:
        update["lock_message"] = substitute(template.lock_message, substitutions)
    return template.model_copy(update=update)


def normalize_instance_key(value: str) -> str:
    return _WHITESPACE.sub("_", value.lower())


def register_generator(generator_type: str) -> Callable[[SlotGenerator], SlotGenerator]:
    def decorator(func: SlotGenerator) -> SlotGenerator:
        _GENERATORS[generator_type] = func
        return func

    return decorator


def generator_types() -> list[str]:
    return sorted(_GENERATORS)


def distinct_countries(history: Any, exclude: tuple[str, ...] = ()) -> list[str]:
    """Distinct non-empty ``country`` values in first-occurrence order."""
    excluded = {country.casefold() for country in exclude}
    seen: dict[str, None] = {}
    for entry in _as_entries(history):
        country = entry.get("country")
        if not isinstance(country, str):
            continue
        country = country.strip()
        if not country or country.casefold() in excluded:
            continue
        seen.setdefault(country, None)
    return list(seen)


@register_generator("residence_history_countries")
def residence_history_countries(generator: GeneratorConfig, facts: Mapping[str, Any]) -> list[DocumentRuleConfig]:
    exclude = generator.exclude if generator.exclude is not None else DEFAULT_EXCLUDED_COUNTRIES
    return [
        expand_template(
            generator.template,
            {"country_code": normalize_instance_key(country), "country_name": country},
        )
        for country in distinct_countries(facts.get("personalHistory"), exclude)
    ]


@register_generator("dependent_children")
def dependent_children(generator: GeneratorConfig, facts: Mapping[str, Any]) -> list[DocumentRuleConfig]:
    expanded: list[DocumentRuleConfig] = []
    used_keys: set[str] = set()
    for index, child in enumerate(_as_entries(facts.get("children")), start=1):
        name = " ".join(
            str(part).strip() for part in (child.get("givenNames"), child.get("familyName")) if part and str(part).strip()
        )
        child_id = str(child.get("id") or "").strip()
        # Positional keys shift when a child is inserted earlier; a stored id does not.
        if child_id:
            key = normalize_instance_key(child_id)
        elif name:
            key = normalize_instance_key(name)
        else:
            key = str(index)
        if key in used_keys:
            key = f"{key}_{index}"
        used_keys.add(key)
        expanded.append(
            expand_template(
                generator.template,
                {"child_key": key, "child_name": name or f"Child {index}", "child_index": str(index)},
            )
        )
    return expanded


def expand_group(group: DocumentGroupConfig, facts: Mapping[str, Any]) -> list[DocumentRuleConfig]:
    templates = list(group.slots)
    if group.generator is None:
        return templates
    generate = _GENERATORS.get(group.generator.type)
    if generate is None:
        return templates
    return templates + generate(group.generator, facts)


def _as_entries(value: Any) -> list[Mapping[str, Any]]:
    if isinstance(value, Mapping):
        return [value]
    if not isinstance(value, (list, tuple)):
        return []
    return [entry for entry in value if isinstance(entry, Mapping)]
