from __future__ import annotations

from pathlib import Path

from .models import (
    ApplicationConfig,
    DocumentGroupConfig,
    DocumentRuleConfig,
    GeneratorConfig,
    RuleCondition,
    SlotRole,
)

WORK_PERMIT_OUTSIDE_CANADA = ApplicationConfig(
    application_type="Work Permit Outside Canada",
    aliases=("Work Permit - Outside Canada (IMM 1295)",),
    groups=(
        DocumentGroupConfig(
            id="identity",
            title="Identity & Status",
            slots=(
                DocumentRuleConfig(
                    id="passport",
                    label="Passport (Applicant)",
                    required=True,
                    role=SlotRole.APPLICANT,
                    document_type="passport",
                ),
                DocumentRuleConfig(
                    id="photo",
                    label="Digital Photo (Applicant)",
                    required=True,
                    role=SlotRole.APPLICANT,
                    document_type="photo",
                ),
                DocumentRuleConfig(
                    id="status_doc",
                    label="Current Status Document",
                    required=True,
                    role=SlotRole.APPLICANT,
                    document_type="status_doc",
                    visibility_rule=RuleCondition(field="currentlyInCanada", operator="eq", value=True),
                    unlock_rule=RuleCondition(field="currentStatus", operator="exists"),
                    lock_message="Select your specific status in the Immigration tab to unlock.",
                ),
            ),
        ),
        DocumentGroupConfig(
            id="family",
            title="Family & Dependents",
            slots=(
                DocumentRuleConfig(
                    id="marriage_cert",
                    label="Marriage Certificate",
                    required=True,
                    role=SlotRole.SPOUSE,
                    document_type="marriage_cert",
                    visibility_rule=RuleCondition(field="spouseRelationType", operator="neq", value="none"),
                    unlock_rule=RuleCondition(field="spouseFamilyName", operator="exists"),
                    lock_message="Enter spouse details in the Family tab to unlock.",
                ),
            ),
            generator=GeneratorConfig(
                type="dependent_children",
                template=DocumentRuleConfig(
                    id="birth_cert_{child_key}",
                    label="Birth Certificate – {child_name}",
                    required=True,
                    role=SlotRole.CHILD,
                    document_type="birth_certificate",
                ),
            ),
        ),
        DocumentGroupConfig(
            id="background",
            title="Background & Police",
            generator=GeneratorConfig(
                type="residence_history_countries",
                template=DocumentRuleConfig(
                    id="police_cert_{country_code}",
                    label="Police Certificate – {country_name}",
                    required=True,
                    role=SlotRole.APPLICANT,
                    document_type="police_certificate",
                ),
            ),
        ),
    ),
)

BUILTIN_CONFIGS: tuple[ApplicationConfig, ...] = (WORK_PERMIT_OUTSIDE_CANADA,)


def load_config_file(path: Path) -> ApplicationConfig:
    return ApplicationConfig.model_validate_json(path.read_text(encoding="utf-8"))


def load_config_dir(directory: Path) -> list[ApplicationConfig]:
    return [load_config_file(path) for path in sorted(directory.glob("*.json"))]
