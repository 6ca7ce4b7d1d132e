from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

import structlog
from pydantic_settings import BaseSettings, SettingsConfigDict

from .conditions import KNOWN_FACT_KEYS, find_unknown_fields, find_unknown_operators
from .configs import BUILTIN_CONFIGS, load_config_dir
from .exceptions import ConfigNotFound, InvalidRuleConfig
from .models import ApplicationConfig
from .templates import generator_types

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


class RegistrySettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="DOCUMENT_RULES_", extra="forbid")

    strict_validation: bool = True
    rules_dir: Path | None = None


def normalize_application_type(application_type: str) -> str:
    return _NON_ALNUM.sub(" ", application_type.lower()).strip()


def validate_config(config: ApplicationConfig, known_keys: frozenset[str] = KNOWN_FACT_KEYS) -> list[str]:
    problems = find_unknown_operators(config) + find_unknown_fields(config, known_keys)
    known_generators = set(generator_types())
    for group in config.groups:
        if group.generator is not None and group.generator.type not in known_generators:
            problems.append(f"group '{group.id}' uses unknown generator '{group.generator.type}'")
        if not group.slots and group.generator is None:
            problems.append(f"group '{group.id}' has neither slots nor a generator")
    return problems


@dataclass
class ConfigRegistry:
    """Single registry of rule configs keyed by normalized application type."""

    strict: bool = True
    known_fact_keys: frozenset[str] = KNOWN_FACT_KEYS
    _configs: dict[str, ApplicationConfig] = field(default_factory=dict)
    _logger: structlog.stdlib.BoundLogger = field(default_factory=lambda: structlog.get_logger("document_rules.registry"))

    def register(self, config: ApplicationConfig) -> None:
        problems = validate_config(config, self.known_fact_keys)
        if problems and self.strict:
            raise InvalidRuleConfig(config.application_type, problems)
        if problems:
            self._logger.warning("rule_config_problems", application_type=config.application_type, problems=problems)
        for name in (config.application_type, *config.aliases):
            self._configs[normalize_application_type(name)] = config
        self._logger.info(
            "rule_config_registered",
            application_type=config.application_type,
            aliases=list(config.aliases),
            groups=[group.id for group in config.groups],
        )

    def get_config(self, application_type: str | None) -> ApplicationConfig:
        key = normalize_application_type(application_type or "")
        config = self._configs.get(key)
        if config is None:
            raise ConfigNotFound(f"No document rules registered for application type '{application_type}'")
        return config

    def has_config(self, application_type: str) -> bool:
        return normalize_application_type(application_type) in self._configs

    def application_types(self) -> list[str]:
        return sorted({config.application_type for config in self._configs.values()})


def build_default_registry(settings: RegistrySettings | None = None) -> ConfigRegistry:
    settings = settings or RegistrySettings()
    registry = ConfigRegistry(strict=settings.strict_validation)
    for config in BUILTIN_CONFIGS:
        registry.register(config)
    if settings.rules_dir is not None:
        for config in load_config_dir(settings.rules_dir):
            registry.register(config)
    return registry
