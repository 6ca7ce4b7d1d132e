from .authorization import authorize_upload, storage_path_for, validate_file
from .conditions import FactKey, evaluate_condition, resolve_field
from .configs import WORK_PERMIT_OUTSIDE_CANADA, load_config_file
from .engine import evaluate_documents, find_slot, iter_slots
from .exceptions import (
    ApplicantNotFound,
    ApplicationNotFound,
    ConfigNotFound,
    DocumentNotFound,
    FileTooLarge,
    InvalidRuleConfig,
    NotFoundError,
    PersistenceFailure,
    SlotLocked,
    SlotNotFound,
    StorageError,
    TransientPersistenceError,
    UnsupportedFileType,
    UploadRejected,
)
from .facts import build_case_facts, build_evaluation_facts
from .models import (
    ApplicantRecord,
    ApplicationConfig,
    ApplicationRecord,
    CaseFacts,
    DocumentFile,
    DocumentGroup,
    DocumentGroupConfig,
    DocumentRecord,
    DocumentRuleConfig,
    DocumentSlot,
    FileStatus,
    GeneratorConfig,
    Operator,
    RuleCondition,
    SlotRole,
    SlotStatus,
)
from .readiness import ReadinessSummary, compute_readiness
from .registry import ConfigRegistry, RegistrySettings, build_default_registry
from .status import derive_status
from .templates import expand_group, expand_template

__all__ = [
    "authorize_upload",
    "storage_path_for",
    "validate_file",
    "FactKey",
    "evaluate_condition",
    "resolve_field",
    "WORK_PERMIT_OUTSIDE_CANADA",
    "load_config_file",
    "evaluate_documents",
    "find_slot",
    "iter_slots",
    "ApplicantNotFound",
    "ApplicationNotFound",
    "ConfigNotFound",
    "DocumentNotFound",
    "FileTooLarge",
    "InvalidRuleConfig",
    "NotFoundError",
    "PersistenceFailure",
    "SlotLocked",
    "SlotNotFound",
    "StorageError",
    "TransientPersistenceError",
    "UnsupportedFileType",
    "UploadRejected",
    "build_case_facts",
    "build_evaluation_facts",
    "ApplicantRecord",
    "ApplicationConfig",
    "ApplicationRecord",
    "CaseFacts",
    "DocumentFile",
    "DocumentGroup",
    "DocumentGroupConfig",
    "DocumentRecord",
    "DocumentRuleConfig",
    "DocumentSlot",
    "FileStatus",
    "GeneratorConfig",
    "Operator",
    "RuleCondition",
    "SlotRole",
    "SlotStatus",
    "ReadinessSummary",
    "compute_readiness",
    "ConfigRegistry",
    "RegistrySettings",
    "build_default_registry",
    "derive_status",
    "expand_group",
    "expand_template",
]
