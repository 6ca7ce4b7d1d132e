class NotFoundError(Exception):
    """Raised when a requested record or configuration does not exist."""


class ConfigNotFound(NotFoundError):
    """Raised when an application type has no registered rule configuration."""


class ApplicationNotFound(NotFoundError):
    """Raised when the application row cannot be loaded."""


class ApplicantNotFound(NotFoundError):
    """Raised when the applicant row referenced by an application cannot be loaded."""


class DocumentNotFound(NotFoundError):
    """Raised when a document row cannot be loaded."""


class InvalidRuleConfig(Exception):
    """Raised when a rule configuration fails the registration-time validation pass."""

    def __init__(self, application_type: str, problems: list[str]):
        self.application_type = application_type
        self.problems = problems
        super().__init__(f"Invalid rule config '{application_type}': {'; '.join(problems)}")


class UploadRejected(Exception):
    """Raised when an upload request is refused; the reason is shown to the end user."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class SlotNotFound(UploadRejected):
    """Raised when the target slot is not part of the evaluated slot set."""

    def __init__(self, slot_id: str):
        self.slot_id = slot_id
        super().__init__(f"Invalid slotId: {slot_id} for this application type")


class SlotLocked(UploadRejected):
    """Raised when the target slot is visible but locked."""

    def __init__(self, slot_id: str, lock_message: str | None = None):
        self.slot_id = slot_id
        self.lock_message = lock_message
        super().__init__(f"Slot is locked. {lock_message or ''}".strip())


class FileTooLarge(UploadRejected):
    """Raised when an uploaded file exceeds the configured size limit."""


class UnsupportedFileType(UploadRejected):
    """Raised when an uploaded file has a mime type outside the allow-list."""


class PersistenceFailure(Exception):
    """Raised when case data cannot be read or written."""


class TransientPersistenceError(PersistenceFailure):
    """Raised by stores for failures worth retrying."""


class StorageError(Exception):
    """Raised by the object store."""
