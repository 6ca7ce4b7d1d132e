from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class ServiceSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CASEFILE_", extra="ignore")

    documents_bucket: str = "documents"
    signed_url_ttl_seconds: int = 60 * 10
    max_file_bytes: int = 10 * 1024 * 1024
    allowed_mime_types: list[str] = ["application/pdf", "image/jpeg", "image/png", "image/jpg"]
    default_application_type: str = "Work Permit Outside Canada"
    persistence_retry_attempts: int = 3
    persistence_retry_backoff_seconds: float = 0.1
    log_json: bool = True


settings = ServiceSettings()
