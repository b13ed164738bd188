from __future__ import annotations

import os
from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseAppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "Peergos"
    ENV: str = "dev"

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "plain"

    # Audit trail (JSON lines file + in-memory view)
    AUDIT_LOG_FILE: str = "storage/audit.log"
    AUDIT_MAX_ENTRIES: int = 1000

    # Storage collaborator
    STORAGE_BACKEND: str = "memory"  # memory | redis
    STORAGE_KEY_PREFIX: str = "peergos:"
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_MAX_CONNECTIONS: int = 5
    REDIS_SOCKET_TIMEOUT_SECONDS: float = 5.0
    ENCRYPTION_KEY: str | None = None  # Fernet key or raw 32-char secret

    # Filing workflow
    DRAFT_AUTOSAVE_DEBOUNCE_SECONDS: float = 0.5
    COMPLIANCE_SCORING_STRATEGY: str = "weighted"  # weighted | penalty

    # FTA submission gateway. When disabled, submissions are simulated locally.
    FTA_API_URL: str | None = None
    FTA_API_KEY: str | None = None
    FTA_SUBMISSION_ENABLED: bool = False
    FTA_REQUEST_TIMEOUT_SECONDS: float = 30.0

    # Optional JSON override for the role/resource permission table
    PERMISSION_MATRIX_FILE: str | None = None

    @field_validator("STORAGE_BACKEND", "COMPLIANCE_SCORING_STRATEGY", mode="before")
    @classmethod
    def lowercase_choice(cls, v):
        """Accept STORAGE_BACKEND=Redis etc. from the environment."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @model_validator(mode="after")
    def _validate_required_fields(self) -> BaseAppSettings:
        if self.STORAGE_BACKEND not in ("memory", "redis"):
            raise ValueError(f"Unsupported STORAGE_BACKEND: {self.STORAGE_BACKEND}")
        if self.COMPLIANCE_SCORING_STRATEGY not in ("weighted", "penalty"):
            raise ValueError(f"Unsupported COMPLIANCE_SCORING_STRATEGY: {self.COMPLIANCE_SCORING_STRATEGY}")

        if self.ENV.lower() == "prod":
            missing: list[str] = []
            if not self.ENCRYPTION_KEY:
                missing.append("ENCRYPTION_KEY")
            if self.FTA_SUBMISSION_ENABLED:
                if not self.FTA_API_URL:
                    missing.append("FTA_API_URL")
                if not self.FTA_API_KEY:
                    missing.append("FTA_API_KEY")
            if missing:
                raise ValueError(f"Missing required production settings: {', '.join(missing)}")
        return self


class DevSettings(BaseAppSettings):
    ENV: str = "dev"


class TestSettings(BaseAppSettings):
    ENV: str = "test"
    AUDIT_LOG_FILE: str = "storage/test-audit.log"
    DRAFT_AUTOSAVE_DEBOUNCE_SECONDS: float = 0.01


class ProdSettings(BaseAppSettings):
    ENV: str = "prod"
    LOG_FORMAT: str = "json"
    STORAGE_BACKEND: str = "redis"


_ENV_TO_SETTINGS: dict[str, type[BaseAppSettings]] = {
    "dev": DevSettings,
    "development": DevSettings,
    "test": TestSettings,
    "testing": TestSettings,
    "prod": ProdSettings,
    "production": ProdSettings,
}


@lru_cache
def get_settings() -> BaseAppSettings:
    env_name = os.getenv("APP_ENV") or os.getenv("ENV") or "dev"
    env = env_name.lower()
    settings_cls = _ENV_TO_SETTINGS.get(env, DevSettings)
    return settings_cls()


settings = get_settings()
