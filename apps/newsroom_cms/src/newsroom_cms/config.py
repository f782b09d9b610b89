"""Application configuration."""

from __future__ import annotations

from typing import Any, Literal
from urllib.parse import urlparse, urlunparse

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class QuerySettings(BaseModel):
    default_page_size: int = Field(10, ge=1, le=100)
    max_page_size: int = Field(100, ge=1, le=500)
    related_limit: int = Field(4, ge=1, le=20)

    @model_validator(mode="after")
    def validate_page_sizes(self) -> QuerySettings:
        if self.default_page_size > self.max_page_size:
            raise ValueError("default_page_size must not exceed max_page_size")
        return self


class AuditSettings(BaseModel):
    retention_days: int = Field(365, ge=1, le=3650)


class LifecycleSettings(BaseModel):
    candidates_limit: int = Field(50, ge=1, le=500)


class HealthSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = Field(8080, ge=1, le=65535)
    task_token: str | None = None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        env_prefix="",
        env_nested_delimiter="__",
        extra="ignore",
    )

    database_url: str = Field(..., validation_alias="DATABASE_URL")
    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")
    log_format: Literal["json", "console"] = Field("json", validation_alias="LOG_FORMAT")
    sentry_dsn: str | None = Field(default=None, validation_alias="SENTRY_DSN")
    sentry_environment: str | None = Field(default=None, validation_alias="SENTRY_ENVIRONMENT")

    queries: QuerySettings = QuerySettings()
    audit: AuditSettings = AuditSettings()
    lifecycle: LifecycleSettings = LifecycleSettings()
    health: HealthSettings = HealthSettings()

    def public_dict(self) -> dict[str, Any]:
        data = self.model_dump()
        data["database_url"] = _mask_password(self.database_url)
        if data.get("sentry_dsn"):
            data["sentry_dsn"] = "***"
        if data["health"].get("task_token"):
            data["health"]["task_token"] = "***"
        return data


def _mask_password(url: str) -> str:
    parsed = urlparse(url)
    if not parsed.password:
        return url
    netloc = parsed.netloc.replace(f":{parsed.password}@", ":***@", 1)
    return urlunparse(parsed._replace(netloc=netloc))
