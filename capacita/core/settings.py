from __future__ import annotations

from typing import Iterable, List

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """Centralise configuration with validation for production hardening."""

    db_engine: str = Field(default="postgresql+psycopg")
    db_host: str = Field(default="localhost")
    db_port: int = Field(default=5432)
    db_name: str = Field(default="capacita")
    db_user: str = Field(default="capacita_user")
    db_pass: str = Field(default="supersecret")
    database_url: str | None = Field(default=None)
    db_pool_size: int = Field(default=8, ge=1, le=32)
    db_max_overflow: int = Field(default=0, ge=0, le=32)
    db_pool_timeout: int = Field(default=20, ge=1)
    db_pool_recycle: int = Field(default=1800, ge=30)

    API_ORIGIN: str = Field(default="https://localhost:5173")
    JWT_SECRET: str
    CSRF_SECRET: str | None = Field(default=None)
    COOKIE_NAME: str = Field(default="capacita_session")
    CSRF_COOKIE_NAME: str = Field(default="capacita_csrf")
    ENV: str = Field(default="dev")
    LOG_LEVEL: str = Field(default="INFO")

    cors_allowed_origins: list[str] | str = Field(
        default_factory=lambda: [
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "https://localhost:5173",
        ],
    )
    cors_allow_headers: list[str] | str = Field(
        default_factory=lambda: [
            "Content-Type",
            "X-CSRF-Token",
            "X-Requested-With",
        ],
    )
    cors_expose_headers: list[str] | str = Field(
        default_factory=lambda: ["X-CSRF-Token", "Retry-After", "Content-Disposition"],
    )

    redis_url: str | None = Field(default=None)
    auth_rate_limit_window_seconds: int = Field(default=60, ge=1)
    auth_rate_limit_max_attempts: int = Field(default=10, ge=1)
    ai_rate_limit_window_seconds: int = Field(default=60, ge=1)
    ai_rate_limit_max_attempts: int = Field(default=20, ge=1)

    smtp_host: str | None = Field(default=None)
    smtp_port: int = Field(default=587)
    smtp_user: str | None = Field(default=None)
    smtp_password: str | None = Field(default=None)
    smtp_starttls: bool = Field(default=True)
    smtp_timeout: int = Field(default=20)
    smtp_from_name: str = Field(default="Equipe Capacita")
    smtp_from_email: str | None = Field(default=None)
    app_base_url: str | None = Field(default=None)

    mercadopago_access_token: str | None = Field(default=None)
    mercadopago_api_url: str = Field(default="https://api.mercadopago.com")
    mercadopago_notification_url: str | None = Field(default=None)
    mercadopago_currency: str = Field(default="BRL")
    annual_discount_factor: float = Field(default=0.8, gt=0, le=1)

    ai_gateway_url: str = Field(
        default="https://ai.gateway.lovable.dev/v1/chat/completions"
    )
    ai_gateway_api_key: str | None = Field(default=None)
    ai_default_model: str = Field(default="google/gemini-2.5-flash")

    http_timeout_seconds: float = Field(default=15.0, gt=0)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("JWT_SECRET")
    @classmethod
    def _ensure_jwt_strength(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 16:
            raise ValueError("JWT_SECRET deve ter pelo menos 16 caracteres")
        if value.lower() in {"changeme", "secret", "supersecret"}:
            raise ValueError("JWT_SECRET não pode usar valores triviais")
        return value

    @field_validator("CSRF_SECRET", "mercadopago_access_token", "ai_gateway_api_key")
    @classmethod
    def _normalize_optional_secret(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value or None

    @field_validator("LOG_LEVEL")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = (value or "INFO").strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError("LOG_LEVEL inválido")
        return level

    @field_validator(
        "cors_allowed_origins",
        "cors_allow_headers",
        "cors_expose_headers",
        mode="before",
    )
    @classmethod
    def _coerce_csv(cls, value: Iterable[str] | str | None) -> list[str]:
        if value is None or value == "":
            return []
        if isinstance(value, str):
            return _split_csv(value)
        return [str(item).strip() for item in value if str(item).strip()]

    @model_validator(mode="after")
    def _validate_production_secrets(self) -> "Settings":
        if self.is_production:
            if self.db_pass == "supersecret":
                raise ValueError("DB_PASS padrão não é permitido em produção")
            if self.db_user == "capacita_user":
                raise ValueError("DB_USER padrão não é permitido em produção")
            if not self.CSRF_SECRET:
                raise ValueError("CSRF_SECRET é obrigatório em produção")
        return self

    @property
    def is_production(self) -> bool:
        return (self.ENV or "").lower() in {"prod", "production"}

    @property
    def url(self) -> str:
        return self.database_url or (
            f"{self.db_engine}://{self.db_user}:{self.db_pass}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    @property
    def cors_origin_set(self) -> set[str]:
        return set(self.cors_allowed_origins_list())

    def cors_allowed_origins_list(self) -> list[str]:
        if isinstance(self.cors_allowed_origins, list):
            return self.cors_allowed_origins
        return _split_csv(self.cors_allowed_origins or "")

    def cors_allow_headers_list(self) -> list[str]:
        if isinstance(self.cors_allow_headers, list):
            return self.cors_allow_headers
        return _split_csv(self.cors_allow_headers or "")

    def cors_expose_headers_list(self) -> list[str]:
        if isinstance(self.cors_expose_headers, list):
            return self.cors_expose_headers
        return _split_csv(self.cors_expose_headers or "")

    def cors_allow_headers_string(self) -> str:
        return ",".join(self.cors_allow_headers_list())


settings = Settings()
