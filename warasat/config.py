from decimal import Decimal
from typing import Any, List
import json
import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _strip_wrapping_quotes(value: str) -> str:
    text = value.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in {'"', "'"}:
        return text[1:-1].strip()
    return text


def _unwrap_singleton_brackets(value: str) -> str:
    text = _strip_wrapping_quotes(value)
    if text.startswith("[") and text.endswith("]"):
        inner = text[1:-1].strip()
        if inner and "," not in inner:
            return _strip_wrapping_quotes(inner)
    return text


def _parse_string_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return [str(item).strip() for item in value if str(item).strip()]
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return []
        try:
            parsed = json.loads(text)
        except ValueError:
            parsed = None
        if isinstance(parsed, list):
            return [str(item).strip() for item in parsed if str(item).strip()]
        if isinstance(parsed, str):
            text = parsed.strip()
        else:
            text = _unwrap_singleton_brackets(text)
        return [part.strip() for part in text.replace(";", ",").split(",") if part.strip()]
    return [str(value).strip()] if str(value).strip() else []


class Settings(BaseSettings):
    # Optional OpenAI-compatible provider used for valuation and advice.
    ai_api_key: str | None = Field(default=None, validate_default=True)
    ai_base_url: str | None = Field(default=None, validate_default=True)
    ai_model: str | None = Field(default=None, validate_default=True)
    ai_request_timeout_sec: float = 30.0
    ai_max_retries: int = 3
    ai_retry_base_delay_seconds: float = 2.0

    # Cash transfers below this amount are treated as settled.
    settlement_threshold: Decimal = Decimal("100")
    # PKR per sq ft used when the provider is unreachable or returns garbage.
    fallback_rate: Decimal = Decimal("5000")
    # PKR per sq ft used when no API key is configured at all.
    mock_rate: Decimal = Decimal("15000")
    # Lahore
    default_latitude: float = 31.5204
    default_longitude: float = 74.3587
    currency: str = "PKR"

    default_language: str = "en"
    # Keep Any here so env parser doesn't force JSON for list fields.
    cors_origins: Any = ["*"]
    log_level: str = "INFO"

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> List[str]:
        return _parse_string_list(value)

    @field_validator("default_language", mode="before")
    @classmethod
    def _normalize_default_language(cls, value: Any) -> str:
        if value is None:
            return "en"
        text = _unwrap_singleton_brackets(str(value)).strip().lower()
        return text or "en"

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: Any) -> str:
        text = _unwrap_singleton_brackets(str(value or "")).strip().upper()
        return text or "INFO"

    @field_validator("ai_api_key", mode="before")
    @classmethod
    def _fallback_ai_key(cls, v):
        return v or os.getenv("AI_API_KEY")

    @field_validator("ai_base_url", mode="before")
    @classmethod
    def _fallback_ai_base(cls, v):
        return v or os.getenv("AI_BASE_URL")

    @field_validator("ai_model", mode="before")
    @classmethod
    def _fallback_ai_model(cls, v):
        return v or os.getenv("AI_MODEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="WARASAT_",
        extra="ignore",
    )


settings = Settings()
