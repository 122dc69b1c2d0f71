from __future__ import annotations

import os
from dataclasses import dataclass


SUPPORTED_PROVIDERS = {"webpush", "mock"}


def _notification_provider() -> str:
    raw = os.getenv("NOTIFICATION_PROVIDER", "webpush").strip().lower()
    if not raw:
        return "webpush"
    if raw not in SUPPORTED_PROVIDERS:
        raise ValueError(f"Invalid NOTIFICATION_PROVIDER: {raw}. Supported values: {sorted(SUPPORTED_PROVIDERS)}")
    return raw


def _pem_or_raw(value: str) -> str:
    # Multiline PEM keys are often stored with escaped newlines in env files.
    return value.replace("\\n", "\n").strip()


def _cors_origins() -> list[str]:
    raw = os.getenv("CORS_ALLOW_ORIGINS", "*")
    origins = [item.strip() for item in raw.split(",") if item.strip()]
    return origins or ["*"]


@dataclass(frozen=True)
class Settings:
    app_name: str = os.getenv("APP_NAME", "PWA Push Server")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    app_debug: bool = os.getenv("APP_DEBUG", "false").lower() == "true"
    app_host: str = os.getenv("APP_HOST", "0.0.0.0")
    app_port: int = int(os.getenv("APP_PORT", os.getenv("PORT", "3000")))

    notification_provider: str = _notification_provider()
    vapid_public_key: str = os.getenv("VAPID_PUBLIC_KEY", "").strip()
    vapid_private_key: str = _pem_or_raw(os.getenv("VAPID_PRIVATE_KEY", ""))
    vapid_claims_email: str = os.getenv("VAPID_CLAIMS_EMAIL", "admin@example.com").strip()
    webpush_ttl_seconds: int = int(os.getenv("WEBPUSH_TTL_SECONDS", "86400"))
    webpush_timeout_seconds: float = float(os.getenv("WEBPUSH_TIMEOUT_SECONDS", "10"))

    cors_allow_origins: tuple[str, ...] = tuple(_cors_origins())


settings = Settings()


def get_settings() -> Settings:
    return settings
