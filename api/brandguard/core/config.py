from __future__ import annotations

import os
from dataclasses import dataclass


def getenv(name: str, default: str | None = None) -> str | None:
    v = os.getenv(name, default)
    return v


@dataclass
class Settings:
    # Service
    service_name: str = getenv("SERVICE_NAME", "brandguard-api") or "brandguard-api"
    service_env: str = getenv("SERVICE_ENV", "dev") or "dev"
    log_level: str = getenv("LOG_LEVEL", "INFO") or "INFO"

    # Gemini
    gemini_api_key: str | None = getenv("GEMINI_API_KEY")
    gemini_model: str = getenv("GEMINI_MODEL", "gemini-2.5-flash") or "gemini-2.5-flash"
    gemini_image_model: str = getenv("GEMINI_IMAGE_MODEL", "gemini-2.5-flash-image-preview") or "gemini-2.5-flash-image-preview"
    gemini_base_url: str = getenv("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta") or "https://generativelanguage.googleapis.com/v1beta"
    gemini_timeout: int = int(getenv("GEMINI_TIMEOUT", "60") or "60")
    gemini_timeout_media: int = int(getenv("GEMINI_TIMEOUT_MEDIA", "180") or "180")  # video/image uploads
    gemini_max_attempts: int = int(getenv("GEMINI_MAX_ATTEMPTS", "2") or "2")
    gemini_backoff_ms: int = int(getenv("GEMINI_BACKOFF_MS", "1000") or "1000")

    # Database
    database_url: str = getenv("DATABASE_URL", "sqlite:///var/brandguard.db") or "sqlite:///var/brandguard.db"
    redis_url: str = getenv("REDIS_URL", "redis://localhost:6379/0") or "redis://localhost:6379/0"

    # Storage
    local_storage_dir: str = getenv("LOCAL_STORAGE_DIR", "var/storage") or "var/storage"
    service_base_url: str = getenv("SERVICE_BASE_URL", "http://localhost:8000") or "http://localhost:8000"
    # Share links point at the dashboard, not the API
    public_app_url: str = getenv("PUBLIC_APP_URL", "http://localhost:5173/") or "http://localhost:5173/"

    # Uploads
    max_image_bytes: int = int(getenv("MAX_IMAGE_BYTES", str(20 * 1024 * 1024)) or str(20 * 1024 * 1024))
    max_video_bytes: int = int(getenv("MAX_VIDEO_BYTES", str(50 * 1024 * 1024)) or str(50 * 1024 * 1024))

    # Public audit tool
    free_scan_limit: int = int(getenv("FREE_SCAN_LIMIT", "3") or "3")
    free_scan_window_seconds: int = int(getenv("FREE_SCAN_WINDOW_SECONDS", "86400") or "86400")

    # Security & policy
    cors_allow_origins: str | None = getenv("CORS_ALLOW_ORIGINS")
    enable_inapp_rate_limit: bool = (getenv("ENABLE_INAPP_RATE_LIMIT", "true") or "true").lower() == "true"
    rate_limit_rpm: int = int(getenv("RATE_LIMIT_RPM", "100") or "100")
    enable_inapp_auth: bool = (getenv("ENABLE_INAPP_AUTH", "false") or "false").lower() == "true"
    clerk_jwks_url: str | None = getenv("CLERK_JWKS_URL")

    @property
    def is_production(self) -> bool:
        return self.service_env in ["prod", "production"]

    @property
    def use_redis(self) -> bool:
        # dev and test run without a Redis server
        return self.service_env not in ("dev", "test")


settings = Settings()
