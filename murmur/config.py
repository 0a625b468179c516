"""Configuration settings for Murmur."""

import os
import secrets
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./murmur.db")

    # JWT
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", secrets.token_urlsafe(32))
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_EXPIRE_MINUTES: int = int(os.getenv("JWT_EXPIRE_MINUTES", "480"))

    # Object storage
    STORAGE_DIR: str = os.getenv("STORAGE_DIR", "storage")
    AUDIO_BUCKET: str = os.getenv("AUDIO_BUCKET", "audio-messages")
    MAX_AUDIO_UPLOAD_MB: int = int(os.getenv("MAX_AUDIO_UPLOAD_MB", "10"))

    # Messages
    MAX_MESSAGE_LENGTH: int = int(os.getenv("MAX_MESSAGE_LENGTH", "1000"))
    PUBLIC_BASE_URL: str = os.getenv("PUBLIC_BASE_URL", "")

    # Export
    FFMPEG_BINARY: str = os.getenv("FFMPEG_BINARY", "ffmpeg")
    FFPROBE_BINARY: str = os.getenv("FFPROBE_BINARY", "ffprobe")
    VIDEO_FPS: int = int(os.getenv("VIDEO_FPS", "30"))
    VIDEO_MAX_SECONDS: int = int(os.getenv("VIDEO_MAX_SECONDS", "600"))
    VIDEO_TIMEOUT_SECONDS: int = int(os.getenv("VIDEO_TIMEOUT_SECONDS", "900"))
    EXPORT_FONT_PATH: str = os.getenv("EXPORT_FONT_PATH", "")
    EXPORT_BOLD_FONT_PATH: str = os.getenv("EXPORT_BOLD_FONT_PATH", "")

    # Theme overrides (Pillow colour strings, e.g. "hsl(220, 90%, 50%)")
    THEME_PRIMARY_COLOR: str = os.getenv("THEME_PRIMARY_COLOR", "")
    THEME_ACCENT_COLOR: str = os.getenv("THEME_ACCENT_COLOR", "")
    THEME_FOREGROUND_COLOR: str = os.getenv("THEME_FOREGROUND_COLOR", "")
    THEME_CARD_COLOR: str = os.getenv("THEME_CARD_COLOR", "")

    # Application
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    def validate(self) -> list[str]:
        """Validate settings and return list of warnings."""
        warnings = []
        if not os.getenv("JWT_SECRET_KEY"):
            warnings.append("JWT_SECRET_KEY is not set - using auto-generated key (not persistent across restarts)")
        if self.VIDEO_FPS <= 0:
            warnings.append(f"VIDEO_FPS must be positive, got {self.VIDEO_FPS}")
        return warnings


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
