"""
Engine configuration.

Centralized configuration management with environment variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """Engine settings"""

    # Application
    APP_NAME: str = "Answer Grader"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"  # development, staging, production

    # Database
    DATABASE_URL: Optional[str] = None
    DATABASE_ECHO: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # json or text
    LOG_FILE: Optional[str] = None

    # Question storage
    QUESTIONS_DIR: str = "questions"

    # Identifiers accepted for users, sections and questions
    IDENTIFIER_PATTERN: str = r"^[A-Za-z0-9][A-Za-z0-9_.:-]{0,127}$"

    # Similarity thresholds (0..1)
    WRITING_SIMILARITY_THRESHOLD: float = Field(default=0.6, ge=0.0, le=1.0)
    SPEAKING_SIMILARITY_THRESHOLD: float = Field(default=0.7, ge=0.0, le=1.0)

    # Transcoding
    FFMPEG_BINARY: str = "ffmpeg"
    TRANSCODE_TIMEOUT_SECONDS: float = 60.0
    SAMPLE_RATE_HERTZ: int = 16000

    # Transcription
    TRANSCRIPTION_BACKEND: str = "google"  # google or command
    TRANSCRIPTION_TIMEOUT_SECONDS: float = 30.0
    TRANSCRIPTION_COMMAND: Optional[str] = None  # e.g. "whisper-cli --model base.en {input}"
    SPEECH_LANGUAGE_CODE: str = "en-US"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Global settings instance
settings = get_settings()
