from pathlib import Path
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class RecordingConfig(BaseSettings):
    """Recording pipeline storage and retention configuration."""

    root: Path = Path("RECORDINGS")
    staging_dirname: str = "temp"
    retention_days: float = Field(default=7.0, gt=0)
    sweep_interval_hours: float = Field(default=24.0, gt=0)
    sweep_startup_delay_seconds: float = Field(default=5.0, ge=0)
    read_block_size: int = Field(default=64 * 1024, ge=1024)

    model_config = SettingsConfigDict(
        env_prefix="RECORDINGS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class ElevenLabsConfig(BaseSettings):
    """ElevenLabs speech-to-text configuration used for recording chunks."""

    api_key: Optional[SecretStr] = None
    base_url: str = "https://api.elevenlabs.io"
    model_id: str = "scribe_v1"
    timeout_seconds: float = Field(default=120.0, gt=0)

    @property
    def is_configured(self) -> bool:
        return self.api_key is not None and bool(self.api_key.get_secret_value())

    model_config = SettingsConfigDict(
        env_prefix="ELEVENLABS_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class GroqConfig(BaseSettings):
    """Groq Whisper configuration used for realtime snippets."""

    api_key: Optional[SecretStr] = None
    base_url: str = "https://api.groq.com"
    model: str = "whisper-large-v3-turbo"
    timeout_seconds: float = Field(default=60.0, gt=0)

    @property
    def is_configured(self) -> bool:
        return self.api_key is not None and bool(self.api_key.get_secret_value())

    model_config = SettingsConfigDict(
        env_prefix="GROQ_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class AnthropicConfig(BaseSettings):
    """Anthropic Messages API configuration."""

    api_key: Optional[SecretStr] = None
    base_url: str = "https://api.anthropic.com"
    model: str = "claude-sonnet-4-5-20250929"
    api_version: str = "2023-06-01"
    max_tokens: int = Field(default=2000, ge=1, le=8192)
    timeout_seconds: float = Field(default=120.0, gt=0)

    @property
    def is_configured(self) -> bool:
        return self.api_key is not None and bool(self.api_key.get_secret_value())

    model_config = SettingsConfigDict(
        env_prefix="ANTHROPIC_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class SupabaseConfig(BaseSettings):
    """Supabase (PostgREST) datastore configuration."""

    url: Optional[str] = None
    key: Optional[SecretStr] = None
    timeout_seconds: float = Field(default=15.0, gt=0)

    @property
    def is_configured(self) -> bool:
        return bool(self.url) and self.key is not None and bool(self.key.get_secret_value())

    model_config = SettingsConfigDict(
        env_prefix="SUPABASE_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class Settings(BaseSettings):
    """Application settings"""

    app_name: str = "Lesson Coach Backend"
    app_version: str = "1.0.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 3000
    log_file: str = "logs/app.log"
    recording_log_file: str = "logs/recording_pipeline.log"
    transcript_log_file: str = "logs/transcripts.log"

    # Recording pipeline
    recordings: RecordingConfig = Field(default_factory=RecordingConfig)

    # Speech-to-text providers
    elevenlabs: ElevenLabsConfig = Field(default_factory=ElevenLabsConfig)
    groq: GroqConfig = Field(default_factory=GroqConfig)

    # LLM
    anthropic: AnthropicConfig = Field(default_factory=AnthropicConfig)

    # Datastore
    supabase: SupabaseConfig = Field(default_factory=SupabaseConfig)

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
