from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="EXPIRING_CACHE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Expiration
    default_expiration: float = Field(
        default=0, description="Default TTL in seconds, 0 or -1 means never expire"
    )
    cleanup_interval: float = Field(
        default=0, ge=0, description="Janitor sweep interval in seconds, 0 disables it"
    )

    # Snapshot
    snapshot_path: Optional[Path] = Field(default=None)

    # System Configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    log_dir: Optional[Path] = Field(default=None)

    @field_validator("default_expiration")
    @classmethod
    def check_default_expiration(cls, v: float) -> float:
        if v < 0 and v != -1:
            raise ValueError("default_expiration must be >= 0 or -1")
        return v

    @field_validator("log_dir")
    @classmethod
    def create_log_dir(cls, v: Optional[Path]) -> Optional[Path]:
        if v is None:
            return v
        if isinstance(v, str):
            v = Path(v)
        v.mkdir(parents=True, exist_ok=True)
        return v


settings = Settings()
