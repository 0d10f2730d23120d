from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MAX_UPLOAD_BYTES = 10 * 1024 * 1024
REMOVEBG_API_URL = "https://api.remove.bg/v1.0/removebg"


class Settings(BaseSettings):
    """Application settings loaded from the environment (``REMOVEBG_*``) and ``.env``."""

    api_key: str | None = Field(default=None)
    api_url: str = Field(default=REMOVEBG_API_URL)
    request_timeout_seconds: float = Field(default=60.0, gt=0)
    output_size: str = Field(default="auto")
    max_upload_bytes: int = Field(default=MAX_UPLOAD_BYTES, gt=0)
    download_filename: str = Field(default="removed-background.png")
    session_cookie: str = Field(default="removebg_session")
    max_sessions: int = Field(default=256, gt=0)
    session_ttl_seconds: float = Field(default=3600.0, gt=0)

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)
    debug: bool = Field(default=False)

    log_level: str = Field(default="INFO")
    log_dir: Path | None = Field(default=None)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="REMOVEBG_",
        case_sensitive=False,
        extra="ignore",
    )

    def model_post_init(self, __context: Dict[str, Any]) -> None:  # type: ignore[override]
        if self.log_dir is not None:
            self.log_dir = Path(self.log_dir).expanduser().resolve()

    @field_validator("download_filename")
    @classmethod
    def validate_download_filename(cls, v: str) -> str:
        if not v.lower().endswith(".png"):
            raise ValueError("download_filename must end with .png")
        return v

    def is_configured(self) -> bool:
        return bool(self.api_key)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
