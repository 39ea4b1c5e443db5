"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError


DEFAULT_OPTION_LABELS: dict[str, str] = {
    "optJpS4dvk": "Udah Pasang",
    "optKNgzwtU": "Udah kasih, belum pasang",
    "optzNgL1Xk": "iLang",
    "opt5eb0nvd": "Belum kasih, belum pasang",
}


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Outlet Sync Service"
    app_version: str = "3.0.0"
    api_prefix: str = "/api"
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    data_root: Path = Field(default=Path("data"), description="Root directory for the local CSV copy.")
    local_csv_file: str = Field(default="markers.csv", description="File name of the last produced CSV.")

    # Feishu bitable
    feishu_app_id: Optional[str] = None
    feishu_app_secret: Optional[str] = None
    feishu_app_token: Optional[str] = None
    feishu_table_id: Optional[str] = None
    feishu_base_url: str = "https://open.feishu.cn"
    feishu_page_size: int = Field(default=500, ge=1, le=500)
    feishu_auth_timeout_seconds: float = Field(default=10.0, gt=0)
    feishu_request_timeout_seconds: float = Field(default=15.0, gt=0)

    # GitHub repository holding the published CSV
    github_token: Optional[str] = None
    github_repo_owner: Optional[str] = None
    github_repo_name: Optional[str] = None
    github_file_path: str = "public/markers.csv"
    github_branch: Optional[str] = None
    github_api_url: str = "https://api.github.com"
    github_timeout_seconds: float = Field(default=30.0, gt=0)

    # Sync run policy
    sync_timezone: str = "Asia/Jakarta"
    sync_schedule_enabled: bool = True
    sync_schedule_hour: int = Field(default=2, ge=0, le=23)
    sync_schedule_minute: int = Field(default=0, ge=0, le=59)
    sync_max_retries: int = Field(default=3, ge=0)
    sync_backoff_seconds: float = Field(default=1.0, ge=0.0)

    option_labels: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_OPTION_LABELS),
        description="Bitable option identifier to label mapping for select fields.",
    )
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=("*",),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("data_root", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()

    @field_validator("option_labels", mode="before")
    @classmethod
    def _parse_option_labels(cls, value: Any) -> dict[str, str]:
        """Accept a JSON object string from the environment."""
        if value is None or value == "":
            return dict(DEFAULT_OPTION_LABELS)
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except json.JSONDecodeError as exc:
                raise ValueError("OPTION_LABELS must be a JSON object") from exc
        if not isinstance(value, dict):
            raise ValueError("OPTION_LABELS must be a JSON object")
        return {str(key): str(label) for key, label in value.items()}

    @property
    def local_csv_path(self) -> Path:
        return self.data_root / self.local_csv_file

    def missing_feishu(self) -> list[str]:
        required = {
            "FEISHU_APP_ID": self.feishu_app_id,
            "FEISHU_APP_SECRET": self.feishu_app_secret,
            "FEISHU_APP_TOKEN": self.feishu_app_token,
            "FEISHU_TABLE_ID": self.feishu_table_id,
        }
        return [name for name, value in required.items() if not value]

    def missing_github(self) -> list[str]:
        required = {
            "GITHUB_TOKEN": self.github_token,
            "GITHUB_REPO_OWNER": self.github_repo_owner,
            "GITHUB_REPO_NAME": self.github_repo_name,
        }
        return [name for name, value in required.items() if not value]

    def require_feishu(self) -> None:
        missing = self.missing_feishu()
        if missing:
            raise ConfigurationError("Feishu", missing)

    def require_github(self) -> None:
        missing = self.missing_github()
        if missing:
            raise ConfigurationError("GitHub", missing)


settings = Settings()
