"""Runtime settings for tidymac."""

import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field, PositiveInt, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tidymac.models import CleanCategory

MIB = 1024 * 1024


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TIDYMAC_",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: str = "WARNING"

    # Pool widths: directory-weight work vs per-file work
    directory_workers: PositiveInt = 4
    file_workers: PositiveInt = 8

    min_item_bytes: int = Field(default=MIB, ge=0)
    large_file_bytes: PositiveInt = 500 * MIB
    old_download_days: PositiveInt = 30

    duplicate_min_bytes: int = Field(default=10_000, ge=1)
    full_hash_limit_bytes: PositiveInt = 50_000_000
    hash_chunk_bytes: PositiveInt = MIB
    max_duplicate_groups: PositiveInt = 500

    home: Path = Field(default_factory=Path.home)
    whitelist_file: Path = Field(default=Path("~/.config/tidymac/whitelist.json"), validate_default=True)
    disabled_categories: list[CleanCategory] = Field(default_factory=list)

    @field_validator("home", "whitelist_file", mode="before")
    @classmethod
    def _expand_path(cls, value: str | Path) -> Path:
        return Path(os.path.expanduser(os.path.expandvars(str(value))))

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.upper().strip()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @model_validator(mode="after")
    def _validate_hashing(self) -> "Settings":
        if self.full_hash_limit_bytes < 2 * self.hash_chunk_bytes:
            raise ValueError("full_hash_limit_bytes must be at least twice hash_chunk_bytes")
        return self

    @property
    def trash_dir(self) -> Path:
        return self.home / ".Trash"

    def enabled_categories(self, requested: list[CleanCategory] | None = None) -> list[CleanCategory]:
        """
        Filter a category selection through the disabled list.

        Args:
            requested: Categories asked for, or None for all of them

        Returns:
            Requested categories that are not disabled, in enum order
        """
        wanted = set(requested) if requested is not None else set(CleanCategory)
        disabled = set(self.disabled_categories)
        return [c for c in CleanCategory if c in wanted and c not in disabled]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
