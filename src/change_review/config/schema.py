"""Pydantic models for configuration schema."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BlastRadiusConfig(BaseModel):
    """Limits and thresholds for the blast-radius pass."""

    reference_ceiling: int = Field(20, ge=1, description="Stop counting references past this")
    high_threshold: int = Field(15, ge=1)
    medium_threshold: int = Field(5, ge=0)
    min_name_length: int = Field(3, ge=1)
    max_files_walked: int = Field(20000, ge=1, description="Files scanned per function name")

    @model_validator(mode="after")
    def check_thresholds(self) -> "BlastRadiusConfig":
        """Thresholds must be ordered and reachable below the ceiling."""
        if self.medium_threshold >= self.high_threshold:
            raise ValueError("medium_threshold must be lower than high_threshold")
        if self.high_threshold >= self.reference_ceiling:
            raise ValueError("high_threshold must be lower than reference_ceiling")
        return self


class AnalysisConfig(BaseModel):
    """Analysis engine configuration."""

    repo_root: Path | None = None
    skip_passes: list[str] = []
    duplication_window: int = Field(4, ge=2, le=50)
    parallel: bool = False
    blast_radius: BlastRadiusConfig = BlastRadiusConfig()

    @field_validator("skip_passes")
    @classmethod
    def validate_skip_passes(cls, v: list[str]) -> list[str]:
        """Reject pass names the registry does not know."""
        from ..core.passes import PASS_NAMES

        unknown = [name for name in v if name not in PASS_NAMES]
        if unknown:
            raise ValueError(
                f"Unknown analysis pass(es): {', '.join(unknown)}. "
                f"Available: {', '.join(PASS_NAMES)}"
            )
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"
    format: Literal["json", "console"] = "console"
    file: Path | None = None


class ReviewConfig(BaseSettings):
    """Root configuration for change-review."""

    analysis: AnalysisConfig = AnalysisConfig()
    logging: LoggingConfig = LoggingConfig()

    model_config = SettingsConfigDict(
        env_prefix="CHANGE_REVIEW_",
        env_nested_delimiter="__",
    )
