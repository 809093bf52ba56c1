"""Pydantic configuration models for Scorecard."""

import os
from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator

_DATA_HOME = Path(os.environ.get("SCORECARD_HOME", "~/scorecard"))


class PathsConfig(BaseModel):
    """File paths configuration."""

    db_path: Path = _DATA_HOME / "scorecard.db"
    log_file: Path = _DATA_HOME / "scorecard.log"

    @model_validator(mode="after")
    def expand_paths(self):
        """Expand ~ in all paths."""
        self.db_path = self.db_path.expanduser()
        self.log_file = self.log_file.expanduser()
        return self


VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    file_level: str = "DEBUG"
    json_mode: bool = False

    @field_validator("level", "file_level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v_upper = v.upper()
        if v_upper not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Must be one of {VALID_LOG_LEVELS}")
        return v_upper


class WebConfig(BaseModel):
    """HTTP API settings."""

    frontend_origin: str = "http://localhost:3000"


class HistoryConfig(BaseModel):
    """KR update history limits."""

    max_entries: int = Field(24, ge=1)
    recent_in_response: int = Field(3, ge=0)


class ScorecardConfig(BaseModel):
    """Main configuration model."""

    paths: PathsConfig = Field(default_factory=PathsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    web: WebConfig = Field(default_factory=WebConfig)
    history: HistoryConfig = Field(default_factory=HistoryConfig)

    @classmethod
    def from_dict(cls, data: dict) -> "ScorecardConfig":
        """Create config from dict (string paths are accepted)."""
        return cls.model_validate(data)

    def to_dict(self) -> dict:
        return self.model_dump(mode="python")
