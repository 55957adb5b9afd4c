"""Load job configuration models using Pydantic."""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from .database.retry import RetryConfig
from .loading.converters import DEFAULT_DATE_FORMAT
from .loading.entities import EntityType


class LoadJobConfig(BaseModel):
    """Complete staging-to-production load job configuration."""

    name: str = Field(..., description="Unique job name")
    description: Optional[str] = None

    # Storage
    database_url: Optional[str] = Field(
        None, description="SQLAlchemy URL; environment config is used when unset"
    )

    # Staging files, one per entity type
    sources: dict[EntityType, Path] = Field(
        default_factory=dict, description="CSV file per entity type"
    )
    max_errors: int = Field(
        default=1000, ge=0, description="Unreadable lines tolerated per staging file"
    )
    truncate_staging: bool = Field(
        default=True, description="Empty staging tables after a successful load"
    )

    # Conversion
    date_format: str = Field(default=DEFAULT_DATE_FORMAT)

    retry: RetryConfig = Field(default_factory=RetryConfig)

    @field_validator("date_format")
    @classmethod
    def validate_date_format(cls, v: str) -> str:
        """Reject formats without any strftime directive."""
        if "%" not in v:
            raise ValueError(f"date_format has no strftime directives: {v!r}")
        return v

    def resolve_sources(self, base_dir: Path) -> dict[EntityType, Path]:
        """Resolve relative source paths against the job file's directory."""
        return {
            entity_type: path if path.is_absolute() else base_dir / path
            for entity_type, path in self.sources.items()
        }


def load_job_config(path: str | Path) -> LoadJobConfig:
    """Load job configuration from YAML file.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated LoadJobConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid
    """
    config_path = Path(path)

    if not config_path.exists():
        raise FileNotFoundError(f"Job config not found: {config_path}")

    with open(config_path) as f:
        config_data = yaml.safe_load(f) or {}

    return LoadJobConfig(**config_data)
