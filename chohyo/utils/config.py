"""Configuration management for the document extraction engine.

Loads and validates YAML configuration with sensible defaults for
extraction, validation and the HTTP API.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class ExtractionConfig(BaseModel):
    """Configuration for field and line-item extraction."""

    tax_rate: str = "10"


class ValidationConfig(BaseModel):
    """Configuration for the reconciliation rules engine."""

    rules_path: str = "configs/validation_rules.yaml"
    amount_tolerance: float = 1.0


class ApiConfig(BaseModel):
    """Configuration for the HTTP API server."""

    host: str = "0.0.0.0"
    port: int = 8000


class AppConfig(BaseModel):
    """Top-level application configuration."""

    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    log_level: str = "INFO"
    log_file: str | None = None


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
