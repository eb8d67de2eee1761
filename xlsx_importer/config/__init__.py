"""Importer configuration: programmatic builder and YAML loader."""

from .builder import ConfigError, ImporterConfig, ImportPlan, Validation

__all__ = [
    "ConfigError",
    "ImporterConfig",
    "ImportPlan",
    "Validation",
]
