"""Configuration for AutoCrew core services."""

from .config_validator import (
    ConfigValidationError,
    ConfigValidator,
    ValidationResult,
    validate_config_on_startup,
    get_config_summary,
)

__all__ = [
    "ConfigValidationError",
    "ConfigValidator",
    "ValidationResult",
    "validate_config_on_startup",
    "get_config_summary",
]
