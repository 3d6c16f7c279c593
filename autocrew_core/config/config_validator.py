"""
Centralized Configuration Validation
Provides field definitions, type checking and environment profiles for AutoCrew core settings
"""

import os
import logging
from typing import Dict, Any, List, Optional, Type, Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum


class Environment(Enum):
    """Supported environment types."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""
    pass


@dataclass
class ConfigField:
    """Configuration field definition with validation rules."""
    name: str
    type: Type
    required: bool = True
    default: Any = None
    validator: Optional[Callable[[Any], bool]] = None
    description: str = ""
    sensitive: bool = False  # For logging purposes
    environment_specific: bool = False  # Different values per environment


@dataclass
class ValidationResult:
    """Result of configuration validation."""
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    missing_required: List[str] = field(default_factory=list)
    invalid_values: List[str] = field(default_factory=list)


def _is_postgres_url(value: str) -> bool:
    return value.startswith(("postgresql://", "postgresql+asyncpg://"))


class ConfigValidator:
    """Configuration validator with environment profiles."""

    def __init__(self, environment: Optional[str] = None, env: Optional[Mapping[str, str]] = None):
        """Initialize configuration validator.

        Args:
            environment: Target environment (development, staging, production)
            env: Mapping to read variables from (defaults to os.environ)
        """
        self.env = env if env is not None else os.environ
        self.environment = Environment(environment or self.env.get("ENVIRONMENT", "development"))
        self.logger = logging.getLogger(__name__)
        self._config_fields = self._define_config_fields()
        self._environment_profiles = self._define_environment_profiles()

    def _define_config_fields(self) -> Dict[str, ConfigField]:
        """Define all configuration fields with validation rules."""
        return {
            # Database Configuration (Required)
            "DATABASE_URL_DIRECT": ConfigField(
                name="DATABASE_URL_DIRECT",
                type=str,
                required=True,
                validator=_is_postgres_url,
                description="Direct database connection URL (port 5432)"
            ),
            "DATABASE_URL_POOLED": ConfigField(
                name="DATABASE_URL_POOLED",
                type=str,
                required=False,
                validator=_is_postgres_url,
                description="Pooled database connection URL (port 6543)"
            ),

            # Document processing webhook
            "N8N_API_KEY": ConfigField(
                name="N8N_API_KEY",
                type=str,
                required=True,
                sensitive=True,
                validator=lambda x: len(x) >= 8,
                description="API key sent as x-api-key to the document upload webhook"
            ),
            "N8N_DOCUMENT_UPLOAD_WEBHOOK": ConfigField(
                name="N8N_DOCUMENT_UPLOAD_WEBHOOK",
                type=str,
                required=True,
                validator=lambda x: x.startswith(("http://", "https://")),
                description="Document upload webhook URL"
            ),
            "DOCUMENT_UPLOAD_TIMEOUT_SECONDS": ConfigField(
                name="DOCUMENT_UPLOAD_TIMEOUT_SECONDS",
                type=float,
                required=False,
                default=60.0,
                validator=lambda x: x > 0,
                description="Total timeout for a document upload webhook call (seconds)"
            ),
            "MAX_UPLOAD_FILE_SIZE": ConfigField(
                name="MAX_UPLOAD_FILE_SIZE",
                type=int,
                required=False,
                default=10 * 1024 * 1024,
                validator=lambda x: x > 0,
                description="Maximum accepted knowledge-base upload size (bytes)"
            ),
            "VECTOR_EMBEDDING_DIMENSION": ConfigField(
                name="VECTOR_EMBEDDING_DIMENSION",
                type=int,
                required=False,
                default=1536,
                validator=lambda x: 1 <= x <= 16000,
                description="Dimension of the embedding column in crew vector tables"
            ),

            # Transactions
            "TRANSACTION_MAX_RETRIES": ConfigField(
                name="TRANSACTION_MAX_RETRIES",
                type=int,
                required=False,
                default=3,
                validator=lambda x: x >= 0,
                description="Retries on PostgreSQL serialization failures"
            ),
            "TRANSACTION_RETRY_DELAY": ConfigField(
                name="TRANSACTION_RETRY_DELAY",
                type=float,
                required=False,
                default=0.1,
                validator=lambda x: x >= 0,
                description="Initial backoff delay between transaction retries (seconds)"
            ),

            # Logging
            "LOG_LEVEL": ConfigField(
                name="LOG_LEVEL",
                type=str,
                required=False,
                environment_specific=True,
                validator=lambda x: x.upper() in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                description="Logging level"
            ),
            "ENVIRONMENT": ConfigField(
                name="ENVIRONMENT",
                type=str,
                required=False,
                validator=lambda x: x in ["development", "staging", "production"],
                description="Application environment"
            ),
        }

    def _define_environment_profiles(self) -> Dict[Environment, Dict[str, Any]]:
        """Define environment-specific configuration profiles."""
        return {
            Environment.DEVELOPMENT: {"LOG_LEVEL": "DEBUG"},
            Environment.STAGING: {"LOG_LEVEL": "INFO"},
            Environment.PRODUCTION: {"LOG_LEVEL": "WARNING"},
        }

    def _convert_value(self, value: str, target_type: Type) -> Any:
        """Convert string environment variable to target type."""
        if target_type == bool:
            return value.lower() in ("true", "1", "yes", "on")
        elif target_type == int:
            return int(value)
        elif target_type == float:
            return float(value)
        elif target_type == str:
            return value
        else:
            raise ValueError(f"Unsupported type: {target_type}")

    def _get_environment_default(self, field_name: str) -> Any:
        """Get environment-specific default value for a field."""
        profile = self._environment_profiles.get(self.environment, {})
        return profile.get(field_name)

    def validate_config(self, fail_fast: bool = True) -> ValidationResult:
        """Validate all configuration variables.

        Args:
            fail_fast: If True, raise exception on validation failure

        Returns:
            ValidationResult with validation status and details
        """
        result = ValidationResult(is_valid=True)

        for field_name, field_def in self._config_fields.items():
            env_value = self.env.get(field_name)

            if env_value is None and field_def.environment_specific:
                env_default = self._get_environment_default(field_name)
                if env_default is not None:
                    env_value = str(env_default)

            if field_def.required and env_value is None:
                result.missing_required.append(field_name)
                result.errors.append(f"Required environment variable {field_name} is missing")
                continue

            # Optional field not provided; the default applies
            if env_value is None:
                continue

            try:
                converted_value = self._convert_value(env_value, field_def.type)
            except (ValueError, TypeError) as e:
                result.invalid_values.append(field_name)
                result.errors.append(f"Invalid value for {field_name}: {e}")
                continue

            if field_def.validator and not field_def.validator(converted_value):
                result.invalid_values.append(field_name)
                result.errors.append(f"Validation failed for {field_name}: {field_def.description}")

        self._add_environment_warnings(result)

        result.is_valid = len(result.errors) == 0

        if fail_fast and not result.is_valid:
            error_msg = "Configuration validation failed:\n" + "\n".join(result.errors)
            raise ConfigValidationError(error_msg)

        return result

    def _add_environment_warnings(self, result: ValidationResult) -> None:
        """Add environment-specific warnings."""
        if self.environment == Environment.PRODUCTION:
            for field_name in ["DATABASE_URL_DIRECT", "DATABASE_URL_POOLED", "N8N_DOCUMENT_UPLOAD_WEBHOOK"]:
                value = self.env.get(field_name, "")
                if "localhost" in value:
                    result.warnings.append(f"{field_name} contains localhost in production")

    def get_config_summary(self, include_sensitive: bool = False) -> Dict[str, Any]:
        """Get a summary of current configuration.

        Sensitive values are masked unless include_sensitive is True.
        """
        summary = {
            "environment": self.environment.value,
            "validation_status": "unknown",
            "fields": {}
        }

        validation_result = self.validate_config(fail_fast=False)
        summary["validation_status"] = "valid" if validation_result.is_valid else "invalid"
        summary["errors"] = validation_result.errors
        summary["warnings"] = validation_result.warnings

        for field_name, field_def in self._config_fields.items():
            env_value = self.env.get(field_name)

            if env_value is None and field_def.environment_specific:
                env_value = self._get_environment_default(field_name)

            if env_value is None and field_def.default is not None:
                env_value = field_def.default

            masked = field_def.sensitive and not include_sensitive and env_value is not None
            summary["fields"][field_name] = {
                "value": "***MASKED***" if masked else env_value,
                "set": env_value is not None,
                "required": field_def.required,
                "type": field_def.type.__name__,
                "description": field_def.description
            }

        return summary


def validate_config_on_startup(fail_fast: bool = True) -> ValidationResult:
    """Validate configuration on application startup.

    Args:
        fail_fast: If True, raise exception on validation failure

    Returns:
        ValidationResult with validation status
    """
    validator = ConfigValidator()
    result = validator.validate_config(fail_fast=fail_fast)

    logger = logging.getLogger(__name__)

    if result.is_valid:
        logger.info(f"Configuration validation passed for {validator.environment.value} environment")
        for warning in result.warnings:
            logger.warning(warning)
    else:
        logger.error(f"Configuration validation failed for {validator.environment.value} environment")
        for error in result.errors:
            logger.error(f"  • {error}")

    return result


def get_config_summary(include_sensitive: bool = False) -> Dict[str, Any]:
    """Get configuration summary."""
    return ConfigValidator().get_config_summary(include_sensitive=include_sensitive)
