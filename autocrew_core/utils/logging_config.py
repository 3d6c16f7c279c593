"""Centralized logging configuration for AutoCrew core services."""
import logging
import os
import re
import sys
from typing import Any, Dict, Optional


class SensitiveDataSanitizer:
    """
    Sanitizes sensitive data from log messages to prevent security leaks.

    Redacts:
    - API keys and tokens (including x-api-key headers sent to the upload webhook)
    - Bearer tokens
    - Database URLs with credentials
    - KEY/SECRET/TOKEN/PASSWORD style environment assignments
    """

    def __init__(self):
        self._compile_patterns()

    def _compile_patterns(self):
        """Compile regex patterns for sensitive data detection."""
        self.api_key_patterns = [
            re.compile(r'\b(x-)?[Aa]pi[_-]?[Kk]ey["\'\s]*[:=]["\'\s]*([A-Za-z0-9_\-]{8,})', re.IGNORECASE),
            re.compile(r'\b[Ss]ecret[_-]?[Kk]ey["\'\s]*[:=]["\'\s]*([A-Za-z0-9_\-]{8,})', re.IGNORECASE),
            re.compile(r'\b[Aa]ccess[_-]?[Tt]oken["\'\s]*[:=]["\'\s]*([A-Za-z0-9_\-\.]{8,})', re.IGNORECASE),
        ]
        self.bearer_pattern = re.compile(r'\bBearer\s+([A-Za-z0-9_\-\.]{8,})', re.IGNORECASE)

        self.db_url_pattern = re.compile(
            r'(postgresql(?:\+asyncpg)?|mysql|sqlite|mongodb)://([^:/@\s]+):([^@\s]+)@([^/\s]+)',
            re.IGNORECASE
        )

        self.env_var_pattern = re.compile(
            r'\b([A-Z0-9_]+_KEY|[A-Z0-9_]+_SECRET|[A-Z0-9_]+_TOKEN|[A-Z0-9_]+_PASSWORD)=([^\s"\']+)'
        )

    def sanitize(self, text: Any) -> str:
        """
        Sanitize sensitive data from the given text.

        Args:
            text: The text to sanitize

        Returns:
            Sanitized text with sensitive data redacted
        """
        if not isinstance(text, str):
            text = str(text)

        for pattern in self.api_key_patterns:
            text = pattern.sub(lambda m: m.group(0).replace(m.group(m.lastindex), "***REDACTED***"), text)

        text = self.bearer_pattern.sub('Bearer ***REDACTED***', text)
        text = self.db_url_pattern.sub(r'\1://***USER***:***PASSWORD***@\4', text)
        text = self.env_var_pattern.sub(r'\1=***REDACTED***', text)

        return text

    def sanitize_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Recursively sanitize a dictionary, handling nested structures.

        Keys that look like credentials are redacted wholesale.
        """
        if not isinstance(data, dict):
            return data

        sanitized = {}
        for key, value in data.items():
            key_lower = str(key).lower()
            if any(sensitive in key_lower for sensitive in ['password', 'secret', 'token', 'api_key', 'apikey']):
                sanitized[key] = '***REDACTED***'
            elif isinstance(value, str):
                sanitized[key] = self.sanitize(value)
            elif isinstance(value, dict):
                sanitized[key] = self.sanitize_dict(value)
            elif isinstance(value, list):
                sanitized[key] = [self.sanitize_dict(item) if isinstance(item, dict) else
                                  self.sanitize(item) if isinstance(item, str) else item
                                  for item in value]
            else:
                sanitized[key] = value

        return sanitized


class SanitizingFilter(logging.Filter):
    """Logging filter that redacts credentials from messages and structured context."""

    def __init__(self, sanitizer: Optional[SensitiveDataSanitizer] = None):
        super().__init__()
        self.sanitizer = sanitizer or SensitiveDataSanitizer()

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = self.sanitizer.sanitize(record.getMessage())
        record.args = None
        context = getattr(record, "context", None)
        if isinstance(context, dict):
            record.context = self.sanitizer.sanitize_dict(context)
        return True


def setup_logging(
    service_name: str = "autocrew_core",
    level: str = "INFO",
    format_string: Optional[str] = None,
    sanitize_logs: bool = True,
) -> logging.Logger:
    """
    Set up logging for a service with consistent formatting.

    Args:
        service_name: Logger name to configure (module loggers below it inherit the handler)
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_string: Custom format string (optional)
        sanitize_logs: Attach the credential-redacting filter to the handler

    Returns:
        Configured logger instance
    """
    if format_string is None:
        format_string = (
            "%(asctime)s - %(name)s - %(levelname)s - "
            "[%(filename)s:%(lineno)d] - %(message)s"
        )

    log_level = os.getenv("LOG_LEVEL", level).upper()

    logger = logging.getLogger(service_name)
    logger.setLevel(getattr(logging, log_level))

    # Remove existing handlers to avoid duplicates
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, log_level))
    console_handler.setFormatter(logging.Formatter(format_string))
    if sanitize_logs:
        console_handler.addFilter(SanitizingFilter())

    logger.addHandler(console_handler)
    logger.propagate = False

    return logger


def configure_third_party_logging():
    """Configure logging levels for third-party libraries to reduce noise."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("asyncpg").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def setup_script_logging(script_name: str) -> logging.Logger:
    """Set up logging for maintenance scripts."""
    configure_third_party_logging()
    setup_logging("autocrew_core")
    return setup_logging(script_name)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    context: Optional[Dict[str, Any]] = None,
    client_id: Optional[str] = None,
    user_id: Optional[str] = None,
    exc_info: Any = None,
):
    """
    Log a message with structured context attached to the record.

    Args:
        logger: Logger instance
        level: Log level (info, warning, error, etc.)
        message: Log message
        context: Additional context data (operation name, ids, durations)
        client_id: Client code for tenant-scoped logging
        user_id: User ID for user-scoped logging
        exc_info: Exception info forwarded to the logger
    """
    extra = {}
    if context:
        extra['context'] = context
    if client_id:
        extra['client_id'] = client_id
    if user_id:
        extra['user_id'] = user_id

    log_method = getattr(logger, level.lower())
    log_method(message, extra=extra, exc_info=exc_info)
