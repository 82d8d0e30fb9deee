"""Logging Setup and Redaction.

This module configures application logging and provides filters to prevent
sensitive data (encrypted field envelopes, bearer tokens) from appearing in
application logs.
"""
import logging
import re

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

SECRET_PATTERNS = [
    # nonce:tag:payload field envelopes
    (re.compile(r'\b[0-9a-f]{24,32}:[0-9a-f]{32}:[0-9a-f]+\b'), '[REDACTED_ENVELOPE]'),
    (re.compile(r'(Bearer\s+)[A-Za-z0-9._~+/=-]+', re.IGNORECASE), r'\1[REDACTED]'),
    # Bare JWTs (header.payload.signature)
    (re.compile(r'eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+'), '[REDACTED_TOKEN]'),
    (re.compile(r'(access_token=)[^;\s&]+'), r'\1[REDACTED]'),
]


def redact_string(text: str) -> str:
    """Redact secret-like patterns from a string."""
    for pattern, replacement in SECRET_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


class SecretRedactionFilter(logging.Filter):
    """Filter that redacts secret-like patterns from log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not isinstance(record.msg, str):
            return True

        record.msg = redact_string(record.msg)

        # Also redact arguments if they are strings
        if record.args and isinstance(record.args, tuple):
            record.args = tuple(
                redact_string(arg) if isinstance(arg, str) else arg
                for arg in record.args
            )

        return True


def setup_logging_redaction() -> None:
    """Apply the SecretRedactionFilter to the root handlers and all existing loggers."""
    redact_filter = SecretRedactionFilter()

    root_logger = logging.getLogger()

    # Remove existing filters if any (to avoid duplicates)
    for f in root_logger.filters[:]:
        if isinstance(f, SecretRedactionFilter):
            root_logger.removeFilter(f)
    root_logger.addFilter(redact_filter)

    # Logger filters do not apply to records propagated from child loggers,
    # handler filters do.
    for handler in root_logger.handlers:
        for f in handler.filters[:]:
            if isinstance(f, SecretRedactionFilter):
                handler.removeFilter(f)
        handler.addFilter(redact_filter)

    for name in logging.root.manager.loggerDict:
        logger = logging.getLogger(name)
        if not any(isinstance(f, SecretRedactionFilter) for f in logger.filters):
            logger.addFilter(redact_filter)

    logging.info("Logging redaction filters active.")


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger and install redaction."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    logging.getLogger().setLevel(level.upper())
    setup_logging_redaction()
