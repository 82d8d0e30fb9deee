"""Markup stripping for free-text fields (XSS defense).

Every user-supplied free-text value is reduced to plain text before it is
stored or echoed back.
"""
import re
from typing import Annotated, Any, Dict, Iterable, Mapping, Optional

import bleach
from pydantic import BeforeValidator

# Script/style bodies are not visible text; drop them with their tags
_INVISIBLE_BLOCK = re.compile(r"<(script|style)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)

_TAG = re.compile(r"<[^>]*>")
_EVENT_HANDLER = re.compile(r"on\w+\s*=", re.IGNORECASE)
_DANGEROUS_SCHEMES = re.compile(r"javascript:|vbscript:|data:text/html", re.IGNORECASE)


def sanitize_text(text: Optional[str]) -> Optional[str]:
    """Strip all tags and attributes, leaving plain text. None passes through."""
    if text is None:
        return text

    without_blocks = _INVISIBLE_BLOCK.sub("", text)
    return bleach.clean(without_blocks, tags=set(), attributes={}, strip=True, strip_comments=True)


def sanitize_plain_text(value: Any) -> Any:
    """Aggressive sanitizer for names, phone numbers, addresses and the like.

    Non-string values are returned unchanged.
    """
    if not isinstance(value, str):
        return value

    sanitized = value.strip().replace("\0", "")
    sanitized = _INVISIBLE_BLOCK.sub("", sanitized)
    sanitized = _TAG.sub("", sanitized)
    sanitized = sanitized.replace("<", "").replace(">", "")
    sanitized = _EVENT_HANDLER.sub("", sanitized)
    sanitized = _DANGEROUS_SCHEMES.sub("", sanitized)

    return (
        sanitized
        .replace("&", "&amp;")
        .replace('"', "&quot;")
        .replace("'", "&#39;")
    )


def sanitize_fields(record: Mapping[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
    """Return a copy of ``record`` with :func:`sanitize_text` applied to the named string fields."""
    cleaned = dict(record)
    for name in fields:
        value = cleaned.get(name)
        if isinstance(value, str):
            cleaned[name] = sanitize_text(value)
    return cleaned


def _sanitize_if_str(value: Any) -> Any:
    return sanitize_text(value) if isinstance(value, str) else value


# Field types for request models
SanitizedText = Annotated[Optional[str], BeforeValidator(_sanitize_if_str)]
PlainText = Annotated[Optional[str], BeforeValidator(sanitize_plain_text)]
