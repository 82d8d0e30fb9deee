"""URL validation and SSRF prevention.

Two distinct checks:

* :func:`is_safe_url` gates URLs the server will fetch itself (document
  retrieval, webhook callbacks). It blocks loopback, private and link-local
  targets and internal-only domain suffixes.
* :func:`is_valid_file_url` governs URLs that are only stored as references to
  externally hosted documents. The server never dereferences them, so the
  rule is a format/allow-list check rather than an SSRF control.
"""
import ipaddress
import logging
import re
import socket
from typing import Annotated, Optional
from urllib.parse import urlparse

from pydantic import AfterValidator

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = frozenset({"http", "https"})

LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})

BLOCKED_IPV4_NETWORKS = (
    ipaddress.ip_network("0.0.0.0/8"),  # This network, reaches local services
    ipaddress.ip_network("127.0.0.0/8"),  # Loopback
    ipaddress.ip_network("10.0.0.0/8"),  # Private Class A
    ipaddress.ip_network("172.16.0.0/12"),  # Private Class B
    ipaddress.ip_network("192.168.0.0/16"),  # Private Class C
    ipaddress.ip_network("169.254.0.0/16"),  # Link-local
)

INTERNAL_DOMAIN_SUFFIXES = (".local", ".internal", ".lan", ".intranet")

ALLOWED_FILE_EXTENSIONS = (".pdf", ".doc", ".docx", ".jpg", ".jpeg", ".png")

# Object storage hosts; matched exactly or as a proper subdomain
TRUSTED_STORAGE_DOMAINS = (
    "s3.amazonaws.com",
    "s3-website.amazonaws.com",
    "s3-website-us-east-1.amazonaws.com",
    "s3-website-us-west-2.amazonaws.com",
    "blob.core.windows.net",
    "storage.googleapis.com",
)

_FORBIDDEN_HOST_CHARS = re.compile(r"[\x00-\x20#%/<>?@\[\\\]^|\x7f]")
_NUMERIC_LABEL = re.compile(r"^(?:[0-9]+|0x[0-9a-f]*)$")

SAFE_URL_MESSAGE = "URL must be a valid HTTPS/HTTP URL and cannot point to internal resources"
FILE_URL_MESSAGE = "URL must be an HTTPS/HTTP link to a document or a trusted storage location"


def _canonical_ipv4(hostname: str) -> Optional[str]:
    """Return the dotted-quad form of a numeric IPv4 host, or None if invalid.

    Browsers and HTTP clients resolve ``2130706433``, ``0x7f.1`` and
    ``0177.0.0.1`` to the same address as ``127.0.0.1``.
    """
    try:
        packed = socket.inet_aton(hostname)
    except OSError:
        return None
    return str(ipaddress.IPv4Address(packed))


def _parse_hostname(url: str):
    """Return (parsed, hostname) for an absolute http(s) URL, or None.

    The hostname is lowercased and numeric IPv4 forms are rewritten to
    dotted-quad, so later checks see the address a client would connect to.
    """
    try:
        parsed = urlparse(url.strip())
        hostname = parsed.hostname
        parsed.port  # raises ValueError when out of range
    except ValueError:
        return None

    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        return None
    if not hostname:
        return None

    hostname = hostname.lower().rstrip(".")
    if not hostname or _FORBIDDEN_HOST_CHARS.search(hostname):
        return None

    if ":" in hostname:
        try:
            ipaddress.IPv6Address(hostname)
        except ValueError:
            return None
    elif _NUMERIC_LABEL.match(hostname.rsplit(".", 1)[-1]):
        # A host ending in a number must be a valid IPv4 address
        hostname = _canonical_ipv4(hostname)
        if hostname is None:
            return None

    return parsed, hostname


def _is_localhost(hostname: str) -> bool:
    return (
        hostname in LOOPBACK_HOSTS
        or hostname.startswith("localhost.")
        or hostname.endswith(".localhost")
    )


def _is_blocked_ip(hostname: str) -> bool:
    try:
        ip_addr = ipaddress.ip_address(hostname)
    except ValueError:
        # Not an IP address, it's a domain name
        return False

    if ip_addr.version == 6:
        if ip_addr.ipv4_mapped is None:
            return ip_addr.is_loopback
        ip_addr = ip_addr.ipv4_mapped
    return any(ip_addr in network for network in BLOCKED_IPV4_NETWORKS)


def is_safe_url(url: Optional[str]) -> bool:
    """Return True if the server may fetch ``url``.

    Empty input counts as "not provided" and is accepted; whether the field
    is optional is the caller's concern.
    """
    if not url:
        return True

    result = _parse_hostname(url)
    if result is None:
        return False
    _, hostname = result

    if _is_localhost(hostname):
        logger.debug(f"Blocked loopback URL host: {hostname}")
        return False

    if _is_blocked_ip(hostname):
        logger.debug(f"Blocked private IP address (SSRF prevention): {hostname}")
        return False

    if hostname.endswith(INTERNAL_DOMAIN_SUFFIXES):
        logger.debug(f"Blocked internal domain: {hostname}")
        return False

    return True


def _is_trusted_storage_host(hostname: str) -> bool:
    return any(
        hostname == domain or hostname.endswith("." + domain)
        for domain in TRUSTED_STORAGE_DOMAINS
    )


def is_valid_file_url(url: Optional[str]) -> bool:
    """Return True if ``url`` is acceptable as a stored document reference."""
    if not url:
        return True

    result = _parse_hostname(url)
    if result is None:
        return False
    parsed, hostname = result

    has_valid_extension = parsed.path.lower().endswith(ALLOWED_FILE_EXTENSIONS)

    # Trusted storage hosts can have any path structure
    return has_valid_extension or _is_trusted_storage_host(hostname)


def _check_safe_url(value: Optional[str]) -> Optional[str]:
    if not is_safe_url(value):
        raise ValueError(SAFE_URL_MESSAGE)
    return value


def _check_file_url(value: Optional[str]) -> Optional[str]:
    if not is_valid_file_url(value):
        raise ValueError(FILE_URL_MESSAGE)
    return value


# Field types for request models
SafeUrl = Annotated[Optional[str], AfterValidator(_check_safe_url)]
FileUrl = Annotated[Optional[str], AfterValidator(_check_file_url)]
