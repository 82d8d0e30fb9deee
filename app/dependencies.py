"""Dependency Injection Module."""
import logging
from typing import Optional

from app.domain.auth import AuthGate, build_auth_mode
from app.domain.encryption import field_cipher
from app.domain.encryption.field_cipher import FieldCipher
from app.settings import Settings, settings

logger = logging.getLogger(__name__)

_auth_gate: Optional[AuthGate] = None


def get_settings() -> Settings:
    return settings


def init_auth_gate(config: Settings) -> AuthGate:
    """Build the process-wide gate. Raises AuthConfigurationError when misconfigured."""
    global _auth_gate
    _auth_gate = AuthGate(build_auth_mode(config))
    return _auth_gate


def get_auth_gate() -> AuthGate:
    if _auth_gate is None:
        return init_auth_gate(settings)
    return _auth_gate


def get_field_cipher() -> FieldCipher:
    return field_cipher.get_field_cipher()
