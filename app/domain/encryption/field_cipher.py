"""Field-level encryption for sensitive record values (SSN, tax IDs, etc.).

Values are encrypted with AES-256-GCM under a single process-wide key derived
from ``ENCRYPTION_KEY`` and ``ENCRYPTION_SALT`` via scrypt. Each value is
stored as a self-describing envelope string::

    <nonce-hex>:<tag-hex>:<payload-hex>

The envelope format is persisted and must stay stable, otherwise data already
at rest becomes unreadable.
"""
import binascii
import logging
import os
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Iterable, Mapping, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

logger = logging.getLogger(__name__)

ALGORITHM_AES_256_GCM = "aes-256-gcm"
KEY_LENGTH = 32  # 256 bits
NONCE_LENGTH = 16
TAG_LENGTH = 16

# scrypt cost parameters; changing them changes the derived key
SCRYPT_N = 2 ** 14
SCRYPT_R = 8
SCRYPT_P = 1


class EncryptionConfigError(RuntimeError):
    """Raised at startup when the encryption configuration is unusable."""


@dataclass(frozen=True)
class FieldEnvelope:
    """Parsed ``nonce:tag:payload`` envelope. All parts are hex strings."""
    nonce: str
    tag: str
    payload: str

    SEPARATOR: ClassVar[str] = ":"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["FieldEnvelope"]:
        """Split an envelope string. Returns None unless there are exactly 3 parts."""
        if not value or not isinstance(value, str):
            return None
        parts = value.split(cls.SEPARATOR)
        if len(parts) != 3:
            return None
        return cls(nonce=parts[0], tag=parts[1], payload=parts[2])

    def __str__(self) -> str:
        return self.SEPARATOR.join((self.nonce, self.tag, self.payload))


def derive_key(secret: str, salt: str) -> bytes:
    """Derive the 256-bit field key from the configured secret and salt."""
    kdf = Scrypt(salt=salt.encode("utf-8"), length=KEY_LENGTH, n=SCRYPT_N, r=SCRYPT_R, p=SCRYPT_P)
    return kdf.derive(secret.encode("utf-8"))


class FieldCipher:
    """Encrypts and decrypts individual string fields.

    A cipher built without a key is *disabled*: every operation returns None.
    Failures never raise past this class; callers must treat None as
    "value unavailable", not as an empty string.
    """

    def __init__(self, key: Optional[bytes] = None):
        if key is not None and len(key) != KEY_LENGTH:
            raise EncryptionConfigError(f"Field key must be {KEY_LENGTH} bytes, got {len(key)}")
        self._aesgcm = AESGCM(key) if key is not None else None

    @classmethod
    def from_secret(cls, secret: Optional[str], salt: Optional[str]) -> "FieldCipher":
        if not secret:
            logger.warning("ENCRYPTION_KEY not set - field encryption will not be available")
            return cls(None)

        if not salt:
            raise EncryptionConfigError(
                "ENCRYPTION_SALT is required but not set. "
                "This is mandatory to prevent data loss when ENCRYPTION_KEY changes. "
                "Generate a secure salt using: openssl rand -hex 16"
            )

        cipher = cls(derive_key(secret, salt))
        logger.info("Encryption key initialized successfully")
        return cipher

    @property
    def available(self) -> bool:
        return self._aesgcm is not None

    def encrypt(self, plaintext: Optional[str]) -> Optional[str]:
        """Encrypt a string value, returning ``nonce:tag:payload`` in hex."""
        if self._aesgcm is None:
            logger.debug("Encryption key not available - returning None")
            return None

        if not plaintext or not isinstance(plaintext, str):
            return None

        try:
            nonce = os.urandom(NONCE_LENGTH)
            ct_and_tag = self._aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)
        except Exception as e:
            logger.error(f"Encryption error: {e}")
            return None

        envelope = FieldEnvelope(
            nonce=binascii.hexlify(nonce).decode("ascii"),
            tag=binascii.hexlify(ct_and_tag[-TAG_LENGTH:]).decode("ascii"),
            payload=binascii.hexlify(ct_and_tag[:-TAG_LENGTH]).decode("ascii"),
        )
        return str(envelope)

    def decrypt(self, ciphertext: Optional[str]) -> Optional[str]:
        """Decrypt an envelope produced by :meth:`encrypt`."""
        if self._aesgcm is None:
            logger.debug("Encryption key not available - returning None")
            return None

        if not ciphertext:
            return None

        envelope = FieldEnvelope.parse(ciphertext)
        if envelope is None:
            logger.error("Invalid ciphertext format")
            return None

        try:
            nonce = binascii.unhexlify(envelope.nonce)
            tag = binascii.unhexlify(envelope.tag)
            payload = binascii.unhexlify(envelope.payload)
        except (binascii.Error, ValueError) as e:
            logger.error(f"Decryption error: malformed envelope ({e})")
            return None

        if len(tag) != TAG_LENGTH:
            logger.error(f"Decryption error: auth tag must be {TAG_LENGTH} bytes, got {len(tag)}")
            return None

        try:
            plaintext = self._aesgcm.decrypt(nonce, payload + tag, None)
            return plaintext.decode("utf-8")
        except InvalidTag:
            logger.error("Decryption error: authentication tag mismatch")
            return None
        except Exception as e:
            logger.error(f"Decryption error: {e}")
            return None

    @staticmethod
    def is_encrypted(value: Any) -> bool:
        """Structural check only; the tag is not verified."""
        return FieldEnvelope.parse(value) is not None

    def encrypt_fields(self, record: Mapping[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
        """Return a copy of ``record`` with the named string fields encrypted."""
        result = dict(record)

        for name in fields:
            value = result.get(name)
            if value and isinstance(value, str):
                encrypted = self.encrypt(value)
                if encrypted:
                    result[name] = encrypted

        return result

    def decrypt_fields(self, record: Mapping[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
        """Return a copy of ``record`` with the named envelope fields decrypted.

        A field that looks encrypted but cannot be decrypted becomes None.
        """
        result = dict(record)

        for name in fields:
            value = result.get(name)
            if value and isinstance(value, str) and self.is_encrypted(value):
                decrypted = self.decrypt(value)
                if decrypted is None:
                    logger.warning(f"Field '{name}' could not be decrypted; marking unavailable")
                result[name] = decrypted

        return result


_field_cipher: Optional[FieldCipher] = None


def initialize(secret: Optional[str], salt: Optional[str]) -> FieldCipher:
    """Derive the process-wide key and install the shared cipher."""
    global _field_cipher
    _field_cipher = FieldCipher.from_secret(secret, salt)
    return _field_cipher


def get_field_cipher() -> FieldCipher:
    """Return the shared cipher, initializing it from settings on first use."""
    if _field_cipher is None:
        from app.settings import settings
        return initialize(settings.ENCRYPTION_KEY, settings.ENCRYPTION_SALT)
    return _field_cipher
