"""Tests for the field encryption engine."""
import logging

import pytest

from app.domain.encryption import field_cipher
from app.domain.encryption.field_cipher import (
    EncryptionConfigError,
    FieldCipher,
    FieldEnvelope,
    NONCE_LENGTH,
    TAG_LENGTH,
    derive_key,
)


def _flip_hex_char(hex_str: str, index: int) -> str:
    replacement = "0" if hex_str[index] != "0" else "1"
    return hex_str[:index] + replacement + hex_str[index + 1:]


def test_encrypt_decrypt_round_trip(cipher):
    for plaintext in ["123-45-6789", "12-3456789", "ünïcødé ✓", "a", "x" * 4096]:
        envelope = cipher.encrypt(plaintext)
        assert envelope is not None
        assert envelope != plaintext
        assert cipher.decrypt(envelope) == plaintext


def test_envelope_shape(cipher):
    envelope = FieldEnvelope.parse(cipher.encrypt("123-45-6789"))

    assert envelope is not None
    assert len(envelope.nonce) == NONCE_LENGTH * 2
    assert len(envelope.tag) == TAG_LENGTH * 2
    assert len(envelope.payload) == len("123-45-6789".encode()) * 2
    assert all(c in "0123456789abcdef" for c in str(envelope).replace(":", ""))


def test_encryption_is_not_deterministic(cipher):
    first = cipher.encrypt("same value")
    second = cipher.encrypt("same value")

    assert first != second
    assert FieldEnvelope.parse(first).nonce != FieldEnvelope.parse(second).nonce
    assert cipher.decrypt(first) == "same value"
    assert cipher.decrypt(second) == "same value"


@pytest.mark.parametrize("segment", ["tag", "payload"])
def test_tampering_is_detected(cipher, segment):
    envelope = FieldEnvelope.parse(cipher.encrypt("sensitive tax id"))
    original = getattr(envelope, segment)

    for index in range(len(original)):
        parts = {"nonce": envelope.nonce, "tag": envelope.tag, "payload": envelope.payload}
        parts[segment] = _flip_hex_char(original, index)
        tampered = FieldEnvelope(**parts)
        assert cipher.decrypt(str(tampered)) is None


def test_tampered_nonce_fails(cipher):
    envelope = FieldEnvelope.parse(cipher.encrypt("sensitive"))
    tampered = FieldEnvelope(_flip_hex_char(envelope.nonce, 0), envelope.tag, envelope.payload)

    assert cipher.decrypt(str(tampered)) is None


def test_wrong_key_fails_decryption(cipher):
    other = FieldCipher.from_secret("another-key", "0f1e2d3c4b5a69788796a5b4c3d2e1f0")
    envelope = cipher.encrypt("sensitive")

    assert other.decrypt(envelope) is None


def test_same_secret_and_salt_derive_same_key():
    assert derive_key("secret", "salt-1") == derive_key("secret", "salt-1")
    assert derive_key("secret", "salt-1") != derive_key("secret", "salt-2")
    assert len(derive_key("secret", "salt-1")) == 32


@pytest.mark.parametrize("value", [
    "",
    "plain",
    "one:two",
    "a:b:c:d",
    "a:b:c:d:e",
])
def test_malformed_envelopes(cipher, value):
    assert cipher.decrypt(value) is None
    if value.count(":") != 2:
        assert not cipher.is_encrypted(value)


def test_three_part_garbage_is_structurally_encrypted_but_undecryptable(cipher):
    assert cipher.is_encrypted("zz:yy:xx")
    assert cipher.decrypt("zz:yy:xx") is None
    assert cipher.decrypt("00ff:00ff:00ff") is None


def test_is_encrypted_non_strings():
    assert not FieldCipher.is_encrypted(None)
    assert not FieldCipher.is_encrypted(123)


def test_encrypt_empty_returns_none(cipher):
    assert cipher.encrypt("") is None
    assert cipher.encrypt(None) is None


def test_missing_salt_is_fatal():
    with pytest.raises(EncryptionConfigError, match="ENCRYPTION_SALT is required"):
        FieldCipher.from_secret("a-secret", None)

    with pytest.raises(EncryptionConfigError):
        FieldCipher.from_secret("a-secret", "")


def test_missing_salt_blocks_initialize():
    with pytest.raises(EncryptionConfigError):
        field_cipher.initialize("a-secret", None)

    assert field_cipher._field_cipher is None


def test_missing_secret_disables_encryption(caplog):
    with caplog.at_level(logging.WARNING):
        disabled = FieldCipher.from_secret(None, "salt")

    assert not disabled.available
    assert "ENCRYPTION_KEY not set" in caplog.text
    assert disabled.encrypt("value") is None
    assert disabled.decrypt("aa:bb:cc") is None


def test_disabled_cipher_cannot_read_existing_data(cipher, disabled_cipher):
    envelope = cipher.encrypt("value")

    assert disabled_cipher.decrypt(envelope) is None


def test_invalid_key_length_rejected():
    with pytest.raises(EncryptionConfigError):
        FieldCipher(b"short")


def test_encrypt_fields_returns_new_record(cipher):
    record = {"name": "Acme Roofing", "ssn": "123-45-6789", "tax_id": "12-3456789", "employees": 12}

    encrypted = cipher.encrypt_fields(record, ["ssn", "tax_id", "employees", "missing"])

    assert record["ssn"] == "123-45-6789"
    assert encrypted is not record
    assert encrypted["name"] == "Acme Roofing"
    assert encrypted["employees"] == 12
    assert "missing" not in encrypted
    assert cipher.is_encrypted(encrypted["ssn"])
    assert cipher.is_encrypted(encrypted["tax_id"])


def test_decrypt_fields_round_trip(cipher):
    record = {"ssn": "123-45-6789", "tax_id": "12-3456789", "notes": "plain"}
    encrypted = cipher.encrypt_fields(record, ["ssn", "tax_id"])

    decrypted = cipher.decrypt_fields(encrypted, ["ssn", "tax_id", "notes"])

    assert decrypted == record
    assert cipher.is_encrypted(encrypted["ssn"])


def test_decrypt_fields_skips_plain_values(cipher):
    record = {"ssn": "123-45-6789", "phone": None}

    assert cipher.decrypt_fields(record, ["ssn", "phone"]) == record


def test_decrypt_fields_marks_corrupt_field_unavailable(cipher):
    encrypted = cipher.encrypt_fields({"ssn": "123-45-6789", "tax_id": "12-3456789"}, ["ssn", "tax_id"])
    envelope = FieldEnvelope.parse(encrypted["ssn"])
    encrypted["ssn"] = str(FieldEnvelope(envelope.nonce, _flip_hex_char(envelope.tag, 0), envelope.payload))

    decrypted = cipher.decrypt_fields(encrypted, ["ssn", "tax_id"])

    assert decrypted["ssn"] is None
    assert decrypted["tax_id"] == "12-3456789"


def test_encrypt_fields_disabled_keeps_values(disabled_cipher):
    record = {"ssn": "123-45-6789"}

    assert disabled_cipher.encrypt_fields(record, ["ssn"]) == record


def test_get_field_cipher_initializes_once(monkeypatch):
    from app.settings import Settings

    monkeypatch.setattr("app.settings.settings", Settings(ENCRYPTION_KEY="k", ENCRYPTION_SALT="s"))

    first = field_cipher.get_field_cipher()
    second = field_cipher.get_field_cipher()

    assert first is second
    assert first.available


def test_initialize_replaces_shared_cipher(cipher):
    installed = field_cipher.initialize("k", "s")

    assert field_cipher.get_field_cipher() is installed
    assert installed.decrypt(installed.encrypt("value")) == "value"
