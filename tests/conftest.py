import pytest

from app import dependencies
from app.domain.encryption import field_cipher
from app.domain.encryption.field_cipher import FieldCipher

TEST_SECRET = "test-encryption-key"
TEST_SALT = "0f1e2d3c4b5a69788796a5b4c3d2e1f0"


@pytest.fixture(scope="session")
def cipher():
    """Shared enabled cipher; scrypt derivation is slow so derive once."""
    return FieldCipher.from_secret(TEST_SECRET, TEST_SALT)


@pytest.fixture
def disabled_cipher():
    return FieldCipher.from_secret(None, None)


@pytest.fixture(autouse=True)
def reset_singletons(monkeypatch):
    """Each test starts without a process-wide cipher or auth gate."""
    monkeypatch.setattr(field_cipher, "_field_cipher", None)
    monkeypatch.setattr(dependencies, "_auth_gate", None)
    yield
