"""Tests for the process-wide cipher registry."""

import pytest
from sales.security import (
    ENCRYPTION_KEY_ENV,
    FieldCipher,
    configure_cipher,
    get_cipher,
    reset_cipher,
    set_cipher,
)


@pytest.fixture(autouse=True)
def _clean_registry():
    reset_cipher()
    yield
    reset_cipher()


class TestConfigureCipher:
    def test_reads_key_from_environment(self, monkeypatch):
        monkeypatch.setenv(ENCRYPTION_KEY_ENV, "from-env")
        cipher = configure_cipher()
        token = cipher.encrypt("Marrakech")
        assert FieldCipher.from_secret("from-env").decrypt(token) == "Marrakech"

    def test_explicit_secret_wins_over_environment(self, monkeypatch):
        monkeypatch.setenv(ENCRYPTION_KEY_ENV, "from-env")
        cipher = configure_cipher("explicit")
        token = cipher.encrypt("Marrakech")
        assert FieldCipher.from_secret("explicit").decrypt(token) == "Marrakech"

    def test_missing_key_in_production_is_an_error(self, monkeypatch):
        monkeypatch.delenv(ENCRYPTION_KEY_ENV, raising=False)
        monkeypatch.setenv("PROTEAN_ENV", "production")
        with pytest.raises(RuntimeError):
            configure_cipher()

    def test_missing_key_outside_production_falls_back(self, monkeypatch):
        monkeypatch.delenv(ENCRYPTION_KEY_ENV, raising=False)
        cipher = configure_cipher()
        assert cipher.decrypt(cipher.encrypt("Oujda")) == "Oujda"


class TestRegistry:
    def test_get_cipher_configures_on_first_use(self, monkeypatch):
        monkeypatch.setenv(ENCRYPTION_KEY_ENV, "lazy")
        first = get_cipher()
        assert get_cipher() is first

    def test_set_cipher_overrides(self):
        custom = FieldCipher.from_secret("custom")
        set_cipher(custom)
        assert get_cipher() is custom
