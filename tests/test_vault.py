"""Tests for provider credential encryption."""

import hashlib

import pytest

from security.vault import CredentialVault, DEFAULT_FALLBACK_SECRET, derive_key, get_vault


@pytest.fixture
def vault():
    return CredentialVault.from_secrets(fallback_secret="jwt-signing-secret")


class TestKeyDerivation:
    def test_fallback_secret_is_hashed(self):
        assert derive_key(None, "abc") == hashlib.sha256(b"abc").digest()

    def test_default_secret_when_nothing_configured(self):
        assert derive_key(None, None) == hashlib.sha256(DEFAULT_FALLBACK_SECRET.encode()).digest()

    def test_derivation_is_stable(self):
        assert derive_key(None, "same") == derive_key(None, "same")

    def test_explicit_key_is_padded(self):
        assert derive_key("ab") == bytes.fromhex("ab" + "0" * 62)

    def test_explicit_key_is_truncated(self):
        key = "11" * 40
        assert derive_key(key) == bytes.fromhex("11" * 32)

    def test_explicit_key_wins_over_fallback(self):
        assert derive_key("ff" * 32, "ignored") == b"\xff" * 32

    def test_non_hex_key_is_rejected(self):
        with pytest.raises(ValueError):
            derive_key("not-a-hex-key")

    def test_vault_requires_32_byte_key(self):
        with pytest.raises(ValueError):
            CredentialVault(b"short")


class TestEncrypt:
    def test_round_trip(self, vault):
        assert vault.decrypt(vault.encrypt("s3cret-app-password")) == "s3cret-app-password"

    def test_round_trip_unicode(self, vault):
        assert vault.decrypt(vault.encrypt("pässwörd ✓")) == "pässwörd ✓"

    def test_format_is_hex_iv_colon_hex_ciphertext(self, vault):
        iv_hex, data_hex = vault.encrypt("hello").split(":")
        assert len(iv_hex) == 32
        assert len(bytes.fromhex(data_hex)) % 16 == 0

    def test_ciphertext_is_not_plaintext(self, vault):
        assert "hello" not in vault.encrypt("hello")

    def test_same_plaintext_gives_different_ciphertexts(self, vault):
        first = vault.encrypt("app-password")
        second = vault.encrypt("app-password")
        assert first != second
        assert vault.decrypt(first) == vault.decrypt(second) == "app-password"

    @pytest.mark.parametrize("empty", [None, ""])
    def test_empty_input_gives_none(self, vault, empty):
        assert vault.encrypt(empty) is None

    def test_non_text_input_is_rejected(self, vault):
        with pytest.raises(TypeError):
            vault.encrypt(12345678)


class TestDecrypt:
    @pytest.mark.parametrize("garbage", [
        "no-separator-here",
        "a:b:c",
        "zz:zz",
        "00112233445566778899aabbccddeeff:abc",
        "0011:00112233445566778899aabbccddeeff",
        "00112233445566778899aabbccddeeff:",
        "random garbage",
    ])
    def test_malformed_input_gives_none(self, vault, garbage):
        assert vault.decrypt(garbage) is None

    @pytest.mark.parametrize("empty", [None, ""])
    def test_empty_input_gives_none(self, vault, empty):
        assert vault.decrypt(empty) is None

    def test_wrong_key_never_returns_the_plaintext(self, vault):
        token = vault.encrypt("smtp-password")
        other = CredentialVault.from_secrets(fallback_secret="rotated-secret")
        assert other.decrypt(token) != "smtp-password"

    def test_tampered_ciphertext_does_not_raise(self, vault):
        iv_hex, data_hex = vault.encrypt("smtp-password").split(":")
        flipped = data_hex[:-2] + ("00" if data_hex[-2:] != "00" else "11")
        assert vault.decrypt(f"{iv_hex}:{flipped}") != "smtp-password"


def test_app_vault_uses_secret_key(app):
    expected = CredentialVault.from_secrets(fallback_secret="test-secret")
    token = expected.encrypt("pw")
    assert get_vault().decrypt(token) == "pw"
