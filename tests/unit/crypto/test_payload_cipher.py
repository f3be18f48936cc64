"""
Tests for session-bound payload encryption.
"""

import base64

import pytest

from src.linkgate.core.crypto import IV_LENGTH, decrypt_payload, derive_key, encrypt_payload
from src.linkgate.core.exceptions import PayloadDecryptError

TOKEN = "6f1c2a52-8d1e-4c5b-9e47-0d3f1a2b3c4d"


class TestPayloadCipher:
    """Test AES-GCM payloads keyed by the session token."""

    def test_decrypts_with_same_token(self) -> None:
        assert decrypt_payload(encrypt_payload("big buck bunny", TOKEN), TOKEN) == "big buck bunny"

    def test_unicode_payload(self) -> None:
        assert decrypt_payload(encrypt_payload("déjà vu 映画", TOKEN), TOKEN) == "déjà vu 映画"

    def test_fresh_iv_per_encryption(self) -> None:
        first = encrypt_payload("foo", TOKEN)
        second = encrypt_payload("foo", TOKEN)
        assert first != second
        assert base64.b64decode(first)[:IV_LENGTH] != base64.b64decode(second)[:IV_LENGTH]

    def test_wrong_token_fails(self) -> None:
        encrypted = encrypt_payload("foo", TOKEN)
        with pytest.raises(PayloadDecryptError):
            decrypt_payload(encrypted, "another-token")

    def test_tampered_ciphertext_fails(self) -> None:
        raw = bytearray(base64.b64decode(encrypt_payload("foo", TOKEN)))
        raw[-1] ^= 0x01
        with pytest.raises(PayloadDecryptError):
            decrypt_payload(base64.b64encode(bytes(raw)).decode(), TOKEN)

    def test_malformed_input_fails(self) -> None:
        for payload in ("", "not base64!!", base64.b64encode(b"short").decode()):
            with pytest.raises(PayloadDecryptError) as exc_info:
                decrypt_payload(payload, TOKEN)
            assert str(exc_info.value) == "DECRYPTION_FAILED"

    def test_key_derivation_is_stable(self) -> None:
        assert derive_key(TOKEN) == derive_key(TOKEN)
        assert len(derive_key(TOKEN)) == 32
        assert derive_key(TOKEN) != derive_key(TOKEN + "x")
