"""
Session-bound payload encryption.

AES-256-GCM with a key derived from the session token via PBKDF2-HMAC-SHA256.
Ciphertext format: base64(iv[12] || ciphertext || tag[16]).
"""

import base64
import binascii
import os
from functools import lru_cache

import structlog
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .exceptions import PayloadDecryptError

logger = structlog.get_logger(__name__)

KDF_SALT = b"secure-gate-salt-v2"
KDF_ITERATIONS = 10000
KEY_LENGTH = 32
IV_LENGTH = 12


@lru_cache(maxsize=256)
def derive_key(session_token: str) -> bytes:
    """Derive the AES key for a session token."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=KDF_SALT,
        iterations=KDF_ITERATIONS,
    )
    return kdf.derive(session_token.encode("utf-8"))


def encrypt_payload(plaintext: str, session_token: str) -> str:
    """Encrypt plaintext for the holder of session_token."""
    iv = os.urandom(IV_LENGTH)
    ciphertext = AESGCM(derive_key(session_token)).encrypt(iv, plaintext.encode("utf-8"), None)
    return base64.b64encode(iv + ciphertext).decode("ascii")


def decrypt_payload(encrypted: str, session_token: str) -> str:
    """
    Decrypt a payload produced by encrypt_payload with the same token.

    Raises PayloadDecryptError on malformed input, wrong token or tampering.
    """
    try:
        combined = base64.b64decode(encrypted, validate=True)
        if len(combined) <= IV_LENGTH:
            raise ValueError("payload too short")
        iv, ciphertext = combined[:IV_LENGTH], combined[IV_LENGTH:]
        plaintext = AESGCM(derive_key(session_token)).decrypt(iv, ciphertext, None)
        return plaintext.decode("utf-8")
    except (InvalidTag, ValueError, binascii.Error) as e:
        logger.warning("Payload decryption failed", error_type=type(e).__name__)
        raise PayloadDecryptError()
