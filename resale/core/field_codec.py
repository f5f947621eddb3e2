"""Encryption for seller banking fields at rest.

AES-256-CBC with PKCS7 padding and a fresh random 16-byte IV per call. The IV
is not secret and is stored next to the ciphertext; both are hex-encoded.

One key from configuration protects every user's fields. Rotating it means
re-encrypting all payable profiles; there is no per-user key or key id yet.
"""

import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from resale.schemas.documents import EncryptedField

KEY_BYTES = 32
_IV_BYTES = 16
_BLOCK_BITS = 128


def load_field_key(hex_key: str) -> bytes:
    """Decode the configured 64-hex-char key into 32 raw bytes."""
    try:
        key = bytes.fromhex(hex_key)
    except ValueError as exc:
        raise ValueError("FIELD_ENCRYPTION_KEY must be hex-encoded") from exc
    _check_key(key)
    return key


def _check_key(key: bytes) -> None:
    if len(key) != KEY_BYTES:
        raise ValueError(f"Field encryption key must be {KEY_BYTES} bytes, got {len(key)}")


def encrypt_field(plaintext: bytes | str, key: bytes) -> EncryptedField:
    _check_key(key)
    if isinstance(plaintext, str):
        plaintext = plaintext.encode("utf-8")
    iv = os.urandom(_IV_BYTES)
    padder = padding.PKCS7(_BLOCK_BITS).padder()
    padded = padder.update(plaintext) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()
    return EncryptedField(iv=iv.hex(), ciphertext=ciphertext.hex())


def decrypt_field(field: EncryptedField, key: bytes) -> bytes:
    _check_key(key)
    iv = bytes.fromhex(field.iv)
    ciphertext = bytes.fromhex(field.ciphertext)
    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()
    unpadder = padding.PKCS7(_BLOCK_BITS).unpadder()
    return unpadder.update(padded) + unpadder.finalize()
