"""
At-rest encryption for the sensitive contact fields.

The key is derived once from the server secret with scrypt; every record gets its
own random IV which is stored next to the ciphertext as "<iv hex>:<ciphertext hex>".
"""

import json
import logging
import os
from functools import lru_cache
from typing import Optional

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

import config

logger = logging.getLogger(__name__)

SENSITIVE_FIELDS = ("name", "email", "phone", "message")
KDF_SALT = b"salt"
IV_SIZE = 16


@lru_cache(maxsize=4)
def derive_key(secret: str) -> bytes:
    kdf = Scrypt(salt=KDF_SALT, length=32, n=2 ** 14, r=8, p=1)
    return kdf.derive(secret.encode("utf-8"))


def encrypt_fields(fields: dict, secret: Optional[str] = None) -> str:
    key = derive_key(secret or config.ENCRYPTION_SECRET)
    iv = os.urandom(IV_SIZE)
    payload = json.dumps({k: fields.get(k, "") for k in SENSITIVE_FIELDS}).encode("utf-8")

    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(payload) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    encrypted = encryptor.update(padded) + encryptor.finalize()
    return f"{iv.hex()}:{encrypted.hex()}"


def decrypt_fields(blob: Optional[str], secret: Optional[str] = None) -> Optional[dict]:
    """Return the decrypted sensitive fields, or None if the blob is missing or unreadable."""
    if not blob:
        return None
    try:
        iv_hex, encrypted_hex = blob.split(":", 1)
        key = derive_key(secret or config.ENCRYPTION_SECRET)
        decryptor = Cipher(algorithms.AES(key), modes.CBC(bytes.fromhex(iv_hex))).decryptor()
        padded = decryptor.update(bytes.fromhex(encrypted_hex)) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        return json.loads(unpadder.update(padded) + unpadder.finalize())
    except Exception as e:
        logger.error(f"Decryption error: {e}")
        return None
