"""
Shellgate - Secret encryption

AES-256-CBC with a scrypt-derived key. Stored values have the shape
``<iv hex>:<ciphertext hex>``, which is what the profile store has always
written.
"""

import os
import re
from typing import Optional

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt
from loguru import logger

from shellgate.core.exceptions import DecryptError

# scrypt parameters match the values existing rows were written with
KDF_SALT = b"salt"
KDF_N = 2 ** 14
KDF_R = 8
KDF_P = 1

IV_LENGTH = 16

_ENCRYPTED_VALUE = re.compile(r"^[0-9a-fA-F]{32}:[0-9a-fA-F]+$")


class SecretCipher:
    """
    Encrypts and decrypts profile secrets.

    The key is derived once at construction; build a single instance at
    startup and hand it to whoever needs it.
    """

    def __init__(self, passphrase: str):
        kdf = Scrypt(salt=KDF_SALT, length=32, n=KDF_N, r=KDF_R, p=KDF_P)
        self._key = kdf.derive(passphrase.encode("utf-8"))

    @staticmethod
    def looks_encrypted(value: Optional[str]) -> bool:
        """True if value has the ``iv:ciphertext`` shape"""
        return bool(value) and bool(_ENCRYPTED_VALUE.match(value))

    def encrypt(self, plaintext: str) -> str:
        iv = os.urandom(IV_LENGTH)
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()

        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        data = encryptor.update(padded) + encryptor.finalize()
        return f"{iv.hex()}:{data.hex()}"

    def decrypt(self, value: str) -> str:
        """Decrypt a stored value, raising DecryptError on any failure"""
        if not self.looks_encrypted(value):
            raise DecryptError("Value is not in iv:ciphertext format")

        iv_hex, data_hex = value.split(":", 1)
        try:
            iv = bytes.fromhex(iv_hex)
            data = bytes.fromhex(data_hex)

            decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(data) + decryptor.finalize()

            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            plaintext = unpadder.update(padded) + unpadder.finalize()
            return plaintext.decode("utf-8")
        except (ValueError, UnicodeDecodeError) as e:
            # Never log the value itself
            logger.debug(f"Secret decryption failed: {type(e).__name__}")
            raise DecryptError("Could not decrypt stored secret") from e
