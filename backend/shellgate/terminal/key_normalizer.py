"""
Shellgate - Private key normalization

Keys exported as generic PKCS8 ("BEGIN PRIVATE KEY") are rewritten as
traditional OpenSSL PEM ("BEGIN RSA PRIVATE KEY" and friends) before they are
handed to the SSH client. Anything else passes through untouched.
"""

from typing import Optional
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from loguru import logger

PKCS8_MARKERS = ("BEGIN PRIVATE KEY", "BEGIN ENCRYPTED PRIVATE KEY")


def is_pkcs8(key_text: Optional[str]) -> bool:
    return bool(key_text) and any(marker in key_text for marker in PKCS8_MARKERS)


def normalize_private_key(key_text: str, passphrase: Optional[str] = None) -> str:
    """
    Convert a PKCS8 PEM key to traditional OpenSSL PEM.

    Best effort: on any failure the original text is returned and the
    problem is left for the connection attempt to report.
    """
    if not is_pkcs8(key_text):
        return key_text

    try:
        password = passphrase.encode("utf-8") if passphrase else None
        private_key = serialization.load_pem_private_key(key_text.encode("utf-8"), password=password)
        converted = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        )
        return converted.decode("utf-8")

    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        logger.warning(f"Could not normalize private key format: {e}")
        return key_text
