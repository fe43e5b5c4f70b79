"""
Shellgate - Services
"""

from shellgate.services.credential_store import CredentialStore

__all__ = ["CredentialStore"]
