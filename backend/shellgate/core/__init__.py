"""
Shellgate - Core Module
"""

from shellgate.core.config import settings, Settings
from shellgate.core.crypto import SecretCipher
from shellgate.core.database import Base, Database, build_database

__all__ = [
    "settings",
    "Settings",
    "SecretCipher",
    "Base",
    "Database",
    "build_database",
]
