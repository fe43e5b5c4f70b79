"""
Shellgate - Models
"""

from shellgate.models.connection import Connection

__all__ = ["Connection"]
