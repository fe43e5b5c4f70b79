"""
Shellgate - Schemas
"""

from shellgate.schemas.profile import AuthMethod, KeySource, KeyMaterial, ConnectionProfile
from shellgate.schemas.frames import (
    DataFrame,
    ResizeFrame,
    StatusFrame,
    ErrorFrame,
    parse_inbound_frame,
    serialize_frame,
)

__all__ = [
    "AuthMethod",
    "KeySource",
    "KeyMaterial",
    "ConnectionProfile",
    "DataFrame",
    "ResizeFrame",
    "StatusFrame",
    "ErrorFrame",
    "parse_inbound_frame",
    "serialize_frame",
]
