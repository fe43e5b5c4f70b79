"""
Shellgate - Connection Profile Schemas
Read-only snapshots of a stored connection. Secret fields are still encrypted.
"""

from typing import Optional, List
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


class AuthMethod(str, Enum):
    PASSWORD = "password"
    KEY = "key"


class KeySource(str, Enum):
    """Where a key's private material lives"""
    UPLOADED = "uploaded"
    FILE = "file"


class KeyMaterial(BaseModel):
    """One SSH key attached to a profile"""
    model_config = ConfigDict(frozen=True, populate_by_name=True, coerce_numbers_to_str=True)

    id: str
    source: KeySource = Field(KeySource.UPLOADED, alias="type")
    content: Optional[str] = None  # Encrypted
    file_path: Optional[str] = Field(None, alias="filePath")
    passphrase: Optional[str] = None  # Encrypted
    fingerprint: Optional[str] = None
    is_primary: bool = Field(False, alias="isPrimary")


class ConnectionProfile(BaseModel):
    """Everything needed to reach and authenticate to a remote host"""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    host: str
    port: int = Field(22, ge=1, le=65535)
    username: str
    auth_method: Optional[AuthMethod] = None
    password: Optional[str] = None  # Encrypted
    ssh_keys: List[KeyMaterial] = Field(default_factory=list)

    # Legacy single key
    private_key_content: Optional[str] = None  # Encrypted
    private_key_path: Optional[str] = None
    passphrase: Optional[str] = None  # Encrypted

    @property
    def has_key_source(self) -> bool:
        return bool(self.ssh_keys or self.private_key_content or self.private_key_path)
