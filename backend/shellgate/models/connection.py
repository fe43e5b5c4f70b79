"""
Shellgate - Connection Model
Stored SSH connection profiles. Secret columns hold ``iv:ciphertext`` values.
"""

from sqlalchemy import Column, String, Integer, DateTime, JSON, Text
from datetime import datetime
from shellgate.core.database import Base


class Connection(Base):
    """SSH connection profile owned by a single user"""

    __tablename__ = "connections"

    id = Column(String(36), primary_key=True, index=True)
    user_id = Column(String(36), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    host = Column(String(255), nullable=False)
    port = Column(Integer, nullable=False, default=22)
    username = Column(String(255), nullable=False)

    # "password" or "key"
    auth_method = Column(String(20), nullable=False, default="password")
    password = Column(Text)  # Encrypted

    # Multiple keys: list of {id, type, content, filePath, passphrase, fingerprint, isPrimary}
    ssh_keys = Column(JSON)

    # Legacy single key fields
    private_key = Column(Text)  # File path
    private_key_content = Column(Text)  # Encrypted
    passphrase = Column(Text)  # Encrypted
    key_type = Column(String(20))
    key_fingerprint = Column(String(255))

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Connection {self.name} {self.username}@{self.host}:{self.port}>"
