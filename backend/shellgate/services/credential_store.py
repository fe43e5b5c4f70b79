"""
Shellgate - Credential Store
Resolves stored connection profiles for a caller and reveals their secrets
"""

from typing import Any, Dict, List, Optional
from loguru import logger
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shellgate.core.crypto import SecretCipher
from shellgate.core.exceptions import ProfileNotFound, ProfileForbidden
from shellgate.core.security import CallerContext
from shellgate.models.connection import Connection
from shellgate.schemas.profile import AuthMethod, ConnectionProfile, KeyMaterial


class CredentialStore:
    """
    Read access to connection profiles.

    Each resolve runs in its own database session and returns a frozen
    snapshot, so concurrent sessions never observe each other's state.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], cipher: SecretCipher):
        self.session_factory = session_factory
        self.cipher = cipher

    async def resolve(self, connection_id: str, caller: CallerContext) -> ConnectionProfile:
        """Fetch a profile owned by the caller"""
        async with self.session_factory() as db:
            result = await db.execute(select(Connection).where(Connection.id == connection_id))
            row = result.scalar_one_or_none()

        if row is None:
            raise ProfileNotFound()

        if row.user_id != caller.user_id:
            logger.warning(
                f"User {caller.user_id} attempted to open connection {connection_id} "
                f"owned by another user"
            )
            raise ProfileForbidden()

        return self._to_profile(row)

    def reveal(self, value: Optional[str]) -> Optional[str]:
        """
        Return the plaintext of a stored secret.

        Empty values give None. Values that are not in ``iv:ciphertext``
        form predate encryption and are returned as-is. Raises DecryptError
        when an encrypted value cannot be decrypted.
        """
        if not value:
            return None
        if not self.cipher.looks_encrypted(value):
            return value
        return self.cipher.decrypt(value)

    def _to_profile(self, row: Connection) -> ConnectionProfile:
        auth_method = None
        if row.auth_method in (AuthMethod.PASSWORD.value, AuthMethod.KEY.value):
            auth_method = AuthMethod(row.auth_method)

        return ConnectionProfile(
            id=row.id,
            name=row.name,
            host=row.host,
            port=row.port or 22,
            username=row.username,
            auth_method=auth_method,
            password=row.password,
            ssh_keys=self._parse_keys(row.id, row.ssh_keys),
            private_key_content=row.private_key_content,
            private_key_path=row.private_key,
            passphrase=row.passphrase,
        )

    @staticmethod
    def _parse_keys(connection_id: str, raw_keys: Optional[List[Dict[str, Any]]]) -> List[KeyMaterial]:
        keys = []
        for index, raw in enumerate(raw_keys or []):
            if not isinstance(raw, dict):
                logger.warning(f"Ignoring malformed SSH key #{index} on connection {connection_id}")
                continue
            try:
                keys.append(KeyMaterial.model_validate({"id": str(index), **raw}))
            except ValidationError as e:
                logger.warning(
                    f"Ignoring invalid SSH key #{index} on connection {connection_id}: "
                    f"{e.error_count()} error(s)"
                )
        return keys
