"""
Shellgate - SSH client
Thin asyncssh wrapper used by the session bridge
"""

import asyncio
from typing import Optional, Tuple
from loguru import logger
import asyncssh

from shellgate.core.exceptions import AuthenticationRejected, ConnectError, ShellOpenError
from shellgate.terminal.candidates import CredentialCandidate

READ_CHUNK_SIZE = 4096


class SSHShell:
    """Interactive shell channel with a PTY"""

    def __init__(self, process: asyncssh.SSHClientProcess):
        self.process = process

    async def read(self) -> str:
        """Next chunk of shell output, or an empty string at end of stream"""
        try:
            return await self.process.stdout.read(READ_CHUNK_SIZE)
        except asyncssh.Error as e:
            logger.info(f"SSH channel read ended: {e}")
            return ""

    def write(self, data: str):
        self.process.stdin.write(data)

    def resize(self, cols: int, rows: int, width: int = 0, height: int = 0):
        self.process.change_terminal_size(cols, rows, width, height)

    def close(self):
        self.process.close()


class SSHClient:
    """One authenticated SSH connection"""

    def __init__(self, conn: asyncssh.SSHClientConnection):
        self.conn = conn

    async def open_shell(self, term_type: str, term_size: Tuple[int, int]) -> SSHShell:
        cols, rows = term_size
        try:
            process = await self.conn.create_process(
                term_type=term_type,
                term_size=(cols, rows),
                errors="replace",
            )
        except (asyncssh.Error, OSError) as e:
            raise ShellOpenError(str(e)) from e
        return SSHShell(process)

    async def wait_closed(self):
        await self.conn.wait_closed()

    def close(self):
        self.conn.close()


class SSHConnector:
    """Opens SSH connections for a single credential candidate"""

    def __init__(self, known_hosts: Optional[str] = None):
        self.known_hosts = known_hosts

    async def connect(
        self,
        host: str,
        port: int,
        username: str,
        candidate: CredentialCandidate,
        timeout: float,
    ) -> SSHClient:
        connect_opts = {
            "host": host,
            "port": port,
            "username": username,
            "known_hosts": self.known_hosts,
            # Only the profile's own credentials are ever offered
            "agent_path": None,
            "client_keys": None,
        }

        try:
            if candidate.is_key:
                connect_opts["client_keys"] = [
                    asyncssh.import_private_key(candidate.private_key, candidate.passphrase)
                ]
            else:
                connect_opts["password"] = candidate.password

            conn = await asyncio.wait_for(asyncssh.connect(**connect_opts), timeout=timeout)

        except asyncio.TimeoutError as e:
            raise ConnectError(f"Timed out after {timeout:g}s connecting to {host}:{port}") from e
        except asyncssh.PermissionDenied as e:
            raise AuthenticationRejected(e.reason or "All configured authentication methods failed") from e
        except (asyncssh.KeyImportError, asyncssh.KeyEncryptionError) as e:
            raise AuthenticationRejected(f"Cannot parse privateKey: {e}") from e
        except asyncssh.DisconnectError as e:
            raise ConnectError(e.reason or str(e)) from e
        except (asyncssh.Error, OSError) as e:
            raise ConnectError(str(e) or type(e).__name__) from e

        return SSHClient(conn)
