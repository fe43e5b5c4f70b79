"""
Shellgate - PyTest Configuration

Fixtures for:
- In-memory SQLite database and credential store
- Secret cipher and generated private keys
- Fake client channel and fake SSH connector/client/shell
- Access tokens
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENCRYPTION_KEY", "test-encryption-key")
os.environ.setdefault("DEBUG", "true")

import asyncio
from typing import AsyncGenerator, List, Optional
from uuid import uuid4

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519, rsa
from jose import jwt
from sqlalchemy.pool import StaticPool

from shellgate.core.config import Settings
from shellgate.core.crypto import SecretCipher
from shellgate.core.database import Database
from shellgate.core.exceptions import ShellOpenError
from shellgate.models.connection import Connection
from shellgate.services.credential_store import CredentialStore


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_SECRET_KEY = "test-secret-key"
TEST_USER_ID = "user-1"
OTHER_USER_ID = "user-2"


# ============================================================================
# CORE FIXTURES
# ============================================================================

@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        SECRET_KEY=TEST_SECRET_KEY,
        ENCRYPTION_KEY="test-encryption-key",
        DATABASE_URL=TEST_DATABASE_URL,
        DEBUG=True,
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture(scope="session")
def cipher() -> SecretCipher:
    return SecretCipher("test-encryption-key")


@pytest.fixture
async def database() -> AsyncGenerator[Database, None]:
    """Fresh in-memory database per test"""
    db = Database(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await db.init()
    yield db
    await db.close()


@pytest.fixture
def credential_store(database: Database, cipher: SecretCipher) -> CredentialStore:
    return CredentialStore(database.session_factory, cipher)


@pytest.fixture
def offline_store(cipher: SecretCipher) -> CredentialStore:
    """Store usable for reveal() only, no database behind it"""
    return CredentialStore(None, cipher)


@pytest.fixture
def make_connection(database: Database):
    """Insert a connection row and return it"""
    async def _make(**fields) -> Connection:
        values = {
            "id": str(uuid4()),
            "user_id": TEST_USER_ID,
            "name": "Test Server",
            "host": "10.0.0.5",
            "port": 22,
            "username": "deploy",
            "auth_method": "password",
        }
        values.update(fields)
        row = Connection(**values)
        async with database.session_factory() as db:
            db.add(row)
            await db.commit()
        return row

    return _make


# ============================================================================
# TOKENS
# ============================================================================

@pytest.fixture
def access_token() -> str:
    return jwt.encode({"sub": TEST_USER_ID, "email": "user@shellgate.test"}, TEST_SECRET_KEY, algorithm="HS256")


# ============================================================================
# KEYS
# ============================================================================

@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_traditional_pem(rsa_key) -> str:
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()


@pytest.fixture(scope="session")
def rsa_pkcs8_pem(rsa_key) -> str:
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()


@pytest.fixture(scope="session")
def rsa_encrypted_pkcs8_pem(rsa_key) -> str:
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.BestAvailableEncryption(b"open sesame"),
    ).decode()


@pytest.fixture(scope="session")
def ed25519_pkcs8_pem() -> str:
    return ed25519.Ed25519PrivateKey.generate().private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()


# ============================================================================
# FAKE CLIENT CHANNEL
# ============================================================================

class FakeChannel:
    """In-memory stand-in for WebSocketChannel"""

    def __init__(self):
        self.inbound: asyncio.Queue = asyncio.Queue()
        self.sent: List = []
        self.closed = False
        self.close_calls = 0

    # client side helpers
    def client_send(self, message: str):
        self.inbound.put_nowait(message)

    def client_disconnect(self):
        self.inbound.put_nowait(None)

    @property
    def frame_types(self) -> List[str]:
        return [frame.type for frame in self.sent]

    def frames_of(self, frame_type: str) -> List:
        return [frame for frame in self.sent if frame.type == frame_type]

    # channel interface
    async def send_frame(self, frame) -> bool:
        if self.closed:
            return False
        self.sent.append(frame)
        return True

    async def receive_text(self) -> Optional[str]:
        if self.closed:
            return None
        raw = await self.inbound.get()
        if raw is None:
            self.closed = True
        return raw

    async def close(self, code: int = 1000, reason: Optional[str] = None):
        self.close_calls += 1
        self.closed = True


# ============================================================================
# FAKE SSH
# ============================================================================

class FakeShell:
    def __init__(self, chunks=(), echo: bool = False):
        self.output: asyncio.Queue = asyncio.Queue()
        for chunk in chunks:
            self.output.put_nowait(chunk)
        self.echo = echo
        self.written: List[str] = []
        self.resizes: List[tuple] = []
        self.closed = False

    def emit(self, chunk: str):
        self.output.put_nowait(chunk)

    def end(self):
        self.output.put_nowait("")

    async def read(self) -> str:
        return await self.output.get()

    def write(self, data: str):
        self.written.append(data)
        if self.echo:
            self.output.put_nowait(data)

    def resize(self, cols: int, rows: int, width: int = 0, height: int = 0):
        self.resizes.append((cols, rows, width, height))

    def close(self):
        if not self.closed:
            self.closed = True
            self.output.put_nowait("")


class FakeClient:
    def __init__(self, shell: Optional[FakeShell] = None, shell_error: Optional[str] = None):
        self.shell = shell or FakeShell()
        self.shell_error = shell_error
        self.shell_requests: List[tuple] = []
        self.close_calls = 0
        self._closed = asyncio.Event()

    async def open_shell(self, term_type: str, term_size: tuple) -> FakeShell:
        self.shell_requests.append((term_type, term_size))
        if self.shell_error:
            raise ShellOpenError(self.shell_error)
        return self.shell

    def drop(self):
        """Simulate the server dropping the connection"""
        self._closed.set()

    async def wait_closed(self):
        await self._closed.wait()

    def close(self):
        self.close_calls += 1
        self._closed.set()


HANG = object()


class FakeConnector:
    """
    Returns a scripted outcome per connection attempt: a FakeClient,
    an exception instance to raise, or HANG to block until cancelled.
    """

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.attempts: List = []
        self.cancelled = False

    async def connect(self, host, port, username, candidate, timeout):
        self.attempts.append(candidate)
        outcome = self.outcomes[len(self.attempts) - 1]
        if outcome is HANG:
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def fake_channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def fake_shell():
    return FakeShell


@pytest.fixture
def fake_client():
    return FakeClient


@pytest.fixture
def fake_connector():
    return FakeConnector


@pytest.fixture
def hang():
    return HANG


async def wait_until(predicate, timeout: float = 2.0):
    """Poll until predicate() is true"""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def eventually():
    return wait_until
