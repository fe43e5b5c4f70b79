"""
Shellgate - SSH Bridge
Bidirectional bridge between a browser WebSocket and an SSH PTY session

One SessionBridge serves exactly one client connection:

    IDLE -> CONNECTING(i) -> AUTHENTICATED -> SHELL_OPEN -> CLOSED
                 |  ^
                 |  +-- fallback to the next candidate (bounded)
                 +-> ERROR -> CLOSED
"""

import asyncio
import uuid
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, List, Optional
from loguru import logger

from shellgate.core.config import Settings
from shellgate.core.exceptions import (
    AuthenticationRejected,
    ChannelClosed,
    ConfigurationError,
    ConnectError,
    FrameError,
    ShellOpenError,
)
from shellgate.schemas.frames import DataFrame, ErrorFrame, ResizeFrame, StatusFrame, parse_inbound_frame
from shellgate.schemas.profile import ConnectionProfile
from shellgate.services.credential_store import CredentialStore
from shellgate.terminal.candidates import CandidatePlan, build_candidates


class SessionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    AUTHENTICATED = "authenticated"
    SHELL_OPEN = "shell_open"
    ERROR = "error"
    CLOSED = "closed"


@dataclass(frozen=True)
class BridgeOptions:
    connect_timeout: float = 20.0
    term_type: str = "xterm-256color"
    # Extra candidates tried after the first failure; -1 means all of them
    max_fallback_attempts: int = 1
    fallback_on_auth_only: bool = False
    cols: int = 80
    rows: int = 24

    @classmethod
    def from_settings(cls, settings: Settings) -> "BridgeOptions":
        return cls(
            connect_timeout=settings.SSH_CONNECT_TIMEOUT,
            term_type=settings.SSH_TERM_TYPE,
            max_fallback_attempts=settings.SSH_MAX_FALLBACK_ATTEMPTS,
            fallback_on_auth_only=settings.SSH_FALLBACK_ON_AUTH_ONLY,
        )


class SessionBridge:
    """
    Drives authentication with fallback, then relays frames between the
    client channel and the remote shell until either side ends.
    """

    def __init__(
        self,
        channel,
        connector,
        store: CredentialStore,
        options: Optional[BridgeOptions] = None,
        session_id: Optional[str] = None,
    ):
        self.channel = channel
        self.connector = connector
        self.store = store
        self.options = options or BridgeOptions()
        self.session_id = session_id or str(uuid.uuid4())

        self.state = SessionState.IDLE
        self.history: List[SessionState] = [SessionState.IDLE]
        self.candidate_index = 0
        self.fallbacks_used = 0

        self.client = None
        self.shell = None

        self._inbound: asyncio.Queue = asyncio.Queue()
        self._inbound_closed = asyncio.Event()
        self._reader_task: Optional[asyncio.Task] = None
        self._tasks: List[asyncio.Task] = []
        self._error_sent = False

    @property
    def fallback_attempted(self) -> bool:
        return self.fallbacks_used > 0

    def _set_state(self, state: SessionState):
        if self.state == SessionState.CLOSED:
            return
        logger.debug(f"Session {self.session_id}: {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    async def run(self, profile: ConnectionProfile, requested_method: Optional[str] = None):
        """Run the session to completion. Always ends in CLOSED."""
        try:
            try:
                plan = build_candidates(profile, self.store, requested_method)
            except ConfigurationError as e:
                logger.warning(f"Session {self.session_id}: connection {profile.id} unusable: {e.message}")
                await self._fail(e.message)
                return

            self._reader_task = asyncio.create_task(self._read_inbound())

            self.client = await self._connect(profile, plan)
            if self.client is None:
                return

            self._set_state(SessionState.AUTHENTICATED)
            await self.channel.send_frame(StatusFrame(message=f"Connected to {profile.name}"))

            try:
                self.shell = await self._unless_client_gone(
                    self.client.open_shell(self.options.term_type, (self.options.cols, self.options.rows))
                )
            except ShellOpenError as e:
                logger.error(f"Session {self.session_id}: failed to start shell: {e.message}")
                await self._fail(f"Failed to start shell: {e.message}")
                return

            self._set_state(SessionState.SHELL_OPEN)
            logger.info(f"Session {self.session_id}: shell open on {profile.host}:{profile.port}")
            await self._relay()

        except ChannelClosed:
            logger.info(f"Session {self.session_id}: client left during {self.state.value}")
        except Exception as e:
            logger.exception(f"Session {self.session_id}: unexpected bridge error: {e}")
            await self._fail("Terminal session failed unexpectedly.")
        finally:
            await self.close()

    async def _connect(self, profile: ConnectionProfile, plan: CandidatePlan):
        """Try candidates in order, honouring the fallback budget"""
        queue = deque(plan.candidates)
        index = 0

        while queue:
            candidate = queue.popleft()
            self.candidate_index = index
            self._set_state(SessionState.CONNECTING)
            logger.info(
                f"Session {self.session_id}: SSH connecting to {profile.host}:{profile.port} "
                f"as {profile.username} ({plan.method.value} #{index})"
            )

            try:
                return await self._unless_client_gone(
                    self.connector.connect(
                        profile.host,
                        profile.port,
                        profile.username,
                        candidate,
                        self.options.connect_timeout,
                    )
                )
            except ConnectError as e:
                logger.error(f"Session {self.session_id}: SSH connection error: {e.message}")
                if queue and self._may_fall_back(e):
                    self.fallbacks_used += 1
                    index += 1
                    logger.info(f"Session {self.session_id}: falling back to candidate #{index}")
                    continue

                await self._fail(f"SSH connection failed: {e.message}")
                return None

        return None

    def _may_fall_back(self, error: ConnectError) -> bool:
        if self.options.fallback_on_auth_only and not isinstance(error, AuthenticationRejected):
            return False
        if self.options.max_fallback_attempts < 0:
            return True
        return self.fallbacks_used < self.options.max_fallback_attempts

    async def _unless_client_gone(self, awaitable: Awaitable) -> Any:
        """Await a step, abandoning it if the client disconnects first"""
        step = asyncio.ensure_future(awaitable)
        gone = asyncio.ensure_future(self._inbound_closed.wait())
        try:
            done, _ = await asyncio.wait({step, gone}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            gone.cancel()

        if step in done:
            return step.result()

        step.cancel()
        result = (await asyncio.gather(step, return_exceptions=True))[0]
        if result is not None and not isinstance(result, BaseException):
            result.close()
        raise ChannelClosed()

    async def _relay(self):
        outbound = asyncio.create_task(self._pump_shell_to_channel())
        inbound = asyncio.create_task(self._pump_channel_to_shell())
        client_closed = asyncio.create_task(self.client.wait_closed())
        self._tasks = [outbound, inbound, client_closed]

        done, _ = await asyncio.wait(self._tasks, return_when=asyncio.FIRST_COMPLETED)

        if outbound in done:
            logger.info(f"Session {self.session_id}: SSH session ended")
        elif inbound in done:
            logger.info(f"Session {self.session_id}: WebSocket closed by client")
        else:
            logger.info(f"Session {self.session_id}: SSH connection closed")

        for task in done:
            if not task.cancelled() and task.exception():
                logger.error(f"Session {self.session_id}: relay task failed: {task.exception()}")

    async def _read_inbound(self):
        """Queue raw client messages until the client disconnects"""
        try:
            while True:
                raw = await self.channel.receive_text()
                if raw is None:
                    break
                await self._inbound.put(raw)
        finally:
            self._inbound_closed.set()
            self._inbound.put_nowait(None)

    async def _pump_shell_to_channel(self):
        while True:
            chunk = await self.shell.read()
            if not chunk:
                return
            # A failed send is logged by the channel; keep draining the shell
            await self.channel.send_frame(DataFrame(data=chunk))

    async def _pump_channel_to_shell(self):
        while True:
            raw = await self._inbound.get()
            if raw is None:
                return

            try:
                frame = parse_inbound_frame(raw)
            except FrameError as e:
                logger.warning(f"Session {self.session_id}: ignoring client message: {e.message}")
                continue

            try:
                if isinstance(frame, DataFrame):
                    self.shell.write(frame.data)
                elif isinstance(frame, ResizeFrame):
                    self.shell.resize(frame.cols, frame.rows, frame.width, frame.height)
                    logger.debug(f"Session {self.session_id}: terminal resized to {frame.cols}x{frame.rows}")
            except Exception as e:
                logger.error(f"Session {self.session_id}: error processing '{frame.type}' frame: {e}")

    async def _fail(self, message: str):
        """Report a fatal condition to the client exactly once, then close"""
        if self.state == SessionState.CLOSED or self._error_sent:
            return
        self._error_sent = True
        self._set_state(SessionState.ERROR)
        await self.channel.send_frame(ErrorFrame(message=message))
        await self.close()

    async def close(self):
        """Tear down both sides. Safe to call any number of times."""
        if self.state == SessionState.CLOSED:
            return
        self._set_state(SessionState.CLOSED)

        tasks = [t for t in self._tasks if not t.done()]
        if self._reader_task and not self._reader_task.done():
            tasks.append(self._reader_task)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        if self.shell is not None:
            try:
                self.shell.close()
            except Exception as e:
                logger.debug(f"Session {self.session_id}: error closing shell: {e}")

        if self.client is not None:
            try:
                self.client.close()
            except Exception as e:
                logger.debug(f"Session {self.session_id}: error closing SSH client: {e}")

        await self.channel.close()
        logger.info(f"Session {self.session_id}: closed")
