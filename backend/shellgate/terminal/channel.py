"""
Shellgate - Client channel
Frame-level wrapper around the browser WebSocket
"""

from typing import Optional
from fastapi import WebSocket
from loguru import logger
from starlette.websockets import WebSocketState

from shellgate.schemas.frames import ErrorFrame, OutboundFrame, serialize_frame


class WebSocketChannel:
    """
    Sends typed frames to the browser and reads raw client messages.

    Send and close never raise: a client that has gone away is logged and
    the channel is marked closed.
    """

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed or self.websocket.client_state == WebSocketState.DISCONNECTED

    async def send_frame(self, frame: OutboundFrame) -> bool:
        if self.closed:
            logger.debug(f"Dropping '{frame.type}' frame: WebSocket already closed")
            return False
        try:
            await self.websocket.send_text(serialize_frame(frame))
            return True
        except Exception as e:
            logger.error(f"WebSocket send error: {e}")
            self._closed = True
            return False

    async def send_error(self, message: str, code: int = 1000, reason: Optional[str] = None):
        """Send a terminal error frame and close"""
        await self.send_frame(ErrorFrame(message=message))
        await self.close(code=code, reason=reason)

    async def receive_text(self) -> Optional[str]:
        """Next client message as text, or None once the client has disconnected"""
        if self.closed:
            return None
        try:
            message = await self.websocket.receive()
        except RuntimeError as e:
            logger.debug(f"WebSocket receive after close: {e}")
            self._closed = True
            return None

        if message["type"] == "websocket.disconnect":
            self._closed = True
            return None

        if message.get("text") is not None:
            return message["text"]
        if message.get("bytes") is not None:
            return message["bytes"].decode("utf-8", errors="replace")
        return ""

    async def close(self, code: int = 1000, reason: Optional[str] = None):
        if self._closed:
            return
        self._closed = True
        if self.websocket.client_state == WebSocketState.DISCONNECTED:
            return
        try:
            await self.websocket.close(code=code, reason=reason)
        except Exception as e:
            logger.debug(f"Error closing WebSocket: {e}")
