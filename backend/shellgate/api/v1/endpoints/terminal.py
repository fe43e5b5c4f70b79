"""
Shellgate - Terminal WebSocket Endpoint
Interactive SSH terminal via WebSocket
"""

import uuid
from typing import Optional
from fastapi import APIRouter, Query, Request, WebSocket
from loguru import logger

from shellgate.core.exceptions import ProfileForbidden, ProfileNotFound
from shellgate.core.security import verify_access_token
from shellgate.terminal.channel import WebSocketChannel
from shellgate.terminal.ssh_bridge import BridgeOptions, SessionBridge

router = APIRouter()

# WebSocket close codes
CLOSE_BAD_REQUEST = 4000
CLOSE_UNAUTHENTICATED = 4001
CLOSE_FORBIDDEN = 4003
CLOSE_NOT_FOUND = 4004
CLOSE_RATE_LIMITED = 4029
CLOSE_INTERNAL_ERROR = 1011


def get_client_ip(websocket: WebSocket) -> str:
    """Extract client IP from WebSocket."""
    forwarded = websocket.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = websocket.headers.get("x-real-ip")
    if real_ip:
        return real_ip

    if websocket.client:
        return websocket.client.host

    return "unknown"


@router.websocket("/ws")
async def terminal_websocket(
    websocket: WebSocket,
    connection_id: Optional[str] = Query(None, alias="connectionId"),
    auth_method: Optional[str] = Query(None, alias="authMethod"),
    token: Optional[str] = Query(None),
):
    """
    WebSocket endpoint for interactive SSH terminal.

    Protocol:
    1. Client connects to /ws?connectionId=ID[&authMethod=password|key]
       with an access token in the ``token`` query param or the access token cookie
    2. Server validates the caller and loads the connection profile
    3. Server connects over SSH, falling back to the next key on failure
    4. Bidirectional communication:
       - Client sends: {"type": "data", "data": "..."} or
         {"type": "resize", "rows": N, "cols": N, "width": PX, "height": PX}
       - Server sends: {"type": "data", "data": "..."}, {"type": "status", "message": "..."}
         or {"type": "error", "message": "..."} followed by close
    """
    state = websocket.app.state
    settings = state.settings

    await websocket.accept()
    channel = WebSocketChannel(websocket)

    # === Phase 1: Authentication ===
    token = token or websocket.cookies.get(settings.ACCESS_TOKEN_COOKIE)
    caller = verify_access_token(token, settings.SECRET_KEY, settings.ALGORITHM) if token else None
    if caller is None:
        logger.warning(f"Terminal WebSocket rejected: no valid identity from {get_client_ip(websocket)}")
        await channel.send_error(
            "Authentication required. Please log in again.",
            code=CLOSE_UNAUTHENTICATED,
            reason="Authentication required",
        )
        return

    # === Phase 2: Connection selection ===
    if not connection_id:
        await channel.send_error(
            "No connection selected. Please select a connection and click Connect.",
            code=CLOSE_BAD_REQUEST,
            reason="Missing connectionId",
        )
        return

    # === Phase 3: Rate Limiting ===
    # Reserve the slot before the first await
    registry = state.session_registry
    can_create, limit_msg = registry.can_create_session(caller.user_id)
    if not can_create:
        await channel.send_error(limit_msg, code=CLOSE_RATE_LIMITED, reason="Rate limit exceeded")
        return

    session_id = str(uuid.uuid4())
    registry.register_session(session_id, caller.user_id)

    try:
        # === Phase 4: Profile ===
        try:
            profile = await state.credential_store.resolve(connection_id, caller)
        except ProfileNotFound as e:
            await channel.send_error(e.message, code=CLOSE_NOT_FOUND, reason="Connection not found")
            return
        except ProfileForbidden as e:
            await channel.send_error(e.message, code=CLOSE_FORBIDDEN, reason="Forbidden")
            return
        except Exception as e:
            logger.exception(f"Error fetching connection {connection_id}: {e}")
            await channel.send_error(
                "Failed to load connection settings.",
                code=CLOSE_INTERNAL_ERROR,
                reason="Profile lookup failed",
            )
            return

        # === Phase 5: SSH Bridge ===
        bridge = SessionBridge(
            channel=channel,
            connector=state.ssh_connector,
            store=state.credential_store,
            options=BridgeOptions.from_settings(settings),
            session_id=session_id,
        )

        logger.info(
            f"Terminal session started: "
            f"session={session_id}, "
            f"user={caller.user_id}, "
            f"connection={profile.name}, "
            f"client={get_client_ip(websocket)}"
        )

        await bridge.run(profile, requested_method=auth_method)
        logger.info(f"Terminal session ended: session={session_id}, state={bridge.state.value}")
    finally:
        registry.unregister_session(session_id)


@router.get("/active-count")
async def get_active_sessions_count(request: Request):
    """Get count of currently active terminal sessions."""
    return {
        "active_sessions": request.app.state.session_registry.get_active_count()
    }
