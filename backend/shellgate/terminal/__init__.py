"""
Shellgate - Terminal Package
WebSocket-based SSH terminal with credential fallback
"""

from shellgate.terminal.ssh_bridge import SessionBridge, SessionState, BridgeOptions
from shellgate.terminal.channel import WebSocketChannel
from shellgate.terminal.registry import SessionRegistry
from shellgate.terminal.ssh_client import SSHConnector

__all__ = [
    "SessionBridge",
    "SessionState",
    "BridgeOptions",
    "WebSocketChannel",
    "SessionRegistry",
    "SSHConnector",
]
