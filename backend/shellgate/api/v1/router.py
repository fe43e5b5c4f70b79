"""
Shellgate - API v1 Router
"""

from fastapi import APIRouter
from shellgate.api.v1.endpoints import terminal

api_router = APIRouter()

api_router.include_router(terminal.router, prefix="/terminal", tags=["Terminal"])
