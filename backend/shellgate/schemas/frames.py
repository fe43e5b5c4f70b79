"""
Shellgate - WebSocket Frame Schemas

Client sends:  {"type": "data", "data": "..."}
               {"type": "resize", "rows": N, "cols": N, "width": PX, "height": PX}
Server sends:  {"type": "data", "data": "..."}
               {"type": "status", "message": "..."}
               {"type": "error", "message": "..."}
"""

import json
from typing import Annotated, Literal, Union
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from shellgate.core.exceptions import FrameError


class _Frame(BaseModel):
    model_config = ConfigDict(frozen=True)


class DataFrame(_Frame):
    type: Literal["data"] = "data"
    data: str


class ResizeFrame(_Frame):
    type: Literal["resize"] = "resize"
    rows: int = Field(..., ge=1)
    cols: int = Field(..., ge=1)
    width: int = Field(0, ge=0)
    height: int = Field(0, ge=0)


class StatusFrame(_Frame):
    type: Literal["status"] = "status"
    message: str


class ErrorFrame(_Frame):
    type: Literal["error"] = "error"
    message: str


InboundFrame = Annotated[Union[DataFrame, ResizeFrame], Field(discriminator="type")]
OutboundFrame = Union[DataFrame, StatusFrame, ErrorFrame]

_inbound_adapter = TypeAdapter(InboundFrame)


def parse_inbound_frame(raw: Union[str, bytes]) -> Union[DataFrame, ResizeFrame]:
    """Parse a client message, raising FrameError for anything unexpected"""
    try:
        message = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise FrameError(f"Frame is not valid JSON: {e}") from e

    if not isinstance(message, dict):
        raise FrameError("Frame must be a JSON object")

    msg_type = message.get("type")
    if msg_type not in ("data", "resize"):
        raise FrameError(f"Unknown frame type '{msg_type}'")

    try:
        return _inbound_adapter.validate_python(message)
    except ValidationError as e:
        raise FrameError(f"Invalid '{msg_type}' frame: {e.error_count()} error(s)") from e


def serialize_frame(frame: OutboundFrame) -> str:
    return frame.model_dump_json()
