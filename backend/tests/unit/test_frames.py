"""
Unit tests for WebSocket frame parsing
"""

import json

import pytest

from shellgate.core.exceptions import FrameError
from shellgate.schemas.frames import (
    DataFrame,
    ErrorFrame,
    ResizeFrame,
    StatusFrame,
    parse_inbound_frame,
    serialize_frame,
)


class TestParseInboundFrame:

    def test_data_frame(self):
        frame = parse_inbound_frame('{"type": "data", "data": "ls -la\\r"}')

        assert isinstance(frame, DataFrame)
        assert frame.data == "ls -la\r"

    def test_resize_frame(self):
        frame = parse_inbound_frame(json.dumps(
            {"type": "resize", "rows": 40, "cols": 120, "width": 960, "height": 800}
        ))

        assert isinstance(frame, ResizeFrame)
        assert (frame.rows, frame.cols, frame.width, frame.height) == (40, 120, 960, 800)

    def test_resize_pixel_size_is_optional(self):
        frame = parse_inbound_frame('{"type": "resize", "rows": 24, "cols": 80}')

        assert (frame.width, frame.height) == (0, 0)

    def test_bytes_payload(self):
        frame = parse_inbound_frame(b'{"type": "data", "data": "x"}')

        assert frame.data == "x"

    @pytest.mark.parametrize("raw", [
        "not json",
        "",
        "[1, 2, 3]",
        '"data"',
    ])
    def test_unparseable_payload(self, raw):
        with pytest.raises(FrameError):
            parse_inbound_frame(raw)

    @pytest.mark.parametrize("frame_type", ["status", "error", "ping", None])
    def test_unknown_or_outbound_only_type_is_rejected(self, frame_type):
        with pytest.raises(FrameError) as exc:
            parse_inbound_frame(json.dumps({"type": frame_type, "message": "x"}))

        assert "Unknown frame type" in exc.value.message

    def test_data_frame_without_data(self):
        with pytest.raises(FrameError):
            parse_inbound_frame('{"type": "data"}')

    def test_resize_frame_with_bad_dimensions(self):
        with pytest.raises(FrameError):
            parse_inbound_frame('{"type": "resize", "rows": 0, "cols": 80}')
        with pytest.raises(FrameError):
            parse_inbound_frame('{"type": "resize", "rows": "many", "cols": 80}')


class TestSerializeFrame:

    def test_outbound_shapes(self):
        assert json.loads(serialize_frame(DataFrame(data="hi"))) == {"type": "data", "data": "hi"}
        assert json.loads(serialize_frame(StatusFrame(message="Connected to web-1"))) == {
            "type": "status",
            "message": "Connected to web-1",
        }
        assert json.loads(serialize_frame(ErrorFrame(message="boom"))) == {"type": "error", "message": "boom"}
