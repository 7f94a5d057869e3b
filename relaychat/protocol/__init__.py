"""Streaming wire protocol shared by the relay and the chat client.

Responsibilities:
    - Reassembling complete lines from arbitrarily split byte chunks
    - Interpreting ``data:`` lines as content, error and end-of-stream events
    - Encoding model output back into event frames on the relay side
    - Classifying provider failures into user-facing error categories

Pure logic with no I/O, so both sides of the connection can share it.
"""

from relaychat.protocol.errors import ErrorCategory, classify_error, http_status, user_message
from relaychat.protocol.events import (
    DONE_FRAME,
    ContentEvent,
    DecodeError,
    DoneEvent,
    ErrorEvent,
    ProtocolEvent,
    encode_content,
    encode_error,
    interpret_line,
)
from relaychat.protocol.frames import FrameDecoder, iter_lines

__all__ = [
    "DONE_FRAME",
    "ContentEvent",
    "DecodeError",
    "DoneEvent",
    "ErrorCategory",
    "ErrorEvent",
    "FrameDecoder",
    "ProtocolEvent",
    "classify_error",
    "encode_content",
    "encode_error",
    "http_status",
    "interpret_line",
    "iter_lines",
    "user_message",
]
