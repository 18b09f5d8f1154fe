"""
apienvelope - JSON request/response envelopes for API messages.
"""

__version__ = "0.1.0"
__logo__ = "✉️"

from apienvelope.codec import (
    STATUS_ERROR,
    STATUS_OK,
    RawMessage,
    RequestEnvelope,
    encode_response,
    open_envelope,
    parse_envelope,
    send_error,
    send_result,
    send_success,
)
from apienvelope.errors import (
    EncodeError,
    EnvelopeError,
    ParseError,
    ReadError,
    WrappedError,
    render_error,
    root_cause,
    wrap_error,
)

__all__ = [
    "STATUS_ERROR",
    "STATUS_OK",
    "RawMessage",
    "RequestEnvelope",
    "encode_response",
    "open_envelope",
    "parse_envelope",
    "send_error",
    "send_result",
    "send_success",
    "EncodeError",
    "EnvelopeError",
    "ParseError",
    "ReadError",
    "WrappedError",
    "render_error",
    "root_cause",
    "wrap_error",
]
