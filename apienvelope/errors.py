"""
Exception hierarchy and error rendering for apienvelope.

Provides:
- Envelope exception classes with error codes
- Context wrapping on top of native exception chaining (``__cause__``)
- Flattened ``"<outer>: <inner>"`` rendering used for error responses
"""

from __future__ import annotations

from typing import Any, Iterator


class EnvelopeError(Exception):
    """Base exception for all apienvelope errors."""

    def __init__(
        self,
        message: str,
        code: str = "ENVELOPE_ERROR",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "cause": render_error(self.__cause__) if self.__cause__ is not None else None,
            "details": self.details,
        }

    def __str__(self) -> str:
        return self.message


class ReadError(EnvelopeError):
    """Request stream could not be read to completion."""

    def __init__(self, message: str = "request read failed"):
        super().__init__(message, code="READ_ERROR")


class ParseError(EnvelopeError):
    """Request bytes are not a well-formed envelope."""

    def __init__(self, message: str = "request unmarshal failed", position: int | None = None):
        details = {"position": position} if position is not None else {}
        super().__init__(message, code="PARSE_ERROR", details=details)


class EncodeError(EnvelopeError):
    """Response payload could not be serialized."""

    def __init__(self, message: str = "response marshal failed"):
        super().__init__(message, code="ENCODE_ERROR")


class WrappedError(Exception):
    """Context message layered over a cause."""


def wrap_error(err: BaseException, message: str) -> WrappedError:
    """Return a new error carrying ``message`` with ``err`` as its cause."""
    wrapped = WrappedError(message)
    wrapped.__cause__ = err
    return wrapped


def _describe(err: BaseException) -> str:
    text = str(err)
    return text if text else type(err).__name__


def iter_causes(err: BaseException) -> Iterator[BaseException]:
    """Yield ``err`` and each explicit cause, outermost first."""
    seen: set[int] = set()
    current: BaseException | None = err
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__


def render_error(err: BaseException) -> str:
    """Render the full cause chain as ``"outer: next: ...: root"``."""
    return ": ".join(_describe(e) for e in iter_causes(err))


def root_cause(err: BaseException) -> BaseException:
    """Return the innermost error of the cause chain."""
    last = err
    for last in iter_causes(err):
        pass
    return last
