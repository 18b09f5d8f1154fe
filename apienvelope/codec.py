"""
Request/response envelope codec.

Requests carry an application-level method and an opaque JSON body:

    {"method": "GET", "body": {"id": 1234}}
    {"method": "POST", "body": {...}}
    {"method": "DELETE", "body": {"id": 1234}}

Responses carry a top-level status and one of three payloads:

    {"status": "OK", "message": "..."}       informational message or acknowledgement
    {"status": "Error", "message": "..."}    flattened error chain
    {"status": "OK", "body": ...}            method-specific result

Clients must check the top-level status before reading the rest of a response.
Blob uploads do not use envelopes.
"""

from __future__ import annotations

import base64
import dataclasses
import json
import re
import uuid
from dataclasses import dataclass
from typing import IO, Any, TypeVar

from loguru import logger
from pydantic import BaseModel, ValidationError

from apienvelope.config import Config, get_config
from apienvelope.errors import (
    EncodeError,
    ParseError,
    ReadError,
    render_error,
    root_cause,
)
from apienvelope.scanner import ScanError, compact, scan_object

STATUS_OK = "OK"
STATUS_ERROR = "Error"

M = TypeVar("M", bound=BaseModel)

_FIELDS = ("method", "body")
_HTML_ESCAPES = str.maketrans({"<": "\\u003c", ">": "\\u003e", "&": "\\u0026"})
_LINE_ESCAPES = str.maketrans({"\u2028": "\\u2028", "\u2029": "\\u2029"})
_SURROGATES = re.compile("[\ud800-\udfff]")


class RawMessage(bytes):
    """Already-encoded JSON value, embedded into responses as written."""


@dataclass(slots=True)
class RequestEnvelope:
    """Application-level method plus the raw, unparsed request body."""

    method: str = ""
    body: RawMessage | None = None

    def json(self) -> Any:
        """Decode the body; None when the request had no body member."""
        if self.body is None:
            return None
        return json.loads(self.body.decode("utf-8", "surrogateescape"))

    def parse_body(self, model: type[M]) -> M:
        """Validate the body into ``model``."""
        if self.body is None:
            raise ParseError("request body missing")
        try:
            return model.model_validate_json(self.body)
        except ValidationError as exc:
            raise ParseError("request body unmarshal failed") from exc


def _match_field(key: str) -> str | None:
    if key in _FIELDS:
        return key
    folded = key.casefold()
    for name in _FIELDS:
        if folded == name:
            return name
    return None


def _decode_method(raw: str) -> str | None:
    if raw == "null":
        return None
    if not raw.startswith('"'):
        raise ParseError("request unmarshal failed") from TypeError(
            f"cannot unmarshal {raw[:16]!r} into field method of type string"
        )
    # Invalid UTF-8 and unpaired surrogate escapes decode to U+FFFD.
    return _SURROGATES.sub("\ufffd", json.loads(raw))


def parse_envelope(data: bytes | str) -> RequestEnvelope:
    """
    Decode a complete request document into a RequestEnvelope.

    Bytes that are not valid UTF-8 are accepted inside JSON strings. The body
    keeps them unchanged; a method string gets U+FFFD in their place.
    """
    if isinstance(data, (bytes, bytearray)):
        text = bytes(data).decode("utf-8", "surrogateescape")
    else:
        text = data
    try:
        members = scan_object(text)
    except ScanError as exc:
        raise ParseError("request unmarshal failed", position=exc.pos) from exc

    envelope = RequestEnvelope()
    for key, raw in members or ():
        field = _match_field(key)
        if field == "method":
            value = _decode_method(raw)
            if value is not None:
                envelope.method = value
        elif field == "body":
            try:
                envelope.body = RawMessage(raw.encode("utf-8", "surrogateescape"))
            except UnicodeEncodeError as exc:
                raise ParseError("request unmarshal failed", position=exc.start) from exc
    return envelope


def open_envelope(reader: IO[bytes]) -> RequestEnvelope:
    """
    Read the full request from ``reader`` and decode it.

    A text stream is accepted too; what it returns is encoded as UTF-8
    before decoding.

    Raises:
        ReadError: the stream failed before EOF.
        ParseError: the bytes are not a well-formed envelope.
    """
    try:
        buf = reader.read()
        if isinstance(buf, str):
            buf = buf.encode("utf-8", "surrogateescape")
    except (OSError, ValueError) as exc:
        raise ReadError("request read failed") from exc
    return parse_envelope(buf)


def success_payload(message: str) -> dict[str, Any]:
    """Informational response: ``{"status": "OK", "message": message}``."""
    return {"status": STATUS_OK, "message": message}


def error_payload(err: BaseException) -> dict[str, Any]:
    """Error response whose message is the rendered cause chain of ``err``."""
    return {"status": STATUS_ERROR, "message": render_error(err)}


def result_payload(body: Any) -> dict[str, Any]:
    """Result response carrying ``body`` unchanged."""
    return {"status": STATUS_OK, "body": body}


def _encode_default(obj: Any) -> Any:
    if isinstance(obj, (bytes, bytearray)):
        return base64.b64encode(obj).decode("ascii")
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json", by_alias=True)
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _escape(text: str, escape_html: bool) -> str:
    text = text.translate(_LINE_ESCAPES)
    if escape_html:
        text = text.translate(_HTML_ESCAPES)
    return text


def _compact_raw(raw: RawMessage, escape_html: bool) -> bytes:
    text = compact(bytes(raw).decode("utf-8", "surrogateescape"))
    return _escape(text, escape_html).encode("utf-8", "surrogateescape")


def encode_response(payload: Any, *, escape_html: bool = True) -> bytes:
    """
    Serialize a response payload to compact UTF-8 JSON.

    RawMessage values are validated and copied into the output with their
    number and string tokens untouched; only whitespace between tokens is
    dropped.
    """
    raws: list[bytes] = []
    marker = f"apienvelope-raw-{uuid.uuid4().hex}"

    def default(obj: Any) -> Any:
        if isinstance(obj, RawMessage):
            raws.append(_compact_raw(obj, escape_html))
            return f"{marker}-{len(raws) - 1}"
        return _encode_default(obj)

    try:
        text = json.dumps(
            payload,
            ensure_ascii=False,
            separators=(",", ":"),
            allow_nan=False,
            default=default,
        )
        buf = _escape(text, escape_html).encode("utf-8")
    except (TypeError, ValueError, RecursionError) as exc:
        raise EncodeError("response marshal failed") from exc

    for index, raw in enumerate(raws):
        buf = buf.replace(f'"{marker}-{index}"'.encode("ascii"), raw, 1)
    return buf


def _resolve_config(config: Config | None) -> Config:
    if config is not None:
        return config
    try:
        return get_config()
    except ValueError as exc:
        logger.warning("Using default encoding settings: {}", exc)
        return Config.model_construct()


def _write_response(
    writer: IO[bytes],
    payload: dict[str, Any],
    config: Config | None,
    *,
    reported: BaseException | None = None,
) -> None:
    cfg = _resolve_config(config)
    try:
        buf = encode_response(payload, escape_html=cfg.encoding.escape_html)
    except EncodeError as exc:
        original = reported if reported is not None else exc
        cause = root_cause(original)
        logger.error("original error: {} {}", type(cause).__name__, cause)
        logger.opt(exception=original).debug("stack trace")
        if reported is not None:
            logger.error("JSON error: {}", render_error(exc))
        if cfg.encoding.strict:
            raise
        writer.write(cfg.encoding.fallback_message.encode("utf-8"))
        return
    writer.write(buf)


def send_success(writer: IO[bytes], message: str, *, config: Config | None = None) -> None:
    """Write an informational ``{"status":"OK","message":...}`` response."""
    _write_response(writer, success_payload(message), config)


def send_error(writer: IO[bytes], err: BaseException, *, config: Config | None = None) -> None:
    """Write an ``{"status":"Error","message":...}`` response for ``err`` and its causes."""
    _write_response(writer, error_payload(err), config, reported=err)


def send_result(writer: IO[bytes], body: Any, *, config: Config | None = None) -> None:
    """Write a result-carrying ``{"status":"OK","body":...}`` response."""
    _write_response(writer, result_payload(body), config)
