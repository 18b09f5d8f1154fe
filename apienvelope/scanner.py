"""Iterative JSON validation that keeps raw member text.

Nesting is tracked with an explicit stack, so deep documents are limited by
MAX_DEPTH rather than by the interpreter's recursion limit.
"""

from __future__ import annotations

import json
import re

# Same ceiling as Go's encoding/json; the envelope object itself is depth 1.
MAX_DEPTH = 10000

_WHITESPACE = re.compile(r"[ \t\n\r]*")
_STRING = re.compile(r'"(?:[^"\\\x00-\x1f]|\\(?:["\\/bfnrt]|u[0-9a-fA-F]{4}))*"')
_NUMBER = re.compile(r"-?(?:0|[1-9][0-9]*)(?:\.[0-9]+)?(?:[eE][-+]?[0-9]+)?")
_LITERAL = re.compile(r"true|false|null")
_PIECES = re.compile(r'"(?:[^"\\]|\\.)*"|[ \t\n\r]+|[^" \t\n\r]+')


class ScanError(ValueError):
    """Malformed JSON document, with the character offset of the problem."""

    def __init__(self, msg: str, pos: int):
        super().__init__(f"{msg} (char {pos})")
        self.msg = msg
        self.pos = pos


def _skip(text: str, pos: int) -> int:
    return _WHITESPACE.match(text, pos).end()


def _scalar_end(text: str, pos: int) -> int:
    for pattern in (_STRING, _NUMBER, _LITERAL):
        match = pattern.match(text, pos)
        if match:
            return match.end()
    if pos >= len(text):
        raise ScanError("unexpected end of JSON input", pos)
    raise ScanError("expecting value", pos)


def _member_key(text: str, pos: int) -> tuple[str, int]:
    """Match ``"key" :`` at ``pos``; return the key source and the offset after the colon."""
    match = _STRING.match(text, pos)
    if match is None:
        raise ScanError("expecting property name enclosed in double quotes", pos)
    pos = _skip(text, match.end())
    if not text.startswith(":", pos):
        raise ScanError("expecting ':' delimiter", pos)
    return match.group(), pos + 1


def skip_value(text: str, pos: int, *, depth: int = 0) -> int:
    """
    Validate one JSON value starting at ``pos`` and return the offset just past it.

    ``depth`` is the number of containers already open around the value.
    """
    stack: list[str] = []
    while True:
        pos = _skip(text, pos)
        if text.startswith(("{", "["), pos):
            if len(stack) + depth >= MAX_DEPTH:
                raise ScanError("exceeded max nesting depth", pos)
            closer = "}" if text[pos] == "{" else "]"
            pos = _skip(text, pos + 1)
            if text.startswith(closer, pos):
                pos += 1
            else:
                stack.append(closer)
                if closer == "}":
                    _, pos = _member_key(text, pos)
                continue
        else:
            pos = _scalar_end(text, pos)

        while stack:
            pos = _skip(text, pos)
            if text.startswith(",", pos):
                pos = _skip(text, pos + 1)
                if stack[-1] == "}":
                    _, pos = _member_key(text, pos)
                break
            if text.startswith(stack[-1], pos):
                pos += 1
                stack.pop()
                continue
            raise ScanError(f"expecting ',' or '{stack[-1]}' delimiter", pos)
        else:
            return pos


def _check_end(text: str, pos: int) -> None:
    end = _skip(text, pos)
    if end != len(text):
        raise ScanError("invalid character after top-level value", end)


def _kind(first: str) -> str:
    if first == "[":
        return "array"
    if first == '"':
        return "string"
    if first in "tf":
        return "bool"
    return "number"


def scan_object(text: str) -> list[tuple[str, str]] | None:
    """
    Scan a document holding a single JSON object.

    Returns the ``(key, raw_value)`` members in document order, where
    ``raw_value`` is the exact source text of the value. A document that is
    just ``null`` returns None. Anything else raises ScanError.
    """
    pos = _skip(text, 0)
    if pos == len(text):
        raise ScanError("unexpected end of JSON input", pos)

    if text[pos] != "{":
        end = skip_value(text, pos)
        _check_end(text, end)
        if text.startswith("null", pos):
            return None
        raise ScanError(f"cannot unmarshal {_kind(text[pos])} into envelope object", pos)

    members: list[tuple[str, str]] = []
    pos = _skip(text, pos + 1)
    if text.startswith("}", pos):
        pos += 1
    else:
        while True:
            key, pos = _member_key(text, pos)
            start = _skip(text, pos)
            pos = skip_value(text, start, depth=1)
            members.append((json.loads(key), text[start:pos]))
            pos = _skip(text, pos)
            if text.startswith(",", pos):
                pos = _skip(text, pos + 1)
                continue
            if text.startswith("}", pos):
                pos += 1
                break
            raise ScanError("expecting ',' delimiter", pos)

    _check_end(text, pos)
    return members


def compact(text: str) -> str:
    """Validate a single JSON value and drop the whitespace between its tokens."""
    start = _skip(text, 0)
    if start == len(text):
        raise ScanError("unexpected end of JSON input", start)
    _check_end(text, skip_value(text, start))
    return "".join(piece for piece in _PIECES.findall(text) if piece[0] not in " \t\n\r")
