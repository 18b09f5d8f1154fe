import io
import json
from dataclasses import dataclass

import pytest
from pydantic import BaseModel

from apienvelope.codec import RawMessage, open_envelope, send_error, send_result, send_success
from apienvelope.config import Config, EncodingConfig
from apienvelope.errors import EncodeError, ParseError, wrap_error


class _Game(BaseModel):
    mode: str
    participants: int


@dataclass
class _GameRecord:
    mode: str
    participants: int


def test_send_success_writes_ok_message():
    buf = io.BytesIO()
    send_success(buf, "Hello!")
    assert buf.getvalue() == b'{"status":"OK","message":"Hello!"}'


def test_send_success_escapes_message():
    buf = io.BytesIO()
    send_success(buf, 'say "hi"\n\tnow\\')
    assert buf.getvalue() == b'{"status":"OK","message":"say \\"hi\\"\\n\\tnow\\\\"}'
    assert json.loads(buf.getvalue())["message"] == 'say "hi"\n\tnow\\'


def test_send_success_keeps_non_ascii_as_utf8():
    buf = io.BytesIO()
    send_success(buf, "héllo 世界")
    assert buf.getvalue() == '{"status":"OK","message":"héllo 世界"}'.encode("utf-8")


def test_send_success_escapes_html_characters_by_default():
    buf = io.BytesIO()
    send_success(buf, "<a&b>")
    assert buf.getvalue() == b'{"status":"OK","message":"\\u003ca\\u0026b\\u003e"}'


def test_send_success_html_escaping_can_be_disabled():
    buf = io.BytesIO()
    send_success(buf, "<a&b>", config=Config(encoding=EncodingConfig(escape_html=False)))
    assert buf.getvalue() == b'{"status":"OK","message":"<a&b>"}'


def test_send_error_writes_error_message():
    buf = io.BytesIO()
    send_error(buf, Exception("Test error 1001"))
    assert buf.getvalue() == b'{"status":"Error","message":"Test error 1001"}'


def test_send_error_flattens_wrapped_error():
    buf = io.BytesIO()
    err = Exception("Test error 1002")
    send_error(buf, wrap_error(err, "Test error 1001"))
    assert buf.getvalue() == b'{"status":"Error","message":"Test error 1001: Test error 1002"}'


def test_send_error_flattens_raise_from_chain():
    try:
        try:
            raise ValueError("B")
        except ValueError as exc:
            raise RuntimeError("A") from exc
    except RuntimeError as outer:
        err = outer
    buf = io.BytesIO()
    send_error(buf, err)
    assert buf.getvalue() == b'{"status":"Error","message":"A: B"}'


def test_send_error_reports_decode_failure_chain():
    with pytest.raises(ParseError) as info:
        open_envelope(io.BytesIO(b"{"))
    buf = io.BytesIO()
    send_error(buf, info.value)
    payload = json.loads(buf.getvalue())
    assert payload["status"] == "Error"
    assert payload["message"].startswith("request unmarshal failed: ")


@pytest.mark.parametrize(
    "body",
    [
        {"mode": "test", "participants": 100},
        _Game(mode="test", participants=100),
        _GameRecord(mode="test", participants=100),
        RawMessage(b'{"mode": "test", "participants": 100}'),
    ],
)
def test_send_result_writes_body(body):
    buf = io.BytesIO()
    send_result(buf, body)
    assert buf.getvalue() == b'{"status":"OK","body":{"mode":"test","participants":100}}'


@pytest.mark.parametrize(
    ("body", "expected"),
    [
        (None, b'{"status":"OK","body":null}'),
        ([1, "two", 3.5, True], b'{"status":"OK","body":[1,"two",3.5,true]}'),
        ("plain", b'{"status":"OK","body":"plain"}'),
        (b"hi", b'{"status":"OK","body":"aGk="}'),
    ],
)
def test_send_result_writes_plain_values(body, expected):
    buf = io.BytesIO()
    send_result(buf, body)
    assert buf.getvalue() == expected


def test_send_result_unserializable_body_writes_fallback(log_messages):
    buf = io.BytesIO()
    send_result(buf, {"ids": {1, 2}})
    assert buf.getvalue() == b"internal system error"
    assert any("original error: TypeError" in m for m in log_messages)
    assert any("stack trace" in m for m in log_messages)


def test_send_result_nan_writes_fallback(log_messages):
    buf = io.BytesIO()
    send_result(buf, float("nan"))
    assert buf.getvalue() == b"internal system error"
    assert any("original error: ValueError" in m for m in log_messages)


def test_send_success_unencodable_message_writes_fallback(log_messages):
    buf = io.BytesIO()
    send_success(buf, "broken \ud800")
    assert buf.getvalue() == b"internal system error"
    assert any("original error: UnicodeEncodeError" in m for m in log_messages)


def test_send_error_unencodable_message_logs_reported_error(log_messages):
    buf = io.BytesIO()
    send_error(buf, wrap_error(ValueError("bad \ud800"), "lookup failed"))
    assert buf.getvalue() == b"internal system error"
    assert any("original error: ValueError" in m for m in log_messages)
    assert any("JSON error: response marshal failed" in m for m in log_messages)


def test_fallback_message_is_configurable(log_messages):
    buf = io.BytesIO()
    cfg = Config(encoding=EncodingConfig(fallback_message="service unavailable"))
    send_result(buf, object(), config=cfg)
    assert buf.getvalue() == b"service unavailable"


def test_fallback_message_read_from_config_file(isolated_home, log_messages):
    path = isolated_home / ".apienvelope" / "config.json"
    path.parent.mkdir(parents=True)
    path.write_text(json.dumps({"encoding": {"fallbackMessage": "try again later"}}))
    buf = io.BytesIO()
    send_result(buf, object())
    assert buf.getvalue() == b"try again later"


def test_strict_mode_raises_and_writes_nothing(log_messages):
    buf = io.BytesIO()
    cfg = Config(encoding=EncodingConfig(strict=True))
    with pytest.raises(EncodeError) as info:
        send_result(buf, {1, 2}, config=cfg)
    assert isinstance(info.value.__cause__, TypeError)
    assert buf.getvalue() == b""
    assert any("original error: TypeError" in m for m in log_messages)


def test_strict_mode_from_environment(monkeypatch, log_messages):
    monkeypatch.setenv("APIENVELOPE_ENCODING__STRICT", "true")
    with pytest.raises(EncodeError):
        send_success(io.BytesIO(), "\udc80")


def test_write_errors_propagate():
    class _ClosedWriter:
        def write(self, data):
            raise OSError("broken pipe")

    with pytest.raises(OSError, match="broken pipe"):
        send_success(_ClosedWriter(), "Hello!")


@pytest.mark.parametrize(
    "body",
    [b'{"v":1e400}', b'{"amount":12345678901234567890.123456789}'],
)
def test_echoed_body_keeps_number_precision(body):
    envelope = open_envelope(io.BytesIO(b'{"method":"ECHO","body":' + body + b"}"))
    buf = io.BytesIO()
    send_result(buf, envelope.body)
    assert buf.getvalue() == b'{"status":"OK","body":' + body + b"}"


def test_echoed_body_keeps_invalid_utf8_bytes():
    envelope = open_envelope(io.BytesIO(b'{"method":"ECHO","body":["caf\xe9"]}'))
    buf = io.BytesIO()
    send_result(buf, envelope.body)
    assert buf.getvalue() == b'{"status":"OK","body":["caf\xe9"]}'


def test_broken_config_file_falls_back_to_defaults(isolated_home, log_messages):
    path = isolated_home / ".apienvelope" / "config.json"
    path.parent.mkdir(parents=True)
    path.write_text("{broken")
    buf = io.BytesIO()
    send_success(buf, "<ok>")
    assert buf.getvalue() == b'{"status":"OK","message":"\\u003cok\\u003e"}'
    assert any("Using default encoding settings" in m for m in log_messages)


def test_invalid_environment_setting_falls_back_to_defaults(monkeypatch, log_messages):
    monkeypatch.setenv("APIENVELOPE_ENCODING__STRICT", "sometimes")
    buf = io.BytesIO()
    send_result(buf, object())
    assert buf.getvalue() == b"internal system error"
    assert any("Using default encoding settings" in m for m in log_messages)
