"""Minimal HTTP front end: index page and a JSON command endpoint."""

from __future__ import annotations

import logging
import time
from pathlib import Path

from .commands import CommandProcessor

log = logging.getLogger(__name__)

ESCAPED_LIMIT = 1024
MAX_COMMAND_LENGTH = 256

DEFAULT_HTML = (
    "<!DOCTYPE html><html><head><meta charset='UTF-8'><title>IoT Control</title></head>"
    "<body><h1>IoT 장치 제어</h1><p>web/index.html 파일을 생성하세요.</p>"
    "<button onclick=\"fetch('/api/command',{method:'POST',headers:{'Content-Type':'application/json'},"
    "body:JSON.stringify({command:'HELP'})}).then(r=>r.json()).then(d=>alert(d.response))\">테스트</button></body></html>"
)

NOT_FOUND_HTML = "<!DOCTYPE html><html><body><h1>404 Not Found</h1></body></html>"

_ESCAPES = {'"': '\\"', "\n": "\\n", "\r": "\\r"}


def _as_text(data: str | bytes) -> str:
    if isinstance(data, (bytes, bytearray)):
        return bytes(data).decode("utf-8", errors="replace")
    return data


def is_http_request(data: str | bytes) -> bool:
    """True if the data starts like a GET, POST or OPTIONS request."""
    return _as_text(data).startswith(("GET ", "POST ", "OPTIONS "))


def build_http_response(status: str, content_type: str, body: str | bytes) -> bytes:
    """A complete HTTP/1.1 response with permissive CORS headers."""
    payload = body.encode("utf-8") if isinstance(body, str) else bytes(body)
    head = (
        f"HTTP/1.1 {status}\r\n"
        f"Content-Type: {content_type}\r\n"
        f"Content-Length: {len(payload)}\r\n"
        "Access-Control-Allow-Origin: *\r\n"
        "Access-Control-Allow-Methods: GET, POST, OPTIONS\r\n"
        "Access-Control-Allow-Headers: Content-Type\r\n"
        "Connection: close\r\n"
        "\r\n"
    )
    return head.encode("utf-8") + payload


def escape_response(text: str) -> str:
    """Escape quotes and line breaks for embedding in a JSON string."""
    out: list[str] = []
    length = 0
    for char in text:
        if length >= ESCAPED_LIMIT - 2:
            break
        piece = _ESCAPES.get(char, char)
        out.append(piece)
        length += len(piece)
    return "".join(out)


def build_json_response(command: str, response: str, timestamp: int | None = None) -> bytes:
    """An HTTP 200 response carrying the command, its reply and a timestamp."""
    if timestamp is None:
        timestamp = int(time.time())
    body = (
        "{\n"
        f'  "command": "{command}",\n'
        f'  "response": "{escape_response(response)}",\n'
        f'  "timestamp": {timestamp}\n'
        "}"
    )
    return build_http_response("200 OK", "application/json", body)


def read_html_file(path: str | Path) -> str | None:
    """The file's contents, or None if it cannot be read."""
    try:
        return Path(path).read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None


def parse_command_body(request: str | bytes) -> str | None:
    """Extract the "command" string from the request body, if present."""
    text = _as_text(request)
    _, sep, body = text.partition("\r\n\r\n")
    if not sep:
        return None
    log.debug("HTTP body: %s", body)
    key = body.find('"command"')
    if key < 0:
        return None
    colon = body.find(":", key)
    if colon < 0:
        return None
    start = body.find('"', colon)
    if start < 0:
        return None
    start += 1
    end = body.find('"', start)
    if end < 0:
        return None
    command = body[start:end]
    if not 0 < len(command) < MAX_COMMAND_LENGTH:
        return None
    return command


def handle_http_request(
    request: str | bytes, processor: CommandProcessor, web_root: str | Path = "web"
) -> bytes:
    """Answer one HTTP request and return the full response."""
    text = _as_text(request)
    parts = text.split(None, 3)
    method = parts[0] if parts else ""
    path = parts[1] if len(parts) > 1 else ""
    log.info("HTTP request: %s %s", method, path)

    if method == "OPTIONS":
        return build_http_response("200 OK", "text/plain", "")

    if method == "GET" and path in ("/", "/index.html"):
        html = read_html_file(Path(web_root) / "index.html")
        return build_http_response("200 OK", "text/html; charset=utf-8", html or DEFAULT_HTML)

    if method == "POST" and path == "/api/command":
        command = parse_command_body(text)
        if command is not None:
            log.info("parsed command: [%s]", command)
            reply = processor.process(command).text
            log.info("command reply: [%s]", reply)
            return build_json_response(command, reply)
        log.warning("JSON parsing failed")
        return build_json_response("UNKNOWN", "ERROR: 명령 파싱 실패")

    return build_http_response("404 Not Found", "text/html", NOT_FOUND_HTML)