"""Inspection and rewriting of intercepted Docker API traffic."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlsplit

from secdocker.config import Config
from secdocker.plugins.registry import DEFAULT_PLUGINS_DIR
from secdocker.server import process_create_container

FORBIDDEN_MESSAGE = "Option forbidden"

_HEADER_END = b"\r\n\r\n"
_REWRITTEN_HEADERS = frozenset(
    {"Host", "User-Agent", "Content-Length", "Transfer-Encoding", "Trailer"}
)
_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


def _canonical(name: str) -> str:
    return "-".join(part[:1].upper() + part[1:].lower() for part in name.split("-"))


def _decode_chunked(data: bytes) -> bytes:
    body = bytearray()
    pos = 0
    while True:
        end = data.find(b"\r\n", pos)
        if end < 0:
            raise ValueError("incomplete chunked body")
        size_text = data[pos:end].split(b";")[0].strip()
        try:
            size = int(size_text, 16)
        except ValueError:
            raise ValueError(f"invalid chunk size {size_text!r}") from None
        pos = end + 2
        if size == 0:
            return bytes(body)
        if len(data) < pos + size + 2 or data[pos + size : pos + size + 2] != b"\r\n":
            raise ValueError("incomplete chunked body")
        body += data[pos : pos + size]
        pos += size + 2


@dataclass
class HttpRequest:
    """An HTTP/1.x request read from raw bytes."""

    method: str
    target: str
    version: str = "HTTP/1.1"
    headers: list[tuple[str, str]] = field(default_factory=list)
    body: bytes = b""

    @property
    def path(self) -> str:
        return urlsplit(self.target).path

    def header(self, name: str, default: str | None = None) -> str | None:
        """Return the first value of header ``name``."""
        wanted = _canonical(name)
        return next((value for key, value in self.headers if key == wanted), default)

    def to_bytes(self) -> bytes:
        """Serialize the request with a Content-Length matching its body."""
        lines = [f"{self.method} {self.target} {self.version}"]
        for name in ("Host", "User-Agent"):
            value = self.header(name)
            if value is not None:
                lines.append(f"{name}: {value}")
        if self.body or self.method in _BODY_METHODS:
            lines.append(f"Content-Length: {len(self.body)}")
        others = sorted(
            (item for item in self.headers if item[0] not in _REWRITTEN_HEADERS),
            key=lambda item: item[0],
        )
        lines.extend(f"{name}: {value}" for name, value in others)
        head = "\r\n".join(lines) + "\r\n\r\n"
        return head.encode("latin-1") + self.body


def parse_http_request(raw: bytes) -> HttpRequest:
    """Parse an HTTP request; raise ValueError if it is malformed or incomplete."""
    head, sep, rest = raw.partition(_HEADER_END)
    if not sep:
        raise ValueError("incomplete request header")
    request_line, *header_lines = head.decode("latin-1").split("\r\n")
    parts = request_line.split(" ")
    if len(parts) != 3 or not parts[0].isalpha() or not parts[2].startswith("HTTP/"):
        raise ValueError(f"malformed request line {request_line!r}")
    method, target, version = parts

    headers: list[tuple[str, str]] = []
    for line in header_lines:
        name, colon, value = line.partition(":")
        if not colon or not name.strip():
            raise ValueError(f"malformed header line {line!r}")
        headers.append((_canonical(name.strip()), value.strip()))
    request = HttpRequest(method, target, version, headers)

    encoding = (request.header("Transfer-Encoding") or "").lower()
    length = request.header("Content-Length")
    if "chunked" in encoding:
        request.body = _decode_chunked(rest)
    elif length is not None:
        try:
            size = int(length)
        except ValueError:
            raise ValueError(f"invalid Content-Length {length!r}") from None
        if size < 0 or len(rest) < size:
            raise ValueError("incomplete request body")
        request.body = rest[:size]
    return request


def forbidden_response(message: str = FORBIDDEN_MESSAGE) -> bytes:
    """Return a complete 403 response carrying ``message``."""
    body = message.encode("utf-8")
    head = (
        "HTTP/1.1 403 Forbidden\r\n"
        "Connection: close\r\n"
        f"Content-Length: {len(body)}\r\n"
        "\r\n"
    )
    return head.encode("latin-1") + body


def hex_dump(data: bytes) -> str:
    """Return a hex dump with offsets, two 8-byte columns and printable text."""
    lines = []
    for offset in range(0, len(data), 16):
        chunk = data[offset : offset + 16]
        left = " ".join(f"{byte:02x}" for byte in chunk[:8]).ljust(23)
        right = " ".join(f"{byte:02x}" for byte in chunk[8:]).ljust(23)
        text = "".join(chr(byte) if 32 <= byte <= 126 else "." for byte in chunk)
        lines.append(f"{offset:08x}  {left}  {right}  |{text}|\n")
    return "".join(lines)


@dataclass
class Data:
    """A chunk of proxied traffic with the metadata needed to rewrite it."""

    payload: bytes
    from_client: bool = True
    server_addr: Any = None
    client_addr: Any = None
    tls_context: Any = None
    forbidden: bool = False
    config: Config | None = None
    plugins_dir: str | os.PathLike = DEFAULT_PLUGINS_DIR

    def do_mangle(self) -> bool:
        return True

    def mangle(self) -> None:
        """Check container creation requests, rewriting or refusing them."""
        if not self.payload:
            return
        try:
            request = parse_http_request(self.payload)
        except ValueError:
            return
        if "/containers/create" not in request.path:
            return
        body = process_create_container(
            request.method, request.target, request.body, self.config, self.plugins_dir
        )
        if body:
            request.body = body
            self.payload = request.to_bytes()
        else:
            self.payload = forbidden_response(FORBIDDEN_MESSAGE)
            self.forbidden = True

    def drop(self) -> bool:
        return False

    def pretty_print(self) -> str:
        return hex_dump(self.payload)

    def do_print(self) -> bool:
        return True

    def do_intercept(self) -> bool:
        return False