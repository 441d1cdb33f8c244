"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds the HTTP/1.1 responses the display server sends.

=============================================================================
RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  HTTP/1.1 200 OK\r\n                           ← status line        │
    │  Content-Type: application/json; charset=utf-8\r\n                  │
    │  Cache-Control: no-cache\r\n                   ← every 200          │
    │  Access-Control-Allow-Origin: *\r\n            ← every response     │
    │  Content-Length: 2\r\n                         ← computed           │
    │  Connection: close\r\n                         ← every response     │
    │  \r\n                                                                │
    │  {}                                                                  │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
CANNED SHAPES
=============================================================================

Every response the server sends is one of three shapes:

    ok_text(body, content_type)
        200, "<content_type>; charset=utf-8", Cache-Control: no-cache

    ok_binary(data, content_type)
        200, "<content_type>" as given, Cache-Control: no-cache

    not_found()
        404, "text/plain", body "404 Not Found", no Cache-Control

Cache-Control: no-cache on every 200 matters for the polling display:
a cached /api/config would freeze the room monitor on stale data.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Union

from .status_codes import HTTPStatus


NOT_FOUND_BODY = b"404 Not Found"


@dataclass
class HTTPResponse:
    """
    An HTTP response ready to be serialized.

        Handler returns          to_bytes()              Connection sends
        HTTPResponse    ─────►   serializes    ─────►    socket.sendall()
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """Status line, e.g. "HTTP/1.1 200 OK"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    def to_bytes(self) -> bytes:
        """
        Serialize status line, headers and body.

        Headers added here unless the caller already set them:
            Content-Length                 len(body)
            Access-Control-Allow-Origin    *

        Always forced:
            Connection: close              (one request per connection)
        """
        response_headers = dict(self.headers)

        if "Content-Length" not in response_headers:
            response_headers["Content-Length"] = str(len(self.body))

        response_headers.setdefault("Access-Control-Allow-Origin", "*")
        response_headers["Connection"] = "close"

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return header_bytes + self.body


class ResponseBuilder:
    """
    Fluent builder for responses.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .text(html, "text/html")
            .no_cache()
            .build())

    Each method returns self except build() and to_bytes().
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set a raw body; strings are encoded as UTF-8."""
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: Union[str, bytes], content_type: str = "text/plain") -> "ResponseBuilder":
        """
        Set a textual body and declare it UTF-8.

        Args:
            text: Body as str, or bytes already encoded as UTF-8.
            content_type: Bare media type; "; charset=utf-8" is appended.
        """
        self.body(text)
        return self.content_type(f"{content_type}; charset=utf-8")

    def binary(self, data: bytes, content_type: str) -> "ResponseBuilder":
        """Set an opaque body with its media type as given."""
        self._body = data
        return self.content_type(content_type)

    def no_cache(self) -> "ResponseBuilder":
        return self.header("Cache-Control", "no-cache")

    def cors(self, origin: str = "*") -> "ResponseBuilder":
        return self.header("Access-Control-Allow-Origin", origin)

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            body=self._body,
        )

    def to_bytes(self) -> bytes:
        return self.build().to_bytes()


# =============================================================================
# CANNED RESPONSES
# =============================================================================

def ok_text(body: Union[str, bytes], content_type: str) -> HTTPResponse:
    """200 with a UTF-8 text body (HTML, CSS, JS, JSON)."""
    return (ResponseBuilder()
        .status(HTTPStatus.OK)
        .text(body, content_type)
        .no_cache()
        .cors()
        .build())


def ok_binary(data: bytes, content_type: str) -> HTTPResponse:
    """200 with a binary body (images)."""
    return (ResponseBuilder()
        .status(HTTPStatus.OK)
        .binary(data, content_type)
        .no_cache()
        .cors()
        .build())


def not_found() -> HTTPResponse:
    """The single 404 shape used for every miss."""
    return (ResponseBuilder()
        .status(HTTPStatus.NOT_FOUND)
        .content_type("text/plain")
        .cors()
        .body(NOT_FOUND_BODY)
        .build())
