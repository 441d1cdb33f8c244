"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the bytes buffered from one client connection into an HTTPRequest.

=============================================================================
THREE OUTCOMES, NOT TWO
=============================================================================

TCP delivers a byte stream, so the connection handler re-parses its
buffer after every recv(). The parser therefore has three answers:

    ┌──────────────────────┬─────────────────────────────────────────────┐
    │  Outcome             │  Meaning for the caller                     │
    ├──────────────────────┼─────────────────────────────────────────────┤
    │  HTTPRequest         │  Complete request, route it                 │
    │  None                │  Incomplete, keep reading                   │
    │  raise HTTPParseError│  Malformed, drop the connection silently    │
    └──────────────────────┴─────────────────────────────────────────────┘

"Incomplete" covers two situations:

    1. No CRLFCRLF yet (the header block has not fully arrived)
    2. Content-Length says N body bytes but fewer than N are buffered

=============================================================================
WHAT IS DELIBERATELY NOT SUPPORTED
=============================================================================

    - Transfer-Encoding: chunked
    - Obsolete header folding (continuation lines)
    - Keep-alive / pipelining (one request per connection)

Display clients only issue plain GETs, so inputs using these features
either parse as opaque header lines or fail route matching with a 404.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Optional


HEADER_TERMINATOR = b"\r\n\r\n"


class HTTPParseError(Exception):
    """
    Raised when a buffered request can never become valid.

    Unlike a general-purpose server this one never answers a parse error
    with a 400: the connection handler logs it and closes the socket.
    """


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Attributes:
        method:         Request method exactly as sent ("GET").
        path:           Request target exactly as sent, query string
                        included. Routing matches it verbatim.
        version:        Protocol token, "HTTP/1.1" when omitted.
        headers:        Header name (lowercased) → value. Duplicates
                        resolve to the last occurrence.
        body:           Body bytes, exactly Content-Length long when that
                        header is present.
        client_address: (ip, port) of the peer, for access logging.
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    client_address: tuple[str, int] = ("", 0)

    # Wildcard captures, filled in by the router
    path_params: Dict[str, str] = field(default_factory=dict)

    @property
    def content_length(self) -> Optional[int]:
        """Declared Content-Length, or None when absent or unusable."""
        return _content_length(self.headers)

    def get_header(self, name: str, default: str = "") -> str:
        """
        Get a header value (case-insensitive lookup).

        Example:
            request.get_header("Content-Length")
        """
        return self.headers.get(name.lower(), default)


class RequestParser:
    """
    Parses buffered request bytes.

    ==========================================================================
    PARSER FLOW
    ==========================================================================

        Buffered bytes
              │
              ▼
        1. Find CRLFCRLF ──────────────► not found → None (incomplete)
              │
        2. Decode header block as UTF-8 ► fails → HTTPParseError
              │
        3. Request line tokens ────────► < 2 → HTTPParseError
              │
        4. Headers: split on first ":", trim, last write wins
              │
        5. Content-Length? ────────────► body short → None (incomplete)
              │                          body long  → truncate
              ▼
        HTTPRequest

    ==========================================================================

    The parser is stateless; one instance can be shared by every
    connection thread.
    """

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0),
    ) -> Optional[HTTPRequest]:
        """
        Parse a buffer that may hold a partial request.

        Args:
            data: Every byte received on the connection so far.
            client_address: Peer (ip, port), copied onto the request.

        Returns:
            The request, or None when more bytes are needed.

        Raises:
            HTTPParseError: If the buffer can never form a valid request.
        """
        header_end = data.find(HEADER_TERMINATOR)
        if header_end == -1:
            return None

        try:
            header_section = data[:header_end].decode("utf-8")
        except UnicodeDecodeError as e:
            raise HTTPParseError(f"Header block is not UTF-8: {e}")

        body = data[header_end + len(HEADER_TERMINATOR):]

        lines = header_section.split("\r\n")
        method, path, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        # ─────────────────────────────────────────────────────────────────
        # BODY: wait for Content-Length bytes, drop anything beyond them
        # ─────────────────────────────────────────────────────────────────
        content_length = _content_length(headers)
        if content_length is not None:
            if len(body) < content_length:
                return None
            body = body[:content_length]

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            body=body,
            client_address=client_address,
        )

    def _parse_request_line(self, line: str) -> tuple[str, str, str]:
        """
        Split "METHOD PATH [VERSION ...]" on spaces.

        Only the first two tokens are required. Anything past the third
        token is ignored.
        """
        tokens = [token for token in line.split(" ") if token]
        if len(tokens) < 2:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        version = tokens[2] if len(tokens) > 2 else "HTTP/1.1"
        return tokens[0], tokens[1], version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse "Name: value" lines.

        Lines without a colon are skipped. Repeated names overwrite the
        earlier value.
        """
        headers: Dict[str, str] = {}

        for line in lines:
            name, sep, value = line.partition(":")
            if not sep:
                continue
            name = name.strip().lower()
            if not name:
                continue
            headers[name] = value.strip()

        return headers


def _content_length(headers: Dict[str, str]) -> Optional[int]:
    raw = headers.get("content-length")
    if raw is None:
        return None
    try:
        value = int(raw)
    except ValueError:
        return None
    return value if value >= 0 else None


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
) -> Optional[HTTPRequest]:
    """Parse a buffer with a throwaway RequestParser."""
    return RequestParser().parse(data, client_address)
