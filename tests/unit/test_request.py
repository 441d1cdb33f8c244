"""
Unit tests for the incremental request parser.
"""

import pytest

from camerapositions.http.request import (
    HTTPParseError,
    HTTPRequest,
    RequestParser,
    parse_request,
)


class TestRequestParser:
    """Tests for RequestParser.parse()."""

    def test_parse_simple_get(self):
        """A complete GET parses into method, path and version."""
        request = parse_request(b"GET /api/config HTTP/1.1\r\nHost: x\r\n\r\n")

        assert request is not None
        assert request.method == "GET"
        assert request.path == "/api/config"
        assert request.version == "HTTP/1.1"
        assert request.headers == {"host": "x"}
        assert request.body == b""

    def test_incomplete_headers_return_none(self):
        """Without the blank line the request is incomplete."""
        assert parse_request(b"GET /api/config HTTP/1.1\r\nHost: x\r\n") is None
        assert parse_request(b"GET /api/con") is None
        assert parse_request(b"") is None

    def test_fragmented_buffer_completes(self):
        """Re-parsing the growing buffer yields the request once complete."""
        parser = RequestParser()
        raw = b"GET /display.js HTTP/1.1\r\nHost: localhost\r\n\r\n"

        buffer = b""
        results = []
        for i in range(0, len(raw), 5):
            buffer += raw[i:i + 5]
            results.append(parser.parse(buffer))

        assert all(r is None for r in results[:-1])
        assert results[-1].path == "/display.js"

    def test_version_defaults_when_missing(self):
        """The protocol token is optional."""
        request = parse_request(b"GET /\r\n\r\n")

        assert request.path == "/"
        assert request.version == "HTTP/1.1"

    def test_extra_spaces_in_request_line(self):
        """Empty tokens between spaces are ignored."""
        request = parse_request(b"GET   /styles.css   HTTP/1.0\r\n\r\n")

        assert request.method == "GET"
        assert request.path == "/styles.css"
        assert request.version == "HTTP/1.0"

    def test_query_string_kept_in_path(self):
        """The request target is not split or normalized."""
        request = parse_request(b"GET /api/config?t=1 HTTP/1.1\r\n\r\n")
        assert request.path == "/api/config?t=1"

    def test_client_address_is_copied(self):
        """The peer address travels with the request."""
        request = RequestParser().parse(b"GET / HTTP/1.1\r\n\r\n", ("10.0.0.5", 5000))
        assert request.client_address == ("10.0.0.5", 5000)


class TestMalformedRequests:
    """Inputs that can never become a request."""

    def test_single_token_request_line(self):
        """A request line needs at least method and path."""
        with pytest.raises(HTTPParseError):
            parse_request(b"GET\r\n\r\n")

    def test_empty_request_line(self):
        """A blank request line is malformed."""
        with pytest.raises(HTTPParseError):
            parse_request(b"\r\n\r\n")

    def test_non_utf8_headers(self):
        """The header block must decode as UTF-8."""
        with pytest.raises(HTTPParseError):
            parse_request(b"GET /\xff\xfe HTTP/1.1\r\n\r\n")

    def test_parse_error_message(self):
        """The error names the bad request line."""
        with pytest.raises(HTTPParseError, match="Invalid request line"):
            parse_request(b"NOPE\r\n\r\n")


class TestHeaders:
    """Header parsing rules."""

    def test_values_and_names_are_trimmed(self):
        """Whitespace around names and values is removed."""
        request = parse_request(b"GET / HTTP/1.1\r\n  X-Test :   hello world  \r\n\r\n")
        assert request.headers["x-test"] == "hello world"

    def test_value_may_contain_colons(self):
        """Only the first colon separates name and value."""
        request = parse_request(b"GET / HTTP/1.1\r\nHost: localhost:8080\r\n\r\n")
        assert request.get_header("Host") == "localhost:8080"

    def test_lines_without_colon_are_ignored(self):
        """Garbage header lines are skipped, not fatal."""
        request = parse_request(b"GET / HTTP/1.1\r\nnot a header\r\nA: 1\r\n\r\n")
        assert request.headers == {"a": "1"}

    def test_duplicate_headers_last_write_wins(self):
        """A repeated name keeps the last value, regardless of case."""
        request = parse_request(
            b"GET / HTTP/1.1\r\nX-Mode: first\r\nx-mode: second\r\n\r\n"
        )
        assert request.get_header("X-Mode") == "second"

    def test_get_header_default(self):
        """Missing headers fall back to the default."""
        request = HTTPRequest(method="GET", path="/")
        assert request.get_header("Accept", "none") == "none"


class TestContentLength:
    """Body framing via Content-Length."""

    def test_waits_for_declared_body(self):
        """A short body means the request is still incomplete."""
        data = b"POST /x HTTP/1.1\r\nContent-Length: 10\r\n\r\nhello"
        assert parse_request(data) is None

    def test_complete_body(self):
        """Exactly Content-Length bytes complete the request."""
        data = b"POST /x HTTP/1.1\r\nContent-Length: 5\r\n\r\nhello"
        request = parse_request(data)

        assert request.body == b"hello"
        assert request.content_length == 5

    def test_body_truncated_to_declared_length(self):
        """Bytes past Content-Length are dropped."""
        data = b"POST /x HTTP/1.1\r\nContent-Length: 3\r\n\r\nhello"
        assert parse_request(data).body == b"hel"

    def test_invalid_content_length_is_ignored(self):
        """A non-integer Content-Length leaves the body as received."""
        data = b"POST /x HTTP/1.1\r\nContent-Length: abc\r\n\r\nhello"
        request = parse_request(data)

        assert request.body == b"hello"
        assert request.content_length is None

    def test_negative_content_length_is_ignored(self):
        """A negative Content-Length is treated as absent."""
        data = b"POST /x HTTP/1.1\r\nContent-Length: -4\r\n\r\nhi"
        assert parse_request(data).body == b"hi"

    def test_no_content_length_takes_everything(self):
        """Without the header the body is whatever followed the blank line."""
        data = b"GET / HTTP/1.1\r\n\r\ntrailing"
        assert parse_request(data).body == b"trailing"
