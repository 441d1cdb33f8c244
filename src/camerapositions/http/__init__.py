"""
HTTP protocol components: request parsing, response building, routing.
"""

from .request import HTTPRequest, HTTPParseError, RequestParser, parse_request
from .response import HTTPResponse, ResponseBuilder, ok_text, ok_binary, not_found
from .router import Router, Route, RouteMatch, Handler
from .status_codes import HTTPStatus

__all__ = [
    "HTTPRequest",
    "HTTPParseError",
    "RequestParser",
    "parse_request",
    "HTTPResponse",
    "ResponseBuilder",
    "ok_text",
    "ok_binary",
    "not_found",
    "Router",
    "Route",
    "RouteMatch",
    "Handler",
    "HTTPStatus",
]
