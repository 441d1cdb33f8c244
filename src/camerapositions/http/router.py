"""
=============================================================================
URL ROUTER
=============================================================================

Maps (method, path) to a handler. The display server's table is tiny:

    ┌────────┬──────────────────────┬───────────────────────────────────┐
    │ Method │ Path                 │ Handler                           │
    ├────────┼──────────────────────┼───────────────────────────────────┤
    │ GET    │ /                    │ bundled index.html                │
    │ GET    │ /index.html          │ bundled index.html                │
    │ GET    │ /styles.css          │ bundled styles.css                │
    │ GET    │ /display.js          │ bundled display.js                │
    │ GET    │ /api/config          │ current snapshot JSON, or {}      │
    │ GET    │ /api/images/*name    │ stored image blob                 │
    │ *      │ anything else        │ 404                               │
    └────────┴──────────────────────┴───────────────────────────────────┘

=============================================================================
ROUTE PATTERNS
=============================================================================

1. STATIC PATHS: exact string match, no normalization

   Pattern: /api/config
   Matches: /api/config
   Doesn't match: /api/config/, /api/config?x=1, /API/config

2. WILDCARD (*param): prefix match, the rest of the path is captured

   Pattern: /api/images/*filename
   Matches: /api/images/abc.png → {"filename": "abc.png"}
            /api/images/a/b.png → {"filename": "a/b.png"}
            /api/images/        → {"filename": ""}

   The handler decides what a captured value means; the router does not
   sanitize it.

Routes are tried in registration order; the first match wins. There is
no 405: a known path with the wrong method is simply not found.

=============================================================================
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .request import HTTPRequest
from .response import HTTPResponse, not_found


logger = logging.getLogger(__name__)


Handler = Callable[[HTTPRequest], HTTPResponse]


@dataclass
class Route:
    """A registered route: pattern, method filter and handler."""

    path: str
    method: Optional[str]
    handler: Handler
    name: Optional[str] = None

    _pattern: Optional[re.Pattern] = field(default=None, repr=False)


@dataclass
class RouteMatch:
    """The matched route plus wildcard captures."""

    route: Route
    params: Dict[str, str]


class Router:
    """
    Ordered route table.

    Usage:
        router = Router()

        @router.get("/api/config")
        def config(request):
            return ok_text("{}", "application/json")

        response = router.handle(request)
    """

    def __init__(self):
        self._routes: List[Route] = []

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Route:
        """
        Register a route.

        Args:
            path: Exact path, or a prefix ending in "/*param".
            handler: Callable taking the request and returning a response.
            method: Required method (None = any method).
            name: Optional label shown in route listings.
        """
        route = Route(
            path=path,
            method=method.upper() if method else None,
            handler=handler,
            name=name,
            _pattern=self._compile_pattern(path),
        )
        self._routes.append(route)
        return route

    def _compile_pattern(self, path: str) -> re.Pattern:
        """
        Compile a route path into an anchored regex.

            "/api/config"           → ^/api/config$
            "/api/images/*filename" → ^/api/images/(?P<filename>.*)$
        """
        prefix, star, param = path.partition("*")
        if not star:
            return re.compile("^" + re.escape(path) + "$")

        param_name = param or "wildcard"
        return re.compile("^" + re.escape(prefix) + f"(?P<{param_name}>.*)$", re.DOTALL)

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """First route whose method and pattern both match, else None."""
        for route in self._routes:
            if route.method and route.method != method:
                continue

            found = route._pattern.match(path)
            if found:
                return RouteMatch(route=route, params=found.groupdict())

        return None

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Produce the response for a request. Never raises.

        A handler that raises is logged and answered with the 404 shape:
        the display server has no 500 response.
        """
        matched = self.match(request.method, request.path)
        if matched is None:
            return not_found()

        try:
            request.path_params = matched.params
            return matched.route.handler(request)
        except Exception:
            logger.exception(f"Handler for {request.method} {request.path} failed")
            return not_found()

    # =========================================================================
    # DECORATOR-STYLE REGISTRATION
    # =========================================================================

    def route(self, path: str, method: Optional[str] = None, name: Optional[str] = None):
        def decorator(handler: Handler) -> Handler:
            self.add_route(path, handler, method, name)
            return handler
        return decorator

    def get(self, path: str, name: Optional[str] = None):
        """Register a GET route."""
        return self.route(path, "GET", name)

    def routes(self) -> List[Route]:
        return list(self._routes)
