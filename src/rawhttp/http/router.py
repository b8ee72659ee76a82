"""
=============================================================================
URL ROUTER
=============================================================================

Maps (method, target) to a handler function.

=============================================================================
ROUTING FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ROUTING FLOW                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Incoming Request                                                   │
    │   GET /echo/hello                                                    │
    │        │                                                             │
    │        ▼                                                             │
    │   ┌─────────────────────────────────────────────────────────────┐   │
    │   │  ROUTER                                                      │   │
    │   │  ┌────────────────────────────────────────────────────────┐ │   │
    │   │  │ GET  /              → index                            │ │   │
    │   │  │ GET  /user-agent    → user_agent                       │ │   │
    │   │  │ GET  /echo/*text    → echo          ← MATCH!           │ │   │
    │   │  │ GET  /files/*name   → files.download                   │ │   │
    │   │  │ POST /files/*name   → files.upload                     │ │   │
    │   │  └────────────────────────────────────────────────────────┘ │   │
    │   │                                                              │   │
    │   │  Extracted: path_params = {"text": "hello"}                 │   │
    │   └─────────────────────────────────────────────────────────────┘   │
    │        │                                                             │
    │        ▼                                                             │
    │   echo(request)      # request.path_params["text"] == "hello"       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ROUTE PATTERNS
=============================================================================

1. STATIC PATHS: exact string match

   Pattern: /user-agent
   Matches: /user-agent
   Doesn't match: /user-agent/, /user-agents

2. DYNAMIC PARAMETERS (:param): one path segment

   Pattern: /users/:id
   Matches: /users/123 → {"id": "123"}

3. WILDCARD (*param): the REST of the target, verbatim

   Pattern: /echo/*text
   Matches: /echo/abc      → {"text": "abc"}
            /echo/a/b/      → {"text": "a/b/"}
            /echo/          → {"text": ""}
   Must be the LAST segment in the pattern.

Targets are matched exactly as they arrived. There is no trailing-slash
normalisation and no percent-decoding: ``/echo/a%20b`` echoes ``a%20b``.

=============================================================================
NO MATCH MEANS 404
=============================================================================

A request that matches no route gets ``404 Not Found`` with an empty body,
whatever the reason - unknown target, or a known target with the other
method (``POST /echo/x``). There is no 405 Method Not Allowed.

=============================================================================
"""

from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional
import re

from .request import HTTPRequest, Method
from .response import HTTPResponse, not_found


# Handler: a function that takes a request and returns a response
Handler = Callable[[HTTPRequest], HTTPResponse]


@dataclass
class Route:
    """
    A registered route: pattern + method + handler.

        Route(
            path="/files/*name",
            method=Method.GET,
            handler=files.download,
            _pattern=re.compile(r"^/files/(?P<name>.*)$"),
            _param_names=["name"],
        )
    """

    path: str
    method: Method
    handler: Handler
    name: Optional[str] = None

    _pattern: Optional[re.Pattern] = field(default=None, repr=False)
    _param_names: List[str] = field(default_factory=list, repr=False)


@dataclass
class RouteMatch:
    """Result of a successful route match."""

    route: Route
    params: Dict[str, str]


class Router:
    """
    HTTP request router with dynamic path parameters.

    Routes are usually registered with decorators:

        router = Router()

        @router.get("/echo/*text")
        def echo(request):
            return ok(request.path_params["text"])

        @router.post("/files/*name")
        def upload(request):
            ...
    """

    def __init__(self):
        self._routes: List[Route] = []

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: Method,
        name: Optional[str] = None,
    ) -> Route:
        """
        Register a route.

        Args:
            path: URL pattern (e.g. /files/*name)
            handler: Function that takes a request and returns a response
            method: Method.GET or Method.POST
            name: Optional route name, shown in route listings

        Returns:
            The registered Route object
        """
        pattern, param_names = self._compile_pattern(path)

        route = Route(
            path=path,
            method=Method(method),
            handler=handler,
            name=name or getattr(handler, "__name__", None),
            _pattern=pattern,
            _param_names=param_names,
        )
        self._routes.append(route)
        return route

    def _compile_pattern(self, path: str) -> tuple[re.Pattern, List[str]]:
        """
        Compile a path pattern into an anchored regex.

        =====================================================================
        PATTERN COMPILATION
        =====================================================================

        Input:  "/files/*name"

        Step 1: Split by "/"     ["", "files", "*name"]
        Step 2: Each segment     "files" → /files
                                 "*name" → /(?P<name>.*)
        Step 3: Anchor           ^/files/(?P<name>.*)$

        The root pattern "/" has no segments at all and compiles to ^/$.

        =====================================================================
        """
        param_names: List[str] = []
        regex_parts = ["^"]

        for segment in path.split("/"):
            if not segment:
                continue

            regex_parts.append("/")

            if segment.startswith(":"):
                param_name = segment[1:]
                param_names.append(param_name)
                regex_parts.append(f"(?P<{param_name}>[^/]+)")

            elif segment.startswith("*"):
                # Wildcard consumes everything, stop here
                param_name = segment[1:] or "wildcard"
                param_names.append(param_name)
                regex_parts.append(f"(?P<{param_name}>.*)")
                break

            else:
                regex_parts.append(re.escape(segment))

        if len(regex_parts) == 1:
            regex_parts.append("/")

        regex_parts.append("$")
        return re.compile("".join(regex_parts), re.DOTALL), param_names

    # =========================================================================
    # ROUTE MATCHING
    # =========================================================================

    def match(self, method: Method, target: str) -> Optional[RouteMatch]:
        """
        Find the first route matching ``method`` and ``target``.

        Order matters: first-registered, first-matched.
        """
        for route in self._routes:
            if route.method != method:
                continue

            found = route._pattern.match(target)
            if found:
                return RouteMatch(route=route, params=found.groupdict())

        return None

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Route a request to its handler.

        The handler receives a copy of the request with ``path_params``
        set; the parsed request itself is left untouched.

        Returns:
            The handler's response, or 404 Not Found if nothing matched.
        """
        found = self.match(request.method, request.target)
        if found is None:
            return not_found()

        return found.route.handler(replace(request, path_params=found.params))

    # =========================================================================
    # DECORATOR-STYLE ROUTE REGISTRATION
    # =========================================================================

    def route(self, path: str, method: Method, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        """Decorator for registering routes. Returns the handler unchanged."""
        def decorator(handler: Handler) -> Handler:
            self.add_route(path, handler, method, name)
            return handler
        return decorator

    def get(self, path: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        """Register a GET (retrieval) route."""
        return self.route(path, Method.GET, name)

    def post(self, path: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        """Register a POST (creation) route."""
        return self.route(path, Method.POST, name)

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================

    def routes(self) -> List[Route]:
        """All registered routes, in match order."""
        return list(self._routes)
