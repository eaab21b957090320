"""
=============================================================================
URL ROUTER
=============================================================================

Maps (method, path) to a handler and pulls named parameters out of the
path.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ROUTING FLOW                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   GET /users/ann@x.com                                               │
    │        │                                                             │
    │        ▼                                                             │
    │   ┌─────────────────────────────────────────────────────────────┐   │
    │   │  ROUTER (walked top to bottom, first match wins)            │   │
    │   │                                                              │   │
    │   │   GET  /                → index                              │   │
    │   │   POST /users           → create_user                        │   │
    │   │   GET  /users/:id       → get_user        ← MATCH            │   │
    │   │   GET  /worker-version  → worker_version                     │   │
    │   │                                                              │   │
    │   │   params = {"id": "ann@x.com"}                               │   │
    │   └─────────────────────────────────────────────────────────────┘   │
    │        │                                                             │
    │        ▼                                                             │
    │   get_user(request, params, ctx)                                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ROUTE PATTERNS
=============================================================================

A pattern is parsed ONCE, at registration, into a tuple of segments:

    "/users/:id/files/*rest"
        │
        ▼
    (LITERAL "users", PARAM "id", LITERAL "files", CATCH_ALL "rest")

1. LITERAL   users       exact, case-sensitive
2. PARAM     :id         any ONE non-empty segment, bound as params["id"]
3. CATCH_ALL *rest       everything left (one or more segments), joined
                         with "/", bound as params["rest"]. Last only.

Matching walks the pattern and the split path side by side. No regular
expressions are involved, so precedence is exactly registration order and
nothing else.

    Pattern                 Path                   Result
    ─────────────────────── ────────────────────── ─────────────────────
    /users/:id              /users/42              {"id": "42"}
    /users/:id              /users/42/posts        no match (leftover)
    /users/:id              /users/                no match (empty seg)
    /static/*path           /static/css/a.css      {"path": "css/a.css"}
    /static/*path           /static                no match (nothing left)

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Dict, Any, List, Tuple
from urllib.parse import unquote
import logging

from ..errors import NotFound
from .request import HTTPRequest
from .response import HTTPResponse


logger = logging.getLogger(__name__)


# =============================================================================
# TYPE ALIASES
# =============================================================================

# handler(request, params, context) -> response
# The context is whatever the application passes to Router.handle(); for
# this service it is an AppContext holding the store and the config.
Handler = Callable[[HTTPRequest, Dict[str, str], Any], HTTPResponse]


class SegmentKind(Enum):
    """What a single pattern segment matches."""
    LITERAL = "literal"       # users       - exact text
    PARAM = "param"           # :id         - one path segment
    CATCH_ALL = "catch_all"   # *path       - all remaining segments


@dataclass(frozen=True)
class Segment:
    """
    One node of a parsed route pattern.

    For LITERAL, `value` is the text to compare against. For PARAM and
    CATCH_ALL it is the parameter name the matched text is bound to.
    """
    kind: SegmentKind
    value: str


@dataclass
class Route:
    """
    A registered (method, pattern, handler) triple.

        Route(
            method="GET",
            pattern="/users/:id",
            handler=get_user,
            segments=(Segment(LITERAL, "users"), Segment(PARAM, "id")),
        )
    """

    method: str
    pattern: str
    handler: Handler
    name: Optional[str] = None
    segments: Tuple[Segment, ...] = field(default=(), repr=False)

    @property
    def param_names(self) -> List[str]:
        return [s.value for s in self.segments if s.kind is not SegmentKind.LITERAL]


@dataclass
class RouteMatch:
    """
    Result of a successful dispatch.

        pattern /users/:id  +  path /users/42
            → RouteMatch(route=<Route>, params={"id": "42"})
    """
    route: Route
    params: Dict[str, str]

    @property
    def handler(self) -> Handler:
        return self.route.handler


# =============================================================================
# PATTERN PARSING
# =============================================================================


def split_path(path: str) -> List[str]:
    """
    Split a request path into segments.

    Exactly one leading "/" is dropped. Empty segments are kept so that a
    trailing slash is significant:

        "/"              → []
        "/users"         → ["users"]
        "/users/"        → ["users", ""]
        "/users/ann@x"   → ["users", "ann@x"]
    """
    if path.startswith("/"):
        path = path[1:]
    if not path:
        return []
    return path.split("/")


def parse_pattern(pattern: str) -> Tuple[Segment, ...]:
    """
    Parse a route pattern into its segment tuple.

    Raises:
        ValueError: If the pattern doesn't start with "/", has a
            placeholder or catch-all without a name, has a catch-all
            anywhere but last, or binds the same name twice.
    """
    if not pattern.startswith("/"):
        raise ValueError(f"Route pattern must start with '/': {pattern!r}")

    parts = split_path(pattern)
    segments: List[Segment] = []
    seen: set[str] = set()

    for i, part in enumerate(parts):
        if part.startswith(":") or part.startswith("*"):
            name = part[1:]
            if not name:
                raise ValueError(f"Unnamed parameter in route pattern: {pattern!r}")
            if name in seen:
                raise ValueError(f"Duplicate parameter {name!r} in route pattern: {pattern!r}")
            seen.add(name)

            if part[0] == "*":
                if i != len(parts) - 1:
                    raise ValueError(f"Catch-all must be the last segment: {pattern!r}")
                segments.append(Segment(SegmentKind.CATCH_ALL, name))
            else:
                segments.append(Segment(SegmentKind.PARAM, name))
        else:
            segments.append(Segment(SegmentKind.LITERAL, part))

    return tuple(segments)


def match_segments(
    segments: Tuple[Segment, ...],
    parts: List[str],
) -> Optional[Dict[str, str]]:
    """
    Match split path parts against a parsed pattern.

    Parts are still percent-encoded; each one is decoded only after the
    split, so "%2F" inside a parameter stays part of that parameter:

        /users/:id  +  ["users", "a%2Fb@x.com"]  →  {"id": "a/b@x.com"}

    Returns:
        The bound parameters (possibly empty) on a match, None otherwise.
    """
    params: Dict[str, str] = {}

    for i, segment in enumerate(segments):
        if segment.kind is SegmentKind.CATCH_ALL:
            rest = "/".join(unquote(p) for p in parts[i:])
            if not rest:
                return None
            params[segment.value] = rest
            return params

        if i >= len(parts):
            return None  # Path ran out before the pattern did

        part = unquote(parts[i])

        if segment.kind is SegmentKind.LITERAL:
            if part != segment.value:
                return None
        else:
            if not part:
                return None
            params[segment.value] = part

    # Non catch-all patterns must consume the whole path
    if len(parts) != len(segments):
        return None

    return params


class Router:
    """
    Ordered (method, pattern, handler) table with first-match-wins dispatch.

    ==========================================================================
    USAGE
    ==========================================================================

        router = Router()

        @router.get("/users/:id")
        def get_user(request, params, ctx):
            ...

        router.register("POST", "/users", create_user)

        match = router.dispatch("GET", "/users/42")   # or raises NotFound
        match.params                                  # {"id": "42"}

        response = router.handle(request, ctx)

    ==========================================================================
    PRECEDENCE
    ==========================================================================

    Routes are tried in the order they were registered. Register the more
    specific route first:

        router.get("/users/me")(current_user)    # wins for /users/me
        router.get("/users/:id")(get_user)

    Registering the same method + pattern twice is allowed; the second
    registration can never be reached.

    ==========================================================================
    """

    def __init__(self):
        self._routes: List[Route] = []

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def register(
        self,
        method: str,
        pattern: str,
        handler: Handler,
        name: Optional[str] = None,
    ) -> Route:
        """
        Append a route to the table.

        Args:
            method: HTTP method, compared upper-cased.
            pattern: Route pattern, e.g. "/users/:id".
            handler: Called as handler(request, params, context).
            name: Optional label, shown in the route listing.

        Returns:
            The registered Route.

        Raises:
            ValueError: If the pattern is malformed (see parse_pattern).
        """
        route = Route(
            method=method.upper(),
            pattern=pattern,
            handler=handler,
            name=name or getattr(handler, "__name__", None),
            segments=parse_pattern(pattern),
        )

        for existing in self._routes:
            if existing.method == route.method and existing.pattern == route.pattern:
                logger.warning(
                    f"Route {route.method} {route.pattern} registered twice; "
                    f"the first registration wins"
                )
                break

        self._routes.append(route)
        return route

    def add_route(
        self,
        pattern: str,
        handler: Handler,
        method: str = "GET",
        name: Optional[str] = None,
    ) -> Route:
        """register() with the argument order of the decorators."""
        return self.register(method, pattern, handler, name)

    # =========================================================================
    # MATCHING
    # =========================================================================

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """
        Find the first route matching method and path.

        The method is checked first, then the path segment by segment.

        Returns:
            RouteMatch, or None when nothing matches.
        """
        method = method.upper()
        parts = split_path(path)

        for route in self._routes:
            if route.method != method:
                continue

            params = match_segments(route.segments, parts)
            if params is not None:
                return RouteMatch(route=route, params=params)

        return None

    def dispatch(self, method: str, path: str) -> RouteMatch:
        """
        Like match(), but a miss is an error.

        Raises:
            NotFound: If no registered route matches.
        """
        match = self.match(method, path)
        if match is None:
            raise NotFound(f"No route matches {method.upper()} {path}")
        return match

    def handle(self, request: HTTPRequest, context: Any = None) -> HTTPResponse:
        """
        Dispatch a request and invoke its handler.

        The extracted params are also stored on request.path_params. The
        handler's response is returned unmodified and anything it raises
        propagates to the caller.

        Raises:
            NotFound: If no registered route matches.
        """
        match = self.dispatch(request.method, request.path)
        request.path_params = match.params
        return match.route.handler(request, match.params, context)

    # =========================================================================
    # DECORATOR-STYLE REGISTRATION
    # =========================================================================
    #
    #     @router.get("/users/:id")
    #     def get_user(request, params, ctx): ...
    #
    # is the same as router.register("GET", "/users/:id", get_user).
    # The handler is returned unchanged.
    # =========================================================================

    def route(
        self,
        pattern: str,
        method: str = "GET",
        name: Optional[str] = None,
    ) -> Callable[[Handler], Handler]:
        def decorator(handler: Handler) -> Handler:
            self.register(method, pattern, handler, name)
            return handler
        return decorator

    def get(self, pattern: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        return self.route(pattern, "GET", name)

    def post(self, pattern: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        return self.route(pattern, "POST", name)

    def put(self, pattern: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        return self.route(pattern, "PUT", name)

    def delete(self, pattern: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        return self.route(pattern, "DELETE", name)

    def patch(self, pattern: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        return self.route(pattern, "PATCH", name)

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    def routes(self) -> List[Route]:
        """All registered routes, in registration order."""
        return list(self._routes)

    def __len__(self) -> int:
        return len(self._routes)

    def print_routes(self) -> None:
        """
        Log the route table at INFO.

            GET      /
            POST     /users
            GET      /users/:id
            GET      /worker-version
        """
        logger.info("Registered routes:")
        for route in self._routes:
            logger.info(f"  {route.method:8} {route.pattern}")
