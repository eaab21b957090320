"""
=============================================================================
HTTP LAYER
=============================================================================

    request.py       HTTPRequest, RequestParser, HTTPParseError
    response.py      HTTPResponse, ResponseBuilder, ok/text/error helpers
    router.py        Router, Route, RouteMatch, pattern segments
    status_codes.py  HTTPStatus

=============================================================================
"""

from .status_codes import HTTPStatus
from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,
    text,
    error_response,
    internal_error,
)
from .router import (
    Router,
    Route,
    RouteMatch,
    Segment,
    SegmentKind,
    Handler,
    parse_pattern,
    split_path,
)

__all__ = [
    "HTTPStatus",

    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",

    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "text",
    "error_response",
    "internal_error",

    "Router",
    "Route",
    "RouteMatch",
    "Segment",
    "SegmentKind",
    "Handler",
    "parse_pattern",
    "split_path",
]
