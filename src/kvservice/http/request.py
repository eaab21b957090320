"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the raw bytes of one HTTP/1.1 request into an HTTPRequest.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    POST /users HTTP/1.1\r\n                  ← request line         │
    │    Host: localhost:8080\r\n                  ← headers              │
    │    Content-Type: application/json\r\n                               │
    │    Content-Length: 58\r\n                                           │
    │    \r\n                                      ← separator            │
    │    {"name": "Ann", "email": "ann@x.com", ...} ← body                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The router and the handlers never see bytes. They get an HTTPRequest with
method, path, headers and body already separated. Decoding the body as
JSON is left to the handler that needs it (request.json).

Parse failures raise HTTPParseError carrying the status to answer with:

    400 Bad Request                 malformed request line, short body
    405 Method Not Allowed          unknown method token
    413 Payload Too Large           request exceeds max_request_size
    505 HTTP Version Not Supported  anything other than HTTP/1.0 or 1.1

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any
from urllib.parse import parse_qs, urlparse
import re
import json

from ..errors import BadRequest


class HTTPParseError(Exception):
    """
    Raised when the raw request bytes can't be parsed.

    Carries the HTTP status code the server should answer with.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Attributes:
        method:         GET, POST, ... (always upper case)
        path:           percent-encoded path without the query string
        version:        "HTTP/1.1" or "HTTP/1.0"
        headers:        header name (lower case) → value
        query_params:   "?a=1&a=2" → {"a": ["1", "2"]}
        body:           raw body bytes, exactly Content-Length long
        path_params:    values bound by the router (":id" → "ann@x.com")
        client_address: (ip, port) of the peer, for the access log
    """

    method: str
    path: str
    version: str = "HTTP/1.1"

    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, list[str]] = field(default_factory=dict)
    body: bytes = b""

    path_params: Dict[str, str] = field(default_factory=dict)

    client_address: tuple[str, int] = ("", 0)

    _body_json: Optional[Any] = field(default=None, repr=False)

    @property
    def content_type(self) -> Optional[str]:
        """Content-Type without parameters ("application/json")."""
        media_type, _, _ = self.headers.get("content-type", "").partition(";")
        return media_type.strip().lower() or None

    @property
    def content_length(self) -> int:
        """Content-Length as an int, 0 when missing or garbage."""
        try:
            return int(self.headers.get("content-length", 0))
        except ValueError:
            return 0

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def json(self) -> Any:
        """
        The body decoded as JSON.

        Parsed lazily and cached. An empty body decodes to None.

        Raises:
            BadRequest: If the body is not valid UTF-8 JSON.
        """
        if self._body_json is None and self.body:
            try:
                self._body_json = json.loads(self.body.decode("utf-8"))
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise BadRequest(f"Invalid JSON body: {e}") from e
        return self._body_json

    @property
    def is_keep_alive(self) -> bool:
        """
        Whether the connection should stay open after this response.

        HTTP/1.1 keeps alive unless "Connection: close".
        HTTP/1.0 closes unless "Connection: keep-alive".
        """
        token = self.headers.get("connection", "").strip().lower()
        if self.version == "HTTP/1.0":
            return token == "keep-alive"
        return token != "close"

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of a query parameter."""
        values = self.query_params.get(name)
        return values[0] if values else default


class RequestParser:
    """
    Parses raw request bytes into HTTPRequest objects.

        raw bytes
            │
            ├── size check ............ 413
            ├── split at \r\n\r\n ..... 400 if missing
            ├── request line .......... 400 / 405 / 505
            ├── headers (lower-cased names)
            └── body by Content-Length  400 if short
            │
            ▼
        HTTPRequest
    """

    METHODS = frozenset({"GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"})
    VERSIONS = ("HTTP/1.0", "HTTP/1.1")

    # METHOD SP request-target SP HTTP/x.y
    REQUEST_LINE = re.compile(r"^(?P<method>[A-Z]+) (?P<target>\S+) (?P<version>HTTP/\d\.\d)$")

    def __init__(self, max_request_size: int = 1024 * 1024):
        """
        Args:
            max_request_size: Largest request accepted, in bytes.
                              Bigger requests get 413.
        """
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse one complete request.

        Bytes beyond Content-Length are ignored; Connection already keeps
        them for the next request on the socket.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(f"Request too large: {len(data)} bytes", status_code=413)

        head, separator, rest = data.partition(b"\r\n\r\n")
        if not separator:
            raise HTTPParseError("Incomplete request: no header terminator")

        request_line, *header_lines = head.decode("utf-8", errors="replace").split("\r\n")
        method, target, version = self._parse_request_line(request_line)
        headers = self._parse_headers(header_lines)

        path, query_params = self._split_target(target)
        body = self._take_body(rest, headers.get("content-length", "0"))

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_params=query_params,
            body=body,
            client_address=client_address,
        )

    def _parse_request_line(self, line: str) -> tuple[str, str, str]:
        found = self.REQUEST_LINE.match(line)
        if found is None:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method = found.group("method")
        version = found.group("version")

        if method not in self.METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)
        if version not in self.VERSIONS:
            raise HTTPParseError(f"Unsupported HTTP version: {version}", status_code=505)

        return method, found.group("target"), version

    @staticmethod
    def _split_target(target: str) -> tuple[str, Dict[str, list[str]]]:
        """
        "/users/ann%40x.com?verbose=1" → ("/users/ann%40x.com", {"verbose": ["1"]})

        The path stays percent-encoded; the router decodes it segment by
        segment after splitting on "/".
        """
        url = urlparse(target)
        return url.path or "/", parse_qs(url.query, keep_blank_values=True)

    @staticmethod
    def _parse_headers(lines: list[str]) -> Dict[str, str]:
        """
        "Name: value" lines to a dict with lower-cased names.

        A repeated header has its values joined with ", ". Lines without
        a colon are dropped.
        """
        headers: Dict[str, str] = {}
        for line in lines:
            name, colon, value = line.partition(":")
            name = name.strip().lower()
            if not colon or not name:
                continue
            value = value.strip()
            headers[name] = f"{headers[name]}, {value}" if name in headers else value
        return headers

    @staticmethod
    def _take_body(rest: bytes, declared: str) -> bytes:
        try:
            length = int(declared)
        except ValueError:
            raise HTTPParseError(f"Invalid Content-Length header: {declared!r}")
        if length < 0:
            raise HTTPParseError(f"Invalid Content-Length header: {declared!r}")

        if len(rest) < length:
            raise HTTPParseError(f"Incomplete body: expected {length} bytes, got {len(rest)}")
        return rest[:length]


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 1024 * 1024
) -> HTTPRequest:
    """One-shot helper around RequestParser.parse()."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
