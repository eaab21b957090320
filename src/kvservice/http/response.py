"""
=============================================================================
HTTP RESPONSE
=============================================================================

Response container, fluent builder, and one-line helpers for the shapes
this service answers with.

    Handler returns          to_bytes()              Socket sends
    HTTPResponse    ─────►   serializes    ─────►    raw bytes

Every body the service produces is one of two kinds:

    text/plain        greeting, version string
    application/json  user views, stored records, {"error": "..."}

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Optional, Dict, Any, Union
import json

from .status_codes import HTTPStatus


DEFAULT_SERVER_NAME = "kvservice"
TEXT_PLAIN = "text/plain; charset=utf-8"
APPLICATION_JSON = "application/json; charset=utf-8"


@dataclass
class HTTPResponse:
    """
    An HTTP response ready to be serialized.

    Use ResponseBuilder or the helpers at the bottom of this module rather
    than filling the fields by hand.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """Status line, e.g. HTTP/1.1 200 OK."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def text(self) -> str:
        """Body decoded as UTF-8."""
        return self.body.decode("utf-8")

    @property
    def json(self) -> Any:
        """Body decoded as JSON. Convenient in tests."""
        return json.loads(self.body.decode("utf-8"))

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """
        Serialize for socket.sendall().

            HTTP/1.1 200 OK\r\n
            Content-Type: application/json; charset=utf-8\r\n
            Content-Length: 37\r\n      ← added if missing
            Date: Mon, 19 Oct 2026 ...\r\n ← added if missing
            Server: kvservice\r\n       ← added if missing
            \r\n
            {"name": "Ann", ...}
        """
        defaults = {
            "Content-Length": str(len(self.body)),
            "Date": format_http_date(datetime.now(timezone.utc)),
            "Server": server_name,
        }
        headers = {**defaults, **self.headers}

        head = self.status_line + "\r\n"
        head += "".join(f"{name}: {value}\r\n" for name, value in headers.items())
        return (head + "\r\n").encode("utf-8") + self.body


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder()
            .status(HTTPStatus.NOT_FOUND)
            .json({"error": "User not found"})
            .build())

    Every method except build() returns self.
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: Union[HTTPStatus, int]) -> "ResponseBuilder":
        self._status = HTTPStatus(status)
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Raw body. Strings are encoded as UTF-8."""
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str, content_type: str = TEXT_PLAIN) -> "ResponseBuilder":
        """Plain text body."""
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = content_type
        return self

    def json(self, data: Any) -> "ResponseBuilder":
        """
        JSON body.

        ensure_ascii=False keeps non-ASCII names readable on the wire.
        """
        self._body = json.dumps(data, ensure_ascii=False).encode("utf-8")
        self._headers["Content-Type"] = APPLICATION_JSON
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            body=self._body,
        )


def format_http_date(dt: datetime) -> str:
    """
    RFC 7231 HTTP-date, e.g. "Mon, 19 Oct 2026 12:00:00 GMT".

    Naive datetimes are taken to be UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return format_datetime(dt.astimezone(timezone.utc), usegmt=True)


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
#     return ok(view.to_dict())
#     return text(config.worker_version)
#     return error_response(HTTPStatus.NOT_FOUND, "User not found")
#
# =============================================================================


def ok(body: Union[str, bytes, dict, list] = "", content_type: Optional[str] = None) -> HTTPResponse:
    """
    200 OK.

    dict/list → JSON, str → text/plain, bytes → raw.
    """
    if isinstance(body, (dict, list)):
        return ResponseBuilder().json(body).build()
    if isinstance(body, str):
        return ResponseBuilder().text(body, content_type or TEXT_PLAIN).build()

    builder = ResponseBuilder().body(body)
    if content_type:
        builder.header("Content-Type", content_type)
    return builder.build()


def text(body: str) -> HTTPResponse:
    """200 OK with a plain text body."""
    return ResponseBuilder().text(body).build()


def error_response(status: Union[HTTPStatus, int], message: str) -> HTTPResponse:
    """
    An error with a JSON body: {"error": message}.

    Used for every 4xx/5xx this service sends.
    """
    return (ResponseBuilder()
        .status(status)
        .json({"error": message})
        .build())


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    """
    500 Internal Server Error.

    Keep the message generic; the traceback goes to the log, not the client.
    """
    return error_response(HTTPStatus.INTERNAL_SERVER_ERROR, message)
