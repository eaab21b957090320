"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The subset of RFC 7231 status codes this service actually sends.

    2xx  the request worked
    4xx  the client sent something we can't serve
    5xx  we (or the store behind us) failed

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    Extends IntEnum, so codes compare equal to plain integers:

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    # =========================================================================
    # 2xx SUCCESS
    # =========================================================================
    OK = 200

    # =========================================================================
    # 4xx CLIENT ERRORS
    # =========================================================================
    BAD_REQUEST = 400
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405            # Unknown method in the request line
    REQUEST_TIMEOUT = 408               # Client connected but never finished
    PAYLOAD_TOO_LARGE = 413

    # =========================================================================
    # 5xx SERVER ERRORS
    # =========================================================================
    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503           # Accepted during shutdown
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """
        Reason phrase for the status line.

            HTTP/1.1 404 Not Found
                     ─── ─────────
                      │      └── phrase
                      └───────── code
        """
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_error(self) -> bool:
        """
        4xx or 5xx.

        The access log raises its level for these.
        """
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",

    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",

    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}
