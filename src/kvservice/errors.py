"""
=============================================================================
SERVICE ERRORS
=============================================================================

The error taxonomy every handler speaks in.

Handlers never build error responses themselves. They raise one of the
exceptions below and the Application turns it into a response:

    ┌────────────────┬────────┬──────────────────────────────────────────┐
    │  Exception     │ Status │ Raised when                              │
    ├────────────────┼────────┼──────────────────────────────────────────┤
    │  BadRequest    │  400   │ Body malformed, required field missing,  │
    │                │        │ path parameter absent                    │
    │  NotFound      │  404   │ No route matches, or no record for key   │
    │  StorageError  │  500   │ Store read/write failed, stored value    │
    │                │        │ could not be decoded                     │
    └────────────────┴────────┴──────────────────────────────────────────┘

None of these are retried. A storage failure looks the same whether it
was transient or permanent.

=============================================================================
"""


class ServiceError(Exception):
    """
    Base class for errors that map directly onto an HTTP status.

    Carries a short, client-safe message. The message ends up in the
    response body as {"error": message}.
    """

    status_code: int = 500
    default_message: str = "Internal Server Error"

    def __init__(self, message: str = ""):
        self.message = message or self.default_message
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


class BadRequest(ServiceError):
    """Malformed or missing input."""

    status_code = 400
    default_message = "Bad Request"


class NotFound(ServiceError):
    """No matching route, or no record for a lookup key."""

    status_code = 404
    default_message = "Not Found"


class StorageError(ServiceError):
    """
    The store collaborator failed.

    Covers write failures, read failures, and stored values that no
    longer decode into the expected shape.
    """

    status_code = 500
    default_message = "Storage Error"
