"""
=============================================================================
APPLICATION
=============================================================================

Wires the router, the handlers, the store and the middleware into one
callable:

    response = app.handle(request)

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      REQUEST PIPELINE                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   HTTPRequest                                                        │
    │        │                                                             │
    │        ▼                                                             │
    │   LoggingMiddleware ─────────────────────────────┐                  │
    │        │                                          │                  │
    │        ▼                                          │                  │
    │   _dispatch: router.handle(request, ctx)          │                  │
    │        │                                          │                  │
    │        ├── ServiceError ──► {"error": msg}, 4xx/5xx                  │
    │        │                                          │                  │
    │        ▼                                          ▼                  │
    │   HTTPResponse ◄──────────────────────────── access log line         │
    │                                                                      │
    │   anything else raised ──► logged with traceback ──► 500             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The Application doesn't know about sockets. The listener in server.py
feeds it parsed requests; tests call handle() directly.

=============================================================================
"""

import logging
from typing import Optional

from .config import ServiceConfig
from .context import AppContext
from .errors import ServiceError
from .handlers import create_user, get_user, index, worker_version
from .http.request import HTTPRequest
from .http.response import HTTPResponse, error_response, internal_error
from .http.router import Router
from .middleware import LoggingMiddleware, Middleware, MiddlewarePipeline
from .store import KVStore, open_store


logger = logging.getLogger(__name__)


def build_router() -> Router:
    """
    The service's route table.

    Order matters only between patterns that could match the same path;
    none of these can.
    """
    router = Router()
    router.register("GET", "/", index)
    router.register("POST", "/users", create_user)
    router.register("GET", "/users/:id", get_user)
    router.register("GET", "/worker-version", worker_version)
    return router


class Application:
    """
    The service, minus the network.

        app = Application(ServiceConfig(), MemoryStore())
        response = app.handle(HTTPRequest(method="GET", path="/"))
        response.text    # "Hello from Workers!"
    """

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        store: Optional[KVStore] = None,
        router: Optional[Router] = None,
    ):
        self.config = config or ServiceConfig()
        self.config.validate()

        self.store = store if store is not None else open_store(self.config)
        self.context = AppContext(store=self.store, config=self.config)
        self.router = router or build_router()

        self._middleware = MiddlewarePipeline()
        self._middleware.add(LoggingMiddleware(log_format=self.config.log_format))
        self._handler = self._middleware.wrap(self._dispatch)

    @property
    def middleware(self) -> MiddlewarePipeline:
        return self._middleware

    def use(self, middleware: Middleware) -> "Application":
        """
        Add middleware inside the access logger.

        Returns self for chaining.
        """
        self._middleware.add(middleware)
        self._handler = self._middleware.wrap(self._dispatch)
        return self

    def _dispatch(self, request: HTTPRequest) -> HTTPResponse:
        """Route the request and turn service errors into responses."""
        try:
            return self.router.handle(request, self.context)
        except ServiceError as e:
            if e.status_code >= 500:
                logger.error(f"{request.method} {request.path} failed: {e.message}")
            return error_response(e.status_code, e.message)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Produce the response for one request.

        Never raises: an unexpected exception is logged with its traceback
        and answered with a generic 500.
        """
        try:
            return self._handler(request)
        except Exception:
            logger.exception(f"Unhandled error for {request.method} {request.path}")
            return internal_error()

    __call__ = handle

    def close(self) -> None:
        self.store.close()


def create_app(
    config: Optional[ServiceConfig] = None,
    store: Optional[KVStore] = None,
) -> Application:
    """
    Build an Application.

    Without arguments the config comes from the environment and the store
    from config.store_backend.
    """
    return Application(config or ServiceConfig.from_env(), store)
