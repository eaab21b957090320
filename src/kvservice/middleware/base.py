"""
=============================================================================
MIDDLEWARE BASE
=============================================================================

A middleware sees each request before the application does and each
response after it, and decides whether to pass the request on at all:

    request ──► LoggingMiddleware ──► ... ──► Application._dispatch
                                                      │
    response ◄── LoggingMiddleware ◄── ... ◄──────────┘

=============================================================================
"""

import logging
from abc import ABC, abstractmethod
from functools import partial
from typing import Callable, Iterator, List

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


# Whatever comes after this middleware: another middleware or the dispatcher
NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    One layer of request processing.

        class Timing(Middleware):
            def __call__(self, request, next):
                started = time.time()
                response = next(request)
                response.headers["X-Elapsed"] = f"{time.time() - started:.3f}"
                return response

    Returning without calling next() answers the request right there.
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        ...

    @property
    def name(self) -> str:
        return type(self).__name__


class MiddlewarePipeline:
    """
    Ordered middleware; the first one added runs outermost.

        pipeline = MiddlewarePipeline().add(LoggingMiddleware())
        handler = pipeline.wrap(dispatch)
    """

    def __init__(self):
        self._layers: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        self._layers.append(middleware)
        logger.debug(f"Middleware added: {middleware.name} (now {len(self._layers)})")
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Compose the layers around handler: [A, B] wraps h as A(B(h)).

        Call again after add(); an already-built chain doesn't see later
        additions.
        """
        chain = handler
        for layer in reversed(self._layers):
            chain = partial(layer, next=chain)
        return chain

    def __len__(self) -> int:
        return len(self._layers)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(self._layers)
