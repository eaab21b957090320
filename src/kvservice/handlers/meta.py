"""
Service-level endpoints that never touch the store.

    GET /                 greeting text
    GET /worker-version   deployment version string
"""

from typing import Dict

from ..context import AppContext
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, text


def index(request: HTTPRequest, params: Dict[str, str], ctx: AppContext) -> HTTPResponse:
    return text(ctx.config.greeting)


def worker_version(request: HTTPRequest, params: Dict[str, str], ctx: AppContext) -> HTTPResponse:
    """
    Plain-text version of the running deployment.

    Comes from ServiceConfig.worker_version (WORKER_VERSION or
    WORKERS_RS_VERSION in the environment), which validate() guarantees
    is non-empty.
    """
    return text(ctx.config.worker_version)
