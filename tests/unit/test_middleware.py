"""
Unit tests for the middleware pipeline and access logging.
"""

import json
import logging

import pytest

from kvservice.http import HTTPRequest, HTTPStatus, error_response, ok
from kvservice.middleware import LoggingMiddleware, Middleware, MiddlewarePipeline, RequestLog


def make_request(method: str = "GET", path: str = "/") -> HTTPRequest:
    return HTTPRequest(
        method=method,
        path=path,
        headers={"user-agent": "pytest"},
        client_address=("10.0.0.1", 4242),
    )


class Recorder(Middleware):
    def __init__(self, name, log):
        self._name = name
        self._log = log

    def __call__(self, request, next):
        self._log.append(f"{self._name}:in")
        response = next(request)
        self._log.append(f"{self._name}:out")
        return response


class TestMiddlewarePipeline:
    """Tests for MiddlewarePipeline."""

    def test_first_added_is_outermost(self):
        log = []
        pipeline = MiddlewarePipeline()
        pipeline.add(Recorder("a", log)).add(Recorder("b", log))

        handler = pipeline.wrap(lambda request: ok("done"))
        handler(make_request())

        assert log == ["a:in", "b:in", "b:out", "a:out"]

    def test_empty_pipeline_is_handler(self):
        pipeline = MiddlewarePipeline()
        assert pipeline.wrap(lambda r: ok("x"))(make_request()).text == "x"
        assert len(pipeline) == 0

    def test_iter(self):
        pipeline = MiddlewarePipeline()
        first = Recorder("a", [])
        pipeline.add(first)
        assert list(pipeline) == [first]
        assert first.name == "Recorder"


class TestLoggingMiddleware:
    """Tests for the access log."""

    def test_text_line(self, caplog):
        middleware = LoggingMiddleware()

        with caplog.at_level(logging.INFO, logger="kvservice.access"):
            response = middleware(make_request("GET", "/users/ann@x.com"), lambda r: ok("hi"))

        assert "X-Request-ID" in response.headers
        assert '"GET /users/ann@x.com" 200 2' in caplog.text
        assert "10.0.0.1" in caplog.text

    def test_json_line(self, caplog):
        middleware = LoggingMiddleware(log_format="json")

        with caplog.at_level(logging.INFO, logger="kvservice.access"):
            middleware(make_request("POST", "/users"), lambda r: ok({"a": 1}))

        entry = json.loads(caplog.records[-1].getMessage())
        assert entry["method"] == "POST"
        assert entry["status_code"] == 200
        assert entry["user_agent"] == "pytest"

    def test_error_status_logged_higher(self, caplog):
        middleware = LoggingMiddleware()

        with caplog.at_level(logging.INFO, logger="kvservice.access"):
            middleware(make_request(), lambda r: error_response(HTTPStatus.NOT_FOUND, "nope"))

        assert caplog.records[-1].levelno == logging.WARNING

    def test_success_logged_at_base_level(self, caplog):
        middleware = LoggingMiddleware()

        with caplog.at_level(logging.INFO, logger="kvservice.access"):
            middleware(make_request(), lambda r: ok("fine"))

        assert caplog.records[-1].levelno == logging.INFO

    def test_skip_paths(self, caplog):
        middleware = LoggingMiddleware(skip_paths=["/worker-version"])

        with caplog.at_level(logging.INFO, logger="kvservice.access"):
            middleware(make_request("GET", "/worker-version"), lambda r: ok("v"))

        assert caplog.records == []

    def test_no_request_id(self):
        middleware = LoggingMiddleware(include_request_id=False)
        response = middleware(make_request(), lambda r: ok("hi"))
        assert "X-Request-ID" not in response.headers

    def test_failure_logged_and_reraised(self, caplog):
        middleware = LoggingMiddleware()

        def boom(request):
            raise RuntimeError("kaboom")

        with caplog.at_level(logging.ERROR, logger="kvservice.access"):
            with pytest.raises(RuntimeError):
                middleware(make_request(), boom)

        assert "RuntimeError: kaboom" in caplog.text

    def test_body_never_logged(self, caplog):
        middleware = LoggingMiddleware(log_format="json")
        request = make_request("POST", "/users")
        request.body = b'{"password": "secret"}'

        with caplog.at_level(logging.DEBUG, logger="kvservice.access"):
            middleware(request, lambda r: ok({"name": "Ann"}))

        assert "secret" not in caplog.text


class TestRequestLog:
    def test_to_dict_rounds_duration(self):
        entry = RequestLog(
            request_id="abc",
            method="GET",
            path="/",
            client_ip="",
            user_agent="-",
            status_code=200,
            content_length=0,
            duration_ms=1.23456,
            timestamp="19/Oct/2026:00:00:00 +0000",
        )
        assert entry.to_dict()["duration_ms"] == 1.23
        assert entry.to_text().startswith("- - - [")
