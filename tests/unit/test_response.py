"""
Unit tests for HTTP responses.
"""

from datetime import datetime, timezone

import pytest

from kvservice.http.response import (
    HTTPResponse,
    ResponseBuilder,
    error_response,
    format_http_date,
    internal_error,
    ok,
    text,
)
from kvservice.http.status_codes import HTTPStatus


class TestHTTPResponse:
    """Tests for HTTPResponse serialization."""

    def test_status_line(self):
        assert HTTPResponse(status=HTTPStatus.NOT_FOUND).status_line == "HTTP/1.1 404 Not Found"

    def test_to_bytes_adds_default_headers(self):
        raw = HTTPResponse(body=b"hello").to_bytes("kvservice/test")
        head, body = raw.split(b"\r\n\r\n", 1)

        assert head.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"Content-Length: 5" in head
        assert b"Server: kvservice/test" in head
        assert b"Date: " in head
        assert body == b"hello"

    def test_to_bytes_keeps_explicit_headers(self):
        response = HTTPResponse(body=b"x", headers={"Server": "custom"})
        assert b"Server: custom" in response.to_bytes()


class TestResponseBuilder:
    """Tests for ResponseBuilder."""

    def test_json(self):
        response = ResponseBuilder().status(404).json({"a": 1}).build()

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.headers["Content-Type"].startswith("application/json")
        assert response.json == {"a": 1}

    def test_json_keeps_non_ascii(self):
        response = ResponseBuilder().json({"name": "Zoë"}).build()
        assert "Zoë".encode("utf-8") in response.body

    def test_text(self):
        response = ResponseBuilder().text("hi").build()
        assert response.text == "hi"
        assert response.headers["Content-Type"].startswith("text/plain")

    def test_unknown_status_rejected(self):
        with pytest.raises(ValueError):
            ResponseBuilder().status(299)


class TestHelpers:
    """Tests for ok/text/error helpers."""

    def test_ok_dict_is_json(self):
        response = ok({"name": "Ann", "email": "ann@x.com"})
        assert response.status == HTTPStatus.OK
        assert response.json == {"name": "Ann", "email": "ann@x.com"}

    def test_ok_bytes_with_content_type(self):
        response = ok(b"\x00\x01", content_type="application/octet-stream")
        assert response.body == b"\x00\x01"
        assert response.headers["Content-Type"] == "application/octet-stream"

    def test_text(self):
        assert text("Hello from Workers!").text == "Hello from Workers!"

    def test_error_response(self):
        response = error_response(HTTPStatus.NOT_FOUND, "User not found")
        assert response.status == 404
        assert response.json == {"error": "User not found"}

    def test_internal_error(self):
        response = internal_error()
        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert response.json == {"error": "Internal Server Error"}

    def test_format_http_date(self):
        dt = datetime(2026, 10, 19, 8, 5, 3, tzinfo=timezone.utc)
        assert format_http_date(dt) == "Mon, 19 Oct 2026 08:05:03 GMT"


class TestHTTPStatus:
    """Tests for HTTPStatus helpers."""

    def test_phrase(self):
        assert HTTPStatus.OK.phrase == "OK"
        assert HTTPStatus.INTERNAL_SERVER_ERROR.phrase == "Internal Server Error"

    def test_classification(self):
        assert not HTTPStatus.OK.is_error
        assert HTTPStatus.BAD_REQUEST.is_error
