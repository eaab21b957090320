"""
Unit tests for HTTP request parsing.
"""

import pytest

from kvservice.errors import BadRequest
from kvservice.http.request import (
    HTTPRequest,
    RequestParser,
    HTTPParseError,
    parse_request,
)


class TestRequestParser:
    """Tests for RequestParser class."""

    def test_parse_simple_get(self, sample_get_request: bytes):
        parser = RequestParser()
        request = parser.parse(sample_get_request, ("127.0.0.1", 12345))

        assert request.method == "GET"
        assert request.version == "HTTP/1.1"
        assert request.client_address == ("127.0.0.1", 12345)

    def test_path_stays_percent_encoded(self, sample_get_request: bytes):
        request = parse_request(sample_get_request)
        assert request.path == "/users/ann%40example.com"

    def test_parse_headers(self, sample_get_request: bytes):
        request = parse_request(sample_get_request)

        assert request.user_agent == "pytest"
        assert request.headers["accept"] == "application/json"
        assert request.get_header("ACCEPT") == "application/json"
        assert request.is_keep_alive is True

    def test_parse_query_params(self, sample_get_request: bytes):
        request = parse_request(sample_get_request)

        assert request.get_query("verbose") == "1"
        assert request.get_query("missing") is None
        assert request.get_query("missing", "default") == "default"

    def test_parse_post_with_body(self, sample_post_request: bytes):
        request = parse_request(sample_post_request)

        assert request.method == "POST"
        assert request.path == "/users"
        assert request.content_type == "application/json"
        assert request.content_length == len(request.body)
        assert request.json["email"] == "ann@example.com"
        assert request.is_keep_alive is False

    def test_body_truncated_to_content_length(self):
        raw = (
            b"POST /users HTTP/1.1\r\n"
            b"Content-Length: 2\r\n"
            b"\r\n"
            b"{}GET / HTTP/1.1\r\n\r\n"
        )
        assert parse_request(raw).body == b"{}"

    def test_repeated_headers_joined(self):
        raw = b"GET / HTTP/1.1\r\nAccept: a\r\nAccept: b\r\n\r\n"
        assert parse_request(raw).headers["accept"] == "a, b"


class TestParseErrors:
    """Malformed input maps to the right status."""

    def test_missing_terminator(self):
        with pytest.raises(HTTPParseError) as exc:
            parse_request(b"GET / HTTP/1.1\r\nHost: x\r\n")
        assert exc.value.status_code == 400

    def test_bad_request_line(self):
        with pytest.raises(HTTPParseError) as exc:
            parse_request(b"GARBAGE\r\n\r\n")
        assert exc.value.status_code == 400

    def test_unknown_method(self):
        with pytest.raises(HTTPParseError) as exc:
            parse_request(b"BREW /pot HTTP/1.1\r\n\r\n")
        assert exc.value.status_code == 405

    def test_unsupported_version(self):
        with pytest.raises(HTTPParseError) as exc:
            parse_request(b"GET / HTTP/2.0\r\n\r\n")
        assert exc.value.status_code == 505

    def test_too_large(self):
        raw = b"POST /users HTTP/1.1\r\nContent-Length: 100\r\n\r\n" + b"x" * 100
        with pytest.raises(HTTPParseError) as exc:
            parse_request(raw, max_size=64)
        assert exc.value.status_code == 413

    @pytest.mark.parametrize("value", [b"abc", b"-1"])
    def test_bad_content_length(self, value):
        raw = b"POST /users HTTP/1.1\r\nContent-Length: " + value + b"\r\n\r\n"
        with pytest.raises(HTTPParseError) as exc:
            parse_request(raw)
        assert exc.value.status_code == 400

    def test_short_body(self):
        raw = b"POST /users HTTP/1.1\r\nContent-Length: 10\r\n\r\n{}"
        with pytest.raises(HTTPParseError) as exc:
            parse_request(raw)
        assert exc.value.status_code == 400


class TestHTTPRequest:
    """Tests for HTTPRequest properties."""

    def test_json_empty_body_is_none(self):
        assert HTTPRequest(method="POST", path="/users").json is None

    def test_json_invalid_raises_bad_request(self):
        request = HTTPRequest(method="POST", path="/users", body=b"{not json")
        with pytest.raises(BadRequest):
            request.json

    def test_keep_alive_http10(self):
        request = HTTPRequest(method="GET", path="/", version="HTTP/1.0")
        assert request.is_keep_alive is False

        request.headers["connection"] = "keep-alive"
        assert request.is_keep_alive is True

    def test_content_length_garbage_is_zero(self):
        request = HTTPRequest(method="GET", path="/", headers={"content-length": "x"})
        assert request.content_length == 0
