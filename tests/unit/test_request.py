"""Tests for request descriptors and their options."""

from __future__ import annotations

import json

import pytest

from vuload._internal.errors import RequestDescriptorError
from vuload.batch.request import Method, RequestDescriptor, RequestOptions


class TestMethod:
    """Tests for the Method enum."""

    def test_parse_is_case_insensitive(self):
        assert Method.parse("get") is Method.GET
        assert Method.parse("Delete") is Method.DELETE

    def test_parse_passes_members_through(self):
        assert Method.parse(Method.PUT) is Method.PUT

    def test_parse_rejects_unknown_verb(self):
        with pytest.raises(RequestDescriptorError, match="Unsupported HTTP method"):
            Method.parse("FETCH")

    def test_parse_rejects_non_string(self):
        with pytest.raises(RequestDescriptorError):
            Method.parse(42)  # type: ignore[arg-type]


class TestRequestOptions:
    """Tests for RequestOptions."""

    def test_defaults(self):
        options = RequestOptions()
        assert dict(options.headers) == {}
        assert dict(options.tags) == {}
        assert options.timeout is None

    def test_from_mapping(self):
        options = RequestOptions.from_mapping(
            {"headers": {"X-Test": "1"}, "tags": {"ctype": "application/json"}, "timeout": 2.5}
        )
        assert options.headers["X-Test"] == "1"
        assert options.tags["ctype"] == "application/json"
        assert options.timeout == 2.5

    def test_from_mapping_rejects_unknown_keys(self):
        with pytest.raises(RequestDescriptorError, match="Unknown request options: redirects"):
            RequestOptions.from_mapping({"redirects": 3})

    def test_rejects_non_string_tag_values(self):
        with pytest.raises(RequestDescriptorError, match="tags must map str to str"):
            RequestOptions(tags={"attempt": 1})  # type: ignore[dict-item]

    def test_rejects_non_positive_timeout(self):
        with pytest.raises(RequestDescriptorError, match="timeout must be positive"):
            RequestOptions(timeout=0)

    def test_rejects_non_numeric_timeout(self):
        with pytest.raises(RequestDescriptorError, match="number of seconds"):
            RequestOptions(timeout="fast")  # type: ignore[arg-type]

    @pytest.mark.parametrize(
        "headers",
        [
            {"X-Test": "ok\r\nX-Injected: 1"},
            {"X-Test": "line\nbreak"},
            {"X-Test": "nul\0byte"},
            {"X-Bad\r\nName": "value"},
        ],
    )
    def test_rejects_control_characters_in_headers(self, headers):
        with pytest.raises(RequestDescriptorError, match="CR, LF or NUL"):
            RequestOptions(headers=headers)

    def test_tags_may_contain_newlines(self):
        options = RequestOptions(tags={"note": "first line\nsecond line"})
        assert options.tags["note"] == "first line\nsecond line"

    def test_header_injection_rejected_through_entry(self):
        entry = ("GET", "http://localhost:11000/key/user1", None, {"headers": {"X-Test": "a\r\nb"}})
        with pytest.raises(RequestDescriptorError, match="CR, LF or NUL"):
            RequestDescriptor.from_entry(entry)

    def test_mappings_are_read_only(self):
        source = {"ctype": "text/plain"}
        options = RequestOptions(tags=source)
        source["ctype"] = "changed"
        assert options.tags["ctype"] == "text/plain"
        with pytest.raises(TypeError):
            options.tags["ctype"] = "changed"  # type: ignore[index]


class TestRequestDescriptor:
    """Tests for RequestDescriptor construction and validation."""

    def test_minimal_get(self):
        request = RequestDescriptor("GET", "http://localhost:11000/key/user1")
        assert request.method is Method.GET
        assert request.url == "http://localhost:11000/key/user1"
        assert request.body is None
        assert dict(request.tags) == {}

    def test_frozen(self):
        request = RequestDescriptor(Method.GET, "http://localhost/")
        with pytest.raises(AttributeError):
            request.url = "http://elsewhere/"  # type: ignore[misc]

    def test_options_mapping_is_converted(self):
        request = RequestDescriptor(
            Method.GET,
            "http://localhost/",
            options={"tags": {"ctype": "application/json"}},  # type: ignore[arg-type]
        )
        assert isinstance(request.options, RequestOptions)
        assert request.tags == {"ctype": "application/json"}

    def test_str_body_is_encoded(self):
        request = RequestDescriptor(Method.POST, "http://localhost/key", body="héllo")
        assert request.body == "héllo".encode()

    def test_bytearray_body_is_copied(self):
        raw = bytearray(b"abc")
        request = RequestDescriptor(Method.PUT, "http://localhost/key", body=raw)
        raw[0] = ord("z")
        assert request.body == b"abc"

    @pytest.mark.parametrize("body", [b"", b"payload", "payload"])
    def test_get_with_body_is_rejected(self, body):
        with pytest.raises(RequestDescriptorError, match="must not carry a body"):
            RequestDescriptor(Method.GET, "http://localhost/key", body=body)

    def test_invalid_body_type_is_rejected(self):
        with pytest.raises(RequestDescriptorError, match="body must be bytes or str"):
            RequestDescriptor(Method.POST, "http://localhost/key", body={"a": 1})  # type: ignore[arg-type]

    @pytest.mark.parametrize(
        "url",
        [
            "/key/user1",
            "localhost:11000/key/user1",
            "ftp://localhost/file",
            "http:///no-host",
            "not a url",
        ],
    )
    def test_non_absolute_http_urls_are_rejected(self, url):
        with pytest.raises(RequestDescriptorError):
            RequestDescriptor(Method.GET, url)

    def test_url_must_be_string(self):
        with pytest.raises(RequestDescriptorError, match="url must be a string"):
            RequestDescriptor(Method.GET, None)  # type: ignore[arg-type]


class TestFromEntry:
    """Tests for building descriptors from batch entries."""

    def test_full_entry(self):
        request = RequestDescriptor.from_entry(
            ["GET", "http://localhost:11000/key/user1", None, {"tags": {"ctype": "application/json"}}]
        )
        assert request.method is Method.GET
        assert request.tags["ctype"] == "application/json"

    def test_short_entry(self):
        request = RequestDescriptor.from_entry(("post", "http://localhost/key", b"{}"))
        assert request.method is Method.POST
        assert request.body == b"{}"

    def test_descriptor_is_returned_unchanged(self):
        request = RequestDescriptor(Method.GET, "http://localhost/")
        assert RequestDescriptor.from_entry(request) is request

    @pytest.mark.parametrize("entry", [["GET"], ["GET", "http://a/", None, None, None], "GET http://a/", 7])
    def test_malformed_entries_are_rejected(self, entry):
        with pytest.raises(RequestDescriptorError):
            RequestDescriptor.from_entry(entry)


class TestWithJson:
    """Tests for JSON body construction."""

    def test_encodes_payload_and_sets_content_type(self):
        request = RequestDescriptor.with_json("POST", "http://localhost/key", {"foo": "bar"})
        assert json.loads(request.body or b"") == {"foo": "bar"}
        assert request.options.headers["Content-Type"] == "application/json"

    def test_keeps_explicit_content_type(self):
        request = RequestDescriptor.with_json(
            "POST",
            "http://localhost/key",
            {"foo": "bar"},
            {"headers": {"content-type": "application/x-www-form-urlencoded"}},
        )
        assert dict(request.options.headers) == {"content-type": "application/x-www-form-urlencoded"}

    def test_keeps_tags_and_timeout(self):
        request = RequestDescriptor.with_json(
            "PUT",
            "http://localhost/key",
            [],
            {"tags": {"op": "set"}, "timeout": 1.0},
        )
        assert request.tags == {"op": "set"}
        assert request.options.timeout == 1.0
