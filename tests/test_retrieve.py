"""Tests for retrieve.py."""

import json

import httpx
import pytest

from retrieve import (
    EmptyContentError,
    PayloadShapeError,
    github_json_parser,
    read_all,
    retrieve_mod_file,
)

from conftest import MOD_URL


def chunks(*parts: bytes):
    return iter(parts)


class TestRetrieveModFile:
    """Tests for retrieve_mod_file()."""

    def test_default_parser_returns_body_unchanged(self, httpx_mock):
        """Without a parser the raw body comes back as is."""
        body = b"module m\n\ngo 1.21\n"
        httpx_mock.add_response(url=MOD_URL, content=body)

        result = retrieve_mod_file(MOD_URL)

        assert result == body

    def test_sends_accept_any_header(self, httpx_mock):
        """Requests carry Accept: */*."""
        httpx_mock.add_response(
            url=MOD_URL,
            match_headers={"Accept": "*/*"},
            content=b"module m",
        )

        assert retrieve_mod_file(MOD_URL) == b"module m"

    def test_custom_parser_receives_body(self, httpx_mock):
        """The parser is handed the streamed body and its result is returned."""
        httpx_mock.add_response(url=MOD_URL, content=b"abc")
        seen = []

        def parser(body):
            data = b"".join(body)
            seen.append(data)
            return data.upper()

        result = retrieve_mod_file(MOD_URL, parser)

        assert result == b"ABC"
        assert seen == [b"abc"]

    def test_github_json_parser_end_to_end(self, httpx_mock, github_payload, mod_lines):
        """Page data is fetched and reduced to the file content."""
        httpx_mock.add_response(url=MOD_URL, json=github_payload)

        result = retrieve_mod_file(MOD_URL, github_json_parser)

        assert result == "\n".join(mod_lines).encode()

    def test_status_code_not_checked(self, httpx_mock):
        """Non-2xx responses are still handed to the parser."""
        httpx_mock.add_response(url=MOD_URL, status_code=404, content=b"Not Found")

        assert retrieve_mod_file(MOD_URL) == b"Not Found"

    def test_error_page_fails_json_parser(self, httpx_mock):
        """An HTML error page fails to decode as JSON."""
        httpx_mock.add_response(url=MOD_URL, status_code=500, content=b"<html>oops</html>")

        with pytest.raises(json.JSONDecodeError):
            retrieve_mod_file(MOD_URL, github_json_parser)

    def test_follows_redirects(self, httpx_mock):
        """Redirects are followed to the final location."""
        target = "https://github.com/example/renamed/blob/main/go.mod"
        httpx_mock.add_response(url=MOD_URL, status_code=301, headers={"Location": target})
        httpx_mock.add_response(url=target, content=b"module m")

        assert retrieve_mod_file(MOD_URL) == b"module m"

    def test_transport_error_propagates(self, httpx_mock):
        """Connection errors are raised unchanged."""
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"), url=MOD_URL)

        with pytest.raises(httpx.ConnectError, match="Connection refused"):
            retrieve_mod_file(MOD_URL)

    def test_timeout_propagates(self, httpx_mock):
        """Timeouts are raised unchanged."""
        httpx_mock.add_exception(httpx.ReadTimeout("Read timed out"), url=MOD_URL)

        with pytest.raises(httpx.TimeoutException):
            retrieve_mod_file(MOD_URL, timeout=1.0)

    def test_parser_error_propagates(self, httpx_mock):
        """Errors raised by the parser reach the caller."""
        httpx_mock.add_response(url=MOD_URL, json={"payload": {}})

        with pytest.raises(EmptyContentError, match="empty content"):
            retrieve_mod_file(MOD_URL, github_json_parser)


class TestReadAll:
    """Tests for read_all()."""

    def test_joins_chunks(self):
        assert read_all(chunks(b"mod", b"ule ", b"m")) == b"module m"

    def test_empty_body(self):
        assert read_all(chunks()) == b""


class TestGithubJsonParser:
    """Tests for github_json_parser()."""

    def test_joins_raw_lines_with_newline(self):
        """Lines are joined with a newline and no trailing newline is added."""
        doc = {"payload": {"blob": {"rawLines": ["module m", "go 1.21", "require x v1.0.0"]}}}

        result = github_json_parser(chunks(json.dumps(doc).encode()))

        assert result == b"module m\ngo 1.21\nrequire x v1.0.0"

    def test_body_split_across_chunks(self):
        """The document may arrive in several chunks."""
        raw = json.dumps({"payload": {"blob": {"rawLines": ["a", "b"]}}}).encode()

        result = github_json_parser(chunks(raw[:7], raw[7:19], raw[19:]))

        assert result == b"a\nb"

    def test_ignores_unknown_fields(self, github_payload, mod_lines):
        """Unrelated fields anywhere in the document are ignored."""
        github_payload["payload"]["blob"]["unexpected"] = {"nested": [1, 2, {"x": None}]}
        github_payload["somethingNew"] = 42

        result = github_json_parser(chunks(json.dumps(github_payload).encode()))

        assert result == "\n".join(mod_lines).encode()

    def test_empty_raw_lines_is_empty_content(self):
        """An empty list is content, just no bytes of it."""
        doc = {"payload": {"blob": {"rawLines": []}}}

        assert github_json_parser(chunks(json.dumps(doc).encode())) == b""

    def test_non_ascii_lines(self):
        """Lines are encoded as UTF-8."""
        doc = {"payload": {"blob": {"rawLines": ["// módulo", "module m"]}}}

        result = github_json_parser(chunks(json.dumps(doc).encode()))

        assert result == "// módulo\nmodule m".encode()

    @pytest.mark.parametrize(
        "doc",
        [
            {},
            {"payload": None},
            {"payload": {}},
            {"payload": {"blob": None}},
            {"payload": {"blob": {}}},
            {"payload": {"blob": {"rawLines": None}}},
            {"payload": "string"},
            [1, 2, 3],
        ],
    )
    def test_missing_raw_lines_raises_empty_content(self, doc):
        """Absent or null rawLines is reported as empty content."""
        with pytest.raises(EmptyContentError) as excinfo:
            github_json_parser(chunks(json.dumps(doc).encode()))

        assert str(excinfo.value) == "empty content"

    def test_raw_lines_wrong_type(self):
        """rawLines that is not a list of strings is a decode error."""
        doc = {"payload": {"blob": {"rawLines": "module m"}}}

        with pytest.raises(PayloadShapeError):
            github_json_parser(chunks(json.dumps(doc).encode()))

    def test_raw_lines_with_non_string_item(self):
        doc = {"payload": {"blob": {"rawLines": ["module m", 3]}}}

        with pytest.raises(PayloadShapeError):
            github_json_parser(chunks(json.dumps(doc).encode()))

    def test_malformed_json(self):
        """Malformed JSON raises JSONDecodeError."""
        with pytest.raises(json.JSONDecodeError):
            github_json_parser(chunks(b'{"payload": {'))

    def test_empty_body(self):
        """An empty body is not JSON."""
        with pytest.raises(json.JSONDecodeError):
            github_json_parser(chunks(b""))

    def test_trailing_data_after_document_ignored(self):
        """Only the first JSON value is decoded."""
        body = b'\n  {"payload": {"blob": {"rawLines": ["go 1.21"]}}}\n{"more": true}'

        assert github_json_parser(chunks(body)) == b"go 1.21"
