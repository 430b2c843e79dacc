"""
Tests for the fluent RequestBuilder.

Builder methods are pure configuration; the client is mocked out and only
``send()`` / ``data()`` reach it.
"""
import asyncio

import pytest
from unittest.mock import MagicMock

from endpoint_builder import (
    BearerAuthStrategy,
    BodyKind,
    CancellationToken,
    ConfigurationError,
    FixedDelayRetryStrategy,
    HttpResponse,
    MockResponse,
    OverrideState,
    RequestConfig,
)
from endpoint_builder.core.request_builder import RequestBuilder, parse_json_string


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def builder(client):
    return RequestBuilder(client, "/users")


class TestRequestBuilder:
    """Tests for RequestBuilder configuration methods."""

    class TestMethod:
        def test_defaults_to_get(self, builder):
            """Should default to GET."""
            assert builder.options.method == "GET"

        def test_normalizes_case(self, client):
            """Should upper-case method names."""
            assert RequestBuilder(client, "/x", "post").options.method == "POST"

        def test_rejects_unknown_method(self, builder):
            """Should raise immediately for unknown methods."""
            with pytest.raises(ConfigurationError):
                builder.method("FETCH")

        def test_configuration_error_is_value_error(self, builder):
            """Should be catchable as ValueError."""
            with pytest.raises(ValueError):
                builder.method("BREW")

    class TestChaining:
        def test_every_method_returns_self(self, builder):
            """Should return the same builder from every config method."""
            token = CancellationToken()
            result = (
                builder.method("PUT")
                .query({"a": 1})
                .headers({"X-A": "1"})
                .header("X-B", "2")
                .body("text")
                .timeout(5)
                .signal(token)
                .response_type("text")
                .auth(None)
                .retry(None)
                .dedupe()
                .mock({"ok": True})
                .mock_only()
            )
            assert result is builder

        def test_last_write_wins(self, builder):
            """Should keep the last value written to a field."""
            builder.timeout(1).timeout(2).query({"a": 1}).query({"b": 2})
            assert builder.options.timeout == 2.0
            assert builder.options.query == {"b": 2}

    class TestHeaders:
        def test_headers_merge(self, builder):
            """Should merge header calls instead of replacing."""
            builder.headers({"X-A": "1"}).headers({"X-B": "2"})
            assert builder.options.headers == {"X-A": "1", "X-B": "2"}

        def test_header_replacement_is_case_insensitive(self, builder):
            """Should replace an existing header regardless of casing."""
            builder.header("content-type", "text/plain").header("Content-Type", "application/xml")
            assert builder.options.headers == {"Content-Type": "application/xml"}

    class TestBody:
        def test_bytes_are_binary(self, builder):
            builder.body(b"\x00\x01")
            assert builder.options.body.kind is BodyKind.BINARY

        def test_str_is_text(self, builder):
            builder.body("hello")
            assert builder.options.body.kind is BodyKind.TEXT

        def test_mapping_is_json(self, builder):
            builder.body({"a": 1})
            assert builder.options.body.kind is BodyKind.JSON

        def test_other_values_are_raw(self, builder):
            builder.body(42)
            assert builder.options.body.kind is BodyKind.RAW

        def test_none_clears_body(self, builder):
            builder.body("x").body(None)
            assert builder.options.body is None

        def test_json_forces_content_type(self, builder):
            """Should tag the body JSON and set Content-Type."""
            builder.header("content-type", "text/plain").json("just a string")
            assert builder.options.body.kind is BodyKind.JSON
            assert builder.options.body.value == "just a string"
            assert builder.options.headers == {"Content-Type": "application/json"}

        def test_form_urlencoded(self, builder):
            """Should convert mappings to ordered fields and skip None."""
            builder.form({"a": 1, "skip": None, "flag": True})
            body = builder.options.body
            assert body.kind is BodyKind.FORM
            assert body.urlencoded is True
            assert body.fields == (("a", "1"), ("flag", "true"))
            assert builder.options.headers["Content-Type"] == "application/x-www-form-urlencoded"

        def test_form_multipart(self, builder):
            builder.form([("file", "data"), ("name", "x")], urlencoded=False)
            assert builder.options.body.urlencoded is False
            assert builder.options.body.fields == (("file", "data"), ("name", "x"))
            assert builder.options.headers["Content-Type"] == "multipart/form-data"

    class TestValidation:
        @pytest.mark.parametrize("value", [0, -1, -0.5])
        def test_rejects_non_positive_timeout(self, builder, value):
            """Should reject timeouts that are not positive."""
            with pytest.raises(ConfigurationError):
                builder.timeout(value)

        def test_accepts_fractional_timeout(self, builder):
            builder.timeout(0.25)
            assert builder.options.timeout == 0.25

        def test_rejects_unknown_response_type(self, builder):
            with pytest.raises(ConfigurationError):
                builder.response_type("stream")

    class TestOverrides:
        def test_unset_by_default(self, builder):
            """Should leave auth and retry inheriting the client default."""
            assert builder.options.auth.state is OverrideState.UNSET
            assert builder.options.retry.state is OverrideState.UNSET
            assert builder.options.dedupe is None

        def test_none_disables(self, builder):
            builder.auth(None).retry(None)
            assert builder.options.auth.is_disabled
            assert builder.options.retry.is_disabled

        def test_no_auth_alias(self, builder):
            builder.no_auth()
            assert builder.options.auth.is_disabled

        def test_instance_sets_value(self, builder):
            auth = BearerAuthStrategy("t")
            retry = FixedDelayRetryStrategy(2, 0.01)
            builder.auth(auth).retry(retry)
            assert builder.options.auth.resolve(None) is auth
            assert builder.options.retry.resolve(None) is retry

        def test_dedupe_flag(self, builder):
            assert builder.dedupe().options.dedupe is True
            assert builder.dedupe(False).options.dedupe is False

    class TestMock:
        def test_wraps_plain_data(self, builder):
            """Should wrap plain data in a 200 MockResponse."""
            builder.mock({"id": 1})
            assert builder.options.mock == MockResponse(data={"id": 1})

        def test_keeps_mock_response(self, builder):
            mock = MockResponse(data="x", status=404, status_text="Not Found")
            builder.mock(mock)
            assert builder.options.mock is mock

    class TestClone:
        def test_copies_every_field(self, builder):
            """Should copy configuration including override states."""
            builder.method("POST").header("X-A", "1").query({"q": [1, 2]}).no_auth().dedupe()
            other = builder.clone()
            assert other is not builder
            assert other.options == builder.options
            assert other.options.auth.is_disabled
            assert other.options.retry.is_unset

        def test_clone_is_independent(self, builder):
            """Should not share mutable headers or query with the original."""
            builder.header("X-A", "1").query({"q": [1]})
            other = builder.clone()
            other.header("X-B", "2")
            other.options.query["q"].append(2)
            assert builder.options.headers == {"X-A": "1"}
            assert builder.options.query == {"q": [1]}


class TestTerminal:
    """Tests for send() and data()."""

    def test_send_delegates_to_client(self, client, builder):
        """Should hand itself to client.execute and return its result."""
        sentinel = object()
        client.execute.return_value = sentinel
        assert builder.send() is sentinel
        client.execute.assert_called_once_with(builder)

    @pytest.mark.asyncio
    async def test_data_returns_payload(self, client, builder):
        future = asyncio.get_running_loop().create_future()
        future.set_result(HttpResponse({"id": 1}, 200, "OK", {}, RequestConfig(url="u")))
        client.execute.return_value = future
        assert await builder.data() == {"id": 1}

    @pytest.mark.asyncio
    async def test_data_decodes_json_strings(self, client, builder):
        """Should decode a JSON document delivered as a string."""
        future = asyncio.get_running_loop().create_future()
        future.set_result(HttpResponse('{"id": 1}', 200, "OK", {}, RequestConfig(url="u")))
        client.execute.return_value = future
        assert await builder.data() == {"id": 1}


class TestParseJsonString:
    def test_decodes_arrays(self):
        assert parse_json_string("[1, 2]") == [1, 2]

    def test_keeps_malformed_json(self):
        assert parse_json_string("{not json}") == "{not json}"

    def test_keeps_plain_text(self):
        assert parse_json_string("hello") == "hello"

    def test_keeps_non_strings(self):
        data = {"a": 1}
        assert parse_json_string(data) is data
