"""tests/unit/test_builder.py

Unit tests for unireq.client.builder module.

Test Coverage:
    - Default header merge without overwriting request headers
    - User-Agent and Accept-Encoding injection
    - Method to prepared-request mapping
    - Sync (streamed) and async (materialized) body attachment
    - Serialization failures during async preparation
"""

import io
from typing import Iterator
from unittest import mock

import pytest

from unireq.client.builder import USER_AGENT, ExecutionMode, RequestBuilder
from unireq.client.prepared import PreparedEntityRequest, PreparedRequest
from unireq.client.request import HttpMethod, Request
from unireq.config import Options
from unireq.exceptions import PreparationError
from unireq.http.body import Body, BufferedBody, JsonBody, StreamBody, TextBody

# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def builder() -> RequestBuilder:
    """Builder with no default headers and no base URL."""
    return RequestBuilder(Options())


class ExplodingBody(Body):
    """Entity whose serialization fails."""

    def __init__(self, error: Exception) -> None:
        super().__init__("application/x-test")
        self.error = error

    def iter_chunks(self) -> Iterator[bytes]:
        raise self.error


# ============================================================================
# TEST CLASS: headers
# ============================================================================


class TestDefaultHeaders:
    """Tests for header defaults."""

    def test_user_agent_and_accept_encoding_injected_once(self, builder):
        """Test both defaults are added exactly once."""
        prepared = builder.prepare(Request("GET", "http://h/"), ExecutionMode.SYNC)

        assert prepared.get_headers("User-Agent") == [USER_AGENT]
        assert prepared.get_headers("Accept-Encoding") == ["gzip"]

    def test_caller_values_preserved(self, builder):
        """Test caller-set User-Agent/Accept-Encoding are left alone."""
        request = (
            Request("GET", "http://h/")
            .header("user-agent", "custom/1")
            .header("Accept-Encoding", "identity")
        )
        prepared = builder.prepare(request, ExecutionMode.SYNC)

        assert prepared.get_headers("User-Agent") == ["custom/1"]
        assert prepared.get_headers("Accept-Encoding") == ["identity"]

    def test_configured_defaults_never_overwrite(self):
        """Test X-Foo set on the request wins over the configured default."""
        options = Options(default_headers={"X-Foo": "baz", "X-Env": "prod"})
        request = Request("GET", "http://h/").header("X-Foo", "bar")

        prepared = RequestBuilder(options).prepare(request, ExecutionMode.SYNC)

        assert prepared.get_headers("X-Foo") == ["bar"]
        assert prepared.get_headers("X-Env") == ["prod"]

    def test_default_merge_is_case_insensitive(self):
        """Test a differently cased request header still wins."""
        options = Options(default_headers={"X-FOO": "baz"})
        request = Request("GET", "http://h/").header("x-foo", "bar")

        prepared = RequestBuilder(options).prepare(request, ExecutionMode.SYNC)

        assert prepared.get_headers("X-Foo") == ["bar"]

    def test_request_not_mutated(self):
        """Test the caller's Request keeps its own headers only."""
        options = Options(default_headers={"X-Env": "prod"})
        request = Request("GET", "http://h/")

        RequestBuilder(options).prepare(request, ExecutionMode.SYNC)

        assert len(request.headers) == 0

    def test_multi_value_headers_copied_in_order(self, builder):
        """Test every value of a header reaches the prepared request."""
        request = Request("GET", "http://h/").header("Accept", "a").header("Accept", "b")
        prepared = builder.prepare(request, ExecutionMode.SYNC)

        assert prepared.get_headers("Accept") == ["a", "b"]


# ============================================================================
# TEST CLASS: URL and method mapping
# ============================================================================


class TestMethodAndUrl:
    """Tests for URL resolution and method mapping."""

    @pytest.mark.parametrize(
        "method, expected_type",
        [
            (HttpMethod.GET, PreparedRequest),
            (HttpMethod.HEAD, PreparedRequest),
            (HttpMethod.OPTIONS, PreparedRequest),
            (HttpMethod.POST, PreparedEntityRequest),
            (HttpMethod.PUT, PreparedEntityRequest),
            (HttpMethod.PATCH, PreparedEntityRequest),
            (HttpMethod.DELETE, PreparedEntityRequest),
        ],
    )
    def test_method_mapping(self, builder, method, expected_type):
        """Test each method maps to its prepared request type."""
        prepared = builder.prepare(Request(method, "http://h/"), ExecutionMode.SYNC)

        assert type(prepared) is expected_type
        assert prepared.method == method.value

    def test_formatter_collaborator_used(self):
        """Test the URL comes from the formatter."""
        formatter = mock.Mock(return_value="http://formatted/")
        builder = RequestBuilder(Options(), formatter=formatter)
        request = Request("GET", "/raw")

        prepared = builder.prepare(request, ExecutionMode.SYNC)

        formatter.assert_called_once_with(request)
        assert prepared.url == "http://formatted/"

    def test_base_url_from_options(self):
        """Test relative URLs resolve against Options.base_url."""
        builder = RequestBuilder(Options(base_url="http://api.test"))
        prepared = builder.prepare(Request("GET", "/y"), ExecutionMode.SYNC)

        assert prepared.url == "http://api.test/y"

    def test_unmapped_method(self, builder):
        """Test a method without a factory raises ValueError."""
        with mock.patch.dict("unireq.client.builder._REQUEST_FACTORIES", clear=True):
            with pytest.raises(ValueError, match="Unsupported"):
                builder.prepare(Request("GET", "http://h/"), ExecutionMode.SYNC)


# ============================================================================
# TEST CLASS: body attachment
# ============================================================================


class TestBodyAttachment:
    """Tests for sync and async body handling."""

    @pytest.mark.parametrize("method", ["GET", "HEAD"])
    @pytest.mark.parametrize("mode", list(ExecutionMode))
    def test_get_and_head_never_carry_body(self, builder, method, mode):
        """Test a body set on GET/HEAD is dropped."""
        request = Request(method, "http://h/", body="ignored")
        prepared = builder.prepare(request, mode)

        assert prepared.entity is None
        assert not prepared.has_header("Content-Type")

    def test_sync_attaches_entity_directly(self, builder):
        """Test sync mode streams the original entity."""
        body = StreamBody(io.BytesIO(b"data"), length=4)
        prepared = builder.prepare(
            Request("PUT", "http://h/", body=body), ExecutionMode.SYNC
        )

        assert prepared.entity is body
        assert not prepared.has_header("Content-Type")

    def test_async_materializes_body(self, builder):
        """Test async mode buffers exactly the entity's bytes."""
        payload = b"x" * 1000
        body = StreamBody(iter([payload[:400], payload[400:]]), "application/x-bin")
        prepared = builder.prepare(
            Request("POST", "http://h/", body=body), ExecutionMode.ASYNC
        )

        assert isinstance(prepared.entity, BufferedBody)
        assert prepared.entity.data == payload
        assert prepared.entity.content_length == 1000
        assert prepared.get_headers("Content-Type") == ["application/x-bin"]

    def test_async_keeps_caller_content_type(self, builder):
        """Test an explicit Content-Type is not replaced."""
        request = (
            Request("POST", "http://h/")
            .header("Content-Type", "application/vnd.custom+json")
            .with_body(JsonBody({"a": 1}))
        )
        prepared = builder.prepare(request, ExecutionMode.ASYNC)

        assert prepared.get_headers("Content-Type") == ["application/vnd.custom+json"]

    @pytest.mark.parametrize(
        "error",
        [OSError("disk"), ValueError("consumed"), RuntimeError("producer broke")],
    )
    def test_async_serialization_failure(self, builder, error):
        """Test any error raised by the entity becomes PreparationError."""
        request = Request("POST", "http://h/", body=ExplodingBody(error))

        with pytest.raises(PreparationError) as exc_info:
            builder.prepare(request, ExecutionMode.ASYNC)

        assert exc_info.value.cause is error
        assert exc_info.value.__cause__ is error

    def test_async_failing_generator(self, builder):
        """Test a generator body failing midway becomes PreparationError."""

        def produce() -> Iterator[bytes]:
            yield b"partial"
            raise RuntimeError("producer broke")

        request = Request("POST", "http://h/", body=StreamBody(produce()))

        with pytest.raises(PreparationError) as exc_info:
            builder.prepare(request, ExecutionMode.ASYNC)

        assert isinstance(exc_info.value.cause, RuntimeError)

    def test_async_text_chunks_rejected(self, builder):
        """Test an iterator yielding str fails preparation, not the caller."""
        request = Request("POST", "http://h/", body=StreamBody(iter(["not bytes"])))

        with pytest.raises(PreparationError) as exc_info:
            builder.prepare(request, ExecutionMode.ASYNC)

        assert isinstance(exc_info.value.cause, TypeError)

    def test_delete_and_patch_carry_body(self, builder):
        """Test DELETE and PATCH are body capable."""
        for method in ("DELETE", "PATCH"):
            prepared = builder.prepare(
                Request(method, "http://h/", body=b"abc"), ExecutionMode.SYNC
            )
            assert prepared.entity is not None


# ============================================================================
# TEST CLASS: end-to-end scenarios
# ============================================================================


class TestScenarios:
    """Tests for the documented preparation scenarios."""

    def test_post_x_abc_sync(self, builder):
        """Test POST /x "abc" in sync mode."""
        prepared = builder.prepare(
            Request("POST", "/x", body="abc"), ExecutionMode.SYNC
        )

        assert prepared.method == "POST"
        assert prepared.url == "/x"
        assert isinstance(prepared.entity, TextBody)
        assert b"".join(prepared.entity.iter_chunks()) == b"abc"
        assert prepared.get_headers("User-Agent") == [USER_AGENT]
        assert prepared.get_headers("Accept-Encoding") == ["gzip"]

    def test_get_y_async(self, builder):
        """Test GET /y in async mode."""
        prepared = builder.prepare(Request("GET", "/y"), ExecutionMode.ASYNC)

        assert prepared.method == "GET"
        assert prepared.url == "/y"
        assert prepared.entity is None
        assert prepared.get_headers("User-Agent") == [USER_AGENT]
        assert prepared.get_headers("Accept-Encoding") == ["gzip"]
