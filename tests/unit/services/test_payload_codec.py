"""Tests for request serialization and response deserialization."""

import io
import json
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Annotated, Any

import httpx
import pytest
from pydantic import BaseModel, TypeAdapter, ValidationError

from downstream_api.core.content import (
    ByteArrayContent,
    EmptyContent,
    HttpContent,
    JsonContent,
    ResponseContent,
    StreamContent,
    StringContent,
)
from downstream_api.core.errors import HttpStatusError, UnsupportedContentTypeError
from downstream_api.models.inputs import Structured, Text
from downstream_api.models.options import DownstreamApiOptions
from downstream_api.services.payload_codec import PayloadCodec


class Person(BaseModel):
    name: str | None = None
    age: int | None = None


@dataclass
class Address:
    street: str
    city: str


PERSON_JSON = b'{"name":"John","age":30}'


def json_response(body: bytes = PERSON_JSON, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code,
        content=body,
        headers={"Content-Type": "application/json; charset=utf-8"},
    )


class TestSerializeInput:
    """Test request content selection."""

    @pytest.fixture
    def options(self) -> DownstreamApiOptions:
        return DownstreamApiOptions()

    def test_none_yields_no_content(self, options: DownstreamApiOptions) -> None:
        assert PayloadCodec.serialize_input(None, options) is None

    def test_none_ignores_serializer(self) -> None:
        options = DownstreamApiOptions(
            serializer=lambda value: StringContent("serialized"),
            content_type="application/xml",
        )

        assert PayloadCodec.serialize_input(None, options) is None

    def test_prebuilt_content_is_returned_unchanged(
        self, options: DownstreamApiOptions
    ) -> None:
        content = StringContent("test")

        assert PayloadCodec.serialize_input(content, options) is content

    def test_prebuilt_content_ignores_serializer(self) -> None:
        content = ByteArrayContent(b"raw")
        options = DownstreamApiOptions(
            serializer=lambda value: StringContent("serialized")
        )

        assert PayloadCodec.serialize_input(content, options) is content

    def test_serializer_result_is_used_verbatim(self) -> None:
        options = DownstreamApiOptions(
            serializer=lambda obj: StringContent(
                json.dumps(obj), media_type="application/json"
            )
        )

        result = PayloadCodec.serialize_input({"name": "John"}, options)

        assert isinstance(result, StringContent)
        assert result.media_type == "application/json"
        assert result.read_text() == '{"name": "John"}'

    def test_serializer_receives_the_raw_value(self) -> None:
        received: list[Any] = []

        def serializer(value: Any) -> HttpContent:
            received.append(value)
            return StringContent("serialized")

        person = Person(name="John", age=30)
        result = PayloadCodec.serialize_input(
            person, DownstreamApiOptions(serializer=serializer)
        )

        assert received == [person]
        assert received[0] is person
        assert result is not None
        assert result.read_text() == "serialized"

    @pytest.mark.parametrize("value", ["text", b"\x01\x02", io.BytesIO(b"data")])
    def test_serializer_takes_precedence_over_builtin_encodings(
        self, value: Any
    ) -> None:
        options = DownstreamApiOptions(
            serializer=lambda v: StringContent("serialized"),
            content_type="text/csv",
        )

        result = PayloadCodec.serialize_input(value, options)

        assert isinstance(result, StringContent)
        assert result.read_text() == "serialized"

    def test_serializer_wins_over_type_adapter(self) -> None:
        options = DownstreamApiOptions(
            serializer=lambda v: StringContent("serialized")
        )

        result = PayloadCodec.serialize_input(
            Person(), options, TypeAdapter(Person)
        )

        assert result is not None
        assert result.read_text() == "serialized"

    def test_serializer_errors_propagate(self) -> None:
        def serializer(value: Any) -> HttpContent:
            raise RuntimeError("cannot encode")

        with pytest.raises(RuntimeError, match="cannot encode"):
            PayloadCodec.serialize_input(
                Person(), DownstreamApiOptions(serializer=serializer)
            )

    def test_string_with_content_type(self) -> None:
        options = DownstreamApiOptions(content_type="text/plain")

        result = PayloadCodec.serialize_input("test", options)

        assert isinstance(result, StringContent)
        assert result.read_text() == "test"
        assert result.media_type == "text/plain"

    def test_string_defaults_to_text_plain(self, options: DownstreamApiOptions) -> None:
        result = PayloadCodec.serialize_input("test", options)

        assert isinstance(result, StringContent)
        assert result.media_type == "text/plain"
        assert result.charset == "utf-8"
        assert result.content_length == 4

    def test_string_with_custom_content_type_and_charset(self) -> None:
        options = DownstreamApiOptions(content_type="application/xml; charset=utf-16")

        result = PayloadCodec.serialize_input("<a/>", options)

        assert result is not None
        assert result.media_type == "application/xml"
        assert result.charset == "utf-16"
        assert result.read() == "<a/>".encode("utf-16")
        assert result.read_text() == "<a/>"

    def test_tagged_text_variant(self, options: DownstreamApiOptions) -> None:
        result = PayloadCodec.serialize_input(Text("tagged"), options)

        assert isinstance(result, StringContent)
        assert result.read_text() == "tagged"

    def test_byte_array(self, options: DownstreamApiOptions) -> None:
        result = PayloadCodec.serialize_input(bytes([1, 2, 3]), options)

        assert isinstance(result, ByteArrayContent)
        assert not isinstance(result, StringContent)
        assert result.read() == bytes([1, 2, 3])
        assert result.media_type is None

    def test_bytearray_is_copied(self, options: DownstreamApiOptions) -> None:
        data = bytearray([1, 2, 3])

        result = PayloadCodec.serialize_input(data, options)
        data[0] = 9

        assert result is not None
        assert result.read() == bytes([1, 2, 3])

    def test_stream(self, options: DownstreamApiOptions) -> None:
        result = PayloadCodec.serialize_input(io.BytesIO(b"test"), options)

        assert isinstance(result, StreamContent)
        assert result.read() == b"test"
        assert result.media_type is None
        assert result.content_length is None

    def test_stream_is_read_once(self, options: DownstreamApiOptions) -> None:
        result = PayloadCodec.serialize_input(io.BytesIO(b"test"), options)
        assert result is not None
        result.read()

        with pytest.raises(httpx.StreamConsumed):
            result.read()

    @pytest.mark.asyncio
    async def test_async_stream(self, options: DownstreamApiOptions) -> None:
        async def chunks() -> AsyncIterator[bytes]:
            yield b"te"
            yield b"st"

        result = PayloadCodec.serialize_input(chunks(), options)

        assert isinstance(result, StreamContent)
        assert await result.aread() == b"test"

    def test_structured_model(self, options: DownstreamApiOptions) -> None:
        person = Person(name="John", age=30)

        result = PayloadCodec.serialize_input(person, options)

        assert isinstance(result, JsonContent)
        assert result.media_type == "application/json"
        assert Person.model_validate_json(result.read()) == person

    def test_structured_dict_is_not_mutated(self, options: DownstreamApiOptions) -> None:
        payload = {"items": [1, 2], "nested": {"a": None}}
        snapshot = json.loads(json.dumps(payload))

        result = PayloadCodec.serialize_input(payload, options)

        assert result is not None
        assert json.loads(result.read()) == snapshot
        assert payload == snapshot

    def test_structured_variant_passed_directly(
        self, options: DownstreamApiOptions
    ) -> None:
        result = PayloadCodec.serialize_input(Structured([1, 2, 3]), options)

        assert isinstance(result, JsonContent)
        assert json.loads(result.read()) == [1, 2, 3]

    @pytest.mark.parametrize(
        "value, type_adapter",
        [
            (Person(name="John", age=30), TypeAdapter(Person)),
            (Address(street="Main St", city="Springfield"), TypeAdapter(Address)),
            ([Person(name="A"), Person(name="B", age=2)], TypeAdapter(list[Person])),
        ],
    )
    def test_type_adapter_matches_generic_encoder(
        self,
        options: DownstreamApiOptions,
        value: Any,
        type_adapter: TypeAdapter[Any],
    ) -> None:
        generic = PayloadCodec.serialize_input(value, options)
        precompiled = PayloadCodec.serialize_input(value, options, type_adapter)

        assert generic is not None and precompiled is not None
        assert json.loads(generic.read()) == json.loads(precompiled.read())
        assert generic.media_type == precompiled.media_type == "application/json"
        assert type_adapter.validate_json(precompiled.read()) == value


class TestDeserializeOutput:
    """Test response validation and decoding."""

    @pytest.fixture
    def options(self) -> DownstreamApiOptions:
        return DownstreamApiOptions()

    @pytest.mark.asyncio
    async def test_error_status_raises(self, options: DownstreamApiOptions) -> None:
        response = httpx.Response(400)

        with pytest.raises(HttpStatusError) as exc_info:
            await PayloadCodec.deserialize_output(response, options, HttpContent)

        assert exc_info.value.status_code == 400
        assert exc_info.value.body is None

    @pytest.mark.asyncio
    async def test_error_status_raises_even_with_valid_json(
        self, options: DownstreamApiOptions
    ) -> None:
        response = json_response(status_code=400)

        with pytest.raises(HttpStatusError) as exc_info:
            await PayloadCodec.deserialize_output(response, options, Person)

        assert exc_info.value.body == PERSON_JSON.decode()
        assert exc_info.value.headers["content-type"].startswith("application/json")

    @pytest.mark.asyncio
    async def test_error_status_checked_before_deserializer(self) -> None:
        calls: list[HttpContent] = []
        options = DownstreamApiOptions(deserializer=calls.append)

        with pytest.raises(HttpStatusError):
            await PayloadCodec.deserialize_output(
                json_response(status_code=503), options, Person
            )

        assert calls == []

    @pytest.mark.asyncio
    async def test_raw_content_without_body_is_empty_content(
        self, options: DownstreamApiOptions
    ) -> None:
        response = httpx.Response(200)

        result = await PayloadCodec.deserialize_output(response, options, HttpContent)

        assert isinstance(result, EmptyContent)
        assert len(result.headers) == 0
        assert result.read() == b""

    @pytest.mark.asyncio
    async def test_raw_content_is_passed_through(
        self, options: DownstreamApiOptions
    ) -> None:
        response = httpx.Response(
            200, content=b"test", headers={"Content-Type": "text/plain"}
        )

        result = await PayloadCodec.deserialize_output(response, options, HttpContent)

        assert isinstance(result, ResponseContent)
        assert result.response is response
        assert result.media_type == "text/plain"
        assert await result.aread() == b"test"

    @pytest.mark.asyncio
    async def test_raw_content_ignores_deserializer(self) -> None:
        options = DownstreamApiOptions(deserializer=lambda content: "decoded")

        result = await PayloadCodec.deserialize_output(
            json_response(), options, HttpContent
        )

        assert isinstance(result, ResponseContent)

    @pytest.mark.asyncio
    async def test_raw_content_keeps_only_content_headers(
        self, options: DownstreamApiOptions
    ) -> None:
        response = httpx.Response(
            200,
            content=b"{}",
            headers={"Content-Type": "application/json", "X-Request-Id": "abc"},
        )

        result = await PayloadCodec.deserialize_output(response, options, HttpContent)

        assert "content-type" in result.headers
        assert "x-request-id" not in result.headers

    @pytest.mark.asyncio
    async def test_deserializer_is_used(self) -> None:
        options = DownstreamApiOptions(
            deserializer=lambda content: Person.model_validate_json(content.read())
        )
        response = json_response()

        result = await PayloadCodec.deserialize_output(response, options, Person)

        assert response.headers["content-type"].startswith("application/json")
        assert result == Person(name="John", age=30)

    @pytest.mark.asyncio
    async def test_deserializer_handles_unsupported_media_types(self) -> None:
        options = DownstreamApiOptions(deserializer=lambda content: content.read_text())
        response = httpx.Response(
            200, content=b"<a/>", headers={"Content-Type": "application/xml"}
        )

        result = await PayloadCodec.deserialize_output(response, options, str)

        assert result == "<a/>"

    @pytest.mark.asyncio
    async def test_async_deserializer_is_awaited(self) -> None:
        async def deserializer(content: HttpContent) -> dict[str, Any]:
            return json.loads(await content.aread())

        result = await PayloadCodec.deserialize_output(
            json_response(), DownstreamApiOptions(deserializer=deserializer)
        )

        assert result == {"name": "John", "age": 30}

    @pytest.mark.asyncio
    async def test_json_is_decoded(self, options: DownstreamApiOptions) -> None:
        response = json_response()

        result = await PayloadCodec.deserialize_output(response, options, Person)

        assert response.headers["content-type"].startswith("application/json")
        assert result == Person(name="John", age=30)

    @pytest.mark.asyncio
    async def test_json_is_decoded_with_type_adapter(
        self, options: DownstreamApiOptions
    ) -> None:
        result = await PayloadCodec.deserialize_output(
            json_response(), options, Person, TypeAdapter(Person)
        )

        assert result.name == "John"
        assert result.age == 30

    @pytest.mark.asyncio
    async def test_json_without_output_type(self, options: DownstreamApiOptions) -> None:
        result = await PayloadCodec.deserialize_output(json_response(), options)

        assert result == {"name": "John", "age": 30}

    @pytest.mark.asyncio
    async def test_structured_json_media_type_suffix(
        self, options: DownstreamApiOptions
    ) -> None:
        response = httpx.Response(
            200,
            content=b'{"title":"Bad"}',
            headers={"Content-Type": "application/problem+json"},
        )

        result = await PayloadCodec.deserialize_output(
            response, options, dict[str, str]
        )

        assert result == {"title": "Bad"}

    @pytest.mark.asyncio
    async def test_missing_content_type_is_treated_as_json(
        self, options: DownstreamApiOptions
    ) -> None:
        response = httpx.Response(200, content=PERSON_JSON)

        result = await PayloadCodec.deserialize_output(response, options, Person)

        assert result == Person(name="John", age=30)

    @pytest.mark.asyncio
    async def test_empty_json_body_returns_none(
        self, options: DownstreamApiOptions
    ) -> None:
        response = httpx.Response(204)

        result = await PayloadCodec.deserialize_output(response, options, Person)

        assert result is None

    @pytest.mark.asyncio
    async def test_unsupported_content_type(self, options: DownstreamApiOptions) -> None:
        response = httpx.Response(
            200,
            content=b"test",
            headers={"Content-Type": "application/xml; charset=utf-8"},
        )

        with pytest.raises(UnsupportedContentTypeError) as exc_info:
            await PayloadCodec.deserialize_output(response, options, str)

        assert exc_info.value.media_type == "application/xml"

    @pytest.mark.asyncio
    async def test_malformed_json_propagates_validation_error(
        self, options: DownstreamApiOptions
    ) -> None:
        with pytest.raises(ValidationError):
            await PayloadCodec.deserialize_output(
                json_response(b'{"name": '), options, Person
            )

    @pytest.mark.parametrize(
        "output_type, value",
        [
            (Person, Person(name="John", age=30)),
            (Address, Address(street="Main St", city="Springfield")),
            (list[int], [1, 2, 3]),
            (dict[str, Person], {"a": Person(name="A", age=1)}),
        ],
    )
    @pytest.mark.asyncio
    async def test_round_trip_with_and_without_type_adapter(
        self, options: DownstreamApiOptions, output_type: Any, value: Any
    ) -> None:
        adapter = TypeAdapter(output_type)
        body = adapter.dump_json(value)

        generic = await PayloadCodec.deserialize_output(
            json_response(body), options, output_type
        )
        precompiled = await PayloadCodec.deserialize_output(
            json_response(body), options, output_type, adapter
        )

        assert generic == value
        assert precompiled == value

    @pytest.mark.asyncio
    async def test_raw_content_without_content_headers_keeps_body(
        self, options: DownstreamApiOptions
    ) -> None:
        # Close-delimited body: no Content-Length, Content-Type or Transfer-Encoding
        response = httpx.Response(200, stream=httpx.ByteStream(b"payload"))

        result = await PayloadCodec.deserialize_output(response, options, HttpContent)

        assert isinstance(result, ResponseContent)
        assert await result.aread() == b"payload"

    @pytest.mark.asyncio
    async def test_unhashable_output_type(self, options: DownstreamApiOptions) -> None:
        result = await PayloadCodec.deserialize_output(
            json_response(b"5"), options, Annotated[int, {"unit": "items"}]
        )

        assert result == 5

    @pytest.mark.asyncio
    async def test_json_is_decoded_with_declared_charset(
        self, options: DownstreamApiOptions
    ) -> None:
        response = httpx.Response(
            200,
            content='{"name":"Zoë","age":41}'.encode("utf-16"),
            headers={"Content-Type": "application/json; charset=utf-16"},
        )

        result = await PayloadCodec.deserialize_output(response, options, Person)

        assert result == Person(name="Zoë", age=41)
