"""Tests for the remote catalog HTTP client."""

import json

import httpx
import pytest

from variantsync.domain.exceptions import (
    RemoteDuplicateError,
    RemoteResponseError,
    RemoteTransportError,
)
from variantsync.infrastructure.remote_catalog_client import (
    CREATE_PATH,
    LOOKUP_PATH,
    RemoteCatalogClient,
)
from variantsync.infrastructure.remote_schemas import RemoteTemplatePayload, RemoteVariantPayload


def _client(handler) -> RemoteCatalogClient:
    return RemoteCatalogClient(
        base_url="https://remote.example",
        token="secret",
        request_id="req-1",
        transport=httpx.MockTransport(handler),
    )


def _payload() -> RemoteTemplatePayload:
    return RemoteTemplatePayload(
        name="Ao thun",
        default_code="N1",
        list_price=150.0,
        purchase_price=100.0,
        product_variants=[
            RemoteVariantPayload(
                default_code="N1S", name="Ao thun (S)", name_get="Ao thun (S)", name_template="Ao thun"
            )
        ],
    )


class TestFindByCode:
    """Tests for the existence check."""

    @pytest.mark.asyncio
    async def test_returns_exact_match(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "value": [
                        {"Id": 1, "DefaultCode": "N12", "Name": "Other"},
                        {"Id": 2, "DefaultCode": "n1", "Name": "Ao thun", "ProductTmplId": 20},
                    ]
                },
            )

        async with _client(handler) as client:
            product = await client.find_by_code("N1")

        assert product is not None
        assert (product.id, product.product_tmpl_id) == (2, 20)
        request = seen[0]
        assert request.url.path == LOOKUP_PATH
        assert request.url.params["DefaultCode"] == "N1"
        assert request.url.params["Active"] == "true"
        assert request.headers["Authorization"] == "Bearer secret"
        assert request.headers["X-Request-ID"] == "req-1"

    @pytest.mark.asyncio
    async def test_unused_code_returns_none(self) -> None:
        async with _client(lambda request: httpx.Response(200, json={"value": []})) as client:
            assert await client.find_by_code("N1") is None

    @pytest.mark.asyncio
    async def test_http_error(self) -> None:
        async with _client(lambda request: httpx.Response(500, text="down")) as client:
            with pytest.raises(RemoteTransportError) as exc_info:
                await client.find_by_code("N1")
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(RemoteTransportError):
                await client.find_by_code("N1")

    @pytest.mark.asyncio
    async def test_non_json_body(self) -> None:
        async with _client(lambda request: httpx.Response(200, text="<html>")) as client:
            with pytest.raises(RemoteResponseError):
                await client.find_by_code("N1")

    @pytest.mark.asyncio
    async def test_non_list_value(self) -> None:
        async with _client(lambda request: httpx.Response(200, json={"value": 3})) as client:
            with pytest.raises(RemoteResponseError):
                await client.find_by_code("N1")


class TestCreateTemplate:
    """Tests for template creation."""

    @pytest.mark.asyncio
    async def test_sends_wire_payload(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"Id": 77})

        async with _client(handler) as client:
            template_id = await client.create_template(_payload())

        assert template_id == 77
        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == CREATE_PATH
        assert request.url.params["$expand"] == "ProductVariants"
        body = json.loads(request.content)
        assert body["DefaultCode"] == "N1"
        assert body["ProductVariants"][0]["DefaultCode"] == "N1S"
        assert body["UOMPOId"] == 1

    @pytest.mark.asyncio
    async def test_conflict_status_is_duplicate(self) -> None:
        async with _client(lambda request: httpx.Response(409)) as client:
            with pytest.raises(RemoteDuplicateError) as exc_info:
                await client.create_template(_payload())
        assert exc_info.value.code == "N1"

    @pytest.mark.asyncio
    async def test_duplicate_message_is_duplicate(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, text='{"error": {"message": "Mã sản phẩm đã tồn tại"}}')

        async with _client(handler) as client:
            with pytest.raises(RemoteDuplicateError):
                await client.create_template(_payload())

    @pytest.mark.asyncio
    async def test_other_failure_is_transport_error(self) -> None:
        async with _client(lambda request: httpx.Response(400, text="bad category")) as client:
            with pytest.raises(RemoteTransportError) as exc_info:
                await client.create_template(_payload())
        assert not isinstance(exc_info.value, RemoteDuplicateError)
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_missing_identifier(self) -> None:
        async with _client(lambda request: httpx.Response(200, json={"Name": "Ao thun"})) as client:
            with pytest.raises(RemoteResponseError):
                await client.create_template(_payload())

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw_id", ["abc", 0, [5]])
    async def test_unusable_identifier(self, raw_id) -> None:
        async with _client(lambda request: httpx.Response(200, json={"Id": raw_id})) as client:
            with pytest.raises(RemoteResponseError):
                await client.create_template(_payload())

    @pytest.mark.asyncio
    async def test_numeric_string_identifier(self) -> None:
        async with _client(lambda request: httpx.Response(200, json={"Id": "77"})) as client:
            assert await client.create_template(_payload()) == 77


class TestGetTemplate:
    """Tests for the read-back."""

    @pytest.mark.asyncio
    async def test_parses_variants(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "Id": 77,
                    "Name": "Ao thun",
                    "DefaultCode": "N1",
                    "ProductVariants": [
                        {
                            "Id": 770,
                            "DefaultCode": "N1S",
                            "NameGet": "[N1S] Ao thun (S)",
                            "ProductTmplId": 77,
                            "AttributeValues": [
                                {"Id": 1, "Name": "S", "AttributeId": 1, "AttributeName": "Size"}
                            ],
                            "Unused": True,
                        }
                    ],
                },
            )

        async with _client(handler) as client:
            template = await client.get_template(77)

        assert seen[0].url.path == "/odata/ProductTemplate(77)"
        assert seen[0].url.params["$expand"] == "ProductVariants($expand=AttributeValues)"
        variant = template.product_variants[0]
        assert (variant.id, variant.default_code, variant.variant_text) == (770, "N1S", "S")

    @pytest.mark.asyncio
    async def test_malformed_template(self) -> None:
        async with _client(lambda request: httpx.Response(200, json={"Name": "no id"})) as client:
            with pytest.raises(RemoteResponseError):
                await client.get_template(77)
