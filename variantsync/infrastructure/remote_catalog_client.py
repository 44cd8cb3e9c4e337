"""HTTP client for the remote catalog.

Wraps the three OData endpoints the sync engine needs: lookup by code,
template creation and read-back with variants. Failures surface as the
domain's remote catalog errors.
"""

from typing import Any

import httpx
import pydantic
import structlog

from variantsync.domain.exceptions import (
    RemoteDuplicateError,
    RemoteResponseError,
    RemoteTransportError,
)
from variantsync.infrastructure.config import settings
from variantsync.infrastructure.remote_schemas import (
    RemoteProductSummary,
    RemoteTemplate,
    RemoteTemplatePayload,
)

logger = structlog.get_logger()

LOOKUP_PATH = "/odata/Product/ODataService.GetViewV2"
CREATE_PATH = "/odata/ProductTemplate/ODataService.InsertV2"
TEMPLATE_PATH = "/odata/ProductTemplate({template_id})"

DUPLICATE_MARKERS = ("duplicate", "already exists", "đã tồn tại", "da ton tai")


class RemoteCatalogClient:
    """Async client for the remote catalog API.

    Example:
        async with RemoteCatalogClient() as client:
            existing = await client.find_by_code("N12")
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        request_id: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize remote catalog client.

        Args:
            base_url: API root, defaults to settings.
            token: Bearer token, defaults to settings.
            timeout: Request timeout in seconds.
            request_id: Optional request ID for correlation.
            transport: Custom transport (used by tests).
        """
        self.base_url = base_url or settings.remote_catalog_url
        self.token = token if token is not None else settings.remote_catalog_token
        self.timeout = timeout or settings.remote_timeout_seconds
        self.request_id = request_id
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            headers = {"Accept": "application/json"}
            if self.token:
                headers["Authorization"] = f"Bearer {self.token}"
            if self.request_id:
                headers["X-Request-ID"] = self.request_id
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=headers,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "RemoteCatalogClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            client = await self._get_client()
            return await client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            logger.error(
                "Remote catalog request failed",
                method=method,
                path=path,
                error=str(e),
            )
            raise RemoteTransportError(f"Request failed: {e}") from e

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise RemoteResponseError(
                f"Remote returned a non-JSON body: {response.text[:200]}",
                response.status_code,
            ) from e

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    async def find_by_code(self, code: str) -> RemoteProductSummary | None:
        """Look up an active product by its exact code.

        Returns:
            The remote product, or None when the code is unused.

        Raises:
            RemoteTransportError: On network failure or non-2xx status.
        """
        response = await self._request(
            "GET",
            LOOKUP_PATH,
            params={"Active": "true", "DefaultCode": code},
        )
        if not response.is_success:
            raise RemoteTransportError(
                f"Product lookup failed: {response.status_code} {response.text[:200]}",
                response.status_code,
            )

        data = self._json(response)
        if not isinstance(data, dict):
            raise RemoteResponseError("Product lookup returned an unexpected body")
        rows = data.get("value", [])
        if not isinstance(rows, list):
            raise RemoteResponseError("Product lookup returned a non-list value")
        wanted = code.strip().upper()
        for row in rows:
            try:
                product = RemoteProductSummary.model_validate(row)
            except pydantic.ValidationError as e:
                raise RemoteResponseError(f"Malformed product row: {e}") from e
            if (product.default_code or "").strip().upper() == wanted:
                return product
        return None

    async def create_template(self, payload: RemoteTemplatePayload) -> int:
        """Create a product template with its variants in one call.

        Returns:
            Identifier of the created template.

        Raises:
            RemoteDuplicateError: If the remote rejects the code as taken.
            RemoteTransportError: On network failure or non-2xx status.
            RemoteResponseError: If the response carries no identifier.
        """
        response = await self._request(
            "POST",
            CREATE_PATH,
            params={"$expand": "ProductVariants"},
            json=payload.to_wire(),
        )

        if response.status_code == 409 or (
            not response.is_success and _mentions_duplicate(response.text)
        ):
            raise RemoteDuplicateError(payload.default_code)

        if not response.is_success:
            raise RemoteTransportError(
                f"Template creation failed: {response.status_code} {response.text[:200]}",
                response.status_code,
            )

        data = self._json(response)
        raw_id = data.get("Id") if isinstance(data, dict) else None
        template_id = _as_id(raw_id)
        if template_id is None:
            raise RemoteResponseError(
                f"Create response for {payload.default_code} has no usable identifier: {raw_id!r}",
                response.status_code,
            )

        logger.info(
            "Created remote template",
            code=payload.default_code,
            template_id=template_id,
            variant_count=len(payload.product_variants),
        )
        return template_id

    async def get_template(self, template_id: int) -> RemoteTemplate:
        """Read a template back with its variants and their attribute values.

        Raises:
            RemoteTransportError: On network failure or non-2xx status.
            RemoteResponseError: If the body does not describe a template.
        """
        response = await self._request(
            "GET",
            TEMPLATE_PATH.format(template_id=template_id),
            params={"$expand": "ProductVariants($expand=AttributeValues)"},
        )
        if not response.is_success:
            raise RemoteTransportError(
                f"Template read-back failed: {response.status_code} {response.text[:200]}",
                response.status_code,
            )

        try:
            return RemoteTemplate.model_validate(self._json(response))
        except pydantic.ValidationError as e:
            raise RemoteResponseError(f"Malformed template {template_id}: {e}") from e


def _as_id(value: Any) -> int | None:
    """Positive integer identifier, or None when ``value`` is not one."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def _mentions_duplicate(text: str) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in DUPLICATE_MARKERS)
