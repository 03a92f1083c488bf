"""n8n public API client.

Implements the four calls the execution agent relies on (list, get,
create, update) over a shared ``httpx.AsyncClient``. Anything else n8n
offers is out of scope.
"""

import logging
import time
from typing import Any, Protocol

import httpx
from pydantic import BaseModel, Field

from weaver.exceptions import PlatformClientError
from weaver.settings import get_settings

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

# Fields n8n sets itself and rejects on create/update
READ_ONLY_FIELDS = ("id", "active", "createdAt", "updatedAt", "versionId")


class PlatformClient(Protocol):
    """Contract the execution tools need from the automation platform."""

    async def get_workflows(self) -> list[dict[str, Any]]: ...

    async def get_workflow(self, workflow_id: str) -> dict[str, Any] | None: ...

    async def create_workflow(self, definition: dict[str, Any]) -> dict[str, Any]: ...

    async def update_workflow(self, workflow_id: str, definition: dict[str, Any]) -> dict[str, Any]: ...

    def workflow_url(self, workflow_id: str) -> str: ...

    def credential_setup_url(self, credential_type: str) -> str: ...

    async def close(self) -> None: ...


class N8nClientConfig(BaseModel):
    """Configuration for the n8n client."""

    base_url: str = Field(..., description="n8n instance URL")
    api_key: str = Field(..., description="n8n public API key")
    timeout: float = Field(default=30.0, description="Request timeout in seconds")


def _submittable(definition: dict[str, Any]) -> dict[str, Any]:
    body = {key: value for key, value in definition.items() if key not in READ_ONLY_FIELDS}
    body.setdefault("settings", {})
    return body


class N8nClient:
    """HTTP client for the n8n public REST API."""

    def __init__(
        self,
        config: N8nClientConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            config: Optional configuration (uses settings if not provided)
            transport: Optional httpx transport, for tests
        """
        if config is None:
            settings = get_settings()
            config = N8nClientConfig(
                base_url=settings.n8n_base_url,
                api_key=settings.n8n_api_key.get_secret_value(),
                timeout=settings.n8n_timeout,
            )
        self.config = config
        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self.config.base_url.rstrip("/")

    def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create the shared httpx.AsyncClient."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.config.timeout,
                headers={
                    "X-N8N-API-KEY": self.config.api_key,
                    "Accept": "application/json",
                },
                transport=self._transport,
            )
        return self._http_client

    async def close(self) -> None:
        """Close the shared HTTP client and release connections."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "N8nClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        json: dict | None = None,
        params: dict | None = None,
    ) -> Any:
        """Make a request to the n8n API.

        Args:
            method: HTTP method
            path: API path below ``/api/v1``
            json: JSON body
            params: Query parameters

        Returns:
            Response JSON, or None for 404
        """
        start_time = time.perf_counter()
        client = self._get_http_client()
        try:
            response = await client.request(method, f"{API_PREFIX}{path}", json=json, params=params)
        except httpx.TimeoutException as e:
            raise PlatformClientError(f"n8n request timed out: {method} {path}", stage="platform") from e
        except httpx.HTTPError as e:
            raise PlatformClientError(
                f"n8n request failed: {method} {path}: {type(e).__name__}", stage="platform"
            ) from e

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.debug("n8n %s %s -> %d (%.0f ms)", method, path, response.status_code, duration_ms)

        if response.status_code in (200, 201):
            return response.json() if response.content else {}
        if response.status_code == 404:
            return None

        details: dict[str, Any] = {}
        try:
            body = response.json()
            if isinstance(body, dict):
                details = body
        except ValueError:
            details = {"body": response.text[:500]}
        message = details.get("message") or f"HTTP {response.status_code}"
        raise PlatformClientError(
            f"n8n API error on {method} {path}: {message}",
            status_code=response.status_code,
            details=details,
            stage="platform",
        )

    async def get_workflows(self) -> list[dict[str, Any]]:
        """List workflows on the instance."""
        data = await self._request("GET", "/workflows")
        if not data:
            return []
        return list(data.get("data", []))

    async def get_workflow(self, workflow_id: str) -> dict[str, Any] | None:
        """Get one workflow, or None if it does not exist."""
        return await self._request("GET", f"/workflows/{workflow_id}")

    async def create_workflow(self, definition: dict[str, Any]) -> dict[str, Any]:
        """Create a workflow.

        Args:
            definition: Workflow in n8n API shape

        Returns:
            Created workflow as returned by n8n, including its ``id``
        """
        data = await self._request("POST", "/workflows", json=_submittable(definition))
        if not data or "id" not in data:
            raise PlatformClientError("n8n did not return an id for the created workflow", stage="platform")
        logger.info("Created n8n workflow %s (%s)", data["id"], data.get("name"))
        return data

    async def update_workflow(self, workflow_id: str, definition: dict[str, Any]) -> dict[str, Any]:
        """Replace an existing workflow's definition."""
        data = await self._request("PUT", f"/workflows/{workflow_id}", json=_submittable(definition))
        if data is None:
            raise PlatformClientError(
                f"Workflow {workflow_id} not found", status_code=404, stage="platform"
            )
        return data

    def workflow_url(self, workflow_id: str) -> str:
        """Editor URL of a workflow."""
        return f"{self.base_url}/workflow/{workflow_id}"

    def credential_setup_url(self, credential_type: str) -> str:
        """URL that opens the credential creation dialog for a type."""
        return f"{self.base_url}/credentials/new/{credential_type}"
