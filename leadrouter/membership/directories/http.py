"""HTTP implementation of OfficeDirectory.

Reads offices from the external staff directory service:

    GET /offices            -> {"offices": [Office, ...]}
    GET /offices/{office_id} -> Office, or 404 when unknown
"""

from typing import Any

import httpx

from leadrouter.db.errors import ConnectionError
from leadrouter.membership.directory import OfficeDirectory
from leadrouter.membership.models import Office
from leadrouter.observability.logging import get_logger

logger = get_logger(__name__)


class HttpOfficeDirectory(OfficeDirectory):
    """Office directory backed by the staff directory REST service.

    No responses are cached. Transport failures and unexpected status codes
    raise ConnectionError.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        token: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the directory client.

        Args:
            base_url: Base URL of the staff directory service
            timeout: Request timeout in seconds
            token: Optional bearer token sent with every request
            client: Pre-built client, mainly for tests
        """
        self.base_url = base_url.rstrip("/")
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers=headers,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def get_office(self, office_id: str) -> Office | None:
        """Get an office by ID."""
        response = await self._get(f"/offices/{office_id}")
        if response.status_code == 404:
            return None
        self._check_status(response)
        return Office.model_validate(response.json())

    async def list_offices(self) -> list[Office]:
        """List all offices."""
        response = await self._get("/offices")
        self._check_status(response)
        data: Any = response.json()
        items = data.get("offices", []) if isinstance(data, dict) else data
        return [Office.model_validate(item) for item in items]

    async def _get(self, path: str) -> httpx.Response:
        try:
            return await self._client.get(path)
        except httpx.HTTPError as e:
            logger.error("office_directory_request_failed", path=path, error=str(e))
            raise ConnectionError(f"Office directory unavailable: {e}", cause=e) from e

    @staticmethod
    def _check_status(response: httpx.Response) -> None:
        if response.status_code >= 400:
            logger.error(
                "office_directory_error_status",
                path=response.request.url.path,
                status_code=response.status_code,
            )
            raise ConnectionError(
                f"Office directory returned HTTP {response.status_code}"
            )
