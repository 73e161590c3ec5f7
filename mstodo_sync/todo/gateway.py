"""Microsoft Graph gateway for Microsoft To Do lists and tasks."""

from typing import Any, Dict, List, Optional
from urllib.parse import quote
import logging

import httpx

from mstodo_sync.core.exceptions import (
    AuthenticationError,
    GraphAPIError,
    TaskNotFoundError,
)
from mstodo_sync.core.models import DEFAULT_GRAPH_BASE_URL, SyncConfig
from .auth import TokenManager


class GraphGateway:
    """Thin async client over the ``/me/todo`` Graph endpoints.

    Returns plain JSON dictionaries; conversion to domain records happens in
    ``RemoteTaskManager``. Connection pooling is handled by one shared
    ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        tokens: TokenManager,
        base_url: str = DEFAULT_GRAPH_BASE_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.tokens = tokens
        self.logger = logger or logging.getLogger(__name__)
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip('/'),
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    @classmethod
    def from_config(
        cls,
        config: SyncConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "GraphGateway":
        tokens = TokenManager(
            client_id=config.client_id,
            tenant_id=config.tenant_id,
            access_token=config.access_token,
            logger=logger,
        )
        return cls(
            tokens,
            base_url=config.graph_base_url,
            timeout=config.request_timeout,
            transport=transport,
            logger=logger,
        )

    async def __aenter__(self) -> "GraphGateway":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        endpoint: str,
        body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        token = await self.tokens.get_access_token()
        self.logger.debug("Graph %s %s", method, endpoint)

        try:
            response = await self._client.request(
                method,
                endpoint,
                json=body,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as exc:
            raise GraphAPIError(0, str(exc), endpoint) from exc

        if response.status_code == 401:
            raise AuthenticationError(
                "Microsoft Graph rejected the access token. Run 'mstodo-sync auth' to sign in again.",
                status=401,
                body=response.text,
            )
        if response.is_error:
            self.logger.error(
                "Graph API error: status=%s endpoint=%s body=%s",
                response.status_code,
                endpoint,
                response.text,
            )
            raise GraphAPIError(response.status_code, response.text, endpoint)

        if response.status_code == 204 or not response.content:
            return {}
        return response.json()

    async def _collect(self, endpoint: str) -> List[Dict[str, Any]]:
        """GET a collection, following ``@odata.nextLink`` paging."""
        items: List[Dict[str, Any]] = []
        next_url: Optional[str] = endpoint
        while next_url:
            page = await self._request("GET", next_url)
            items.extend(page.get("value", []))
            next_url = page.get("@odata.nextLink")
        return items

    @staticmethod
    def _tasks_endpoint(list_id: str, task_id: Optional[str] = None) -> str:
        endpoint = f"/me/todo/lists/{quote(list_id, safe='')}/tasks"
        if task_id:
            endpoint += f"/{quote(task_id, safe='')}"
        return endpoint

    async def list_lists(self) -> List[Dict[str, Any]]:
        return await self._collect("/me/todo/lists")

    async def list_tasks(self, list_id: str) -> List[Dict[str, Any]]:
        return await self._collect(self._tasks_endpoint(list_id))

    async def get_task(self, list_id: str, task_id: str) -> Dict[str, Any]:
        return await self._request("GET", self._tasks_endpoint(list_id, task_id))

    async def create_task(self, list_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", self._tasks_endpoint(list_id), payload)

    async def patch_task(self, list_id: str, task_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("PATCH", self._tasks_endpoint(list_id, task_id), payload)

    async def find_list_containing(self, task_id: str) -> str:
        """Return the id of the list that owns ``task_id``.

        Raises:
            TaskNotFoundError: If no list owns the task
        """
        for task_list in await self.list_lists():
            try:
                await self.get_task(task_list["id"], task_id)
            except AuthenticationError:
                raise
            except GraphAPIError as exc:
                if exc.status in (400, 404):
                    continue
                raise
            return task_list["id"]

        raise TaskNotFoundError(f"Task {task_id} not found in any list")
