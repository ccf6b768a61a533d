"""
Async Linear GraphQL client.

Features:
- Async HTTP with aiohttp and a shared session per client
- Bounded timeout on every request
- Concurrency limit across callers
- Retries with linear backoff for read queries only
- Cursor-based pagination
"""

import asyncio
from collections.abc import AsyncIterator, Sequence
from typing import Any, Optional

import aiohttp

from portal.errors import NotFoundError, UpstreamError, UpstreamTimeoutError
from portal.logging import get_logger

logger = get_logger("linear.client")

LINEAR_GRAPHQL_URL = "https://api.linear.app/graphql"

RETRIABLE_STATUSES = frozenset({429, 500, 502, 503, 504})


class LinearClient:
    """
    Async Linear GraphQL client.

    Example:
        async with LinearClient(api_key) as client:
            data = await client.execute(GET_TEAM_CONFIG_QUERY, {"teamId": team_id})
            async for node in client.paginate(GET_TEAMS_QUERY, {}, ("teams",)):
                print(node["name"])
    """

    def __init__(
        self,
        api_key: Optional[str],
        api_url: str = LINEAR_GRAPHQL_URL,
        timeout: float = 10.0,
        max_retries: int = 3,
        max_concurrent: int = 5,
        retry_backoff: float = 1.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.max_concurrent = max_concurrent
        self.retry_backoff = retry_backoff
        self._session = session
        self._owns_session = session is None
        self._semaphore = asyncio.Semaphore(max_concurrent)

    async def __aenter__(self) -> "LinearClient":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def open(self) -> None:
        """Create the aiohttp session if one was not injected."""
        if self._session is not None:
            return
        if not self.api_key:
            logger.warning("linear_api_key_missing")
        connector = aiohttp.TCPConnector(
            limit=self.max_concurrent * 2,
            limit_per_host=self.max_concurrent,
        )
        self._session = aiohttp.ClientSession(
            connector=connector,
            headers={
                "Authorization": self.api_key or "",
                "Content-Type": "application/json",
            },
            timeout=aiohttp.ClientTimeout(total=self.timeout),
        )
        self._owns_session = True

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    # =========================================================================
    # Requests
    # =========================================================================

    async def execute(
        self,
        query: str,
        variables: dict[str, Any],
        mutation: bool = False,
    ) -> dict[str, Any]:
        """
        Execute a GraphQL document and return its ``data`` object.

        Mutations are attempted once; a retried mutation could apply twice.

        Raises:
            UpstreamTimeoutError: The request exceeded the timeout on every attempt
            NotFoundError: Linear reported the entity does not exist
            UpstreamError: Any other HTTP or GraphQL failure
        """
        if self._session is None:
            raise RuntimeError("Client not initialized. Use 'async with' context.")

        attempts = 1 if mutation else self.max_retries
        last_error: UpstreamError = UpstreamError()

        async with self._semaphore:
            for attempt in range(1, attempts + 1):
                try:
                    return await self._post(query, variables)
                except UpstreamTimeoutError as e:
                    last_error = e
                except UpstreamError as e:
                    if not e.retriable:
                        raise
                    last_error = e

                logger.warning(
                    "linear_request_retry",
                    attempt=attempt,
                    attempts=attempts,
                    error=last_error.code,
                    status=last_error.status,
                )
                if attempt < attempts and self.retry_backoff > 0:
                    await asyncio.sleep(self.retry_backoff * attempt)

        raise last_error

    async def _post(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        try:
            async with self._session.post(
                self.api_url,
                json={"query": query, "variables": variables},
            ) as response:
                if response.status >= 400:
                    text = await response.text()
                    logger.error("linear_http_error", status=response.status, body=text[:500])
                    raise UpstreamError(
                        retriable=response.status in RETRIABLE_STATUSES,
                        status=response.status,
                    )
                payload = await response.json()
        except asyncio.TimeoutError as e:
            logger.warning("linear_request_timeout", timeout=self.timeout)
            raise UpstreamTimeoutError() from e
        except aiohttp.ClientError as e:
            logger.warning("linear_client_error", error=str(e))
            raise UpstreamError(retriable=True) from e

        errors = payload.get("errors")
        if errors:
            messages = [str(error.get("message", "")) for error in errors if isinstance(error, dict)]
            logger.warning("linear_graphql_errors", messages=messages)
            if any("not found" in message.lower() for message in messages):
                raise NotFoundError()
            raise UpstreamError(retriable=False)
        return payload.get("data") or {}

    async def paginate(
        self,
        query: str,
        variables: dict[str, Any],
        connection_path: Sequence[str],
        page_size: int = 100,
    ) -> AsyncIterator[dict[str, Any]]:
        """
        Yield nodes from a cursor-paginated connection.

        Args:
            query: Document declaring ``$first`` and ``$after``
            variables: Variables other than the cursor
            connection_path: Keys from ``data`` to the connection, e.g. ("issues",)
            page_size: Nodes per page
        """
        cursor = None
        while True:
            data = await self.execute(query, {**variables, "first": page_size, "after": cursor})

            connection: Any = data
            for key in connection_path:
                connection = (connection or {}).get(key)
            if not connection:
                return

            for node in connection.get("nodes") or []:
                yield node

            page_info = connection.get("pageInfo") or {}
            if not page_info.get("hasNextPage"):
                return
            cursor = page_info.get("endCursor")
            if not cursor:
                return
