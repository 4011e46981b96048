import asyncio
from typing import Optional

import aiohttp
from loguru import logger
from routing_status_client.models import StatusApiConfig, StatusResponse


class StatusFetchError(Exception):
    """Raised when the status endpoint could not be reached or answered badly"""

    def __init__(self, request_id: str, message: str, status: Optional[int] = None):
        self.request_id = request_id
        self.status = status
        super().__init__(message)


class RoutingStatusClient:
    def __init__(
        self,
        config: StatusApiConfig,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.config = config
        self.base_url = config.base_url.rstrip("/")
        self.logger = logger
        self._session = session
        self._owns_session = False

    async def __aenter__(self) -> "RoutingStatusClient":
        if self._session is None:
            self._session = self._new_session()
            self._owns_session = True
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
            self._owns_session = False

    def _new_session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(
            headers={"accept": "application/json"},
            timeout=aiohttp.ClientTimeout(total=self.config.request_timeout),
        )

    def status_url(self, request_id: str) -> str:
        path = self.config.status_path.strip("/")
        return f"{self.base_url}/{path}/{request_id}"

    async def fetch_status(self, request_id: str) -> StatusResponse:
        """Fetches the current status of a routing request"""
        if self._session is not None:
            return await self._get_status_once(self._session, request_id)

        async with self._new_session() as session:
            return await self._get_status_once(session, request_id)

    async def _get_status_once(
        self, session: aiohttp.ClientSession, request_id: str
    ) -> StatusResponse:
        start_time = asyncio.get_running_loop().time()
        url = self.status_url(request_id)

        try:
            async with session.get(
                url, headers={"x-api-key": self.config.api_key}
            ) as response:
                response.raise_for_status()

                data = await response.json()
                status = _extract_status(data)
                elapsed_time = asyncio.get_running_loop().time() - start_time

                return StatusResponse(
                    status=status,
                    raw_response=data,
                    elapsed_time=elapsed_time,
                )
        except aiohttp.ClientResponseError as e:
            self.logger.error(f"HTTP error {e.status} at {url}: {e.message}")
            raise StatusFetchError(request_id, e.message, status=e.status) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.error(f"Request to {url} failed: {e!r}")
            raise StatusFetchError(request_id, str(e) or type(e).__name__) from e
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            self.logger.error(f"Malformed status response from {url}: {e!r}")
            raise StatusFetchError(request_id, f"Malformed status response: {e}") from e


def _extract_status(data: dict) -> str:
    # The API wraps payloads in {"data": {...}}; plain {"status": ...} is accepted too
    if isinstance(data.get("data"), dict) and "status" in data["data"]:
        status = data["data"]["status"]
    else:
        status = data["status"]
    if not isinstance(status, str):
        raise TypeError(f"status must be a string, got {status!r}")
    return status
