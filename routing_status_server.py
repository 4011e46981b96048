import random
from typing import Any, Dict, List, Optional

from aiohttp import web
from loguru import logger


class RoutingStatusServer:
    """Serves scripted routing request statuses, one step per status request"""

    def __init__(
        self,
        statuses: Optional[List[Any]] = None,
        error_rate: float = 0.0,
        api_key: Optional[str] = None,
        status_path: str = "/request-status",
    ):
        self.statuses = statuses or ["INITIALISED", "CHECKOUT_COMPLETED"]
        self.error_rate = error_rate
        self.api_key = api_key
        self.request_counts: Dict[str, int] = {}
        self.app = web.Application()
        self.app.router.add_get(
            f"/{status_path.strip('/')}/{{request_id}}", self.handle_status
        )
        self.logger = logger
        self._runner: Optional[web.AppRunner] = None

    def _next_status(self, request_id: str) -> Any:
        count = self.request_counts.get(request_id, 0)
        self.request_counts[request_id] = count + 1
        # The last scripted status repeats once the script is exhausted
        return self.statuses[min(count, len(self.statuses) - 1)]

    async def handle_status(self, request):
        request_id = request.match_info["request_id"]

        if self.api_key is not None and request.headers.get("x-api-key") != self.api_key:
            self.logger.info("Rejecting request with invalid API key")
            return web.json_response({"message": "Invalid API key"}, status=401)

        if random.random() < self.error_rate:
            self.logger.info("Returning server error")
            return web.json_response({"message": "Internal error"}, status=500)

        status = self._next_status(request_id)
        self.logger.info(f"Returning {status} for request {request_id}")
        return web.json_response(
            {"success": True, "data": {"requestId": request_id, "status": status}}
        )

    async def start(self, port: int = 8080):
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, "localhost", port)
        await site.start()
        self.logger.info(f"Server started on port {port}")
        return site

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
