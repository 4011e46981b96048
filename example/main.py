import asyncio

from routing_status_client.models import StatusApiConfig, StatusPollingConfig
from routing_status_client.poller import StatusPoller
from routing_status_client.status_client import RoutingStatusClient
from routing_status_server import RoutingStatusServer


async def status_changed(status_response):
    print(f"Status changed to: {status_response.status}")
    print(f"Fetch took: {status_response.elapsed_time:.6f}s")


async def main():
    PORT = 8000
    server = RoutingStatusServer(
        statuses=[
            "INITIALISED",
            "DEPOSIT_PENDING",
            "DEPOSIT_COMPLETED",
            "BRIDGE_PENDING",
            "FORWARD_FUND_PENDING",
            "FORWARD_FUND_COMPLETED",
        ],
        error_rate=0.1,
        api_key="demo-key",
    )
    await server.start(port=PORT)
    print(f"Server started on http://localhost:{PORT}")

    api_config = StatusApiConfig(api_key="demo-key", base_url=f"http://localhost:{PORT}")
    polling_config = StatusPollingConfig(
        poll_interval=1.0, max_polling_duration=60.0, retry_initial_delay=0.5
    )

    async with RoutingStatusClient(api_config) as client:
        poller = StatusPoller(
            client.fetch_status, polling_config, on_status_change=status_changed
        )
        outcome = await poller.poll("efc2786e-c5a5-478f-a90b-c8f848fbbd6f")

    print(f"Final status: {outcome.poll_status.value}")
    print(f"Last message: {outcome.polling_message}")
    if outcome.error:
        print(f"Error: {outcome.error} (timed out: {outcome.has_timed_out})")
    print(f"Total time: {outcome.elapsed_time:.6f}s")

    await server.stop()


if __name__ == "__main__":
    asyncio.run(main())
