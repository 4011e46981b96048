import asyncio
from typing import AsyncGenerator, Tuple

import aiohttp
import pytest
import pytest_asyncio
from routing_status_client.models import (
    PollStatus,
    StatusApiConfig,
    StatusPollingConfig,
)
from routing_status_client.poller import POLLING_ERROR, StatusPoller
from routing_status_client.status_client import RoutingStatusClient, StatusFetchError
from routing_status_server import RoutingStatusServer

BASE_URL_TEMPLATE = "http://localhost:{}"
API_KEY = "test-api-key"


@pytest_asyncio.fixture
async def server(
    unused_tcp_port_factory,
) -> AsyncGenerator[Tuple[RoutingStatusServer, int], None]:
    """Start and yield a test RoutingStatusServer instance on a random port."""
    port = unused_tcp_port_factory()
    server_instance = RoutingStatusServer(
        statuses=["INITIALISED", "DEPOSIT_PENDING", "CHECKOUT_COMPLETED"],
        api_key=API_KEY,
    )
    await server_instance.start(port=port)
    try:
        yield server_instance, port
    finally:
        await server_instance.stop()


@pytest.fixture
def config() -> StatusPollingConfig:
    """Provide a fast polling configuration for the client."""
    return StatusPollingConfig(
        poll_interval=0.05,
        max_polling_duration=5.0,
        max_fetch_retries=2,
        retry_initial_delay=0.05,
    )


def api_config(port: int, api_key: str = API_KEY) -> StatusApiConfig:
    return StatusApiConfig(api_key=api_key, base_url=BASE_URL_TEMPLATE.format(port))


@pytest.mark.asyncio
async def test_fetch_status(server):
    """Test a single status fetch returns the scripted status."""
    server_instance, port = server
    client = RoutingStatusClient(api_config(port))

    response = await client.fetch_status("req-1")

    assert response.status == "INITIALISED"
    assert response.raw_response["data"]["requestId"] == "req-1"
    assert response.elapsed_time > 0
    assert server_instance.request_counts == {"req-1": 1}


@pytest.mark.asyncio
async def test_successful_completion(server, config):
    """Test polling through the server until a success status."""
    status_changes = []
    server_instance, port = server

    async def status_callback(response):
        status_changes.append(response.status)

    async with RoutingStatusClient(api_config(port)) as client:
        poller = StatusPoller(client.fetch_status, config, on_status_change=status_callback)
        outcome = await poller.poll("req-1")

    assert outcome.poll_status == PollStatus.success
    assert outcome.polling_message == "Checkout completed successfully."
    assert status_changes == ["INITIALISED", "DEPOSIT_PENDING", "CHECKOUT_COMPLETED"]
    assert server_instance.request_counts["req-1"] == 3


@pytest.mark.asyncio
async def test_business_failure(server, config):
    """Test a failure status ends polling with a failed transaction."""
    server_instance, port = server
    server_instance.statuses = ["DEPOSIT_PENDING", "REFUND_FAILED"]

    async with RoutingStatusClient(api_config(port)) as client:
        outcome = await StatusPoller(client.fetch_status, config).poll("req-2")

    assert outcome.poll_status == PollStatus.error
    assert outcome.error == "Transaction failed"
    assert outcome.polling_message == "Refund failed. Please contact support."


@pytest.mark.asyncio
async def test_invalid_api_key(server):
    """Test an authentication failure is reported as a fetch error."""
    _, port = server
    client = RoutingStatusClient(api_config(port, api_key="wrong"))

    with pytest.raises(StatusFetchError) as exc_info:
        await client.fetch_status("req-3")

    assert exc_info.value.status == 401
    assert exc_info.value.request_id == "req-3"


@pytest.mark.asyncio
async def test_server_errors_exhaust_retries(server, config):
    """Test persistent server errors end polling after the retries."""
    server_instance, port = server
    server_instance.error_rate = 1.0

    async with RoutingStatusClient(api_config(port)) as client:
        outcome = await StatusPoller(client.fetch_status, config).poll("req-4")

    assert outcome.poll_status == PollStatus.error
    assert outcome.error == POLLING_ERROR
    assert not outcome.has_timed_out
    assert outcome.poll_count == 3


@pytest.mark.asyncio
@pytest.mark.parametrize("bad_status", [None, 123, ["FAILED"]])
async def test_non_string_status_is_rejected(server, bad_status):
    """Test a status that is not a string is reported as a fetch error."""
    server_instance, port = server
    server_instance.statuses = [bad_status]
    client = RoutingStatusClient(api_config(port))

    with pytest.raises(StatusFetchError) as exc_info:
        await client.fetch_status("req-7")
    assert isinstance(exc_info.value.__cause__, TypeError)


@pytest.mark.asyncio
async def test_null_status_ends_polling_with_error(server, config):
    """Test a null status aborts polling instead of looping until timeout."""
    server_instance, port = server
    server_instance.statuses = [None]

    async with RoutingStatusClient(api_config(port)) as client:
        outcome = await StatusPoller(client.fetch_status, config).poll("req-8")

    assert outcome.poll_status == PollStatus.error
    assert outcome.error == POLLING_ERROR
    assert not outcome.has_timed_out
    assert outcome.last_status is None
    assert outcome.poll_count == 3


@pytest.mark.asyncio
async def test_server_unavailable(config):
    """Test behavior when server is not available."""
    client = RoutingStatusClient(
        StatusApiConfig(api_key=API_KEY, base_url="http://localhost:9999")  # Invalid port
    )

    with pytest.raises(StatusFetchError) as exc_info:
        await client.fetch_status("req-5")
    assert isinstance(exc_info.value.__cause__, aiohttp.ClientError)

    outcome = await StatusPoller(client.fetch_status, config).poll("req-5")
    assert outcome.error == POLLING_ERROR


@pytest.mark.asyncio
async def test_shared_session(server):
    """Test a caller-owned session is used and left open."""
    _, port = server
    async with aiohttp.ClientSession() as session:
        async with RoutingStatusClient(api_config(port), session=session) as client:
            response = await client.fetch_status("req-6")
        assert response.status == "INITIALISED"
        assert not session.closed


@pytest.mark.asyncio
async def test_multiple_requests(server, config):
    """Test several requests polled simultaneously keep separate progress."""
    server_instance, port = server

    async with RoutingStatusClient(api_config(port)) as client:
        poller = StatusPoller(client.fetch_status, config)
        outcomes = await asyncio.gather(*[poller.poll(f"req-{i}") for i in range(3)])

    for i, outcome in enumerate(outcomes):
        assert outcome.request_id == f"req-{i}"
        assert outcome.poll_status == PollStatus.success
        assert server_instance.request_counts[f"req-{i}"] == 3
