from routing_status_client.models import (
    PollOutcome,
    PollStatus,
    RequestStatus,
    StatusApiConfig,
    StatusClass,
    StatusPollingConfig,
    StatusResponse,
)
from routing_status_client.poller import StatusPoller, poll_transaction_status
from routing_status_client.status import classify_status, get_status_message, is_terminal
from routing_status_client.status_client import RoutingStatusClient, StatusFetchError

__all__ = [
    "PollOutcome",
    "PollStatus",
    "RequestStatus",
    "RoutingStatusClient",
    "StatusApiConfig",
    "StatusClass",
    "StatusFetchError",
    "StatusPoller",
    "StatusPollingConfig",
    "StatusResponse",
    "classify_status",
    "get_status_message",
    "is_terminal",
    "poll_transaction_status",
]
