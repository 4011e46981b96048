from typing import Union

from routing_status_client.models import RequestStatus, StatusClass

DEFAULT_STATUS_MESSAGE = "Request is being processed."

# COMPLETED is not a RequestStatus member but the API has been seen to return it
SUCCESS_STATUSES = frozenset(
    {
        "COMPLETED",
        RequestStatus.CHECKOUT_COMPLETED.value,
        RequestStatus.FORWARD_FUND_COMPLETED.value,
    }
)

FAILURE_STATUSES = frozenset({"FAILED", "CANCELLED", RequestStatus.EXPIRED.value})

STATUS_MESSAGES = {
    RequestStatus.INITIALISED: "Request has been created and is awaiting processing.",
    RequestStatus.DEPOSIT_PENDING: "Your deposit is being processed.",
    RequestStatus.DEPOSIT_FAILED: "Deposit was unsuccessful. Please try again.",
    RequestStatus.DEPOSIT_COMPLETED: "Funds received successfully.",
    RequestStatus.CREATE_AND_FORWARD_INITIATED: "Creating and forwarding your request.",
    RequestStatus.CREATE_AND_FORWARD_PENDING: "Creating and forwarding your request.",
    RequestStatus.CREATE_AND_FORWARD_FAILED: "Failed to create and forward request. Please retry.",
    RequestStatus.NO_ROUTE_FOUND: "No available route found for your request.",
    RequestStatus.SWAP_INITIATED: "Swap process has started.",
    RequestStatus.SWAP_PENDING: "Swap is in progress.",
    RequestStatus.SWAP_FAILED: "Swap failed. Please attempt the swap again.",
    RequestStatus.SWAP_COMPLETED: "Swap completed successfully.",
    RequestStatus.BRIDGE_INITIATED: "Bridging process has been initiated.",
    RequestStatus.BRIDGE_PENDING: "Bridging is in progress.",
    RequestStatus.BRIDGE_FAILED: "Bridging failed. Please try again.",
    RequestStatus.BRIDGE_COMPLETED: "Bridging completed successfully.",
    RequestStatus.CHECKOUT_PENDING: "Checkout is in progress.",
    RequestStatus.CHECKOUT_FAILED: "Checkout failed. Please review and retry.",
    RequestStatus.CHECKOUT_COMPLETED: "Checkout completed successfully.",
    RequestStatus.FORWARD_FUND_PENDING: "Forwarding funds is in progress.",
    RequestStatus.FORWARD_FUND_FAILED: "Failed to forward funds. Please try again.",
    RequestStatus.FORWARD_FUND_COMPLETED: "Funds have been forwarded successfully.",
    RequestStatus.REFUND_INITIATED: "Refund process has been initiated.",
    RequestStatus.REFUND_PENDING: "Refund is being processed.",
    RequestStatus.REFUND_FAILED: "Refund failed. Please contact support.",
    RequestStatus.REFUND_COMPLETED: "Refund completed successfully.",
    RequestStatus.EXPIRED: "Request has expired.",
}


def _as_str(status: Union[str, RequestStatus]) -> str:
    if isinstance(status, RequestStatus):
        return status.value
    return str(status)


def classify_status(status: Union[str, RequestStatus]) -> StatusClass:
    """Sorts a raw status into success, failure or still in flight.

    Any status containing ``FAILED`` counts as a failure, so new ``*_FAILED``
    stages are terminal without being listed. Unknown values are non-terminal.
    """
    value = _as_str(status)
    if value in SUCCESS_STATUSES:
        return StatusClass.terminal_success
    if value in FAILURE_STATUSES or "FAILED" in value:
        return StatusClass.terminal_failure
    return StatusClass.non_terminal


def is_terminal(status: Union[str, RequestStatus]) -> bool:
    return classify_status(status) != StatusClass.non_terminal


def get_status_message(status: Union[str, RequestStatus]) -> str:
    """Maps a status to the message shown to the user"""
    value = _as_str(status)
    try:
        return STATUS_MESSAGES[RequestStatus(value)]
    except (ValueError, KeyError):
        return DEFAULT_STATUS_MESSAGE
