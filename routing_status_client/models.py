from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class RequestStatus(str, Enum):
    INITIALISED = "INITIALISED"
    DEPOSIT_PENDING = "DEPOSIT_PENDING"
    DEPOSIT_FAILED = "DEPOSIT_FAILED"
    DEPOSIT_COMPLETED = "DEPOSIT_COMPLETED"
    CREATE_AND_FORWARD_INITIATED = "CREATE_AND_FORWARD_INITIATED"
    CREATE_AND_FORWARD_PENDING = "CREATE_AND_FORWARD_PENDING"
    CREATE_AND_FORWARD_FAILED = "CREATE_AND_FORWARD_FAILED"
    CREATE_AND_FORWARD_COMPLETED = "CREATE_AND_FORWARD_COMPLETED"
    NO_ROUTE_FOUND = "NO_ROUTE_FOUND"
    SWAP_INITIATED = "SWAP_INITIATED"
    SWAP_PENDING = "SWAP_PENDING"
    SWAP_FAILED = "SWAP_FAILED"
    SWAP_COMPLETED = "SWAP_COMPLETED"
    BRIDGE_INITIATED = "BRIDGE_INITIATED"
    BRIDGE_PENDING = "BRIDGE_PENDING"
    BRIDGE_FAILED = "BRIDGE_FAILED"
    BRIDGE_COMPLETED = "BRIDGE_COMPLETED"
    CHECKOUT_PENDING = "CHECKOUT_PENDING"
    CHECKOUT_FAILED = "CHECKOUT_FAILED"
    CHECKOUT_COMPLETED = "CHECKOUT_COMPLETED"
    FORWARD_FUND_INITIATED = "FORWARD_FUND_INITIATED"
    FORWARD_FUND_PENDING = "FORWARD_FUND_PENDING"
    FORWARD_FUND_FAILED = "FORWARD_FUND_FAILED"
    FORWARD_FUND_COMPLETED = "FORWARD_FUND_COMPLETED"
    REFUND_INITIATED = "REFUND_INITIATED"
    REFUND_PENDING = "REFUND_PENDING"
    REFUND_FAILED = "REFUND_FAILED"
    REFUND_COMPLETED = "REFUND_COMPLETED"
    EXPIRED = "EXPIRED"


class StatusClass(str, Enum):
    terminal_success = "terminal_success"
    terminal_failure = "terminal_failure"
    non_terminal = "non_terminal"


class PollStatus(str, Enum):
    pending = "pending"
    success = "success"
    error = "error"


class StatusResponse(BaseModel):
    # Kept as a plain string so statuses added server-side pass through
    status: str
    raw_response: dict
    elapsed_time: float


class PollOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    request_id: str
    poll_status: PollStatus
    error: Optional[str] = None
    has_timed_out: bool = False
    was_cancelled: bool = False
    polling_message: Optional[str] = None
    last_status: Optional[str] = None
    poll_count: int = 0
    elapsed_time: float = 0.0


class StatusPollingConfig(BaseModel):
    poll_interval: float = Field(default=5.0, gt=0)
    max_polling_duration: float = Field(default=480.0, gt=0)  # 8 minutes
    max_fetch_retries: int = Field(default=3, ge=0)
    retry_initial_delay: float = Field(default=1.0, gt=0)
    retry_backoff_factor: float = Field(default=2.0, ge=1)
    retry_max_delay: float = Field(default=16.0, gt=0)


class StatusApiConfig(BaseModel):
    api_key: str
    base_url: str
    status_path: str = "/request-status"
    request_timeout: float = Field(default=30.0, gt=0)
