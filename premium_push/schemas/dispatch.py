from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# Placeholder token written by the mobile app before the provider hands out a real one
TEST_SENTINEL_TOKEN = "ExponentPushToken[test-token-1234]"


class ErrorKind(str, Enum):

    INVALID_TOKEN = "invalid_token"
    AUTH_CONFIGURATION = "auth_configuration"
    TIMEOUT = "timeout"
    UNREGISTERED = "unregistered"
    RATE_LIMITED = "rate_limited"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    PROVIDER_ERROR = "provider_error"

    @property
    def retryable(self) -> bool:
        return self in _RETRYABLE


_RETRYABLE = frozenset({ErrorKind.TIMEOUT, ErrorKind.RATE_LIMITED, ErrorKind.PROVIDER_UNAVAILABLE})


class DeliveryStatus(str, Enum):

    DELIVERED = "delivered"
    FAILED = "failed"
    SKIPPED = "skipped"


class PushPayload(BaseModel):

    model_config = ConfigDict(frozen=True)

    title: str
    body: str
    data: Dict[str, Any] = Field(default_factory=dict)
    sound: str = "default"
    channel_id: str = "default"
    priority: str = "high"
    ttl: int = 86400
    badge: Optional[int] = None

    @classmethod
    def test(cls, timestamp_ms: int) -> "PushPayload":
        return cls(
            title="Test notification",
            body="Push notifications are working!",
            data={"test": True, "timestamp": timestamp_ms},
        )


class DeliveryResult(BaseModel):
    """What a sender reports for a single token."""

    model_config = ConfigDict(frozen=True)

    delivered: bool
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls) -> "DeliveryResult":
        return cls(delivered=True)

    @classmethod
    def failed(cls, kind: ErrorKind, message: Optional[str] = None) -> "DeliveryResult":
        return cls(delivered=False, error_kind=kind, message=message)


class DispatchTarget(BaseModel):

    model_config = ConfigDict(frozen=True)

    device_id: str
    token: Optional[str] = None


class DispatchOutcome(BaseModel):

    model_config = ConfigDict(frozen=True)

    device_id: str
    status: DeliveryStatus
    error_kind: Optional[ErrorKind] = None
    retryable: bool = False
    message: Optional[str] = None

    @property
    def delivered(self) -> bool:
        return self.status is DeliveryStatus.DELIVERED


class DispatchSummary(BaseModel):

    model_config = ConfigDict(frozen=True)

    total: int = 0
    delivered: int = 0
    failed: int = 0
    skipped: int = 0
    errors_by_kind: Dict[ErrorKind, int] = Field(default_factory=dict)
    configuration_warning: Optional[str] = None


class DispatchBatch(BaseModel):

    model_config = ConfigDict(frozen=True)

    outcomes: List[DispatchOutcome] = Field(default_factory=list)
    summary: DispatchSummary = Field(default_factory=DispatchSummary)
