"""Push notification port — abstract interface for push dispatch."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class PushStatus(Enum):
    SENT = "sent"
    INVALID_TOKEN = "invalid_token"  # permanently undeliverable; prune the token
    FAILED = "failed"  # transient; keep the token


@dataclass(frozen=True)
class PushResult:
    status: PushStatus
    message_id: str | None = None
    error: str | None = None


class PushPort(ABC):
    """Abstract interface for push notification dispatch adapters."""

    @abstractmethod
    def send(
        self,
        device_token: str,
        title: str,
        body: str,
        data: dict | None = None,
    ) -> PushResult:
        """Send one push notification to one device."""
        ...
