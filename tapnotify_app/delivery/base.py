"""Base classes for delivery mechanisms."""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from ..config.actions import ActionDefinition
from ..logging.config import get_delivery_logger


class DeliveryStatus(Enum):
    """Delivery outcome."""
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class DeliveryResult:
    """Result of one delivery attempt."""
    status: DeliveryStatus
    message: Optional[str] = None
    delivery_time_ms: Optional[int] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.status == DeliveryStatus.SUCCESS


class BaseDelivery(ABC):
    """Base class for the side effects a delivery cycle can perform."""

    def __init__(self, name: str, config: Any):
        self.name = name
        self.config = config
        self.logger = get_delivery_logger(f"tapnotify.delivery.{name}")
        self._delivery_count = 0
        self._error_count = 0

    @abstractmethod
    async def send(self, action: ActionDefinition, message_text: str = "") -> bool:
        """
        Perform the side effect for an action.

        Args:
            action: Configured action being fired
            message_text: Text to send, for message based deliveries

        Returns:
            True when the remote end accepted the delivery
        """

    async def deliver(self, action: ActionDefinition, message_text: str = "") -> DeliveryResult:
        """
        Run send() once, timing it and keeping statistics.

        Exceptions raised by send() propagate; the orchestrator maps them to
        its longer error window.
        """
        start_time = time.monotonic()
        try:
            success = await self.send(action, message_text)
        except Exception:
            self._error_count += 1
            raise
        delivery_time = int((time.monotonic() - start_time) * 1000)

        if success:
            self._delivery_count += 1
            return DeliveryResult(
                status=DeliveryStatus.SUCCESS,
                message=f"{self.name} delivered",
                delivery_time_ms=delivery_time
            )

        self._error_count += 1
        return DeliveryResult(
            status=DeliveryStatus.FAILED,
            message=f"{self.name} rejected or unreachable",
            delivery_time_ms=delivery_time
        )

    def get_stats(self) -> dict[str, Any]:
        """Get delivery statistics."""
        return {
            "name": self.name,
            "delivery_count": self._delivery_count,
            "error_count": self._error_count,
            "success_rate": (
                self._delivery_count / (self._delivery_count + self._error_count)
                if (self._delivery_count + self._error_count) > 0 else 0.0
            )
        }

    def reset_stats(self):
        """Reset delivery statistics."""
        self._delivery_count = 0
        self._error_count = 0
