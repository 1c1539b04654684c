"""
State machine data models for the double-tap action lifecycle.

Defines the status enum shared by every component, the press event handed
in by a button surface, and the decision returned by the pure evaluator.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ActionStatus(str, Enum):
    """Lifecycle status of one action slot."""
    IDLE = "IDLE"
    FIRST = "FIRST"
    EXECUTING = "EXECUTING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ActionStatus":
        """Parse a stored or observed status; unknown values read as IDLE."""
        try:
            return cls(value)
        except ValueError:
            return cls.IDLE


class PressOutcome(str, Enum):
    """What the runtime must do with a press."""
    IGNORE = "ignore"
    ABORT = "abort"
    ACKNOWLEDGE = "acknowledge"
    ARM = "arm"
    EXECUTE_WEBHOOK = "execute_webhook"
    EXECUTE_MESSAGE = "execute_message"


class DeliveryKind(str, Enum):
    """Side effect performed by a delivery cycle."""
    WEBHOOK = "webhook"
    MESSAGE = "message"


@dataclass(frozen=True)
class PressEvent:
    """A button press carrying the status the surface currently shows."""

    action_id: int
    observed_status: ActionStatus
    message_text: str = ""
    webhook_url: str = ""
    webhook_enabled: bool = False

    @property
    def webhook_active(self) -> bool:
        return self.webhook_enabled and bool(self.webhook_url)

    @property
    def message_active(self) -> bool:
        return bool(self.message_text)


@dataclass(frozen=True)
class PressDecision:
    """Result of evaluating one press against a debounce context."""

    outcome: PressOutcome
    reason: str
    consecutive_clicks: int = 0
    record_click: bool = True


@dataclass
class DebounceContext:
    """Per-action bookkeeping for click timing, timers and the active cycle."""

    action_id: int
    last_click_ms: int = 0
    consecutive_clicks: int = 0
    armed_at_ms: int = 0
    executing_started_ms: int = 0
    generation: int = 0
    timeout_task: Optional[asyncio.Task] = None
    delivery_task: Optional[asyncio.Task] = None
    recovery_task: Optional[asyncio.Task] = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    @property
    def delivery_in_flight(self) -> bool:
        return self.delivery_task is not None and not self.delivery_task.done()

    def cancel_timeout(self) -> None:
        if self.timeout_task is not None and not self.timeout_task.done():
            self.timeout_task.cancel()
        self.timeout_task = None

    def cancel_recovery(self) -> None:
        """Cancel a startup restore still holding this action, unless it is the caller."""
        task, self.recovery_task = self.recovery_task, None
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        if task is not current:
            task.cancel()

    def clear(self) -> None:
        """Forget timing state; the delivery task is left to its monitor."""
        self.cancel_timeout()
        self.cancel_recovery()
        self.consecutive_clicks = 0
        self.armed_at_ms = 0
        self.executing_started_ms = 0


@dataclass(frozen=True)
class StatusEntry:
    """Durable checkpoint of a committed status."""

    action_id: int
    status: ActionStatus
    resume_at_ms: int
