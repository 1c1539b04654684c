"""
Main engine coordinator.

Wires the durable stores, deliveries, runtime manager and recovery
supervisor together and exposes the entry points a button surface or a
ride-lifecycle listener calls.
"""

import asyncio
from pathlib import Path
from typing import Any, Optional

import structlog

from .config.defaults import DefaultConfig, get_default_config
from .config.loader import ConfigLoader
from .delivery.message import MessageDelivery
from .delivery.transport import HttpTransport
from .delivery.webhook import WebhookDelivery
from .logging.config import configure_logging
from .persistence.action_store import ActionStore
from .persistence.status_store import StatusStore
from .sensors.provider import SensorProvider, StaticSensorProvider
from .state.models import ActionStatus, DeliveryKind, PressEvent
from .state.recovery import RecoverySupervisor
from .state.runtime import ActionRuntimeManager
from .utils.time import Clock, now_millis

logger = structlog.get_logger(__name__)


class TapNotifyEngine:
    """
    Main coordinator for double-tap triggered notifications.

    Press → Debounce/Arming → Delivery cycle → Checkpoints → Status mirror
    """

    def __init__(
        self,
        config: Optional[DefaultConfig] = None,
        sensors: Optional[SensorProvider] = None,
        transport: Optional[HttpTransport] = None,
        clock: Clock = now_millis
    ) -> None:
        """Initialize the engine; stores are opened immediately."""
        self.logger = logger
        self.config = config or get_default_config()

        self.status_store = StatusStore(self.config.storage.status_db_path)
        self.action_store = ActionStore(self.config.storage.actions_path)
        self.sensors = sensors or StaticSensorProvider(self.config.sensors)
        self.transport = transport or HttpTransport(self.config.http)

        self.webhook = WebhookDelivery(
            self.transport, self.action_store, self.sensors, self.config.geofence
        )
        self.messages = MessageDelivery(self.transport, self.config.messaging)

        self.runtime = ActionRuntimeManager(
            self.status_store,
            self.action_store,
            {DeliveryKind.WEBHOOK: self.webhook, DeliveryKind.MESSAGE: self.messages},
            self.config.timing,
            clock
        )
        self.recovery = RecoverySupervisor(self.runtime)
        self._recovery_task: Optional[asyncio.Task] = None

        self.logger.info(
            "TapNotify engine initialized",
            actions=len(self.action_store.load()),
            status_db=str(self.status_store.db_path)
        )

    @classmethod
    def from_config_dir(
        cls,
        config_dir: Optional[Path] = None,
        overrides: Optional[dict[str, Any]] = None,
        **kwargs
    ) -> "TapNotifyEngine":
        """Build an engine from settings.yaml in config_dir plus overrides."""
        config = ConfigLoader.create(config_dir).load(overrides)
        configure_logging(level=config.logging.level, format_json=config.logging.format_json)
        return cls(config=config, **kwargs)

    def start(self) -> asyncio.Task:
        """Launch the startup recovery sweep; returns its task."""
        if self._recovery_task is None:
            self._recovery_task = asyncio.create_task(self.recovery.restore_pending())
        return self._recovery_task

    def status(self, action_id: int) -> ActionStatus:
        """Current mirrored status of an action."""
        return self.action_store.status(action_id)

    async def handle_press(self, event: PressEvent) -> None:
        await self.runtime.handle_press(event)

    async def press(self, action_id: int, message_text: str = "") -> ActionStatus:
        """
        Press the button of a configured action.

        Args:
            action_id: Action slot pressed
            message_text: Message to send when no webhook is active

        Returns:
            Mirrored status after the press was applied
        """
        action = self.action_store.get(action_id)
        event = PressEvent(
            action_id=action_id,
            observed_status=self.status(action_id),
            message_text=message_text,
            webhook_url=action.url if action else "",
            webhook_enabled=action.enabled if action else False,
        )
        await self.runtime.handle_press(event)
        return self.status(action_id)

    async def handle_lifecycle_event(self, event_type: str) -> dict[str, bool]:
        """
        Fire every webhook and lifecycle message configured for an event.

        These sends are independent of the press state machine and are not
        retried.

        Returns:
            Outcome per target ("webhook:<id>" or "message")
        """
        targets: dict[str, Any] = {}
        for action in self.action_store.load():
            should_fire, _ = action.trigger_for(event_type)
            if should_fire and action.webhook_active:
                targets[f"webhook:{action.id}"] = self.webhook.handle_event(event_type, action.id)

        text = self._lifecycle_message(event_type)
        if text:
            targets["message"] = self.messages.send_message(text)

        if not targets:
            return {}

        results = await asyncio.gather(*targets.values(), return_exceptions=True)
        outcomes = {}
        for name, result in zip(targets, results):
            if isinstance(result, BaseException):
                self.logger.error(
                    "Lifecycle notification failed",
                    target=name,
                    event_type=event_type,
                    error=str(result)
                )
                outcomes[name] = False
            else:
                outcomes[name] = bool(result)

        self.logger.info("Lifecycle event handled", event_type=event_type, outcomes=outcomes)
        return outcomes

    def _lifecycle_message(self, event_type: str) -> str:
        messaging = self.config.messaging
        if event_type == "start":
            return messaging.start_message if messaging.notify_on_start else ""
        if event_type == "stop":
            return messaging.stop_message if messaging.notify_on_stop else ""
        if event_type == "pause":
            return messaging.pause_message
        if event_type == "resume":
            return messaging.resume_message
        return ""

    def get_stats(self) -> dict[str, Any]:
        return {
            "webhook": self.webhook.get_stats(),
            "message": self.messages.get_stats(),
        }

    async def close(self) -> None:
        """Cancel recovery and any running cycles."""
        if self._recovery_task is not None and not self._recovery_task.done():
            self._recovery_task.cancel()
            await asyncio.gather(self._recovery_task, return_exceptions=True)
        await self.runtime.shutdown()
        self.logger.info("TapNotify engine closed")
