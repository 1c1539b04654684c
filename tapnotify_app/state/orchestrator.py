"""
Delivery orchestrator: one side effect per arming cycle.

A cycle checkpoints EXECUTING, waits the grace delay, performs the delivery
on a worker thread, holds the resolved SUCCESS or ERROR for its visibility
window and finally returns the action to IDLE. Every commit is tagged with
the cycle's generation, so results of a cycle that was reset in the
meantime are discarded.
"""

import asyncio
from typing import TYPE_CHECKING, Optional

from ..config.defaults import TimingParams
from ..delivery.base import BaseDelivery
from ..errors import DeliveryError, MissingPayloadError
from ..logging.config import get_state_logger
from ..utils.time import Clock, sleep_ms
from .models import ActionStatus, DeliveryKind
from .monitor import StatusMonitor

if TYPE_CHECKING:
    from .runtime import ActionRuntimeManager

logger = get_state_logger(__name__)


class DeliveryOrchestrator:
    """Runs delivery cycles on behalf of the runtime manager."""

    def __init__(
        self,
        runtime: "ActionRuntimeManager",
        deliveries: dict[DeliveryKind, BaseDelivery],
        timing: TimingParams,
        clock: Clock
    ):
        self.runtime = runtime
        self.deliveries = deliveries
        self.timing = timing
        self.clock = clock

    async def execute(
        self,
        action_id: int,
        kind: DeliveryKind,
        message_text: str,
        generation: int
    ) -> Optional[ActionStatus]:
        """
        Run one delivery cycle to completion.

        Returns:
            The resolved status, or None when the cycle lost ownership of
            the action before resolving
        """
        cycle_task = asyncio.current_task()
        monitor: Optional[StatusMonitor] = None

        def cancel_cycle(reason: str) -> None:
            if cycle_task is not None and not cycle_task.done():
                cycle_task.cancel()

        try:
            self.runtime.status_store.clear(action_id)
            executing_until = self.clock() + self.timing.grace_delay_ms
            if not await self.runtime.commit(
                action_id, ActionStatus.EXECUTING, executing_until, generation, "confirm_press"
            ):
                return None

            monitor = StatusMonitor(self.runtime.action_store, action_id, cancel_cycle)
            monitor.start()

            await sleep_ms(self.timing.grace_delay_ms)

            resolved, visibility_ms = await self._deliver(action_id, kind, message_text)

            if not await self.runtime.commit(
                action_id,
                resolved,
                self.clock() + visibility_ms,
                generation,
                f"delivery_{resolved.value.lower()}"
            ):
                return None

            await sleep_ms(visibility_ms + self.timing.trailing_delay_ms)

            monitor.stop()
            monitor = None
            await self.runtime.commit(
                action_id, ActionStatus.IDLE, None, generation, "visibility_elapsed"
            )
            return resolved

        except asyncio.CancelledError:
            logger.info("Delivery cycle cancelled", action_id=action_id, generation=generation)
            raise

        except Exception as e:
            logger.error(
                "Delivery cycle failed",
                action_id=action_id,
                generation=generation,
                error=str(e)
            )
            if self.runtime.is_current(action_id, generation):
                self.runtime.force_reset(action_id, "delivery_cycle_error")
            return None

        finally:
            if monitor is not None:
                monitor.stop()

    async def _deliver(
        self,
        action_id: int,
        kind: DeliveryKind,
        message_text: str
    ) -> tuple[ActionStatus, int]:
        """Perform the side effect and pick the status and its visibility window."""
        delivery = self.deliveries.get(kind)
        action = self.runtime.action_store.get(action_id)

        try:
            if action is None:
                raise MissingPayloadError(
                    "Action is no longer configured", action_id=action_id
                )
            if delivery is None:
                raise DeliveryError(
                    f"No delivery configured for {kind.value}",
                    delivery_method=kind.value,
                    action_id=action_id
                )
            result = await delivery.deliver(action, message_text)

        except Exception as e:
            logger.error(
                "Delivery raised",
                action_id=action_id,
                delivery_kind=kind.value,
                error=str(e)
            )
            return ActionStatus.ERROR, self.timing.crash_visibility_ms

        logger.info(
            "Delivery resolved",
            action_id=action_id,
            delivery_kind=kind.value,
            success=result.ok,
            delivery_time_ms=result.delivery_time_ms
        )
        if result.ok:
            return ActionStatus.SUCCESS, self.timing.success_visibility_ms
        return ActionStatus.ERROR, self.timing.error_visibility_ms
