"""
Runtime state management for action slots.

Owns the per-action debounce contexts, serialises every status mutation of
an action behind that action's lock, applies press decisions and provides
the single force-reset used by every failure path.
"""

import asyncio
from typing import Optional

from ..config.defaults import TimingParams
from ..delivery.base import BaseDelivery
from ..errors import StateTransitionError
from ..logging.config import get_state_logger, log_state_transition
from ..persistence.action_store import ActionStore
from ..persistence.status_store import StatusStore
from ..utils.time import Clock, now_millis, sleep_ms
from .machine import eval_press
from .models import (
    ActionStatus,
    DebounceContext,
    DeliveryKind,
    PressDecision,
    PressEvent,
    PressOutcome,
)
from .orchestrator import DeliveryOrchestrator

logger = get_state_logger(__name__)


class ActionRuntimeManager:
    """Per-action debounce contexts and the transitions applied to them."""

    def __init__(
        self,
        status_store: StatusStore,
        action_store: ActionStore,
        deliveries: dict[DeliveryKind, BaseDelivery],
        timing: Optional[TimingParams] = None,
        clock: Clock = now_millis
    ):
        self.logger = logger
        self.status_store = status_store
        self.action_store = action_store
        self.timing = timing or TimingParams()
        self.clock = clock
        self.contexts: dict[int, DebounceContext] = {}
        self.orchestrator = DeliveryOrchestrator(self, deliveries, self.timing, clock)

    def get_context(self, action_id: int) -> DebounceContext:
        """Get existing debounce context or create one for the action."""
        if action_id not in self.contexts:
            self.contexts[action_id] = DebounceContext(action_id=action_id)
        return self.contexts[action_id]

    def is_current(self, action_id: int, generation: int) -> bool:
        return self.get_context(action_id).generation == generation

    def current_generation(self, action_id: int) -> int:
        return self.get_context(action_id).generation

    async def handle_press(self, event: PressEvent) -> None:
        """
        Apply one press. Never raises: any failure ends in force_reset().
        """
        try:
            if self.action_store.get(event.action_id) is None:
                self.logger.warning("Press for unconfigured action", action_id=event.action_id)
                return

            ctx = self.get_context(event.action_id)
            async with ctx.lock:
                now = self.clock()
                decision = eval_press(ctx, event, now, self.timing)
                self._apply(ctx, event, decision, now)

        except Exception as e:
            self.logger.error(
                "Press handling failed",
                action_id=event.action_id,
                observed_status=event.observed_status.value,
                error=str(e)
            )
            self.force_reset(event.action_id, "press_handler_error")

    def _apply(
        self,
        ctx: DebounceContext,
        event: PressEvent,
        decision: PressDecision,
        now: int
    ) -> None:
        if decision.outcome == PressOutcome.IGNORE:
            ctx.consecutive_clicks = decision.consecutive_clicks
            return

        if decision.outcome in (PressOutcome.ABORT, PressOutcome.ACKNOWLEDGE):
            self.force_reset(ctx.action_id, decision.reason)
            ctx.last_click_ms = now
            return

        ctx.consecutive_clicks = 0

        if decision.outcome == PressOutcome.ARM:
            self._arm(ctx, event, now)

        elif decision.outcome in (PressOutcome.EXECUTE_WEBHOOK, PressOutcome.EXECUTE_MESSAGE):
            kind = (DeliveryKind.WEBHOOK if decision.outcome == PressOutcome.EXECUTE_WEBHOOK
                    else DeliveryKind.MESSAGE)
            self._start_delivery(ctx, event, kind, now)

        else:
            raise StateTransitionError(
                f"No transition for outcome {decision.outcome.value}",
                current_state=event.observed_status.value,
                attempted_transition=decision.reason
            )

        ctx.last_click_ms = now

    def _arm(self, ctx: DebounceContext, event: PressEvent, now: int) -> None:
        ctx.cancel_timeout()
        ctx.cancel_recovery()
        ctx.generation += 1
        ctx.armed_at_ms = now
        ctx.executing_started_ms = 0

        resume_at = now + self.timing.executing_timeout_ms
        self.status_store.set(ctx.action_id, ActionStatus.FIRST, resume_at)
        self.action_store.update_status(ctx.action_id, ActionStatus.FIRST)
        log_state_transition(
            self.logger,
            action_id=ctx.action_id,
            from_state=event.observed_status.value,
            to_state=ActionStatus.FIRST.value,
            trigger="first_press",
            context={"resume_at_ms": resume_at}
        )

        ctx.timeout_task = asyncio.create_task(
            self._expire_first(ctx.action_id, ctx.generation)
        )

    def _start_delivery(
        self,
        ctx: DebounceContext,
        event: PressEvent,
        kind: DeliveryKind,
        now: int
    ) -> None:
        ctx.cancel_timeout()
        ctx.cancel_recovery()

        if ctx.delivery_in_flight:
            self.logger.warning(
                "Delivery already in flight, aborting confirmation",
                action_id=ctx.action_id
            )
            self.force_reset(ctx.action_id, "delivery_in_flight")
            return

        ctx.generation += 1
        ctx.executing_started_ms = now
        ctx.delivery_task = asyncio.create_task(
            self.orchestrator.execute(ctx.action_id, kind, event.message_text, ctx.generation)
        )
        self.logger.info(
            "Delivery cycle started",
            action_id=ctx.action_id,
            delivery_kind=kind.value,
            generation=ctx.generation
        )

    async def _expire_first(self, action_id: int, generation: int) -> None:
        await sleep_ms(self.timing.executing_timeout_ms)

        ctx = self.get_context(action_id)
        async with ctx.lock:
            if ctx.generation != generation:
                return
            ctx.timeout_task = None
            self.force_reset(action_id, "first_press_timeout")

    async def commit(
        self,
        action_id: int,
        status: ActionStatus,
        resume_at_ms: Optional[int],
        generation: int,
        trigger: str
    ) -> bool:
        """
        Commit a status for a cycle that still owns the action.

        A resume_at_ms of None clears the durable checkpoint instead of
        writing one.

        Returns:
            False when a newer cycle or a reset has taken the action over
        """
        ctx = self.get_context(action_id)
        async with ctx.lock:
            if ctx.generation != generation:
                self.logger.info(
                    "Discarding stale transition",
                    action_id=action_id,
                    status=status.value,
                    trigger=trigger
                )
                return False

            previous = self.action_store.status(action_id)
            if resume_at_ms is None:
                self.status_store.clear(action_id)
            else:
                self.status_store.set(action_id, status, resume_at_ms)
            self.action_store.update_status(action_id, status)

            if status == ActionStatus.IDLE:
                ctx.clear()

            log_state_transition(
                self.logger,
                action_id=action_id,
                from_state=previous.value,
                to_state=status.value,
                trigger=trigger,
                context={"resume_at_ms": resume_at_ms} if resume_at_ms else None
            )
            return True

    def force_reset(self, action_id: int, trigger: str) -> None:
        """
        Put an action back to IDLE and forget its timers. Never raises.

        The mirror is updated in memory even when its document write fails;
        durable-store failures are logged and left for the startup sweep.
        """
        try:
            ctx = self.get_context(action_id)
            ctx.clear()
            ctx.generation += 1
            previous = self.action_store.status(action_id)
        except Exception as e:
            self.logger.error("Reset bookkeeping failed", action_id=action_id, error=str(e))
            previous = None

        try:
            self.action_store.update_status(action_id, ActionStatus.IDLE)
        except Exception as e:
            self.logger.error("Reset could not persist mirror", action_id=action_id, error=str(e))

        try:
            self.status_store.clear(action_id)
        except Exception as e:
            self.logger.error("Reset could not clear checkpoint", action_id=action_id, error=str(e))

        log_state_transition(
            self.logger,
            action_id=action_id,
            from_state=previous.value if previous else "unknown",
            to_state=ActionStatus.IDLE.value,
            trigger=trigger
        )

    async def shutdown(self) -> None:
        """Cancel every timer and delivery task and wait for them to finish."""
        tasks = []
        for ctx in self.contexts.values():
            for task in (ctx.timeout_task, ctx.delivery_task, ctx.recovery_task):
                if task is not None and not task.done():
                    task.cancel()
                    tasks.append(task)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
