"""Tests for delivery cycles."""

import asyncio

from conftest import FakeTransport, fast_timing, make_action_store, wait_for_status, webhook_action
from tapnotify_app.delivery.base import BaseDelivery
from tapnotify_app.delivery.webhook import WebhookDelivery
from tapnotify_app.persistence.status_store import StatusStore
from tapnotify_app.sensors.provider import StaticSensorProvider
from tapnotify_app.state.models import ActionStatus, DeliveryKind
from tapnotify_app.state.runtime import ActionRuntimeManager

FROZEN_NOW = 1_700_000_000_000


class RaisingDelivery(BaseDelivery):
    """Delivery whose side effect blows up."""

    def __init__(self):
        super().__init__("raising", None)

    async def send(self, action, message_text=""):
        raise RuntimeError("provider exploded")


class TestDeliveryOrchestrator:
    """Checkpoint windows and cancellation of a cycle."""

    def build(self, tmp_path, transport=None, deliveries=None, timing=None):
        self.transport = transport or FakeTransport()
        self.status_store = StatusStore(str(tmp_path / "status.db"))
        self.action_store = make_action_store(tmp_path / "actions.json", [webhook_action(0)])
        if deliveries is None:
            deliveries = {
                DeliveryKind.WEBHOOK: WebhookDelivery(
                    self.transport, self.action_store, StaticSensorProvider()
                )
            }
        self.timing = timing or fast_timing()
        self.runtime = ActionRuntimeManager(
            self.status_store,
            self.action_store,
            deliveries,
            self.timing,
            clock=lambda: FROZEN_NOW,
        )
        return self.runtime.orchestrator

    def test_successful_cycle_checkpoints(self, tmp_path):
        orchestrator = self.build(tmp_path, timing=fast_timing(grace_delay_ms=100, success_visibility_ms=150))

        async def scenario():
            task = asyncio.create_task(
                orchestrator.execute(0, DeliveryKind.WEBHOOK, "", self.runtime.current_generation(0))
            )
            await wait_for_status(self.action_store, 0, ActionStatus.EXECUTING)
            executing = self.status_store.get(0)
            await wait_for_status(self.action_store, 0, ActionStatus.SUCCESS)
            success = self.status_store.get(0)
            return executing, success, await task

        executing, success, resolved = asyncio.run(scenario())

        assert executing == (ActionStatus.EXECUTING, FROZEN_NOW + self.timing.grace_delay_ms)
        assert success == (ActionStatus.SUCCESS, FROZEN_NOW + self.timing.success_visibility_ms)
        assert resolved == ActionStatus.SUCCESS
        assert self.status_store.get(0) == (None, None)
        assert self.action_store.status(0) == ActionStatus.IDLE

    def test_failed_outcome_uses_error_window(self, tmp_path):
        orchestrator = self.build(
            tmp_path, transport=FakeTransport(status_code=404),
            timing=fast_timing(error_visibility_ms=150)
        )

        async def scenario():
            task = asyncio.create_task(
                orchestrator.execute(0, DeliveryKind.WEBHOOK, "", self.runtime.current_generation(0))
            )
            await wait_for_status(self.action_store, 0, ActionStatus.ERROR)
            checkpoint = self.status_store.get(0)
            return checkpoint, await task

        checkpoint, resolved = asyncio.run(scenario())

        assert checkpoint == (ActionStatus.ERROR, FROZEN_NOW + self.timing.error_visibility_ms)
        assert resolved == ActionStatus.ERROR

    def test_raising_delivery_uses_crash_window(self, tmp_path):
        delivery = RaisingDelivery()
        orchestrator = self.build(
            tmp_path,
            deliveries={DeliveryKind.WEBHOOK: delivery},
            timing=fast_timing(crash_visibility_ms=150)
        )

        async def scenario():
            task = asyncio.create_task(
                orchestrator.execute(0, DeliveryKind.WEBHOOK, "", self.runtime.current_generation(0))
            )
            await wait_for_status(self.action_store, 0, ActionStatus.ERROR)
            checkpoint = self.status_store.get(0)
            return checkpoint, await task

        checkpoint, resolved = asyncio.run(scenario())

        assert checkpoint == (ActionStatus.ERROR, FROZEN_NOW + self.timing.crash_visibility_ms)
        assert resolved == ActionStatus.ERROR
        assert delivery.get_stats()["error_count"] == 1

    def test_missing_delivery_is_an_error(self, tmp_path):
        orchestrator = self.build(tmp_path, deliveries={})

        async def scenario():
            return await orchestrator.execute(
                0, DeliveryKind.MESSAGE, "hi", self.runtime.current_generation(0)
            )

        assert asyncio.run(scenario()) == ActionStatus.ERROR
        assert self.action_store.status(0) == ActionStatus.IDLE

    def test_external_idle_cancels_cycle(self, tmp_path):
        orchestrator = self.build(tmp_path, timing=fast_timing(grace_delay_ms=300))

        async def scenario():
            task = asyncio.create_task(
                orchestrator.execute(0, DeliveryKind.WEBHOOK, "", self.runtime.current_generation(0))
            )
            await wait_for_status(self.action_store, 0, ActionStatus.EXECUTING)
            self.runtime.force_reset(0, "hard_reset")
            await asyncio.gather(task, return_exceptions=True)
            return task

        task = asyncio.run(scenario())

        assert task.cancelled()
        assert self.transport.calls == []
        assert self.action_store.status(0) == ActionStatus.IDLE
        assert self.status_store.get(0) == (None, None)

    def test_superseded_cycle_returns_none(self, tmp_path):
        orchestrator = self.build(tmp_path)
        self.runtime.force_reset(0, "newer_cycle")

        async def scenario():
            return await orchestrator.execute(0, DeliveryKind.WEBHOOK, "", generation=0)

        assert asyncio.run(scenario()) is None
        assert self.transport.calls == []

    def test_removed_action_resolves_to_error(self, tmp_path):
        orchestrator = self.build(tmp_path)
        self.action_store.save([])

        resolved = asyncio.run(orchestrator._deliver(0, DeliveryKind.WEBHOOK, ""))

        assert resolved == (ActionStatus.ERROR, self.timing.crash_visibility_ms)
        assert self.transport.calls == []
