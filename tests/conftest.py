"""Pytest configuration and shared fixtures."""

import asyncio
import threading
import time
from pathlib import Path
from typing import List, Optional

import pytest

from tapnotify_app.config.actions import ActionDefinition
from tapnotify_app.config.defaults import SensorParams, TimingParams
from tapnotify_app.delivery.transport import HttpResponse, HttpTransport
from tapnotify_app.errors import TransportError
from tapnotify_app.persistence.action_store import ActionStore
from tapnotify_app.persistence.status_store import StatusStore
from tapnotify_app.sensors.provider import StaticSensorProvider
from tapnotify_app.state.models import PressEvent


class FakeTransport(HttpTransport):
    """Transport recording every request instead of touching the network."""

    def __init__(self, status_code: int = 200, error: Optional[Exception] = None,
                 delay_s: float = 0.0):
        super().__init__()
        self.status_code = status_code
        self.error = error
        self.delay_s = delay_s
        self.calls: List[dict] = []
        self._calls_lock = threading.Lock()

    def request(self, method, url, headers=None, body=None):
        with self._calls_lock:
            self.calls.append({
                "method": method,
                "url": url,
                "headers": dict(headers or {}),
                "body": body,
            })
        if self.delay_s:
            time.sleep(self.delay_s)
        if self.error is not None:
            raise self.error
        return HttpResponse(status_code=self.status_code, body="ok")


def fast_timing(**overrides) -> TimingParams:
    """Millisecond-scale windows so cycles finish quickly under test."""
    values = dict(
        executing_timeout_ms=300,
        rapid_click_window_ms=2000,
        rapid_click_count=3,
        grace_delay_ms=20,
        success_visibility_ms=40,
        error_visibility_ms=50,
        crash_visibility_ms=80,
        trailing_delay_ms=10,
        recovery_hold_ms=30,
    )
    values.update(overrides)
    return TimingParams(**values)


def make_action_store(path: Path, actions: List[ActionDefinition]) -> ActionStore:
    store = ActionStore(str(path))
    store.save(actions)
    return store


def webhook_action(action_id: int = 0, **kwargs) -> ActionDefinition:
    values = dict(
        id=action_id,
        name=f"action-{action_id}",
        url="https://hooks.example.com/ride",
        post="event: %status%",
        header="Content-Type: application/json",
        enabled=True,
    )
    values.update(kwargs)
    return ActionDefinition(**values)


@pytest.fixture
def timing() -> TimingParams:
    return fast_timing()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def status_store(tmp_path) -> StatusStore:
    return StatusStore(str(tmp_path / "status.db"))


@pytest.fixture
def action_store(tmp_path) -> ActionStore:
    return make_action_store(tmp_path / "actions.json", [webhook_action(0)])


@pytest.fixture
def sensors() -> StaticSensorProvider:
    return StaticSensorProvider(SensorParams(
        current_lat=52.5200,
        current_lng=13.4050,
        home_lat=52.5203,
        home_lng=13.4052,
        remaining_distance_m=1500.0,
        distance_units="metric",
    ))


@pytest.fixture
def transport_error() -> TransportError:
    return TransportError("Network error: timed out", url="https://hooks.example.com/ride")


async def wait_for_status(store: ActionStore, action_id: int, status, timeout: float = 2.0) -> None:
    """Poll the status mirror until it shows status."""
    async def _poll():
        while store.status(action_id) != status:
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout)


def press_event(store: ActionStore, action_id: int, message_text: str = "") -> PressEvent:
    """Press event as a button surface builds it from the mirror."""
    action = store.get(action_id)
    return PressEvent(
        action_id=action_id,
        observed_status=store.status(action_id),
        message_text=message_text,
        webhook_url=action.url if action else "",
        webhook_enabled=action.enabled if action else False,
    )
