#!/usr/bin/env python3
"""
Basic Usage Example - TapNotify

This script demonstrates the double-tap flow against a local webhook
receiver. It shows how to:
- Configure an action slot and build the engine
- Arm an action with a first press and fire it with a second
- Watch the mirrored status move through EXECUTING, SUCCESS and back to IDLE
- Fire a ride lifecycle event

Run: python examples/basic_usage.py
"""

import asyncio
import tempfile
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path

from tapnotify_app.config.actions import ActionDefinition
from tapnotify_app.engine import TapNotifyEngine
from tapnotify_app.logging.config import configure_logging
from tapnotify_app.persistence.action_store import ActionStore
from tapnotify_app.state.models import ActionStatus

received = []


class WebhookReceiver(BaseHTTPRequestHandler):
    """Records every POST it receives."""

    def do_POST(self):
        length = int(self.headers.get("Content-Length", 0))
        received.append(self.rfile.read(length).decode("utf-8"))
        self.send_response(200)
        self.end_headers()
        self.wfile.write(b"ok")

    def log_message(self, format, *args):
        pass


def start_receiver() -> HTTPServer:
    server = HTTPServer(("127.0.0.1", 0), WebhookReceiver)
    threading.Thread(target=server.serve_forever, daemon=True).start()
    return server


async def watch_statuses(engine: TapNotifyEngine, action_id: int) -> None:
    with engine.action_store.watch(action_id) as subscription:
        async for status in subscription:
            print(f"   📟 Action {action_id} is now {status.value}")
            if status == ActionStatus.IDLE:
                return


async def run_demo(work_dir: Path, webhook_url: str) -> None:
    actions_path = work_dir / "actions.json"
    ActionStore(str(actions_path)).save([
        ActionDefinition(
            id=0,
            name="Arriving home",
            url=webhook_url,
            post="event: %status%\nremaining: #dst#",
            header="Content-Type: application/json",
            enabled=True,
            action_on_start=True,
            status_text_on_start="ride_started",
        )
    ])

    print("1. Initializing the engine...")
    engine = TapNotifyEngine.from_config_dir(
        work_dir,
        overrides={
            "timing": {"grace_delay_ms": 1000, "success_visibility_ms": 1000},
            "storage": {
                "status_db_path": str(work_dir / "status.db"),
                "actions_path": str(actions_path),
            },
            "sensors": {"remaining_distance_m": 2400.0},
            "logging": {"level": "WARNING"},
        },
    )
    await engine.start()
    print()

    print("2. Pressing the button twice...")
    watcher = asyncio.create_task(watch_statuses(engine, 0))
    await asyncio.sleep(0)
    await engine.press(0)
    await engine.press(0)
    await watcher
    print(f"   Webhook bodies received: {received}")
    print()

    print("3. Firing the 'start' lifecycle event...")
    outcomes = await engine.handle_lifecycle_event("start")
    print(f"   Outcomes: {outcomes}")
    print(f"   Webhook bodies received: {received}")
    print()

    print("4. Delivery stats:")
    for name, stats in engine.get_stats().items():
        print(f"   {name}: {stats['delivery_count']} delivered, {stats['error_count']} failed")

    await engine.close()


def main():
    """Main demo function."""
    print("🚀 TapNotify - Basic Usage Demo")
    print("=" * 60)
    configure_logging(level="WARNING")

    server = start_receiver()
    url = f"http://127.0.0.1:{server.server_port}/hook"
    try:
        with tempfile.TemporaryDirectory() as work_dir:
            asyncio.run(run_demo(Path(work_dir), url))
    finally:
        server.shutdown()

    print("\n✅ Demo completed")


if __name__ == "__main__":
    main()
