"""Tests for the action document and status mirror."""

import asyncio

import orjson
import pytest

from conftest import make_action_store, webhook_action
from tapnotify_app.config.actions import ActionDefinition
from tapnotify_app.errors import PersistenceError
from tapnotify_app.persistence.action_store import ActionStore
from tapnotify_app.state.models import ActionStatus


class TestActionStore:
    """Test ActionStore class."""

    def test_missing_document_is_empty(self, tmp_path):
        store = ActionStore(str(tmp_path / "actions.json"))

        assert store.load() == []
        assert store.get(0) is None
        assert store.status(0) == ActionStatus.IDLE

    def test_save_and_reload(self, tmp_path):
        path = tmp_path / "actions.json"
        make_action_store(path, [webhook_action(0), webhook_action(1, name="garage")])

        reopened = ActionStore(str(path))

        assert [a.id for a in reopened.load()] == [0, 1]
        assert reopened.get(1).name == "garage"

    def test_document_is_a_json_list(self, tmp_path):
        path = tmp_path / "actions.json"
        make_action_store(path, [webhook_action(0)])

        document = orjson.loads(path.read_bytes())

        assert isinstance(document, list)
        assert document[0]["id"] == 0
        assert document[0]["status"] == "IDLE"

    def test_unknown_fields_are_ignored(self, tmp_path):
        path = tmp_path / "actions.json"
        path.write_bytes(orjson.dumps([{"id": 3, "url": "https://x.io", "color": "red",
                                        "status": "WEIRD"}]))

        store = ActionStore(str(path))

        assert store.get(3).url == "https://x.io"
        assert store.status(3) == ActionStatus.IDLE

    def test_corrupt_document_raises(self, tmp_path):
        path = tmp_path / "actions.json"
        path.write_text("{not json")

        with pytest.raises(PersistenceError):
            ActionStore(str(path))

    def test_update_status_persists(self, tmp_path):
        path = tmp_path / "actions.json"
        store = make_action_store(path, [webhook_action(0)])

        assert store.update_status(0, ActionStatus.FIRST) is True

        assert store.status(0) == ActionStatus.FIRST
        assert ActionStore(str(path)).status(0) == ActionStatus.FIRST

    def test_update_status_unknown_action(self, tmp_path):
        store = make_action_store(tmp_path / "actions.json", [webhook_action(0)])

        assert store.update_status(5, ActionStatus.FIRST) is False

    def test_failed_write_keeps_memory_current(self, tmp_path):
        store = make_action_store(tmp_path / "actions.json", [webhook_action(0)])
        store.path = tmp_path / "missing" / "dir" / "actions.json"
        (tmp_path / "missing").write_text("a file, not a directory")

        with pytest.raises(PersistenceError):
            store.update_status(0, ActionStatus.EXECUTING)

        assert store.status(0) == ActionStatus.EXECUTING

    def test_watchers_receive_changes(self, tmp_path):
        store = make_action_store(tmp_path / "actions.json", [webhook_action(0), webhook_action(1)])

        async def scenario():
            with store.watch(0) as subscription:
                store.update_status(1, ActionStatus.FIRST)
                store.update_status(0, ActionStatus.FIRST)
                store.update_status(0, ActionStatus.FIRST)
                store.update_status(0, ActionStatus.EXECUTING)
                first = await subscription.get()
                second = await subscription.get()
                pending = subscription._queue.qsize()
            return first, second, pending

        first, second, pending = asyncio.run(scenario())

        assert (first, second) == (ActionStatus.FIRST, ActionStatus.EXECUTING)
        assert pending == 0
        assert store._watchers[0] == []

    def test_save_notifies_status_changes(self, tmp_path):
        store = make_action_store(tmp_path / "actions.json", [webhook_action(0)])

        async def scenario():
            subscription = store.watch(0)
            store.save([webhook_action(0, status=ActionStatus.SUCCESS)])
            return await subscription.get()

        assert asyncio.run(scenario()) == ActionStatus.SUCCESS


class TestActionDefinition:
    """Test ActionDefinition dataclass."""

    def test_webhook_active_needs_url_and_enabled(self):
        assert ActionDefinition(id=0, url="https://x.io", enabled=True).webhook_active
        assert not ActionDefinition(id=0, url="https://x.io").webhook_active
        assert not ActionDefinition(id=0, enabled=True).webhook_active

    def test_trigger_for(self):
        action = ActionDefinition(id=0, action_on_start=True, status_text_on_start="leaving")

        assert action.trigger_for("start") == (True, "leaving")
        assert action.trigger_for("stop") == (False, "stop")
        assert action.trigger_for("custom") == (True, "custom")
        assert action.trigger_for("reboot") == (False, None)

    def test_dict_round_trip_keeps_status(self):
        action = webhook_action(2, status=ActionStatus.ERROR)

        assert ActionDefinition.from_dict(action.to_dict()) == action
