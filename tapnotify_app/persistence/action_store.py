"""
Action configuration document and status mirror.

The document is an ordered JSON list of action definitions. Each entry also
carries the status last committed for it, so any renderer can reflect it
back; status changes are pushed to subscribers registered through watch().
"""

import asyncio
import os
import threading
from pathlib import Path
from typing import Optional

import orjson

from ..config.actions import ActionDefinition
from ..errors import PersistenceError
from ..logging.config import get_logger
from ..state.models import ActionStatus


class StatusSubscription:
    """Change feed of one action's status; iterate it or await get()."""

    def __init__(self, store: "ActionStore", action_id: int):
        self.action_id = action_id
        self._store = store
        self._queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    def _push(self, status: ActionStatus) -> None:
        self._queue.put_nowait(status)

    async def get(self) -> ActionStatus:
        return await self._queue.get()

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._store._unsubscribe(self)

    def __aiter__(self):
        return self

    async def __anext__(self) -> ActionStatus:
        if self.closed:
            raise StopAsyncIteration
        return await self.get()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


class ActionStore:
    """JSON document store with list semantics, keyed by action id."""

    def __init__(self, path: str = "tapnotify_actions.json"):
        self.path = Path(path)
        self.logger = get_logger("tapnotify.action_store")
        self._lock = threading.Lock()
        self._actions: list[ActionDefinition] = self._read()
        self._watchers: dict[int, list[StatusSubscription]] = {}

    def _read(self) -> list[ActionDefinition]:
        if not self.path.exists():
            return []
        try:
            raw = orjson.loads(self.path.read_bytes())
        except (OSError, orjson.JSONDecodeError) as e:
            raise PersistenceError(
                f"Cannot read action document: {e}",
                operation="read",
                target=str(self.path)
            ) from e
        return [ActionDefinition.from_dict(item) for item in raw]

    def _write(self, actions: list[ActionDefinition]) -> None:
        payload = orjson.dumps([a.to_dict() for a in actions], option=orjson.OPT_INDENT_2)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise PersistenceError(
                f"Cannot write action document: {e}",
                operation="write",
                target=str(self.path)
            ) from e

    def load(self) -> list[ActionDefinition]:
        """Current ordered list of action definitions."""
        with self._lock:
            return list(self._actions)

    def get(self, action_id: int) -> Optional[ActionDefinition]:
        with self._lock:
            return next((a for a in self._actions if a.id == action_id), None)

    def save(self, actions: list[ActionDefinition]) -> None:
        """Replace the whole document and notify watchers of status changes."""
        with self._lock:
            previous = {a.id: a.status for a in self._actions}
            self._actions = list(actions)
            self._write(self._actions)

        for action in actions:
            if previous.get(action.id) != action.status:
                self._notify(action.id, action.status)

    def status(self, action_id: int) -> ActionStatus:
        """Mirrored status of an action, IDLE when it is unknown."""
        action = self.get(action_id)
        return action.status if action else ActionStatus.IDLE

    def update_status(self, action_id: int, status: ActionStatus) -> bool:
        """
        Read-modify-write the status of one action.

        The in-memory mirror and its watchers are updated before the document
        is written, so a failed write still leaves the observable status
        current; the PersistenceError is raised afterwards.

        Returns:
            False when no action has this id
        """
        with self._lock:
            index = next(
                (i for i, a in enumerate(self._actions) if a.id == action_id), None
            )
            if index is None:
                return False
            changed = self._actions[index].status != status
            self._actions[index] = self._actions[index].with_status(status)

            if changed:
                self._notify(action_id, status)

            self._write(self._actions)

        self.logger.debug("Action status mirrored", action_id=action_id, status=status.value)
        return True

    def watch(self, action_id: int) -> StatusSubscription:
        """Subscribe to status changes of one action, starting now."""
        subscription = StatusSubscription(self, action_id)
        self._watchers.setdefault(action_id, []).append(subscription)
        return subscription

    def _unsubscribe(self, subscription: StatusSubscription) -> None:
        watchers = self._watchers.get(subscription.action_id, [])
        if subscription in watchers:
            watchers.remove(subscription)

    def _notify(self, action_id: int, status: ActionStatus) -> None:
        for subscription in list(self._watchers.get(action_id, [])):
            subscription._push(status)
