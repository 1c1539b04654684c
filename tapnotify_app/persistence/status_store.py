"""Durable status checkpoints that survive process death."""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from ..errors import PersistenceError
from ..logging.config import get_logger
from ..state.models import ActionStatus, StatusEntry


class StatusStore:
    """SQLite-backed mapping of action id to (status, resume-at)."""

    def __init__(self, db_path: str = "tapnotify_status.db"):
        self.db_path = Path(db_path)
        self.logger = get_logger("tapnotify.status_store")
        self._lock = threading.Lock()

        self._init_database()

    def _init_database(self) -> None:
        """Initialize database schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._get_connection("init") as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS action_status (
                    action_id INTEGER PRIMARY KEY,
                    status TEXT NOT NULL,
                    resume_at_ms INTEGER NOT NULL
                )
            """)
            conn.commit()

    @contextmanager
    def _get_connection(self, operation: str):
        """Get database connection, translating sqlite errors."""
        conn = None
        try:
            conn = sqlite3.connect(self.db_path, timeout=30.0)
            conn.row_factory = sqlite3.Row
            yield conn
        except sqlite3.Error as e:
            if conn:
                conn.rollback()
            self.logger.error("Database error", operation=operation, error=str(e))
            raise PersistenceError(
                f"Status store {operation} failed: {e}",
                operation=operation,
                target=str(self.db_path)
            ) from e
        finally:
            if conn:
                conn.close()

    def get(self, action_id: int) -> tuple[Optional[ActionStatus], Optional[int]]:
        """
        Read the checkpoint for an action.

        Returns:
            (status, resume_at_ms), or (None, None) when nothing is stored
        """
        with self._get_connection("get") as conn:
            row = conn.execute(
                "SELECT status, resume_at_ms FROM action_status WHERE action_id = ?",
                (action_id,)
            ).fetchone()

        if row is None:
            return None, None

        try:
            return ActionStatus(row["status"]), row["resume_at_ms"]
        except ValueError:
            self.logger.warning(
                "Ignoring unknown stored status",
                action_id=action_id,
                status=row["status"]
            )
            return None, None

    def set(self, action_id: int, status: ActionStatus, resume_at_ms: int) -> None:
        """Write (or overwrite) the checkpoint for an action."""
        with self._lock:
            with self._get_connection("set") as conn:
                conn.execute("""
                    INSERT INTO action_status (action_id, status, resume_at_ms)
                    VALUES (?, ?, ?)
                    ON CONFLICT(action_id) DO UPDATE SET
                        status = excluded.status,
                        resume_at_ms = excluded.resume_at_ms
                """, (action_id, ActionStatus(status).value, int(resume_at_ms)))
                conn.commit()

        self.logger.debug(
            "Status checkpoint stored",
            action_id=action_id,
            status=ActionStatus(status).value,
            resume_at_ms=resume_at_ms
        )

    def clear(self, action_id: int) -> None:
        """Remove the checkpoint for an action; missing entries are fine."""
        with self._lock:
            with self._get_connection("clear") as conn:
                conn.execute(
                    "DELETE FROM action_status WHERE action_id = ?", (action_id,)
                )
                conn.commit()

        self.logger.debug("Status checkpoint cleared", action_id=action_id)

    def pending(self) -> list[StatusEntry]:
        """All stored checkpoints; rows with an unknown status are dropped."""
        with self._get_connection("pending") as conn:
            rows = conn.execute(
                "SELECT action_id, status, resume_at_ms FROM action_status ORDER BY action_id"
            ).fetchall()

        entries = []
        for row in rows:
            try:
                status = ActionStatus(row["status"])
            except ValueError:
                self.logger.warning(
                    "Clearing checkpoint with unknown status",
                    action_id=row["action_id"],
                    status=row["status"]
                )
                self.clear(row["action_id"])
                continue
            entries.append(StatusEntry(
                action_id=row["action_id"],
                status=status,
                resume_at_ms=row["resume_at_ms"]
            ))

        return entries
