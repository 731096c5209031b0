import contextlib
import logging
import sqlite3
import threading
from typing import Any, Dict, Iterator, List, Optional

from .domain import Task, User
from .utils import make_id, time_now

logger = logging.getLogger(__name__)

# Task field -> column. "group" and "type" are kept out of raw SQL.
TASK_COLUMNS = {
    "level": "level",
    "group": "task_group",
    "type": "task_type",
    "name": "name",
    "date": "date",
    "progress": "progress",
}

IN_MEMORY_PATHS = ("", ":memory:")


class SQLiteStore:
    """
    Shared SQLite plumbing for the stores.

    Each operation opens its own connection; writes are serialized with a
    lock so a read-then-write sequence inside one method is not interleaved
    with another write from this process.
    """

    def __init__(self, db_path: str = "questify.db"):
        self.db_path = str(db_path)
        if self.db_path in IN_MEMORY_PATHS:
            # Every operation opens a new connection, and each in-memory
            # connection would see its own empty database.
            raise ValueError(f"SQLite path {self.db_path!r} is not supported; use a database file")
        self.lock = threading.Lock()
        self._create_table()

    @contextlib.contextmanager
    def _get_db_connection(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute('PRAGMA journal_mode=WAL;')
        conn.execute('PRAGMA synchronous=FULL;')
        try:
            yield conn
        finally:
            conn.close()

    def _create_table(self) -> None:
        raise NotImplementedError

    def _count(self, table: str) -> int:
        with self._get_db_connection() as conn:
            (n,) = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()
            return int(n)


class CredentialStore(SQLiteStore):
    """Persists user records. ``email`` is unique at the schema level."""

    def _create_table(self) -> None:
        with self._get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                email TEXT UNIQUE NOT NULL,
                password_hash TEXT NOT NULL,
                token TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """)
            conn.commit()

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            password_hash=row["password_hash"],
            token=row["token"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def count_users(self) -> int:
        return self._count("users")

    def find_by_email(self, email: str) -> Optional[User]:
        with self._get_db_connection() as conn:
            row = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
        return self._row_to_user(row) if row else None

    def find_by_id(self, user_id: str) -> Optional[User]:
        with self._get_db_connection() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return self._row_to_user(row) if row else None

    def create_user(self, name: str, email: str, password_hash: str) -> User:
        """
        Insert a new user with no active session.

        Raises sqlite3.IntegrityError when ``email`` is already taken.
        """
        now = time_now()
        user = User(make_id("usr"), name, email, password_hash, None, now, now)
        with self.lock:
            with self._get_db_connection() as conn:
                try:
                    conn.execute(
                        "INSERT INTO users (id, name, email, password_hash, token, created_at, updated_at) "
                        "VALUES (?, ?, ?, ?, ?, ?, ?)",
                        (user.id, user.name, user.email, user.password_hash, None, now, now),
                    )
                    conn.commit()
                except sqlite3.Error:
                    conn.rollback()
                    raise
        logger.debug("User stored id=%s", user.id)
        return user

    def set_token(self, user_id: str, token: Optional[str]) -> bool:
        """Store (or clear, with None) the session token. Returns False if no such user."""
        with self.lock:
            with self._get_db_connection() as conn:
                cursor = conn.execute(
                    "UPDATE users SET token = ?, updated_at = ? WHERE id = ?",
                    (token, time_now(), user_id),
                )
                conn.commit()
                return cursor.rowcount == 1


class TaskStore(SQLiteStore):
    """Persists task records."""

    def _create_table(self) -> None:
        with self._get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
            CREATE TABLE IF NOT EXISTS tasks (
                id TEXT PRIMARY KEY,
                level TEXT NOT NULL,
                task_group TEXT NOT NULL,
                task_type TEXT NOT NULL DEFAULT 'TASK',
                name TEXT NOT NULL,
                date TEXT NOT NULL,
                progress INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """)
            conn.commit()

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=row["id"],
            level=row["level"],
            group=row["task_group"],
            type=row["task_type"],
            name=row["name"],
            date=row["date"],
            progress=bool(row["progress"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def count_tasks(self) -> int:
        return self._count("tasks")

    def list_tasks(self) -> List[Task]:
        with self._get_db_connection() as conn:
            rows = conn.execute("SELECT * FROM tasks").fetchall()
        return [self._row_to_task(r) for r in rows]

    def get_task(self, task_id: str) -> Optional[Task]:
        with self._get_db_connection() as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        return self._row_to_task(row) if row else None

    def add_task(self, level: str, group: str, type: str, name: str, date: str,
                 progress: bool = False) -> Task:
        now = time_now()
        task = Task(make_id("task"), level, group, type, name, date, progress, now, now)
        with self.lock:
            with self._get_db_connection() as conn:
                try:
                    conn.execute(
                        "INSERT INTO tasks (id, level, task_group, task_type, name, date, progress, "
                        "created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                        (task.id, level, group, type, name, date, int(progress), now, now),
                    )
                    conn.commit()
                except sqlite3.Error:
                    conn.rollback()
                    raise
        return task

    def update_task(self, task_id: str, fields: Dict[str, Any]) -> bool:
        """
        Apply ``fields`` to one task, leaving every other column untouched.

        Returns True when a task with ``task_id`` exists (even if ``fields``
        is empty), False otherwise.
        """
        sets: List[str] = []
        params: List[Any] = []
        for field, value in fields.items():
            column = TASK_COLUMNS.get(field)
            if column is None:
                raise KeyError(f"Unknown task field: {field}")
            sets.append(f"{column} = ?")
            params.append(int(value) if field == "progress" else value)

        sets.append("updated_at = ?")
        params.append(time_now())
        params.append(task_id)

        with self.lock:
            with self._get_db_connection() as conn:
                cursor = conn.execute(f"UPDATE tasks SET {', '.join(sets)} WHERE id = ?", params)
                conn.commit()
                return cursor.rowcount == 1

    def delete_task(self, task_id: str) -> bool:
        with self.lock:
            with self._get_db_connection() as conn:
                cursor = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
                conn.commit()
                return cursor.rowcount == 1
