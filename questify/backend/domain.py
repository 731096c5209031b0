from enum import StrEnum
from typing import Any, Dict, Optional


class Level(StrEnum):
    EASY = "Easy"
    NORMAL = "Normal"
    HARD = "Hard"


class Group(StrEnum):
    HEALTH = "HEALTH"
    FAMILY = "FAMILY"
    STUFF = "STUFF"
    LEARNING = "LEARNING"
    LEISURE = "LEISURE"
    WORK = "WORK"


class TaskType(StrEnum):
    TASK = "TASK"
    CHALLENGE = "CHALLENGE"


class User:
    """Represents a registered account and its current session token."""

    def __init__(self, id: str, name: str, email: str, password_hash: str,
                 token: Optional[str], created_at: str, updated_at: str):
        self.id = id
        self.name = name
        self.email = email
        self.password_hash = password_hash
        self.token = token
        self.created_at = created_at
        self.updated_at = updated_at

    def to_dict(self) -> Dict[str, str]:
        """Public view of the user; the hash and token never leave the service."""
        return {"name": self.name, "email": self.email}


class Task:
    """Represents a single task object."""

    def __init__(self, id: str, level: str, group: str, type: str, name: str,
                 date: str, progress: bool, created_at: str, updated_at: str):
        self.id = id
        self.level = level
        self.group = group
        self.type = type
        self.name = name
        self.date = date
        self.progress = progress
        self.created_at = created_at
        self.updated_at = updated_at

    def to_dict(self) -> Dict[str, Any]:
        """Convert task to dictionary representation."""
        return {
            "id": self.id,
            "level": self.level,
            "group": self.group,
            "type": self.type,
            "name": self.name,
            "date": self.date,
            "progress": self.progress,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


class QuestifyError(Exception):
    """Base for errors that map directly onto an HTTP status and message body."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Any = None):
        self.message = self.default_message if message is None else message
        super().__init__(self.message if isinstance(self.message, str) else self.default_message)


class ValidationError(QuestifyError):
    """Request payload failed its schema; ``message`` holds the violation list."""

    status_code = 400
    default_message = "Validation failed"

    def __init__(self, violations):
        self.violations = list(violations)
        super().__init__([v.model_dump() for v in self.violations])


class EmailInUse(QuestifyError):
    status_code = 409
    default_message = "Email in use"


class InvalidCredentials(QuestifyError):
    status_code = 401
    default_message = "Email or password is wrong"


class Unauthorized(QuestifyError):
    status_code = 401
    default_message = "Not authorized"


class NotFound(QuestifyError):
    status_code = 404
    default_message = "Not found"

    @classmethod
    def task(cls, task_id: str) -> "NotFound":
        return cls(f"Task with id: '{task_id}' does not exist")
