import logging
import sqlite3
from typing import Any, Dict, List, Optional, Tuple

import jwt

from .config import Settings
from .domain import EmailInUse, InvalidCredentials, NotFound, Task, Unauthorized, User
from .security import create_token, decode_token, hash_password, verify_password
from .store import CredentialStore, TaskStore
from .utils import iso_date
from .validation import CreateTaskSchema, EditTaskSchema, LoginSchema, RegisterSchema, parse

logger = logging.getLogger(__name__)


class AuthService:
    """Handles user registration, login, logout, and bearer-token validation."""

    def __init__(self, users: CredentialStore, settings: Settings):
        self.users = users
        self.settings = settings

    def register(self, payload: Any) -> User:
        data = parse(RegisterSchema, payload)
        if self.users.find_by_email(data.email):
            raise EmailInUse()
        password_hash = hash_password(data.password, rounds=self.settings.bcrypt_rounds)
        try:
            user = self.users.create_user(data.name, data.email, password_hash)
        except sqlite3.IntegrityError:
            # Lost a race with a concurrent registration for the same email.
            raise EmailInUse() from None
        logger.info("User registered id=%s", user.id)
        return user

    def login(self, payload: Any) -> Tuple[str, User]:
        data = parse(LoginSchema, payload)
        user = self.users.find_by_email(data.email)
        if not user or not verify_password(data.password, user.password_hash):
            logger.warning("Failed login attempt")
            raise InvalidCredentials()

        token = create_token(
            user.id,
            self.settings.db_secret_key,
            expires_in=self.settings.token_expires_in,
            algorithm=self.settings.jwt_algorithm,
        )
        self.users.set_token(user.id, token)
        user.token = token
        logger.info("User logged in id=%s", user.id)
        return token, user

    def logout(self, user: User) -> None:
        self.users.set_token(user.id, None)
        user.token = None
        logger.info("User logged out id=%s", user.id)

    def authenticate(self, authorization: Optional[str]) -> User:
        """
        Resolve the user behind an ``Authorization: Bearer <token>`` header.

        Any failure (wrong scheme, missing/garbled/expired token, unknown
        user, user logged out) raises Unauthorized.

        By default a user counts as logged in while *some* token is stored for
        them, so an older unexpired token keeps working after a re-login.
        ``strict_session_tokens`` additionally requires the presented token to
        be the stored one.
        """
        scheme, _, token = (authorization or "").partition(" ")
        if scheme != "Bearer" or not token:
            logger.debug("Rejected authorization: missing bearer token")
            raise Unauthorized()

        try:
            user_id = decode_token(token, self.settings.db_secret_key, self.settings.jwt_algorithm)
        except jwt.InvalidTokenError as e:
            logger.debug("Rejected authorization: %s", type(e).__name__)
            raise Unauthorized() from None

        user = self.users.find_by_id(user_id)
        if not user or not user.token:
            logger.debug("Rejected authorization: no active session")
            raise Unauthorized()
        if self.settings.strict_session_tokens and user.token != token:
            logger.debug("Rejected authorization: superseded token")
            raise Unauthorized()
        return user

    def current_user(self, user: User) -> Dict[str, str]:
        return user.to_dict()


class TaskService:
    """Validated create/list/update/delete/finish over the task store."""

    def __init__(self, tasks: TaskStore):
        self.tasks = tasks

    def list_tasks(self) -> List[Task]:
        return self.tasks.list_tasks()

    def create_task(self, payload: Any) -> Task:
        data = parse(CreateTaskSchema, payload)
        task = self.tasks.add_task(
            level=data.level.value,
            group=data.group.value,
            type=data.type.value,
            name=data.name,
            date=iso_date(data.date),
            progress=data.progress,
        )
        logger.info("Task created id=%s", task.id)
        return task

    def update_task(self, task_id: str, payload: Any) -> None:
        changes = parse(EditTaskSchema, payload).changes()
        if "date" in changes:
            changes["date"] = iso_date(changes["date"])
        for key in ("level", "group", "type"):
            if key in changes:
                changes[key] = changes[key].value
        if not self.tasks.update_task(task_id, changes):
            raise NotFound.task(task_id)
        logger.info("Task updated id=%s fields=%s", task_id, sorted(changes))

    def delete_task(self, task_id: str) -> None:
        if not self.tasks.delete_task(task_id):
            raise NotFound.task(task_id)
        logger.info("Task deleted id=%s", task_id)

    def finish_task(self, task_id: str) -> None:
        if not self.tasks.update_task(task_id, {"progress": True}):
            raise NotFound.task(task_id)
        logger.info("Task finished id=%s", task_id)
