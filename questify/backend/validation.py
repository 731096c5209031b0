"""
Request payload schemas and the violation format shared by every route.

A schema is a pydantic model; ``validate`` checks an untyped payload against
one and reports a list of violations, ``parse`` returns the validated model or
raises the domain ``ValidationError``.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Type, TypeVar, Union

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from .domain import Group, Level, TaskType, ValidationError

S = TypeVar("S", bound=BaseModel)

_PLAIN = (str, int, float, bool, type(None))


class Violation(BaseModel):
    """One failed constraint: where it failed, what kind of failure, and why."""

    message: str
    path: List[Union[str, int]]
    type: str
    context: Dict[str, Any] = {}


class _Schema(BaseModel):
    model_config = ConfigDict(extra="forbid")


class RegisterSchema(_Schema):
    name: str = Field(min_length=1)
    email: str = Field(min_length=1)
    password: str = Field(min_length=6)


class LoginSchema(_Schema):
    email: str = Field(min_length=1)
    password: str = Field(min_length=6)


class CreateTaskSchema(_Schema):
    level: Level
    group: Group
    type: TaskType = TaskType.TASK
    name: str = Field(min_length=6)
    date: datetime
    progress: bool = False


class EditTaskSchema(_Schema):
    # Absent fields stay None and are left out of the patch; an explicit null
    # still fails because None is not a valid value for any of these types.
    level: Level = None
    group: Group = None
    type: TaskType = None
    name: str = Field(default=None, min_length=6)
    date: datetime = None
    progress: bool = None

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


def _context_value(value: Any) -> Any:
    if isinstance(value, _PLAIN):
        return value
    if isinstance(value, (list, tuple)) and all(isinstance(v, _PLAIN) for v in value):
        return list(value)
    return str(value)


def to_violations(errors: Iterable[Dict[str, Any]], strip: Sequence[str] = ()) -> List[Violation]:
    """
    Convert pydantic/FastAPI error dicts into violations.

    ``strip`` drops leading location parts such as FastAPI's ``"body"``.
    """
    violations = []
    for err in errors:
        path = list(err.get("loc", ()))
        while path and path[0] in strip:
            path.pop(0)
        key = path[-1] if path else None
        label = ".".join(str(p) for p in path) if path else "value"

        context: Dict[str, Any] = {"key": key, "label": label}
        if err.get("type") != "missing" and "input" in err:
            context["value"] = _context_value(err["input"])
        for name, value in (err.get("ctx") or {}).items():
            context[name] = _context_value(value)

        violations.append(Violation(
            message=f'"{label}" {err.get("msg", "is invalid")}',
            path=path,
            type=err.get("type", "value_error"),
            context=context,
        ))
    return violations


def validate(schema: Type[BaseModel], payload: Any) -> Optional[List[Violation]]:
    """Return None when ``payload`` satisfies ``schema``, otherwise its violations."""
    try:
        schema.model_validate(payload)
    except pydantic.ValidationError as e:
        return to_violations(e.errors(include_url=False))
    return None


def parse(schema: Type[S], payload: Any) -> S:
    try:
        return schema.model_validate(payload)
    except pydantic.ValidationError as e:
        raise ValidationError(to_violations(e.errors(include_url=False))) from None
