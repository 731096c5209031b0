from typing import List, Union

from pydantic import BaseModel

from .validation import Violation

class UserData(BaseModel):
    name: str
    email: str

class UserResponse(BaseModel):
    user: UserData

class LoginResponse(BaseModel):
    token: str
    user: UserData

class TaskData(BaseModel):
    id: str
    level: str
    group: str
    type: str
    name: str
    date: str
    progress: bool
    createdAt: str
    updatedAt: str

class TaskResponse(BaseModel):
    task: TaskData

class TasksListResponse(BaseModel):
    tasks: List[TaskData]

class MessageResponse(BaseModel):
    message: Union[str, List[Violation]]

class HealthResponse(BaseModel):
    status: str
    timestamp: str
    users_count: int
    tasks_count: int
