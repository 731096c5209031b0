import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Header, Request, Response, status
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .config import DEFAULT_SECRET_KEY, Settings
from .domain import QuestifyError, User
from .logging_setup import setup_logging
from .models import (
    HealthResponse, LoginResponse, MessageResponse, TaskResponse, TasksListResponse, UserData,
    UserResponse,
)
from .services import AuthService, TaskService
from .store import CredentialStore, TaskStore
from .utils import time_now
from .validation import to_violations

logger = logging.getLogger(__name__)

ERROR_RESPONSES: Dict[int, Dict[str, Any]] = {
    400: {"model": MessageResponse},
    401: {"model": MessageResponse},
    404: {"model": MessageResponse},
    409: {"model": MessageResponse},
}

auth_router = APIRouter(tags=["auth"], responses=ERROR_RESPONSES)
tasks_router = APIRouter(prefix="/tasks", tags=["tasks"], responses=ERROR_RESPONSES)
system_router = APIRouter(tags=["system"])


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service

def get_task_service(request: Request) -> TaskService:
    return request.app.state.task_service

def get_current_user(request: Request, authorization: Optional[str] = Header(None),
                     auth: AuthService = Depends(get_auth_service)) -> User:
    """Bearer-token guard for protected routes; the user is also kept on ``request.state``."""
    user = auth.authenticate(authorization)
    request.state.user = user
    return user


# -------------------------------
# Auth routes
# -------------------------------

@auth_router.post("/signup", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def signup(payload: Dict[str, Any] = Body(...), auth: AuthService = Depends(get_auth_service)):
    # bcrypt blocks; run it in the threadpool.
    user = await run_in_threadpool(auth.register, payload)
    return UserResponse(user=UserData(**user.to_dict()))

@auth_router.post("/login", response_model=LoginResponse)
async def login(payload: Dict[str, Any] = Body(...), auth: AuthService = Depends(get_auth_service)):
    token, user = await run_in_threadpool(auth.login, payload)
    return LoginResponse(token=token, user=UserData(**user.to_dict()))

@auth_router.get("/logout", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def logout(user: User = Depends(get_current_user), auth: AuthService = Depends(get_auth_service)):
    auth.logout(user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@auth_router.get("/current", response_model=UserData)
async def current(user: User = Depends(get_current_user), auth: AuthService = Depends(get_auth_service)):
    return auth.current_user(user)


# -------------------------------
# Task routes
# -------------------------------

@tasks_router.get("", response_model=TasksListResponse)
@tasks_router.get("/", response_model=TasksListResponse, include_in_schema=False)
async def list_tasks(_: User = Depends(get_current_user), tasks: TaskService = Depends(get_task_service)):
    return {"tasks": [t.to_dict() for t in tasks.list_tasks()]}

@tasks_router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
@tasks_router.post("/", response_model=TaskResponse, status_code=status.HTTP_201_CREATED,
                   include_in_schema=False)
async def create_task(payload: Dict[str, Any] = Body(...), _: User = Depends(get_current_user),
                      tasks: TaskService = Depends(get_task_service)):
    return {"task": tasks.create_task(payload).to_dict()}

@tasks_router.patch("/{task_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def update_task(task_id: str, payload: Dict[str, Any] = Body(...), _: User = Depends(get_current_user),
                      tasks: TaskService = Depends(get_task_service)):
    tasks.update_task(task_id, payload)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@tasks_router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def delete_task(task_id: str, _: User = Depends(get_current_user),
                      tasks: TaskService = Depends(get_task_service)):
    tasks.delete_task(task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@tasks_router.post("/{task_id}/finish", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def finish_task(task_id: str, _: User = Depends(get_current_user),
                      tasks: TaskService = Depends(get_task_service)):
    tasks.finish_task(task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# -------------------------------
# System routes
# -------------------------------

@system_router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    return HealthResponse(
        status="healthy",
        timestamp=time_now(),
        users_count=request.app.state.credential_store.count_users(),
        tasks_count=request.app.state.task_store.count_tasks(),
    )


# -------------------------------
# Error translation
# -------------------------------

async def questify_error_handler(request: Request, exc: QuestifyError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    violations = to_violations(exc.errors(), strip=("body",))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": [v.model_dump() for v in violations]},
    )

async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


# -------------------------------
# Application factory
# -------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    logger.info(
        "Database connection successful db=%s users=%s tasks=%s",
        settings.db_path,
        app.state.credential_store.count_users(),
        app.state.task_store.count_tasks(),
    )
    yield
    logger.info("Questify API shutting down")

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()
    if not logging.getLogger().handlers:
        setup_logging(settings.log_level, settings.log_file)
    if settings.db_secret_key == DEFAULT_SECRET_KEY:
        logger.warning("DB_SECRET_KEY is not set; tokens are signed with the default development key")

    app = FastAPI(title="Questify API", description="Task tracking with token-based sessions",
                  version="1.0.0", lifespan=lifespan)

    credential_store = CredentialStore(settings.db_path)
    task_store = TaskStore(settings.db_path)
    app.state.settings = settings
    app.state.credential_store = credential_store
    app.state.task_store = task_store
    app.state.auth_service = AuthService(credential_store, settings)
    app.state.task_service = TaskService(task_store)

    app.include_router(auth_router, prefix=settings.api_prefix)
    app.include_router(tasks_router, prefix=settings.api_prefix)
    app.include_router(system_router, prefix=settings.api_prefix)

    app.add_exception_handler(QuestifyError, questify_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
    return app

def run() -> None:
    """Console entry point: serve the app with uvicorn on the configured host/port."""
    import uvicorn

    settings = Settings()
    setup_logging(settings.log_level, settings.log_file)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


app = create_app()

if __name__ == "__main__":
    run()
