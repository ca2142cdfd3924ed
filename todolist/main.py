import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from . import __version__, config
from .auth import create_token, get_current_user
from .db import Task, TaskList, User, get_db, init_db
from .errors import TodoError, json_error
from .models import Identity, TaskUpdate
from .schemas import (
    AuthOut,
    CredentialsIn,
    ErrorEnvelope,
    Health,
    ImportantTaskOut,
    ListIn,
    ListOut,
    ReorderIn,
    TaskIn,
    TaskOut,
    TaskPatch,
    UserOut,
)
from .storage import Storage

logger = logging.getLogger(__name__)


# === Helpers ===


def get_storage(db: Session = Depends(get_db)) -> Storage:
    return Storage(db)


def auth_out(user: User) -> AuthOut:
    return AuthOut(user=UserOut.model_validate(user), token=create_token(user.id, user.username))


def list_out(task_list: TaskList) -> ListOut:
    return ListOut.model_validate(task_list)


def task_out(task: Task) -> TaskOut:
    return TaskOut.model_validate(task)


def important_out(task: Task, list_name: str) -> ImportantTaskOut:
    return ImportantTaskOut(**TaskOut.model_validate(task).model_dump(), list_name=list_name)


# === Health ===

public = APIRouter(responses={400: {"model": ErrorEnvelope}})


@public.get("/health", response_model=Health)
def health():
    return Health()


# === Auth endpoints ===


@public.post("/auth/register", response_model=AuthOut, status_code=201)
def register(payload: CredentialsIn, storage: Storage = Depends(get_storage)):
    user, _ = storage.register(payload.username, payload.password)
    return auth_out(user)


@public.post("/auth/login", response_model=AuthOut)
def login(payload: CredentialsIn, storage: Storage = Depends(get_storage)):
    user = storage.authenticate(payload.username, payload.password)
    logger.info("user %s logged in", user.username)
    return auth_out(user)


protected = APIRouter(
    dependencies=[Depends(get_current_user)],
    responses={401: {"model": ErrorEnvelope}, 404: {"model": ErrorEnvelope}},
)


@protected.get("/auth/me", response_model=UserOut)
def me(user: Identity = Depends(get_current_user), storage: Storage = Depends(get_storage)):
    return UserOut.model_validate(storage.get_user(user.id))


@protected.delete("/auth/me", status_code=204)
def delete_me(user: Identity = Depends(get_current_user), storage: Storage = Depends(get_storage)):
    storage.delete_user(user.id)
    return Response(status_code=204)


# === List endpoints ===


@protected.get("/lists", response_model=list[ListOut])
def get_lists(user: Identity = Depends(get_current_user), storage: Storage = Depends(get_storage)):
    return [list_out(lst) for lst in storage.list_lists(user.id)]


@protected.post("/lists", response_model=ListOut, status_code=201)
def create_list(
    payload: ListIn,
    user: Identity = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return list_out(storage.create_list(user.id, payload.name))


@protected.get("/lists/{list_id}", response_model=ListOut)
def get_list(
    list_id: int,
    user: Identity = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return list_out(storage.get_list(user.id, list_id))


@protected.put("/lists/{list_id}", response_model=ListOut)
def rename_list(
    list_id: int,
    payload: ListIn,
    user: Identity = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return list_out(storage.rename_list(user.id, list_id, payload.name))


@protected.delete("/lists/{list_id}", status_code=204)
def delete_list(
    list_id: int,
    user: Identity = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    storage.delete_list(user.id, list_id)
    return Response(status_code=204)


# === Task endpoints ===


@protected.get("/lists/{list_id}/tasks", response_model=list[TaskOut])
def get_tasks(
    list_id: int,
    user: Identity = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return [task_out(t) for t in storage.list_tasks(user.id, list_id)]


@protected.post("/lists/{list_id}/tasks", response_model=TaskOut, status_code=201)
def create_task(
    list_id: int,
    payload: TaskIn,
    user: Identity = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return task_out(storage.create_task(user.id, list_id, payload.title))


@protected.patch("/lists/{list_id}/tasks/reorder", response_model=list[TaskOut])
def reorder_tasks(
    list_id: int,
    payload: ReorderIn,
    user: Identity = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    orders = [(o.id, o.position) for o in payload.taskOrders]
    return [task_out(t) for t in storage.reorder_tasks(user.id, list_id, orders)]


@protected.get("/tasks/important", response_model=list[ImportantTaskOut])
def get_important_tasks(
    user: Identity = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return [important_out(t, name) for t, name in storage.important_tasks(user.id)]


@protected.patch("/tasks/{task_id}", response_model=TaskOut)
def update_task(
    task_id: int,
    payload: TaskPatch,
    user: Identity = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    update = TaskUpdate.from_fields(payload.model_dump(exclude_unset=True))
    return task_out(storage.update_task(user.id, task_id, update))


@protected.delete("/tasks/{task_id}", status_code=204)
def delete_task(
    task_id: int,
    user: Identity = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    storage.delete_task(user.id, task_id)
    return Response(status_code=204)


# === Error handling ===


async def handle_todo_error(request: Request, exc: TodoError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=json_error(exc.code, exc.message, exc.details),
    )


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    # a path id that is not even an integer cannot name an existing row
    if any(err.get("loc", ("",))[0] == "path" for err in errors):
        return JSONResponse(status_code=404, content=json_error("not_found", "Not found"))
    first = errors[0] if errors else {}
    loc = [str(part) for part in first.get("loc", ()) if part != "body"]
    field = ".".join(loc) or None
    message = first.get("msg", "Invalid request")
    if field:
        message = f"{field}: {message}"
    return JSONResponse(
        status_code=400,
        content=json_error("validation_error", message, {"field": field} if field else None),
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=json_error("internal_error", "Internal server error"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


def create_app() -> FastAPI:
    logging.basicConfig(level=config.LOG_LEVEL)
    application = FastAPI(title="To-Do List API", version=__version__, lifespan=lifespan)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials="*" not in config.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_exception_handler(TodoError, handle_todo_error)
    application.add_exception_handler(RequestValidationError, handle_validation_error)
    application.add_exception_handler(Exception, handle_unexpected_error)
    application.include_router(public, prefix=config.API_PREFIX)
    application.include_router(protected, prefix=config.API_PREFIX)
    return application


app = create_app()
