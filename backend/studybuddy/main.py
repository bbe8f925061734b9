"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the Study Buddy API.
Controllers are intentionally thin: they read the request, delegate to a
resource service and return JSON. Every failure is raised as a
`ServiceError` (or escapes as an unexpected exception) and is translated
into a `{"message": ...}` response by the exception handlers below.

Endpoints implemented:
- GET /, GET /health
- GET/POST /user, GET/PUT/DELETE /user/{user_id}
- GET/POST /course, GET/PUT/DELETE /course/{course_id}
- GET/POST /study-session, GET/PUT/DELETE /study-session/{session_id}
- GET/POST /task, GET /task/course/{course_id}, GET/PUT/DELETE /task/{task_id}
- GET /login, GET /github/callback, GET /logout
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
import json
import logging
import os
import secrets
import time
from typing import Optional
import uuid

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse, Response
from pymongo.database import Database
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import database, services
from .auth import create_session_token, optional_session, require_session
from .config import settings
from .database import get_db
from .errors import INTERNAL_MESSAGE, ErrorKind, ServiceError, http_status_for, validation_error
from .github_oauth import GitHubAuthError, GitHubConfig, GitHubOAuthClient
from .schemas import MessageOut, SessionUser

logger = logging.getLogger("studybuddy.api")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

STATE_COOKIE_NAME = "oauth_state"

_client = database.create_client(settings.MONGODB_URL, settings.MONGODB_TIMEOUT_MS)
_github = GitHubOAuthClient(
    GitHubConfig(
        client_id=settings.GITHUB_CLIENT_ID,
        client_secret=settings.GITHUB_CLIENT_SECRET,
        redirect_uri=settings.CALLBACK_URL,
    )
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        database.ensure_indexes(app.state.db)
    except PyMongoError as exc:
        logger.error("could not ensure indexes: %s", exc)
    database.ping_database(app.state.db)
    yield
    _client.close()


app = FastAPI(
    title="Study Buddy API",
    lifespan=lifespan,
    responses={400: {"model": MessageOut}, 401: {"model": MessageOut}, 404: {"model": MessageOut}},
)
app.state.db = _client[settings.MONGODB_DB]

if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                    "client": request.client.host if request.client else "unknown",
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    logger.info(
        "request_done %s",
        json.dumps(
            {
                "request_id": req_id,
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
                "duration_ms": elapsed_ms,
                "client": request.client.host if request.client else "unknown",
            },
            ensure_ascii=True,
        ),
    )
    return response


# --- Error translation ------------------------------------------------------


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    status = http_status_for(exc)
    if status >= 500:
        logger.error("%s %s failed: %r", request.method, request.url.path, exc)
        message = exc.message if exc.kind is ErrorKind.INTERNAL else INTERNAL_MESSAGE
    else:
        logger.info("%s %s -> %d %s", request.method, request.url.path, status, exc.kind.code)
        message = exc.message
    return JSONResponse(status_code=status, content={"message": message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"message": "Invalid request"})


@app.exception_handler(PyMongoError)
async def database_error_handler(request: Request, exc: PyMongoError):
    logger.exception("database error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": INTERNAL_MESSAGE})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": INTERNAL_MESSAGE})


async def json_body(request: Request) -> dict:
    """Read the request body as a JSON object.

    Resource payloads are not bound to pydantic models so that every
    rejection carries the service's own 400 message instead of a 422.
    """
    try:
        body = await request.json()
    except ValueError:
        raise validation_error("Request body must be a JSON object")
    if not isinstance(body, dict):
        raise validation_error("Request body must be a JSON object")
    return body


def _no_content() -> Response:
    return Response(status_code=204)


# --- Service endpoints -------------------------------------------------------


@app.get("/")
def home(user: Optional[SessionUser] = Depends(optional_session)):
    """Report that the API is running and whether the caller is logged in."""
    return {
        "message": "Study Buddy API",
        "status": "Running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "docs": "/docs",
        "session": f"Logged in as {user.label}" if user else "Logged out",
    }


@app.get("/health")
def health(db: Database = Depends(get_db)):
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok", "database": "ok" if database.ping_database(db) else "unavailable"}


# --- Users -------------------------------------------------------------------


@app.get("/user")
def list_users(userId: Optional[str] = None, db: Database = Depends(get_db)):
    """List all users, optionally only the one with id `userId`."""
    return services.UserService(db).list_all(user_id=userId)


@app.get("/user/{user_id}")
def get_user(user_id: str, db: Database = Depends(get_db)):
    return services.UserService(db).get_by_id(user_id)


@app.post("/user", status_code=201, dependencies=[Depends(require_session)])
def create_user(payload: dict = Depends(json_body), db: Database = Depends(get_db)):
    """Create a user. `name` and `emailAddress` are required; the email must be unused."""
    return services.UserService(db).create(payload)


@app.put("/user/{user_id}", dependencies=[Depends(require_session)])
def update_user(user_id: str, payload: dict = Depends(json_body), db: Database = Depends(get_db)):
    return services.UserService(db).update(user_id, payload)


@app.delete("/user/{user_id}", status_code=204, dependencies=[Depends(require_session)])
def delete_user(user_id: str, db: Database = Depends(get_db)):
    services.UserService(db).delete(user_id)
    return _no_content()


# --- Courses -----------------------------------------------------------------


@app.get("/course")
def list_courses(db: Database = Depends(get_db)):
    return services.CourseService(db).list_all()


@app.get("/course/{course_id}")
def get_course(course_id: str, db: Database = Depends(get_db)):
    return services.CourseService(db).get_by_id(course_id)


@app.post("/course", status_code=201, dependencies=[Depends(require_session)])
def create_course(payload: dict = Depends(json_body), db: Database = Depends(get_db)):
    """Create a course.

    `courseName`, `startDate` and `endDate` are required and `endDate`
    must fall after `startDate`. `courseSchedule`, when given, is a
    non-empty list of weekday names.
    """
    return services.CourseService(db).create(payload)


@app.put("/course/{course_id}", dependencies=[Depends(require_session)])
def update_course(course_id: str, payload: dict = Depends(json_body), db: Database = Depends(get_db)):
    """Partially update a course; only the provided fields change."""
    return services.CourseService(db).update(course_id, payload)


@app.delete("/course/{course_id}", status_code=204, dependencies=[Depends(require_session)])
def delete_course(course_id: str, db: Database = Depends(get_db)):
    services.CourseService(db).delete(course_id)
    return _no_content()


# --- Study sessions ----------------------------------------------------------


@app.get("/study-session")
def list_study_sessions(db: Database = Depends(get_db)):
    return services.StudySessionService(db).list_all()


@app.get("/study-session/{session_id}")
def get_study_session(session_id: str, db: Database = Depends(get_db)):
    return services.StudySessionService(db).get_by_id(session_id)


@app.post("/study-session", status_code=201, dependencies=[Depends(require_session)])
def create_study_session(payload: dict = Depends(json_body), db: Database = Depends(get_db)):
    """Record a study session. `courseId` and `length` (minutes, at most 1440) are required."""
    return services.StudySessionService(db).create(payload)


@app.put("/study-session/{session_id}", dependencies=[Depends(require_session)])
def update_study_session(session_id: str, payload: dict = Depends(json_body), db: Database = Depends(get_db)):
    return services.StudySessionService(db).update(session_id, payload)


@app.delete("/study-session/{session_id}", status_code=204, dependencies=[Depends(require_session)])
def delete_study_session(session_id: str, db: Database = Depends(get_db)):
    services.StudySessionService(db).delete(session_id)
    return _no_content()


# --- Tasks -------------------------------------------------------------------


@app.get("/task")
def list_tasks(userId: Optional[str] = None, db: Database = Depends(get_db)):
    """List all tasks, optionally only those owned by `userId`."""
    return services.TaskService(db).list_all(user_id=userId)


@app.get("/task/course/{course_id}")
def list_tasks_for_course(course_id: str, db: Database = Depends(get_db)):
    """List the tasks of one course; an unknown course yields an empty list."""
    return services.TaskService(db).list_by_course(course_id)


@app.get("/task/{task_id}")
def get_task(task_id: str, db: Database = Depends(get_db)):
    return services.TaskService(db).get_by_id(task_id)


@app.post("/task", status_code=201, dependencies=[Depends(require_session)])
def create_task(payload: dict = Depends(json_body), db: Database = Depends(get_db)):
    """Create a task. `courseId` and `taskDescription` (3-500 characters) are required."""
    return services.TaskService(db).create(payload)


@app.put("/task/{task_id}", dependencies=[Depends(require_session)])
def update_task(task_id: str, payload: dict = Depends(json_body), db: Database = Depends(get_db)):
    return services.TaskService(db).update(task_id, payload)


@app.delete("/task/{task_id}", status_code=204, dependencies=[Depends(require_session)])
def delete_task(task_id: str, db: Database = Depends(get_db)):
    services.TaskService(db).delete(task_id)
    return _no_content()


# --- GitHub login ------------------------------------------------------------


def _set_cookie(response: Response, key: str, value: str, max_age: int) -> None:
    response.set_cookie(
        key=key,
        value=value,
        max_age=max_age,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        path="/",
    )


@app.get("/login")
def login():
    """Redirect the browser to GitHub to start the OAuth flow."""
    if not settings.GITHUB_CLIENT_ID:
        raise ServiceError(ErrorKind.INTERNAL, "GitHub login is not configured")
    state = secrets.token_urlsafe(24)
    response = RedirectResponse(url=_github.build_authorization_url(state=state))
    _set_cookie(response, STATE_COOKIE_NAME, state, max_age=600)
    return response


@app.get("/github/callback")
def github_callback(request: Request, code: Optional[str] = None, state: Optional[str] = None):
    """Finish the OAuth flow, store the session cookie and go back to `/`."""
    expected_state = request.cookies.get(STATE_COOKIE_NAME)
    if not code or not state or not expected_state or not secrets.compare_digest(state, expected_state):
        raise ServiceError(ErrorKind.UNAUTHORIZED, "GitHub authentication failed")
    try:
        access_token = _github.exchange_code(code=code)
        profile = _github.fetch_user(access_token=access_token)
    except GitHubAuthError as exc:
        logger.warning("GitHub login failed: %s", exc)
        raise ServiceError(ErrorKind.UNAUTHORIZED, "GitHub authentication failed")
    user = SessionUser(id=str(profile["id"]), login=profile["login"], display_name=profile.get("name"))
    token = create_session_token(user)
    response = RedirectResponse(url="/", status_code=302)
    _set_cookie(response, settings.SESSION_COOKIE_NAME, token, max_age=settings.SESSION_EXPIRE_HOURS * 3600)
    response.delete_cookie(STATE_COOKIE_NAME, path="/")
    logger.info("user %s logged in", user.login)
    return response


@app.get("/logout")
def logout():
    """Drop the session cookie and go back to `/`."""
    response = RedirectResponse(url="/", status_code=302)
    response.delete_cookie(settings.SESSION_COOKIE_NAME, path="/")
    return response


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
