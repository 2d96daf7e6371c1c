"""Attendance Admin - FastAPI entrypoint."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from attendance_admin.config import settings
from attendance_admin.db import init_store
from attendance_admin.errors import Conflict, NotFound, StoreError, ValidationFailed
from attendance_admin.services.lecture_counter import LectureCounterReconciler
from attendance_admin.api import attendance, branches, dashboard, enrollment, subjects, teachers, users

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    store = init_store()
    reconciler = LectureCounterReconciler(store)
    try:
        reconciler.start()
    except StoreError as e:
        logger.error("Could not subscribe to lecture counters. Check the Firebase settings.")
        raise RuntimeError("Tree store subscription failed.") from e
    app.state.reconciler = reconciler
    yield
    reconciler.stop()


app = FastAPI(
    title=settings.app_name,
    description="Student attendance and fingerprint enrollment admin on Firebase Realtime Database",
    version="0.1.0",
    debug=settings.debug,
    lifespan=lifespan,
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": exc.errors()},
    )


@app.exception_handler(ValidationFailed)
async def validation_failed_handler(request: Request, exc: ValidationFailed):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(Conflict)
async def conflict_handler(request: Request, exc: Conflict):
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content={"detail": str(exc)})


app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(branches.router, prefix="/api/branches", tags=["Branches"])
app.include_router(teachers.router, prefix="/api/teachers", tags=["Teachers"])
app.include_router(subjects.router, prefix="/api/subjects", tags=["Subjects"])
app.include_router(subjects.counters_router, prefix="/api/lecture-counters", tags=["Lecture Counters"])
app.include_router(attendance.router, prefix="/api/attendance", tags=["Attendance"])
app.include_router(enrollment.router, prefix="/api/enrollment", tags=["Enrollment"])
app.include_router(users.router, prefix="/api/users", tags=["Students"])
app.include_router(dashboard.router, prefix="/api/dashboard", tags=["Dashboard"])


@app.get("/health")
def health():
    return {"status": "ok", "app": settings.app_name}
