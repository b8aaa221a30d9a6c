"""Nursing Student Portal - FastAPI entrypoint."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import ServerSelectionTimeoutError

from nursing_portal.config import settings
from nursing_portal.db import db_shutdown, db_startup
from nursing_portal.errors import PortalError
from nursing_portal.seed import seed_admin
from nursing_portal.api import announcements, attendance, auth, dashboard, documents, resources, students

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        await db_startup()
        await seed_admin()
    except ServerSelectionTimeoutError as e:
        logger.error(f"MongoDB is not reachable at {settings.mongodb_url}")
        raise RuntimeError("MongoDB connection failed.") from e
    yield
    await db_shutdown()


app = FastAPI(
    title=settings.app_name,
    description="Instructor portal: roster, attendance, documents, resources, announcements",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": errors},
    )


@app.exception_handler(PortalError)
async def portal_exception_handler(request: Request, exc: PortalError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(students.router, prefix="/api/students", tags=["Students"])
app.include_router(attendance.router, prefix="/api/attendance", tags=["Attendance"])
app.include_router(documents.router, prefix="/api/documents", tags=["Documents"])
app.include_router(resources.router, prefix="/api/resources", tags=["Study Resources"])
app.include_router(announcements.router, prefix="/api/announcements", tags=["Announcements"])
app.include_router(dashboard.router, prefix="/api/dashboard", tags=["Dashboard"])


@app.get("/health")
def health():
    return {"status": "ok", "app": settings.app_name}
