import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from app.core.database import Base, engine, SessionLocal
from app import models  # noqa: F401  registers every table on Base.metadata
from app.core.config import settings
from app.core.exceptions import TeamCoreError, InternalError
from app.api.v1.main import api_router
from app.services import team_invitation_service

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create all database tables
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
)

# Parse CORS origins from comma-separated string in settings
cors_origins = [origin.strip() for origin in settings.CORS_ORIGINS.split(",")]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TeamCoreError)
async def team_core_error_handler(request: Request, exc: TeamCoreError):
    if isinstance(exc, InternalError):
        logger.error(f"[API] {request.method} {request.url.path} failed: {exc.message}")
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message}, headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Invalid request", "errors": errors},
    )


app.include_router(api_router, prefix=settings.API_PREFIX)


@app.get("/health")
async def health():
    return {"status": "ok", "service": settings.PROJECT_NAME}


# Initialize scheduler for background tasks
scheduler = AsyncIOScheduler()


def run_invitation_cleanup():
    """Expire stale invitations with a fresh DB session"""
    db = SessionLocal()
    try:
        team_invitation_service.clean_expired(db)
    finally:
        db.close()


@app.on_event("startup")
async def on_startup():
    if settings.INVITATION_CLEANUP_ENABLED:
        scheduler.add_job(
            run_invitation_cleanup,
            'interval',
            seconds=settings.INVITATION_CLEANUP_INTERVAL,
            id='invitation_cleanup',
            replace_existing=True
        )
        logger.info(f"[Startup] Invitation cleanup scheduler started (interval: {settings.INVITATION_CLEANUP_INTERVAL}s)")
    else:
        logger.info("[Startup] Invitation cleanup disabled (INVITATION_CLEANUP_ENABLED=False)")

    if not scheduler.running:
        scheduler.start()


@app.on_event("shutdown")
async def on_shutdown():
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("[Shutdown] Scheduler stopped")


if __name__ == "__main__":
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
