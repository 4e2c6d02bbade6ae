"""
SmartDocs API - FastAPI application entry point
AI business document generation with subscriptions and a back office
"""

import logging

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s"
)

import time

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from smartdocs.config import settings
from smartdocs.database import SessionLocal, create_tables, engine
from smartdocs.middleware.rate_limiter import setup_rate_limiting
from smartdocs.utils.error_handlers import setup_error_handlers

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="AI-assisted business document generation",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "authentication", "description": "Signup, login, email verification and API keys"},
        {"name": "users", "description": "Profile, token usage and referrals"},
        {"name": "chat", "description": "Guided requirements conversations"},
        {"name": "documents", "description": "Document generation, library and export"},
        {"name": "projects", "description": "Projects grouping conversations and documents"},
        {"name": "sessions", "description": "Project work sessions"},
        {"name": "files", "description": "Text extraction from uploaded files"},
        {"name": "billing", "description": "Plans, checkout and subscription management"},
        {"name": "webhooks", "description": "Payment provider callbacks"},
        {"name": "feedback", "description": "Feedback, testimonials and contact form"},
        {"name": "admin", "description": "Back office"},
    ]
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_rate_limiting(app)

setup_error_handlers(app)


@app.on_event("startup")
async def startup_event():
    """Initialize database tables on startup"""
    create_tables()
    logger.info(f"{settings.APP_NAME} v{settings.APP_VERSION} started")
    logger.info(f"API Docs: http://{settings.API_HOST}:{settings.API_PORT}/docs")


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "healthy"
    }


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
    }


@app.get("/health/database")
async def database_health():
    """
    Database connectivity with query latency and pool statistics

    Returns 503 with status "degraded" when the database cannot be reached.
    """
    started = time.perf_counter()
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        latency_ms = round((time.perf_counter() - started) * 1000, 2)
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "degraded", "database": "unreachable", "error": type(e).__name__},
        )
    finally:
        db.close()

    pool = engine.pool
    pool_stats = {"class": type(pool).__name__}
    for name in ("size", "checkedin", "checkedout", "overflow"):
        stat = getattr(pool, name, None)
        if callable(stat):
            pool_stats[name] = stat()

    return {
        "status": "healthy",
        "database": "connected",
        "latency_ms": latency_ms,
        "pool": pool_stats,
    }


from smartdocs.api import admin, auth, billing, chat, documents, feedback, files, projects, sessions, users, webhooks

app.include_router(auth.router, prefix="/api/v1")
app.include_router(users.router, prefix="/api/v1")
app.include_router(chat.router, prefix="/api/v1")
app.include_router(documents.router, prefix="/api/v1")
app.include_router(projects.router, prefix="/api/v1")
app.include_router(sessions.router, prefix="/api/v1")
app.include_router(files.router, prefix="/api/v1")
app.include_router(billing.router, prefix="/api/v1")
app.include_router(webhooks.router, prefix="/api/v1")
app.include_router(feedback.router, prefix="/api/v1")
app.include_router(admin.router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "smartdocs.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.API_RELOAD
    )
