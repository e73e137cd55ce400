import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from conference_attendance.api.routes import health, verification
from conference_attendance.core.config import settings
from conference_attendance.core.logging import setup_logging
from conference_attendance.db.base import Base
from conference_attendance.db.session import SessionLocal, engine

# Register the ORM tables on Base.metadata
from conference_attendance import models  # noqa: F401

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for startup and shutdown"""
    logger.info("🚀 Starting Conference Attendance service...")

    logger.info("📦 Creating database tables...")
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        logger.info("✅ Database connection successful")
    except Exception as e:
        logger.error(f"❌ Database connection failed: {e}")
        raise
    finally:
        db.close()

    yield

    logger.info("👋 Shutting down...")


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Face-comparison attendance verification for conferences",
    version=settings.VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix="/api", tags=["Health"])
app.include_router(verification.router, prefix="/api", tags=["Attendance"])


@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "service": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "status": "operational",
        "docs": "/docs",
        "endpoints": {
            "health": "/api/health",
            "camera": "/api/camera",
            "verify": "/api/conferences/{conference_id}/verify",
            "attendance": "/api/conferences/{conference_id}/attendance"
        }
    }


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000, reload=False)
