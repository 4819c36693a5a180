# portal/main.py
import logging
import os

from dotenv import load_dotenv
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.api.v1 import meetings
from portal.api.v1.auth import google_calendar
from portal.core.database import get_db, ping

load_dotenv()

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


def _cors_origins() -> list:
    raw = os.getenv("CORS_ORIGINS", "http://localhost:3000")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def create_app() -> FastAPI:
    app = FastAPI(
        title="Client Portal Scheduling API",
        description="Availability and meeting booking against the admin Google Calendar",
        version=API_VERSION,
    )

    # Session cookie is sent cross-origin from the portal frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(meetings.router, prefix="/api/v1")
    app.include_router(google_calendar.router, prefix="/api/v1")

    @app.get("/")
    async def root():
        return {"service": "client-portal-scheduling", "version": API_VERSION}

    @app.get("/health")
    async def health(session: AsyncSession = Depends(get_db)):
        """Liveness plus a database round-trip"""
        try:
            await ping(session)
            database = "ok"
        except SQLAlchemyError as e:
            logger.error(f"Health check could not reach the database: {e}")
            database = "unavailable"

        return {
            "status": "healthy" if database == "ok" else "degraded",
            "database": database,
            "environment": os.getenv("APP_ENV", "unknown"),
        }

    return app


app = create_app()
