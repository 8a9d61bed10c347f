"""Discovery document and health check."""

import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from yigyaps import __version__
from yigyaps.config import settings
from yigyaps.database import get_db
from yigyaps.schemas.registry import Discovery, HealthResponse, RegistryInfo

logger = logging.getLogger(__name__)

well_known_router = APIRouter(tags=["registry"])
health_router = APIRouter(tags=["registry"])


@well_known_router.get("/.well-known/mcp.json", response_model=Discovery)
async def discovery() -> Discovery:
    return Discovery(
        registries=[
            RegistryInfo(
                name=settings.app_name,
                description="Open registry and marketplace for MCP skills",
                url=settings.public_url.rstrip("/") + "/v1",
                version=__version__,
            )
        ]
    )


@health_router.get("/health", response_model=HealthResponse)
async def health(response: Response, db: AsyncSession = Depends(get_db)) -> HealthResponse:
    database = "ok"
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.warning("health check: database unavailable: %s", exc)
        database = "unavailable"
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return HealthResponse(
        status="ok" if database == "ok" else "degraded",
        service="yigyaps-api",
        version=__version__,
        database=database,
    )
