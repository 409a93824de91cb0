"""System endpoints (health, config)."""

from __future__ import annotations

from fastapi import APIRouter

from .. import schemas
from ..settings import (
    FEED_PAGE_LIMIT,
    INVITE_TTL_DAYS,
    SEARCH_PAGE_LIMIT,
    SIGNAL_DESCRIPTION_MAX_LENGTH,
    SIGNAL_DESCRIPTION_MIN_LENGTH,
    SIGNAL_FLAG_MAX_COUNT,
)

router = APIRouter(prefix="", tags=["System"])


@router.get("/healthz", response_model=schemas.HealthResponse)
def get_health() -> schemas.HealthResponse:
    """Liveness check."""
    return schemas.HealthResponse(status="ok")


@router.get("/config", response_model=schemas.Config)
def get_public_config() -> schemas.Config:
    """Public limits the client needs to validate forms before submitting."""
    return schemas.Config(
        description_min_length=SIGNAL_DESCRIPTION_MIN_LENGTH,
        description_max_length=SIGNAL_DESCRIPTION_MAX_LENGTH,
        max_flags=SIGNAL_FLAG_MAX_COUNT,
        feed_page_limit=FEED_PAGE_LIMIT,
        search_page_limit=SEARCH_PAGE_LIMIT,
        invite_ttl_days=INVITE_TTL_DAYS,
    )
