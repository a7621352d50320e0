"""
API Dependencies

FastAPI dependency injection for the admin key guard and the import /
analytics services. Routers import from here, not from the db package.
"""

import logging
import secrets
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, status

from app.config.settings import Settings, get_settings
from app.domain.analytics import AggregateRankingPolicy
from app.infrastructure.db.dependencies import ScoreRepoDep
from app.infrastructure.services.score_analytics_service import ScoreAnalyticsService
from app.infrastructure.services.score_import_service import ScoreImportService
from app.infrastructure.services.score_row_mapper import ScoreRowMapper


logger = logging.getLogger(__name__)


SettingsDep = Annotated[Settings, Depends(get_settings)]


async def verify_admin_api_key(
    settings: SettingsDep,
    x_admin_key: Optional[str] = Header(
        None, description="Admin API key for import and delete operations"
    ),
) -> bool:
    """
    Verify the admin API key header against ADMIN_API_KEY.

    Raises:
        HTTPException 503: ADMIN_API_KEY is not configured
        HTTPException 403: header missing or wrong
    """
    expected_key = settings.admin_api_key

    if not expected_key:
        logger.error("ADMIN_API_KEY environment variable not set")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin authentication not configured",
        )

    # compare_digest keeps the comparison constant-time
    if not x_admin_key or not secrets.compare_digest(
        x_admin_key.encode("utf-8"), expected_key.encode("utf-8")
    ):
        logger.warning("Invalid admin API key attempt")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid admin API key",
        )

    return True


def get_import_service(
    repo: ScoreRepoDep,
    settings: SettingsDep,
) -> ScoreImportService:
    """Import reconciler bound to the request's repository."""
    mapper = ScoreRowMapper(strict_section_totals=settings.strict_section_totals)
    return ScoreImportService(repo, mapper)


def get_analytics_service(
    repo: ScoreRepoDep,
    settings: SettingsDep,
) -> ScoreAnalyticsService:
    """Analytics service using the configured leaderboard policy."""
    policy = AggregateRankingPolicy(settings.aggregate_ranking_policy)
    return ScoreAnalyticsService(repo, policy=policy)


ImportServiceDep = Annotated[ScoreImportService, Depends(get_import_service)]
AnalyticsServiceDep = Annotated[ScoreAnalyticsService, Depends(get_analytics_service)]
