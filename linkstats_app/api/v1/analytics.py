from fastapi import APIRouter, Depends, HTTPException, status

from linkstats_app.auth import get_current_user_id
from linkstats_app.dependencies import get_analytics_service
from linkstats_app.exceptions import NotFoundError
from linkstats_app.schemas.analytics import OverallAnalytics, TopicAnalytics, UrlAnalytics
from linkstats_app.services.analytics_service import AnalyticsService

router = APIRouter(prefix="/analytics", tags=["analytics"])


# Declared before /{alias} so "overall" is never taken for an alias
@router.get("/overall", response_model=OverallAnalytics)
async def get_overall_analytics(
    user_id: str = Depends(get_current_user_id),
    analytics: AnalyticsService = Depends(get_analytics_service)
):
    """Aggregate analytics over every URL the caller owns"""
    return await analytics.get_overall_analytics(user_id)


@router.get("/topic/{topic}", response_model=TopicAnalytics)
async def get_topic_analytics(
    topic: str,
    user_id: str = Depends(get_current_user_id),
    analytics: AnalyticsService = Depends(get_analytics_service)
):
    """Aggregate analytics over the caller's URLs in one topic"""
    try:
        return await analytics.get_topic_analytics(topic, user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/{alias}", response_model=UrlAnalytics)
async def get_url_analytics(
    alias: str,
    user_id: str = Depends(get_current_user_id),
    analytics: AnalyticsService = Depends(get_analytics_service)
):
    """Analytics for one of the caller's URLs; other owners' URLs are 404"""
    try:
        return await analytics.get_url_analytics(alias, user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
