from fastapi import APIRouter, Depends, HTTPException, Request, status

from linkstats_app.auth import get_current_user_id
from linkstats_app.dependencies import get_url_service
from linkstats_app.exceptions import AliasConflictError, InvalidInputError
from linkstats_app.rate_limit import SHORTEN_LIMIT, limiter
from linkstats_app.schemas.url import ShortenRequest, ShortenResponse
from linkstats_app.services.url_service import URLService

router = APIRouter(tags=["urls"])


@router.post("/shorten", response_model=ShortenResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(SHORTEN_LIMIT)
async def create_short_url(
    request: Request,
    url_data: ShortenRequest,
    user_id: str = Depends(get_current_user_id),
    url_service: URLService = Depends(get_url_service)
):
    """Create a short URL owned by the caller (rate limited per client)"""
    try:
        mapping = await url_service.create_short_url(url_data, owner_id=user_id)
    except (AliasConflictError, InvalidInputError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return ShortenResponse.model_validate(mapping)
