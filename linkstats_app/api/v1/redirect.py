from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse

from linkstats_app.dependencies import get_url_service
from linkstats_app.services.url_service import URLService

router = APIRouter(tags=["redirect"])


@router.get("/{alias}")
async def redirect_to_long_url(
    alias: str,
    request: Request,
    background_tasks: BackgroundTasks,
    url_service: URLService = Depends(get_url_service)
):
    """
    Redirect to the original URL.

    Flow:
    1. Resolve alias through the cache, falling back to the mapping store
    2. Schedule the visit hand-off to run after the response is sent
    3. Redirect immediately; the worker records the visit later
    """
    long_url = await url_service.resolve(alias)

    if not long_url:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Short URL not found"
        )

    # dispatch_visit never raises, so a queue outage cannot break redirects
    background_tasks.add_task(
        url_service.dispatch_visit,
        alias,
        request.client.host if request.client else None,
        request.headers.get("user-agent")
    )

    return RedirectResponse(url=long_url, status_code=status.HTTP_302_FOUND)
