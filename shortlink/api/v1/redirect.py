import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError

from shortlink.dependencies import get_resolver
from shortlink.services.redirect_resolver import RedirectResolver

logger = logging.getLogger(__name__)

router = APIRouter(tags=["redirect"])


@router.get("/{short_code}")
async def redirect_to_long_url(
    short_code: str,
    request: Request,
    background_tasks: BackgroundTasks,
    resolver: RedirectResolver = Depends(get_resolver)
):
    """
    Redirect to the original URL.

    Flow:
    1. Resolve through cache, falling back to the mapping store
    2. Schedule the click publish to run after the response is sent
    3. Answer 301 immediately

    The visitor never waits for, or sees failures of, click tracking.
    """
    try:
        resolution = await resolver.resolve(
            short_code,
            ip_address=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
        )
    except SQLAlchemyError:
        logger.exception("Error during redirect for %s", short_code)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal Server Error"
        )

    if resolution is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="URL not found"
        )

    background_tasks.add_task(resolver.publish_click, resolution.click)

    return RedirectResponse(url=resolution.long_url, status_code=status.HTTP_301_MOVED_PERMANENTLY)
