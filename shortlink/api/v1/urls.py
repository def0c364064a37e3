from typing import List

from fastapi import APIRouter, Depends, status

from shortlink.auth import get_current_owner_id
from shortlink.dependencies import get_url_service
from shortlink.schemas.url import URLCreate, URLCreated, URLListItem
from shortlink.services.url_service import URLService

router = APIRouter(tags=["urls"])


@router.post("/url", response_model=URLCreated, status_code=status.HTTP_201_CREATED)
def create_short_url(
    url_data: URLCreate,
    owner_id: int = Depends(get_current_owner_id),
    url_service: URLService = Depends(get_url_service)
):
    """Create a new short URL for the authenticated user"""
    return url_service.create_short_url(str(url_data.long_url), owner_id)


@router.get("/my-urls", response_model=List[URLListItem])
def list_my_urls(
    owner_id: int = Depends(get_current_owner_id),
    url_service: URLService = Depends(get_url_service)
):
    """URLs created by the authenticated user, newest first"""
    return url_service.list_urls(owner_id)
