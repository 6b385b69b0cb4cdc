"""
Search proxy endpoints
"""

import logging
from typing import Literal, Optional
from fastapi import APIRouter, Depends, HTTPException, Query

from ...auth.dependencies import get_current_user
from ...services.rate_limiter import search_limiter
from ...services.search import SearchConfigurationError, SearchUpstreamError, get_search_service

router = APIRouter(
    prefix="/search",
    tags=["search"],
    dependencies=[Depends(search_limiter), Depends(get_current_user)]
)
logger = logging.getLogger(__name__)


def _upstream_failure(e: Exception) -> HTTPException:
    if isinstance(e, SearchConfigurationError):
        return HTTPException(status_code=503, detail=str(e))
    status_code = getattr(e, "status_code", None) or 502
    return HTTPException(status_code=status_code, detail="Error fetching data from search provider")


@router.get("/suggest")
async def suggest(q: Optional[str] = Query(None, description="Partial query")):
    """Query completions"""
    if not q or len(q.strip()) < 2:
        logger.warning(f'Invalid suggest query: "{q}"')
        raise HTTPException(status_code=400, detail="Invalid query.")

    try:
        return await get_search_service().suggest(q.strip())
    except (SearchConfigurationError, SearchUpstreamError) as e:
        raise _upstream_failure(e)


@router.get("/search-online")
async def search_online(
    q: str = Query(..., min_length=2, description="Search query"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=20),
    safesearch: Literal["off", "moderate", "strict"] = Query("moderate"),
    freshness: Literal["day", "week", "month", "year"] = Query("year"),
    result_type: Optional[Literal["news", "video", "image"]] = Query(None, alias="type")
):
    """Search the web, news, videos or images"""
    try:
        return await get_search_service().search(
            q=q.strip(),
            page=page,
            limit=limit,
            safesearch=safesearch,
            freshness=freshness,
            result_type=result_type
        )
    except (SearchConfigurationError, SearchUpstreamError) as e:
        logger.error(f"Search failed for query '{q}' page {page}: {e}")
        raise _upstream_failure(e)
