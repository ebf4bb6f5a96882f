"""
Articles API Endpoints
Public listing, search and reading of approved stories
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from innovates.core.exceptions import InnovatesError, to_http_exception
from innovates.services.submission_service import SubmissionService, get_submission_service

router = APIRouter()


@router.get("")
async def list_articles(
    category: Optional[str] = Query(None, description="Filter by category"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: SubmissionService = Depends(get_submission_service),
):
    """
    Approved stories, pinned first, then newest

    Returns listing cards only; the full text comes from /articles/{slug}.
    """
    try:
        articles = service.list_articles(category=category, limit=limit, offset=offset)
        return {
            "status": "success",
            "count": len(articles),
            "data": [a.model_dump(mode="json") for a in articles],
        }

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching articles: {str(e)}")


@router.get("/search")
async def search_articles(
    q: str = Query("", description="Search term (at least 2 characters)"),
    service: SubmissionService = Depends(get_submission_service),
):
    try:
        articles = service.search_articles(q)
        return {
            "status": "success",
            "count": len(articles),
            "data": [a.model_dump(mode="json") for a in articles],
        }

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error searching articles: {str(e)}")


@router.get("/{slug}")
async def get_article(
    slug: str,
    service: SubmissionService = Depends(get_submission_service),
):
    try:
        return {"status": "success", "data": service.get_article(slug).to_dict()}
    except InnovatesError as e:
        raise to_http_exception(e)
