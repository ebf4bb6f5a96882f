"""
SEO Endpoints

Served at the site root: sitemap.xml, robots.txt, ads.txt and the
crawler-facing article pages.
"""
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, RedirectResponse, Response

from innovates.core.exceptions import NotFoundError
from innovates.services.seo_service import (
    CACHE_HEADERS, SEOService, build_ads_txt, build_robots_txt, get_seo_service,
    is_social_crawler, spa_article_url,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/sitemap.xml")
async def sitemap(service: SEOService = Depends(get_seo_service)):
    try:
        xml = service.build_sitemap()
    except Exception as e:
        logger.error(f"Error generating sitemap: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to generate sitemap"})

    return Response(content=xml, media_type="application/xml", headers=CACHE_HEADERS)


@router.get("/robots.txt", response_class=PlainTextResponse)
async def robots():
    return PlainTextResponse(content=build_robots_txt(), headers=CACHE_HEADERS)


@router.get("/ads.txt", response_class=PlainTextResponse)
async def ads():
    return PlainTextResponse(content=build_ads_txt(), headers=CACHE_HEADERS)


@router.get("/article/{slug}")
async def article_page(
    slug: str,
    request: Request,
    service: SEOService = Depends(get_seo_service),
):
    """
    Social crawlers get a metadata page; browsers are redirected to the app

    Unknown or unapproved slugs return 404 either way.
    """
    if is_social_crawler(request.headers.get("user-agent")):
        try:
            page = service.render_article_page(slug)
        except NotFoundError:
            return HTMLResponse(content="<h1>Article not found</h1>", status_code=404)
        return HTMLResponse(content=page, headers=CACHE_HEADERS)

    if not service.article_exists(slug):
        return HTMLResponse(content="<h1>Article not found</h1>", status_code=404)
    return RedirectResponse(url=spa_article_url(slug), status_code=302)
