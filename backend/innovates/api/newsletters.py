"""
Newsletters API Endpoints

Public subscribe/unsubscribe and open/click tracking, plus the admin
composer, delivery, weekly digest and analytics.
"""
import html
import logging

import psycopg2
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from innovates.core.auth import TokenUser, require_admin
from innovates.core.config import settings
from innovates.core.exceptions import InnovatesError, NotFoundError, to_http_exception
from innovates.core.rate_limit import get_client_ip, limit_attempts, newsletter_limiter
from innovates.core.security import require_csrf
from innovates.domain.newsletter import (
    FeaturedPromotionRequest, NewsletterCreate, NewsletterUpdate,
    SendNewsletterRequest, SubscribeRequest, WeeklyNewsletterRequest,
)
from innovates.services.newsletter_service import (
    NO_CACHE_HEADERS, TRACKING_PIXEL, NewsletterService, get_newsletter_service,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _page(title: str, message: str, status_code: int = 200) -> HTMLResponse:
    body = f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{html.escape(title)}</title></head>
<body style="font-family: Arial, sans-serif; max-width: 600px; margin: 60px auto; text-align: center; color: #333;">
  <h1>{html.escape(title)}</h1>
  <p>{html.escape(message)}</p>
  <p><a href="{html.escape(settings.SITE_URL)}">Return to {html.escape(settings.SITE_NAME)}</a></p>
</body>
</html>"""
    return HTMLResponse(content=body, status_code=status_code)


def _unsubscribe(email: str, service: NewsletterService) -> HTMLResponse:
    try:
        subscriber = service.unsubscribe(email)
    except NotFoundError:
        return _page("Not Found", "This email address is not on our subscriber list.", 404)
    except InnovatesError as e:
        return _page("Unsubscribe Failed", e.message, e.status_code)

    return _page(
        "You've been unsubscribed",
        f"{subscriber.email} will no longer receive our newsletter.",
    )


# ==================== PUBLIC ====================

@router.post("/subscribe", status_code=201, dependencies=[
    Depends(require_csrf),
    Depends(limit_attempts(newsletter_limiter, "newsletter")),
])
async def subscribe(
    data: SubscribeRequest,
    service: NewsletterService = Depends(get_newsletter_service),
):
    try:
        subscriber = await service.subscribe(data)
        return {"status": "success", "data": subscriber.model_dump(mode="json")}
    except InnovatesError as e:
        raise to_http_exception(e)


@router.get("/unsubscribe", response_class=HTMLResponse)
async def unsubscribe_link(
    email: str = Query("", description="Subscriber email from the newsletter footer"),
    service: NewsletterService = Depends(get_newsletter_service),
):
    return _unsubscribe(email, service)


@router.post("/unsubscribe", response_class=HTMLResponse)
async def unsubscribe_one_click(
    request: Request,
    email: str = Query("", description="Subscriber email"),
    service: NewsletterService = Depends(get_newsletter_service),
):
    """List-Unsubscribe-Post one-click target; the email may also come as form data"""
    if not email:
        form = await request.form()
        email = form.get("email", "")
    return _unsubscribe(email, service)


@router.get("/track/open")
async def track_open(
    request: Request,
    newsletter_id: str = Query(""),
    subscriber_id: str = Query(""),
    service: NewsletterService = Depends(get_newsletter_service),
):
    """1x1 GIF; the first open per subscriber is counted"""
    try:
        service.track_open(
            newsletter_id, subscriber_id,
            user_agent=request.headers.get("user-agent"),
            ip_address=get_client_ip(request),
        )
    except InnovatesError as e:
        logger.warning(f"Open tracking skipped: {e.message}")
    except psycopg2.Error as e:
        # unknown or malformed ids still get the pixel
        logger.error(f"Open tracking failed for newsletter {newsletter_id}, subscriber {subscriber_id}: {e}")

    return Response(content=TRACKING_PIXEL, media_type="image/gif", headers=NO_CACHE_HEADERS)


@router.get("/track/click")
async def track_click(
    request: Request,
    token: str = Query(""),
    service: NewsletterService = Depends(get_newsletter_service),
):
    try:
        url = service.track_click(
            token,
            user_agent=request.headers.get("user-agent"),
            ip_address=get_client_ip(request),
        )
    except InnovatesError as e:
        raise to_http_exception(e)

    return RedirectResponse(url=url, status_code=302)


# ==================== ADMIN ====================

@router.get("")
async def list_newsletters(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: TokenUser = Depends(require_admin),
    service: NewsletterService = Depends(get_newsletter_service),
):
    newsletters = service.list_newsletters(limit=limit, offset=offset)
    return {
        "status": "success",
        "count": len(newsletters),
        "data": [n.model_dump(mode="json") for n in newsletters],
    }


@router.post("", status_code=201)
async def create_newsletter(
    data: NewsletterCreate,
    admin: TokenUser = Depends(require_admin),
    service: NewsletterService = Depends(get_newsletter_service),
):
    newsletter = service.create(data)
    return {"status": "success", "data": newsletter.model_dump(mode="json")}


@router.post("/weekly")
async def send_weekly_newsletter(
    data: WeeklyNewsletterRequest,
    admin: TokenUser = Depends(require_admin),
    service: NewsletterService = Depends(get_newsletter_service),
):
    """Build the weekly digest from the latest articles and optionally send it"""
    try:
        result = await service.send_weekly(data)
        return {"status": "success", "data": result.model_dump()}
    except InnovatesError as e:
        raise to_http_exception(e)


@router.post("/featured-promotion")
async def send_featured_promotion(
    data: FeaturedPromotionRequest,
    admin: TokenUser = Depends(require_admin),
    service: NewsletterService = Depends(get_newsletter_service),
):
    """Invite recently approved authors to upgrade their story to Featured"""
    try:
        result = await service.send_featured_story_promotion(data.submission_id)
        return {"status": "success", "data": result.model_dump()}
    except InnovatesError as e:
        raise to_http_exception(e)


@router.get("/{newsletter_id}")
async def get_newsletter(
    newsletter_id: str,
    admin: TokenUser = Depends(require_admin),
    service: NewsletterService = Depends(get_newsletter_service),
):
    try:
        return {"status": "success", "data": service.get(newsletter_id).model_dump(mode="json")}
    except InnovatesError as e:
        raise to_http_exception(e)


@router.patch("/{newsletter_id}")
async def update_newsletter(
    newsletter_id: str,
    data: NewsletterUpdate,
    admin: TokenUser = Depends(require_admin),
    service: NewsletterService = Depends(get_newsletter_service),
):
    try:
        return {"status": "success", "data": service.update(newsletter_id, data).model_dump(mode="json")}
    except InnovatesError as e:
        raise to_http_exception(e)


@router.post("/{newsletter_id}/send")
async def send_newsletter(
    newsletter_id: str,
    data: SendNewsletterRequest,
    admin: TokenUser = Depends(require_admin),
    service: NewsletterService = Depends(get_newsletter_service),
):
    try:
        result = await service.send(newsletter_id, data)
        return {"status": "success", "data": result.model_dump()}

    except InnovatesError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error sending newsletter {newsletter_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error sending newsletter: {str(e)}")


@router.get("/{newsletter_id}/analytics")
async def newsletter_analytics(
    newsletter_id: str,
    admin: TokenUser = Depends(require_admin),
    service: NewsletterService = Depends(get_newsletter_service),
):
    try:
        return {"status": "success", "data": service.analytics(newsletter_id).model_dump(mode="json")}
    except InnovatesError as e:
        raise to_http_exception(e)
