"""
Emails API Endpoints
Admin template sending and preview
"""
import logging
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import HTMLResponse

from innovates.core.auth import TokenUser, require_admin
from innovates.core.exceptions import InnovatesError, to_http_exception
from innovates.domain.email import SendEmailRequest
from innovates.services.email_service import EmailService, get_email_service
from innovates.services.email_template_service import TEMPLATE_CATEGORIES

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/send")
async def send_email(
    data: SendEmailRequest,
    admin: TokenUser = Depends(require_admin),
    service: EmailService = Depends(get_email_service),
):
    """Render a registered template with the given data and send it"""
    try:
        result = await service.send_template(data.type, data.to, data.data, subject=data.subject)
        return {"status": "success", "data": {"success": True, "email_id": result.get("id")}}

    except InnovatesError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error sending '{data.type}' email to {data.to}: {e}")
        raise HTTPException(status_code=500, detail=f"Error sending email: {str(e)}")


@router.get("/templates")
async def list_templates(
    category: Optional[str] = Query(None, description=f"One of {', '.join(TEMPLATE_CATEGORIES)}"),
    admin: TokenUser = Depends(require_admin),
    service: EmailService = Depends(get_email_service),
):
    try:
        templates = service.templates.list_templates(category)
    except InnovatesError as e:
        raise to_http_exception(e)
    return {"status": "success", "count": len(templates), "data": [t.model_dump() for t in templates]}


@router.get("/preview/{template_type}", response_class=HTMLResponse)
async def preview_template(
    template_type: str,
    admin: TokenUser = Depends(require_admin),
    service: EmailService = Depends(get_email_service),
):
    """Render a template with sample data"""
    try:
        subject, html, _ = service.templates.preview(template_type)
    except InnovatesError as e:
        raise to_http_exception(e)

    # header values must be latin-1
    return HTMLResponse(content=html, headers={"X-Email-Subject": quote(subject)})
