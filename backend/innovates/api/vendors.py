"""
Vendors API Endpoints
Marketplace vendor applications and admin review
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from innovates.core.auth import TokenUser, get_current_user, is_admin, require_admin
from innovates.core.exceptions import InnovatesError, to_http_exception
from innovates.core.rate_limit import invite_limiter, limit_attempts
from innovates.domain.vendor import ManualVendorCreate, VendorApplicationCreate, VendorInviteRequest, VendorReview
from innovates.services.vendor_service import VendorService, get_vendor_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/applications", status_code=201)
async def apply(
    data: VendorApplicationCreate,
    user: TokenUser = Depends(get_current_user),
    service: VendorService = Depends(get_vendor_service),
):
    """Submit the signed-in user's vendor application"""
    try:
        application = await service.apply(user, data)
        return {"status": "success", "data": application.model_dump(mode="json")}

    except InnovatesError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error submitting vendor application: {e}")
        raise HTTPException(status_code=500, detail=f"Error submitting application: {str(e)}")


@router.get("/me")
async def my_application(
    user: TokenUser = Depends(get_current_user),
    service: VendorService = Depends(get_vendor_service),
):
    try:
        return {"status": "success", "data": service.get_for_user(user.id).model_dump(mode="json")}
    except InnovatesError as e:
        raise to_http_exception(e)


@router.get("/applications")
async def list_applications(
    status: Optional[str] = Query(None, description="pending, approved or rejected"),
    admin: TokenUser = Depends(require_admin),
    service: VendorService = Depends(get_vendor_service),
):
    try:
        applications = service.list_applications(status=status)
        return {
            "status": "success",
            "count": len(applications),
            "data": [a.model_dump(mode="json") for a in applications],
        }
    except InnovatesError as e:
        raise to_http_exception(e)


@router.post("/applications/{application_id}/approve")
async def approve_application(
    application_id: str,
    admin: TokenUser = Depends(require_admin),
    service: VendorService = Depends(get_vendor_service),
):
    try:
        application = await service.approve(application_id)
        return {"status": "success", "data": application.model_dump(mode="json")}
    except InnovatesError as e:
        raise to_http_exception(e)


@router.post("/applications/{application_id}/reject")
async def reject_application(
    application_id: str,
    review: VendorReview,
    admin: TokenUser = Depends(require_admin),
    service: VendorService = Depends(get_vendor_service),
):
    try:
        application = await service.reject(application_id, review.rejection_reason)
        return {"status": "success", "data": application.model_dump(mode="json")}
    except InnovatesError as e:
        raise to_http_exception(e)


@router.post("/manual", status_code=201)
async def create_manual_vendor(
    data: ManualVendorCreate,
    admin: TokenUser = Depends(require_admin),
    service: VendorService = Depends(get_vendor_service),
):
    """Create an approved vendor directly from the admin panel"""
    try:
        application = await service.create_manual(data)
        return {"status": "success", "data": application.model_dump(mode="json")}
    except InnovatesError as e:
        raise to_http_exception(e)


@router.post("/invite", dependencies=[Depends(limit_attempts(invite_limiter, "invite"))])
async def invite_vendor(
    request: VendorInviteRequest,
    user: TokenUser = Depends(get_current_user),
    service: VendorService = Depends(get_vendor_service),
):
    """
    Invite a business to apply as a vendor

    context "admin" sends from the marketplace team and requires an admin;
    "vendor" sends a personal invitation from the signed-in user.
    """
    try:
        inviter_is_admin = request.context == "admin" and is_admin(user)
        result = await service.invite(user, request, inviter_is_admin=inviter_is_admin)
        return {"status": "success", "data": result}

    except InnovatesError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error sending vendor invite: {e}")
        raise HTTPException(status_code=500, detail=f"Error sending invite: {str(e)}")
