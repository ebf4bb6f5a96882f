"""
Submissions API Endpoints
Story wizard intake and admin review
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile

from innovates.core.auth import TokenUser, require_admin
from innovates.core.exceptions import InnovatesError, to_http_exception
from innovates.core.rate_limit import admin_action_limiter, limit_attempts, submission_limiter
from innovates.core.security import require_csrf
from innovates.domain.submission import SubmissionCreate, SubmissionUpdate, SUBMISSION_STATUSES
from innovates.services.submission_service import SubmissionService, get_submission_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", status_code=201, dependencies=[
    Depends(require_csrf),
    Depends(limit_attempts(submission_limiter, "submission")),
])
async def create_submission(
    data: SubmissionCreate,
    service: SubmissionService = Depends(get_submission_service),
):
    """
    Submit a completed story wizard

    Validates and sanitizes the form, stores the submission as pending,
    emails recommended people and the admin, and drafts the AI article.
    """
    try:
        submission = await service.create(data)
        return {"status": "success", "data": submission.to_dict()}

    except InnovatesError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error creating submission: {e}")
        raise HTTPException(status_code=500, detail=f"Error creating submission: {str(e)}")


@router.get("")
async def list_submissions(
    status: Optional[str] = Query(None, description="draft, pending, approved or rejected"),
    search: Optional[str] = Query(None, description="Search by name, email or product"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    admin: TokenUser = Depends(require_admin),
    service: SubmissionService = Depends(get_submission_service),
):
    if status and status not in SUBMISSION_STATUSES:
        raise HTTPException(status_code=400, detail=f"Invalid status: {status}")

    try:
        submissions, total = service.list_submissions(status=status, search=search, limit=limit, offset=offset)
        return {
            "status": "success",
            "total": total,
            "limit": limit,
            "offset": offset,
            "count": len(submissions),
            "data": [s.to_dict() for s in submissions],
        }

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching submissions: {str(e)}")


@router.get("/{submission_id}")
async def get_submission(
    submission_id: str,
    admin: TokenUser = Depends(require_admin),
    service: SubmissionService = Depends(get_submission_service),
):
    try:
        return {"status": "success", "data": service.get(submission_id).to_dict()}
    except InnovatesError as e:
        raise to_http_exception(e)


@router.patch("/{submission_id}")
async def update_submission(
    submission_id: str,
    data: SubmissionUpdate,
    admin: TokenUser = Depends(require_admin),
    service: SubmissionService = Depends(get_submission_service),
):
    """Edit submission fields or the generated article text"""
    try:
        submission = service.update(submission_id, data)
        return {"status": "success", "data": submission.to_dict()}
    except InnovatesError as e:
        raise to_http_exception(e)


@router.post("/{submission_id}/approve", dependencies=[Depends(limit_attempts(admin_action_limiter, "admin"))])
async def approve_submission(
    submission_id: str,
    admin: TokenUser = Depends(require_admin),
    service: SubmissionService = Depends(get_submission_service),
):
    """Publish a submission under its slug and email the author"""
    try:
        submission = await service.approve(submission_id, approved_by=admin.id)
        return {"status": "success", "data": submission.to_dict()}
    except InnovatesError as e:
        raise to_http_exception(e)


@router.post("/{submission_id}/reject", dependencies=[Depends(limit_attempts(admin_action_limiter, "admin"))])
async def reject_submission(
    submission_id: str,
    admin: TokenUser = Depends(require_admin),
    service: SubmissionService = Depends(get_submission_service),
):
    try:
        return {"status": "success", "data": service.reject(submission_id).to_dict()}
    except InnovatesError as e:
        raise to_http_exception(e)


@router.post("/{submission_id}/pin")
async def toggle_pin(
    submission_id: str,
    admin: TokenUser = Depends(require_admin),
    service: SubmissionService = Depends(get_submission_service),
):
    try:
        return {"status": "success", "data": service.toggle_pin(submission_id).to_dict()}
    except InnovatesError as e:
        raise to_http_exception(e)


@router.post("/{submission_id}/follow-up")
async def send_follow_up(
    submission_id: str,
    admin: TokenUser = Depends(require_admin),
    service: SubmissionService = Depends(get_submission_service),
):
    """Email the draft follow-up offering help to finish the story"""
    try:
        result = await service.send_follow_up(submission_id)
        return {"status": "success", "data": result}
    except InnovatesError as e:
        raise to_http_exception(e)


@router.post("/{submission_id}/images")
async def upload_image(
    submission_id: str,
    file: UploadFile = File(...),
    admin: TokenUser = Depends(require_admin),
    service: SubmissionService = Depends(get_submission_service),
):
    """Upload an image to the submission-images bucket and attach it"""
    try:
        content = await file.read()
        submission = service.add_image(submission_id, content, file.content_type)
        return {"status": "success", "data": submission.to_dict()}
    except InnovatesError as e:
        raise to_http_exception(e)
