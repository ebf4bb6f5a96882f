"""
Vendor Service - marketplace vendor applications
"""
import logging
from typing import List, Optional

from psycopg2.errors import UniqueViolation

from innovates.core.auth import TokenUser
from innovates.core.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from innovates.domain.vendor import (
    INVITE_CONTEXTS,
    ManualVendorCreate,
    VendorApplication,
    VendorApplicationCreate,
    VendorInviteRequest,
    VENDOR_STATUSES,
)
from innovates.repositories.vendor_repository import VendorRepository
from innovates.services.email_service import EmailService
from innovates.services.validation_service import sanitize_text, validate_email, validate_phone, validate_url

logger = logging.getLogger(__name__)

DEFAULT_INVITE_MESSAGES = {
    "admin": (
        "You're invited to become a vendor on America Innovates Marketplace. We believe your products "
        "would be a great fit for our platform and community of innovative entrepreneurs."
    ),
    "vendor": (
        "I'd like to invite you to join America Innovates Marketplace as a vendor. It's been a great "
        "platform for my business and I think you'd benefit from the exposure to innovation-focused customers."
    ),
}


def _validate_application(data: VendorApplicationCreate) -> None:
    errors = {}

    email_check = validate_email(data.contact_email)
    if not email_check.is_valid:
        errors['contact_email'] = email_check.error

    if data.contact_phone:
        phone_check = validate_phone(data.contact_phone)
        if not phone_check.is_valid:
            errors['contact_phone'] = phone_check.error

    url_check = validate_url(data.website)
    if not url_check.is_valid:
        errors['website'] = url_check.error

    if not data.agreed_to_terms:
        errors['agreed_to_terms'] = "You must accept the vendor agreement"

    if errors:
        raise ValidationError("Invalid vendor application", details=errors)


class VendorService:

    def __init__(self, repo: VendorRepository = None, email_service: EmailService = None):
        self.repo = repo or VendorRepository()
        self.email_service = email_service or EmailService()

    def _bio(self, data: VendorApplicationCreate) -> Optional[str]:
        bio = sanitize_text(data.vendor_bio) or None
        if data.website:
            bio = f"{bio}\n\nWebsite: {data.website}" if bio else f"Website: {data.website}"
        return bio

    async def apply(self, user: TokenUser, data: VendorApplicationCreate) -> VendorApplication:
        """
        Submit the signed-in user's vendor application

        Raises:
            ConflictError: the user already applied
        """
        _validate_application(data)
        if self.repo.find_by_user(user.id):
            raise ConflictError("You have already submitted a vendor application")

        try:
            application = self.repo.create(
                user_id=user.id,
                business_name=sanitize_text(data.business_name),
                contact_email=data.contact_email.strip().lower(),
                contact_phone=data.contact_phone,
                shipping_country=data.shipping_country,
                vendor_bio=self._bio(data),
            )
        except UniqueViolation:
            # a concurrent request inserted this user's application first
            raise ConflictError("You have already submitted a vendor application")
        logger.info(f"Vendor application {application.id} submitted by user {user.id}")

        try:
            await self.email_service.send_vendor_confirmation(application)
        except Exception as e:
            logger.error(f"Vendor confirmation email for {application.id} failed: {e}")

        try:
            await self.email_service.notify_admin_vendor(application)
        except Exception as e:
            logger.error(f"Admin notification for vendor application {application.id} failed: {e}")

        return application

    async def create_manual(self, data: ManualVendorCreate) -> VendorApplication:
        """Admin-created vendor, approved immediately"""
        _validate_application(data)
        if data.user_id and self.repo.find_by_user(data.user_id):
            raise ConflictError("This user already has a vendor application")

        bio = self._bio(data)
        if data.product_types:
            bio = f"{bio}\n\nProducts: {data.product_types}" if bio else f"Products: {data.product_types}"

        try:
            application = self.repo.create(
                user_id=data.user_id,
                business_name=sanitize_text(data.business_name),
                contact_email=data.contact_email.strip().lower(),
                contact_phone=data.contact_phone,
                shipping_country=data.shipping_country,
                vendor_bio=bio,
                status="approved",
            )
        except UniqueViolation:
            raise ConflictError("This user already has a vendor application")
        logger.info(f"Vendor {application.id} created manually")

        try:
            await self.email_service.send_vendor_approval(application)
        except Exception as e:
            logger.error(f"Vendor approval email for {application.id} failed: {e}")

        return application

    async def invite(self, inviter: TokenUser, request: VendorInviteRequest,
                     inviter_is_admin: bool = False) -> dict:
        """
        Email an invitation to apply as a vendor

        Admin invites come from the marketplace team; any other invite is sent
        in the inviter's name with replies going to them. Delivery errors propagate.

        Raises:
            ValidationError: bad email or unknown context
            PermissionDeniedError: a non-admin asked for an admin invite
        """
        if request.context not in INVITE_CONTEXTS:
            raise ValidationError(f"Invalid invite context: {request.context}")
        if request.context == "admin" and not inviter_is_admin:
            raise PermissionDeniedError("Only admins can send marketplace invitations")

        result = validate_email(request.invite_email)
        if not result.is_valid:
            raise ValidationError(result.error)
        invite_email = request.invite_email.strip().lower()

        admin_invite = request.context == "admin"
        message = sanitize_text(request.message) or DEFAULT_INVITE_MESSAGES[request.context]
        response = await self.email_service.send_vendor_invite(
            invite_email,
            message,
            admin_invite=admin_invite,
            inviter_name=None if admin_invite else (sanitize_text(inviter.name) or "Someone"),
            inviter_email=None if admin_invite else inviter.email,
        )
        logger.info(f"Vendor invite ({request.context}) sent to {invite_email} by user {inviter.id}")
        return {'invite_email': invite_email, 'email_id': response.get('id')}

    def list_applications(self, status: Optional[str] = None) -> List[VendorApplication]:
        if status and status not in VENDOR_STATUSES:
            raise ValidationError(f"Invalid status: {status}")
        return self.repo.find_all(status=status)

    def get_for_user(self, user_id: str) -> VendorApplication:
        application = self.repo.find_by_user(user_id)
        if application is None:
            raise NotFoundError("No vendor application found")
        return application

    def get_approved_vendor(self, user_id: str) -> VendorApplication:
        application = self.repo.find_by_user(user_id)
        if application is None or not application.is_approved:
            raise NotFoundError("Approved vendor account required")
        return application

    async def approve(self, application_id: str) -> VendorApplication:
        application = self.repo.set_status(application_id, "approved")
        if application is None:
            raise NotFoundError(f"Vendor application {application_id} not found")
        logger.info(f"Vendor application {application_id} approved")

        try:
            await self.email_service.send_vendor_approval(application)
        except Exception as e:
            logger.error(f"Vendor approval email for {application_id} failed: {e}")
        return application

    async def reject(self, application_id: str, reason: Optional[str] = None) -> VendorApplication:
        application = self.repo.set_status(application_id, "rejected", sanitize_text(reason) or None)
        if application is None:
            raise NotFoundError(f"Vendor application {application_id} not found")
        logger.info(f"Vendor application {application_id} rejected")

        try:
            await self.email_service.send_vendor_rejection(application)
        except Exception as e:
            logger.error(f"Vendor rejection email for {application_id} failed: {e}")
        return application


_vendor_service: Optional[VendorService] = None


def get_vendor_service() -> VendorService:
    global _vendor_service
    if _vendor_service is None:
        _vendor_service = VendorService()
    return _vendor_service
