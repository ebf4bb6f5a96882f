"""
Vendor Domain Models

Marketplace vendor applications. Each signed-in user may apply once; an
admin approves or rejects the application.
"""
from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional
from datetime import datetime


VENDOR_STATUSES = ("pending", "approved", "rejected")
INVITE_CONTEXTS = ("admin", "vendor")


class VendorApplicationCreate(BaseModel):
    """Vendor application form"""

    business_name: str = Field(..., description="Business name", min_length=2)
    contact_email: str = Field(..., description="Contact email")
    contact_phone: Optional[str] = Field(None, description="Contact phone (US)")
    shipping_country: Optional[str] = Field(None, description="Country products ship from")
    vendor_bio: Optional[str] = Field(None, description="Short description of the vendor")
    website: Optional[str] = None
    agreed_to_terms: bool = Field(True, description="Accepted the vendor agreement")

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ManualVendorCreate(VendorApplicationCreate):
    """Admin-created vendor; user_id links to an existing account when known"""

    user_id: Optional[str] = None
    product_types: Optional[str] = None


class VendorInviteRequest(BaseModel):
    """Invitation for a business to apply as a vendor"""

    invite_email: str = Field(..., description="Address to invite")
    message: Optional[str] = Field(None, description="Personal note; a default is used when empty")
    context: str = Field("vendor", description="admin | vendor")

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VendorReview(BaseModel):
    rejection_reason: Optional[str] = Field(None, description="Shown to the vendor in the rejection email")


class VendorApplication(BaseModel):
    """vendor_applications row"""

    id: str
    user_id: Optional[str] = None
    business_name: str
    contact_email: str
    contact_phone: Optional[str] = None
    shipping_country: Optional[str] = None
    vendor_bio: Optional[str] = None
    status: str = Field("pending", description="pending | approved | rejected")
    reviewed_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_approved(self) -> bool:
        return self.status == "approved"
