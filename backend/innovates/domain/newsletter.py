"""
Newsletter Domain Models
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict, Any
from datetime import datetime


EMAIL_EVENT_TYPES = ("sent", "opened", "clicked", "unsubscribed")


class Newsletter(BaseModel):
    id: str
    title: str
    subject: str
    content: Optional[str] = None
    html_content: Optional[str] = None
    status: str = "draft"
    sent_at: Optional[datetime] = None
    recipient_count: int = 0
    open_count: int = 0
    click_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class NewsletterCreate(BaseModel):
    title: str = Field(..., min_length=1)
    subject: str = Field(..., min_length=1)
    content: Optional[str] = None
    html_content: Optional[str] = None


class NewsletterUpdate(BaseModel):
    title: Optional[str] = None
    subject: Optional[str] = None
    content: Optional[str] = None
    html_content: Optional[str] = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class Subscriber(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None
    is_active: bool = True
    subscribed_at: Optional[datetime] = None
    unsubscribed_at: Optional[datetime] = None
    subscription_source: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class SubscribeRequest(BaseModel):
    email: str
    full_name: Optional[str] = None
    source: Optional[str] = Field("website", description="Where the signup came from")


class SendNewsletterRequest(BaseModel):
    """
    test_email sends a single copy and leaves the newsletter as draft;
    resend_to_failed only targets active subscribers without a 'sent' event.
    """

    test_email: Optional[str] = None
    resend_to_failed: bool = False


class WeeklyNewsletterRequest(BaseModel):
    test_email: Optional[str] = None
    send: bool = True


class SendResult(BaseModel):
    success: bool
    message: str
    newsletter_id: Optional[str] = None
    total_subscribers: int = 0
    success_count: int = 0
    error_count: int = 0
    errors: List[str] = Field(default_factory=list)
    test_mode: bool = False


class NewsletterAnalytics(BaseModel):
    newsletter_id: str
    recipient_count: int = 0
    events: Dict[str, int] = Field(default_factory=dict)
    open_rate: float = 0.0
    click_rate: float = 0.0
    links: List[Dict[str, Any]] = Field(default_factory=list)


class FeaturedPromotionRequest(BaseModel):
    """Without submission_id, authors approved 24-25 hours ago are emailed"""

    submission_id: Optional[str] = None
