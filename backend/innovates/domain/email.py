"""
Email Domain Models
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, Dict, Any, List


class EmailCustomization(BaseModel):
    """Brand settings applied to every email template"""

    primary_color: str = "#3b82f6"
    accent_color: str = "#10b981"
    company_name: str = "America Innovates Magazine"
    logo_url: Optional[str] = None
    footer_text: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class EmailMessage(BaseModel):
    """A rendered email ready for delivery"""

    to: List[str]
    subject: str
    html: str
    text: Optional[str] = None
    from_address: Optional[str] = None
    reply_to: Optional[str] = None
    headers: Dict[str, str] = Field(default_factory=dict)


class SendEmailRequest(BaseModel):
    """Admin-triggered typed email"""

    type: str = Field(..., description="Template key, e.g. 'approval' or 'draft_follow_up'")
    to: str
    data: Dict[str, Any] = Field(default_factory=dict)
    subject: Optional[str] = None


class TemplateInfo(BaseModel):
    key: str
    name: str
    category: str
    description: str
