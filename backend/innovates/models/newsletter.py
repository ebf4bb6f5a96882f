"""
Newsletter tables: issues, subscribers, tracked links and email events
"""
from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text, ForeignKey, text
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.sql import func

from innovates.core.database import Base
from innovates.models.content import uuid_pk


class Newsletter(Base):
    __tablename__ = "newsletters"

    id = uuid_pk()
    title = Column(Text, nullable=False)
    subject = Column(Text, nullable=False)
    content = Column(Text)
    html_content = Column(Text)
    status = Column(String(20), nullable=False, server_default="draft")
    sent_at = Column(DateTime(timezone=True))
    recipient_count = Column(Integer, server_default="0")
    open_count = Column(Integer, server_default="0")
    click_count = Column(Integer, server_default="0")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class NewsletterSubscriber(Base):
    __tablename__ = "newsletter_subscribers"

    id = uuid_pk()
    email = Column(Text, nullable=False, unique=True)
    full_name = Column(Text)
    is_active = Column(Boolean, nullable=False, server_default=text("true"), index=True)
    subscribed_at = Column(DateTime(timezone=True), server_default=func.now())
    unsubscribed_at = Column(DateTime(timezone=True))
    subscription_source = Column(Text)


class NewsletterLink(Base):
    __tablename__ = "newsletter_links"

    id = uuid_pk()
    newsletter_id = Column(UUID(as_uuid=False), ForeignKey("newsletters.id", ondelete="CASCADE"), index=True)
    original_url = Column(Text, nullable=False)
    tracking_token = Column(Text, nullable=False, unique=True)
    click_count = Column(Integer, server_default="0")
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class EmailAnalytics(Base):
    __tablename__ = "email_analytics"

    id = uuid_pk()
    newsletter_id = Column(UUID(as_uuid=False), ForeignKey("newsletters.id", ondelete="CASCADE"), index=True)
    subscriber_id = Column(UUID(as_uuid=False), ForeignKey("newsletter_subscribers.id", ondelete="SET NULL"), index=True)
    event_type = Column(String(20), nullable=False, index=True)
    event_data = Column(JSONB)
    user_agent = Column(Text)
    ip_address = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
