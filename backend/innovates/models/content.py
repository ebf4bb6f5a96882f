"""
Editorial tables: submissions, recommendations and user roles
"""
from sqlalchemy import Column, String, Boolean, DateTime, Text, ForeignKey, text
from sqlalchemy.dialects.postgresql import UUID, ARRAY, JSONB
from sqlalchemy.sql import func

from innovates.core.database import Base


def uuid_pk():
    return Column(UUID(as_uuid=False), primary_key=True, server_default=text("gen_random_uuid()"))


class Submission(Base):
    """Innovator story submissions"""
    __tablename__ = "submissions"

    id = uuid_pk()

    # Innovator
    full_name = Column(Text, nullable=False)
    email = Column(Text, nullable=False, index=True)
    phone_number = Column(Text)
    city = Column(Text)
    state = Column(Text)
    background = Column(Text)
    website = Column(Text)
    social_media = Column(Text)

    # Product
    product_name = Column(Text, nullable=False)
    category = Column(Text, index=True)
    description = Column(Text)
    problem_solved = Column(Text)
    stage = Column(Text)

    # Story
    idea_origin = Column(Text)
    biggest_challenge = Column(Text)
    proudest_moment = Column(Text)
    inspiration = Column(Text)
    motivation = Column(Text)

    image_urls = Column(ARRAY(Text), server_default=text("'{}'"))
    recommendations = Column(JSONB)
    selected_vendors = Column(ARRAY(Text), server_default=text("'{}'"))
    generated_article = Column(Text)

    # Publication
    status = Column(String(20), nullable=False, server_default="pending", index=True)
    slug = Column(Text, unique=True)
    featured = Column(Boolean, nullable=False, server_default=text("false"))
    pinned = Column(Boolean, nullable=False, server_default=text("false"))
    is_manual_submission = Column(Boolean, nullable=False, server_default=text("false"))
    approved_at = Column(DateTime(timezone=True))
    approved_by = Column(UUID(as_uuid=False))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Recommendation(Base):
    __tablename__ = "recommendations"

    id = uuid_pk()
    submission_id = Column(UUID(as_uuid=False), ForeignKey("submissions.id", ondelete="CASCADE"), index=True)
    name = Column(Text, nullable=False)
    email = Column(Text, nullable=False)
    reason = Column(Text)
    recommender_name = Column(Text)
    recommender_email = Column(Text)
    email_sent_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class UserRole(Base):
    __tablename__ = "user_roles"

    id = uuid_pk()
    user_id = Column(UUID(as_uuid=False), nullable=False, index=True)
    role = Column(String(20), nullable=False, server_default="user")
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class EmailCustomization(Base):
    __tablename__ = "email_customizations"

    id = uuid_pk()
    primary_color = Column(String(20), server_default="#3b82f6")
    accent_color = Column(String(20), server_default="#10b981")
    company_name = Column(Text, server_default="America Innovates Magazine")
    logo_url = Column(Text)
    footer_text = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
