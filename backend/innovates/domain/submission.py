"""
Submission Domain Models

An innovator's story submission, collected by the six-step wizard on the
site and turned into a magazine article once an admin approves it.
"""
from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional, List, Any
from datetime import datetime


SUBMISSION_STATUSES = ("draft", "pending", "approved", "rejected")


class RecommendationInput(BaseModel):
    """Someone the submitter thinks should also be featured"""

    name: str = Field(..., description="Recommended person's name", min_length=1)
    email: str = Field(..., description="Recommended person's email")
    reason: Optional[str] = Field(None, description="Why they should be featured")


class StoryFields(BaseModel):
    """
    Wizard fields shared by submissions and article generation.

    Accepts both snake_case and the camelCase names the site sends
    (fullName, productName, ...).
    """

    full_name: str = Field("", description="Innovator's full name")
    email: str = Field("", description="Innovator's email")
    phone_number: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    background: Optional[str] = None
    website: Optional[str] = None
    social_media: Optional[str] = None

    product_name: str = Field("", description="Product or company name")
    category: Optional[str] = None
    description: Optional[str] = None
    problem_solved: Optional[str] = None
    stage: Optional[str] = None

    idea_origin: Optional[str] = None
    biggest_challenge: Optional[str] = None
    proudest_moment: Optional[str] = None
    inspiration: Optional[str] = None
    motivation: Optional[str] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SubmissionCreate(StoryFields):
    """Final wizard payload (step six)"""

    image_urls: List[str] = Field(default_factory=list)
    recommendations: List[RecommendationInput] = Field(default_factory=list)
    selected_vendors: List[str] = Field(default_factory=list, description="Vendors the innovator wants to work with")
    consent: bool = Field(False, description="Agreed to be featured")
    generate_article: bool = Field(True, description="Generate the AI draft right away")


class SubmissionUpdate(BaseModel):
    """Admin edits (article editor); only provided fields are written"""

    full_name: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    background: Optional[str] = None
    website: Optional[str] = None
    social_media: Optional[str] = None
    product_name: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    problem_solved: Optional[str] = None
    stage: Optional[str] = None
    idea_origin: Optional[str] = None
    biggest_challenge: Optional[str] = None
    proudest_moment: Optional[str] = None
    inspiration: Optional[str] = None
    motivation: Optional[str] = None
    generated_article: Optional[str] = None
    image_urls: Optional[List[str]] = None
    featured: Optional[bool] = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class Submission(BaseModel):
    """Submission row"""

    id: str = Field(..., description="Submission UUID")
    full_name: str
    email: str
    phone_number: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    background: Optional[str] = None
    website: Optional[str] = None
    social_media: Optional[str] = None

    product_name: str
    category: Optional[str] = None
    description: Optional[str] = None
    problem_solved: Optional[str] = None
    stage: Optional[str] = None

    idea_origin: Optional[str] = None
    biggest_challenge: Optional[str] = None
    proudest_moment: Optional[str] = None
    inspiration: Optional[str] = None
    motivation: Optional[str] = None

    image_urls: List[str] = Field(default_factory=list)
    recommendations: Optional[Any] = None
    selected_vendors: List[str] = Field(default_factory=list)
    generated_article: Optional[str] = None

    status: str = Field("pending", description="draft | pending | approved | rejected")
    slug: Optional[str] = Field(None, description="Public article slug, set at approval")
    featured: bool = False
    pinned: bool = False
    is_manual_submission: bool = False
    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_approved(self) -> bool:
        return self.status == "approved"

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")


class Recommendation(BaseModel):
    id: str
    submission_id: Optional[str] = None
    name: str
    email: str
    reason: Optional[str] = None
    recommender_name: Optional[str] = None
    recommender_email: Optional[str] = None
    email_sent_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ArticleSummary(BaseModel):
    """Public listing card for an approved story"""

    id: str
    slug: Optional[str] = None
    full_name: str
    product_name: str
    category: Optional[str] = None
    description: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    image_urls: List[str] = Field(default_factory=list)
    featured: bool = False
    pinned: bool = False
    approved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class GenerateArticleRequest(StoryFields):
    """Article generation; the draft is stored when submission_id is given"""

    submission_id: Optional[str] = None


class ProductContentRequest(BaseModel):
    product_name: str = Field(..., min_length=1)
    category: Optional[str] = None
    basic_description: Optional[str] = None
    sales_links: List[str] = Field(default_factory=list)
    image_count: int = Field(0, ge=0)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
