"""
Submission Service

Story wizard intake, admin review (edit, approve, reject, pin, follow-up)
and the public article listing.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from innovates.core.exceptions import NotFoundError, ValidationError
from innovates.domain.submission import ArticleSummary, StoryFields, Submission, SubmissionCreate, SubmissionUpdate
from innovates.repositories.recommendation_repository import RecommendationRepository
from innovates.repositories.submission_repository import SubmissionRepository
from innovates.services.article_generation_service import ArticleGenerationService, get_article_service
from innovates.services.email_service import EmailService
from innovates.services.storage_service import StorageService
from innovates.services.validation_service import (
    sanitize_text, slugify, validate_email, validate_phone, validate_url,
)

logger = logging.getLogger(__name__)

# Free-text wizard answers that are sanitized before storage
TEXT_FIELDS = (
    'full_name', 'city', 'state', 'background', 'social_media', 'product_name', 'category',
    'description', 'problem_solved', 'stage', 'idea_origin', 'biggest_challenge',
    'proudest_moment', 'inspiration', 'motivation',
)

SEARCH_MIN_LENGTH = 2


def validate_submission(data: SubmissionCreate) -> Dict[str, str]:
    """Field errors for a wizard payload; empty when valid"""
    errors: Dict[str, str] = {}

    if not data.full_name or not data.full_name.strip():
        errors['full_name'] = "Full name is required"

    email_check = validate_email(data.email)
    if not email_check.is_valid:
        errors['email'] = email_check.error

    if data.phone_number:
        phone_check = validate_phone(data.phone_number)
        if not phone_check.is_valid:
            errors['phone_number'] = phone_check.error

    website_check = validate_url(data.website)
    if not website_check.is_valid:
        errors['website'] = website_check.error

    if not data.product_name or not data.product_name.strip():
        errors['product_name'] = "Product name is required"

    if not data.selected_vendors:
        errors['selected_vendors'] = "Select at least one vendor"

    if not data.consent:
        errors['consent'] = "You must agree to be featured"

    for index, recommendation in enumerate(data.recommendations):
        check = validate_email(recommendation.email)
        if not check.is_valid:
            errors[f"recommendations[{index}].email"] = check.error

    return errors


class SubmissionService:

    def __init__(self, repo: SubmissionRepository = None,
                 recommendation_repo: RecommendationRepository = None,
                 email_service: EmailService = None,
                 article_service: ArticleGenerationService = None,
                 storage: StorageService = None):
        self.repo = repo or SubmissionRepository()
        self.recommendation_repo = recommendation_repo or RecommendationRepository()
        self.email_service = email_service or EmailService()
        self._article_service = article_service
        self._storage = storage

    @property
    def article_service(self) -> ArticleGenerationService:
        if self._article_service is None:
            self._article_service = get_article_service()
        return self._article_service

    @property
    def storage(self) -> StorageService:
        if self._storage is None:
            self._storage = StorageService()
        return self._storage

    def _get(self, submission_id: str) -> Submission:
        submission = self.repo.find_by_id(submission_id)
        if submission is None:
            raise NotFoundError(f"Submission {submission_id} not found")
        return submission

    # ==================== INTAKE ====================

    async def create(self, data: SubmissionCreate) -> Submission:
        """
        Store a completed wizard submission

        Side effects (each failure is logged, never fatal):
        - recommendation emails and rows
        - admin notification
        - AI article draft when generate_article is set
        """
        errors = validate_submission(data)
        if errors:
            raise ValidationError("Invalid submission", details=errors)

        values = data.model_dump(exclude={'recommendations', 'generate_article', 'consent'})
        for field in TEXT_FIELDS:
            if values.get(field):
                values[field] = sanitize_text(values[field])
        values['email'] = data.email.strip().lower()
        values['recommendations'] = [r.model_dump() for r in data.recommendations]
        values['status'] = 'pending'

        submission = self.repo.create(values)
        logger.info(f"Submission {submission.id} created for '{submission.product_name}'")

        await self._store_recommendations(submission, data)

        try:
            await self.email_service.notify_admin_submission(submission)
        except Exception as e:
            logger.error(f"Admin notification for submission {submission.id} failed: {e}")

        if data.generate_article:
            submission = await self._generate_and_store(submission, data)

        return submission

    async def _store_recommendations(self, submission: Submission, data: SubmissionCreate) -> None:
        records = []
        for recommendation in data.recommendations:
            sent_at = None
            try:
                await self.email_service.send_recommendation(
                    recommendation.email, recommendation.name, submission.full_name
                )
                sent_at = datetime.now(timezone.utc)
            except Exception as e:
                logger.error(f"Recommendation email to {recommendation.email} failed: {e}")

            records.append({
                'name': sanitize_text(recommendation.name),
                'email': recommendation.email.strip().lower(),
                'reason': sanitize_text(recommendation.reason),
                'submission_id': submission.id,
                'recommender_name': submission.full_name,
                'recommender_email': submission.email,
                'email_sent_at': sent_at,
            })

        if records:
            self.recommendation_repo.create_many(records)

    async def _generate_and_store(self, submission: Submission, story: StoryFields) -> Submission:
        try:
            article = await self.article_service.generate_article(story)
        except Exception as e:
            logger.error(f"Article generation for submission {submission.id} failed: {e}")
            return submission

        updated = self.repo.update(submission.id, {'generated_article': article})
        return updated or submission

    async def generate_article(self, story: StoryFields, submission_id: Optional[str] = None) -> str:
        """Generate an article; stored on the submission when submission_id is given"""
        if submission_id:
            self._get(submission_id)

        article = await self.article_service.generate_article(story)
        if submission_id:
            self.repo.update(submission_id, {'generated_article': article})
            logger.info(f"Stored generated article on submission {submission_id}")
        return article

    # ==================== ADMIN ====================

    def list_submissions(self, status: Optional[str] = None, search: Optional[str] = None,
                         limit: int = 50, offset: int = 0) -> Tuple[List[Submission], int]:
        return self.repo.find_all(status=status, search=search, limit=limit, offset=offset)

    def get(self, submission_id: str) -> Submission:
        return self._get(submission_id)

    def update(self, submission_id: str, data: SubmissionUpdate) -> Submission:
        changes = data.changes()
        if 'email' in changes:
            check = validate_email(changes['email'])
            if not check.is_valid:
                raise ValidationError(check.error)
        if 'website' in changes:
            check = validate_url(changes['website'])
            if not check.is_valid:
                raise ValidationError(check.error)

        submission = self.repo.update(submission_id, changes)
        if submission is None:
            raise NotFoundError(f"Submission {submission_id} not found")
        return submission

    def unique_slug(self, submission: Submission) -> str:
        """slugified product name; a short id suffix is added when it is taken"""
        base = slugify(submission.product_name) or "article"
        if not self.repo.slug_exists(base):
            return base

        candidate = f"{base}-{submission.id.replace('-', '')[:8]}"
        if not self.repo.slug_exists(candidate):
            return candidate
        return f"{candidate}-{int(datetime.now(timezone.utc).timestamp())}"

    async def approve(self, submission_id: str, approved_by: Optional[str]) -> Submission:
        submission = self._get(submission_id)
        slug = submission.slug or self.unique_slug(submission)

        approved = self.repo.approve(submission_id, slug, approved_by)
        if approved is None:
            raise NotFoundError(f"Submission {submission_id} not found")
        logger.info(f"Submission {submission_id} approved as /article/{slug}")

        try:
            await self.email_service.send_approval(approved)
        except Exception as e:
            logger.error(f"Approval email for submission {submission_id} failed: {e}")

        return approved

    def reject(self, submission_id: str) -> Submission:
        submission = self.repo.update(submission_id, {'status': 'rejected'})
        if submission is None:
            raise NotFoundError(f"Submission {submission_id} not found")
        logger.info(f"Submission {submission_id} rejected")
        return submission

    def toggle_pin(self, submission_id: str) -> Submission:
        submission = self._get(submission_id)
        return self.repo.update(submission_id, {'pinned': not submission.pinned})

    async def send_follow_up(self, submission_id: str) -> Dict[str, Any]:
        submission = self._get(submission_id)
        result = await self.email_service.send_draft_follow_up(
            submission.email, submission.full_name, submission.product_name
        )
        return {'success': True, 'email_id': result.get('id')}

    def add_image(self, submission_id: str, content: bytes, content_type: Optional[str]) -> Submission:
        self._get(submission_id)
        url = self.storage.upload_image(f"submissions/{submission_id}", content, content_type)
        submission = self.repo.append_image(submission_id, url)
        if submission is None:
            raise NotFoundError(f"Submission {submission_id} not found")
        return submission

    # ==================== PUBLIC ====================

    def list_articles(self, category: Optional[str] = None, limit: int = 20,
                      offset: int = 0) -> List[ArticleSummary]:
        return self.repo.find_published(category=category, limit=limit, offset=offset)

    def search_articles(self, query: str) -> List[ArticleSummary]:
        query = (query or "").strip()
        if len(query) < SEARCH_MIN_LENGTH:
            return []
        return self.repo.search_published(query, limit=10)

    def get_article(self, slug: str) -> Submission:
        submission = self.repo.find_by_slug(slug, approved_only=True)
        if submission is None:
            raise NotFoundError(f"Article '{slug}' not found")
        return submission


_submission_service: Optional[SubmissionService] = None


def get_submission_service() -> SubmissionService:
    global _submission_service
    if _submission_service is None:
        _submission_service = SubmissionService()
    return _submission_service
