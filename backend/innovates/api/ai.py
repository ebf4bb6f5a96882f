"""
AI Content API Endpoints
Article drafts for submissions and marketplace product copy
"""
import logging

from fastapi import APIRouter, Depends, HTTPException

from innovates.core.auth import TokenUser, get_current_user
from innovates.core.exceptions import InnovatesError, to_http_exception
from innovates.domain.submission import GenerateArticleRequest, ProductContentRequest
from innovates.services.article_generation_service import ArticleGenerationService, get_article_service
from innovates.services.submission_service import SubmissionService, get_submission_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/generate-article")
async def generate_article(
    data: GenerateArticleRequest,
    service: SubmissionService = Depends(get_submission_service),
):
    """
    Write a magazine feature from wizard answers

    Missing answers are sent to the model as "Not provided".
    """
    try:
        article = await service.generate_article(data, submission_id=data.submission_id)
        return {"article": article}

    except InnovatesError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error generating article: {e}")
        raise HTTPException(status_code=500, detail=f"Error generating article: {str(e)}")


@router.post("/generate-product-content")
async def generate_product_content(
    data: ProductContentRequest,
    user: TokenUser = Depends(get_current_user),
    service: ArticleGenerationService = Depends(get_article_service),
):
    """Description, tags and specifications for a product listing"""
    try:
        return await service.generate_product_content(
            data.product_name,
            category=data.category,
            basic_description=data.basic_description,
            sales_links=data.sales_links,
            image_count=data.image_count,
        )

    except InnovatesError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error generating product content: {e}")
        raise HTTPException(status_code=500, detail=f"Error generating product content: {str(e)}")
