"""
AI Article Generation Service

Turns a story submission into a magazine feature draft and writes product
copy for marketplace listings.

Providers:
- openai (default): chat completions via OpenAIConnector
- anthropic: Messages API via the official SDK
"""
import json
import re
import logging
from typing import Dict, Any, Optional, List

import anthropic

from innovates.core.config import settings
from innovates.core.exceptions import ConfigurationError, ExternalServiceError
from innovates.connectors.openai_connector import OpenAIConnector
from innovates.connectors.web_connector import WebConnector
from innovates.domain.submission import StoryFields

logger = logging.getLogger(__name__)

# ============================================================================
# CONFIGURATION
# ============================================================================

ARTICLE_MAX_TOKENS = 2000
PRODUCT_MAX_TOKENS = 1500
TEMPERATURE = 0.7
MAX_SALES_LINKS = 3
NOT_PROVIDED = "Not provided"

ARTICLE_SYSTEM_PROMPT = (
    "You are a professional magazine writer specializing in innovation and technology stories. "
    "Write engaging, well-structured articles that inspire and inform readers about breakthrough "
    "products and the entrepreneurs behind them."
)

PRODUCT_SYSTEM_PROMPT = (
    "You are an expert product copywriter. Always respond with valid JSON only, "
    "no additional text or formatting."
)

FENCED_JSON_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)


def _value(value: Optional[str]) -> str:
    return value if value else NOT_PROVIDED


def build_article_prompt(story: StoryFields) -> str:
    """Magazine feature prompt; missing answers read 'Not provided'"""
    return f"""Write a professional magazine article about an innovative consumer product. Use the following information:

INNOVATOR PROFILE:
- Name: {_value(story.full_name)}
- Location: {_value(story.city)}, {_value(story.state)}
- Background: {_value(story.background)}
- Website: {_value(story.website)}
- Social Media: {_value(story.social_media)}

PRODUCT DETAILS:
- Product Name: {_value(story.product_name)}
- Category: {_value(story.category)}
- Stage: {_value(story.stage)}
- Description: {_value(story.description)}
- Problem Solved: {_value(story.problem_solved)}

THE INNOVATION STORY:
- How the idea originated: {_value(story.idea_origin)}
- Biggest challenge faced: {_value(story.biggest_challenge)}
- Proudest moment: {_value(story.proudest_moment)}
- Key inspiration/support: {_value(story.inspiration)}
- What motivates continued development: {_value(story.motivation)}

Please write a compelling, professional magazine article (800-1200 words) that tells this innovation story. Include:
1. An engaging headline
2. A strong opening that hooks the reader
3. The innovator's background and what led to the product idea
4. The problem the product solves and its market potential
5. Key challenges overcome during development
6. The innovator's proudest moments and future vision
7. A conclusion that inspires other innovators

Write in the style of a feature article for America Innovates Magazine, focusing on the human story behind the innovation while highlighting the product's impact and potential."""


def build_product_prompt(product_name: str, category: Optional[str], basic_description: Optional[str],
                         image_count: int, website_contents: List[str]) -> str:
    website_section = ""
    if website_contents:
        joined = "\n\n".join(website_contents)
        website_section = f"\nWebsite Content Analysis:\n{joined}\n"

    return f"""You are an expert product copywriter and marketing specialist. Create compelling, detailed product content for an e-commerce marketplace.

Product Information:
- Name: {product_name}
- Category: {category or 'Not specified'}
- Basic Description: {basic_description or NOT_PROVIDED}
- Number of Images: {image_count}
{website_section}
Please generate:
1. An enhanced, compelling product description (2-3 paragraphs) that highlights key features and benefits, addresses potential customer pain points and is SEO-friendly
2. 8-12 relevant product tags that include the product category, cover key features and mix broad and specific search terms
3. Product specifications object with relevant technical details based on the category and available information

Return your response as a JSON object with this exact structure:
{{
  "description": "Enhanced product description here",
  "tags": ["tag1", "tag2", "tag3"],
  "specifications": {{
    "key1": "value1",
    "key2": "value2"
  }}
}}

Make sure the content is professional, engaging, and tailored to the product category. If specific details aren't available, create reasonable specifications based on the product name and category."""


def parse_json_response(text: str) -> Dict[str, Any]:
    """Parse a JSON object from model output, tolerating ```json fences"""
    candidate = text.strip()
    match = FENCED_JSON_RE.search(candidate)
    if match:
        candidate = match.group(1)

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError:
        logger.error(f"Error parsing AI response: {text[:500]}")
        raise ExternalServiceError("Failed to parse AI response")

    if not isinstance(data, dict):
        raise ExternalServiceError("Failed to parse AI response")
    return data


class ArticleGenerationService:
    """
    Generates editorial content with the configured AI provider.
    """

    def __init__(self, provider: str = None, openai_connector: OpenAIConnector = None,
                 web_connector: WebConnector = None):
        self.provider = (provider or settings.AI_PROVIDER).lower()
        self._openai = openai_connector
        self._web = web_connector or WebConnector()
        self._anthropic = None
        logger.info(f"ArticleGenerationService initialized with provider: {self.provider}")

    async def _complete(self, system: str, prompt: str, max_tokens: int) -> str:
        if self.provider == "anthropic":
            return await self._complete_anthropic(system, prompt, max_tokens)

        if self._openai is None:
            self._openai = OpenAIConnector()
        return await self._openai.chat(
            [
                {'role': 'system', 'content': system},
                {'role': 'user', 'content': prompt},
            ],
            max_tokens=max_tokens,
            temperature=TEMPERATURE,
        )

    async def _complete_anthropic(self, system: str, prompt: str, max_tokens: int) -> str:
        if self._anthropic is None:
            if not settings.ANTHROPIC_API_KEY:
                raise ConfigurationError(
                    "Anthropic API key not configured",
                    details="Set ANTHROPIC_API_KEY or use AI_PROVIDER=openai"
                )
            self._anthropic = anthropic.AsyncAnthropic(api_key=settings.ANTHROPIC_API_KEY)

        try:
            response = await self._anthropic.messages.create(
                model=settings.ANTHROPIC_MODEL,
                max_tokens=max_tokens,
                temperature=TEMPERATURE,
                system=system,
                messages=[{'role': 'user', 'content': prompt}],
            )
        except anthropic.APIError as e:
            logger.error(f"Anthropic API error: {e}")
            raise ExternalServiceError(f"Anthropic API error: {e}")

        logger.info(
            f"Anthropic completion ok (input={response.usage.input_tokens}, output={response.usage.output_tokens})"
        )
        return "".join(block.text for block in response.content if block.type == "text")

    async def generate_article(self, story: StoryFields) -> str:
        """
        Write a feature article for a submission

        Raises:
            ConfigurationError: provider key missing
            ExternalServiceError: provider returned an error
        """
        logger.info(f"Generating article for '{story.product_name or 'unknown product'}'")
        article = await self._complete(ARTICLE_SYSTEM_PROMPT, build_article_prompt(story), ARTICLE_MAX_TOKENS)
        logger.info(f"Article generated successfully, length: {len(article)}")
        return article

    async def generate_product_content(self, product_name: str, category: Optional[str] = None,
                                       basic_description: Optional[str] = None,
                                       sales_links: Optional[List[str]] = None,
                                       image_count: int = 0) -> Dict[str, Any]:
        """
        Write marketplace copy for a product

        Returns:
            {"description": str, "tags": [...], "specifications": {...}}
        """
        website_contents = []
        for link in (sales_links or [])[:MAX_SALES_LINKS]:
            content = await self._web.fetch_text(link)
            if content:
                website_contents.append(f"Content from {link}:\n{content}")

        prompt = build_product_prompt(product_name, category, basic_description, image_count, website_contents)
        raw = await self._complete(PRODUCT_SYSTEM_PROMPT, prompt, PRODUCT_MAX_TOKENS)
        content = parse_json_response(raw)

        return {
            'description': content.get('description', ''),
            'tags': content.get('tags') or [],
            'specifications': content.get('specifications') or {},
        }


# Singleton instance
_service_instance: Optional[ArticleGenerationService] = None


def get_article_service() -> ArticleGenerationService:
    """Get the singleton article generation service."""
    global _service_instance
    if _service_instance is None:
        _service_instance = ArticleGenerationService()
    return _service_instance
