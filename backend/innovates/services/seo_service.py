"""
SEO Service

sitemap.xml, robots.txt, ads.txt and social-crawler article pages with
Open Graph / Twitter / JSON-LD metadata. Regular browsers hitting an
article URL are sent to the single-page app instead.
"""
import re
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from innovates.core.config import settings
from innovates.core.exceptions import NotFoundError
from innovates.domain.submission import Submission
from innovates.repositories.submission_repository import SubmissionRepository

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "seo"

SOCIAL_CRAWLER_RE = re.compile(
    r"facebookexternalhit|twitterbot|linkedinbot|pinterest|slackbot|whatsapp", re.IGNORECASE
)

STATIC_PAGES = [
    ("", "1.0"),
    ("/about", "0.8"),
    ("/stories", "0.9"),
    ("/marketplace", "0.8"),
]
ARTICLE_PRIORITY = "0.7"

AI_CRAWLERS = ("GPTBot", "ChatGPT-User", "CCBot", "anthropic-ai", "Claude-Web")

CACHE_HEADERS = {'Cache-Control': 'public, max-age=3600'}

ADS_TXT_CERTIFICATION_ID = "f08c47fec0942fa0"


def is_social_crawler(user_agent: Optional[str]) -> bool:
    return bool(user_agent and SOCIAL_CRAWLER_RE.search(user_agent))


def _iso(value: Optional[datetime]) -> str:
    value = value or datetime.now(timezone.utc)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def build_robots_txt() -> str:
    site = settings.SITE_URL
    lines = [
        "User-agent: *",
        "Allow: /",
        "Allow: /about",
        "Allow: /stories",
        "Allow: /article/*",
        "Allow: /sitemap.xml",
        "",
        "Disallow: /admin",
        "Disallow: /auth",
        "Disallow: /submit",
        "",
        f"Sitemap: {site}/sitemap.xml",
        "",
        "# Block AI training crawlers",
    ]
    for bot in AI_CRAWLERS:
        lines.extend([f"User-agent: {bot}", "Disallow: /", ""])
    return "\n".join(lines)


def build_ads_txt() -> str:
    publisher = settings.ADSENSE_PUBLISHER_ID
    return (
        f"google.com, {publisher}, DIRECT, {ADS_TXT_CERTIFICATION_ID}\n"
        f"googlesyndication.com, {publisher}, DIRECT, {ADS_TXT_CERTIFICATION_ID}\n"
    )


def spa_article_url(slug: str) -> str:
    return f"{settings.SITE_URL}/#/article/{slug}"


class SEOService:

    def __init__(self, repo: SubmissionRepository = None):
        self.repo = repo or SubmissionRepository()
        self.env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=select_autoescape(['html', 'xml']),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def build_sitemap(self, now: datetime = None) -> str:
        now_iso = _iso(now)
        entries: List[Dict[str, Any]] = [
            {'loc': f"{settings.SITE_URL}{path}", 'lastmod': now_iso, 'priority': priority}
            for path, priority in STATIC_PAGES
        ]

        articles = self.repo.find_sitemap_entries()
        for article in articles:
            entries.append({
                'loc': f"{settings.SITE_URL}/article/{article['slug']}",
                'lastmod': _iso(article.get('updated_at')),
                'priority': ARTICLE_PRIORITY,
            })

        logger.info(f"Sitemap generated with {len(articles)} articles")
        return self.env.get_template("sitemap.xml").render(entries=entries)

    def article_metadata(self, article: Submission) -> Dict[str, Any]:
        title = f"{article.product_name} | {settings.SITE_NAME}"
        description = article.description or (
            f"Read about {article.product_name} by {article.full_name} - "
            f"an inspiring innovation story from {settings.SITE_NAME}."
        )
        image = article.image_urls[0] if article.image_urls else settings.DEFAULT_SHARE_IMAGE
        url = f"{settings.SITE_URL}/article/{article.slug}"

        json_ld = {
            "@context": "https://schema.org",
            "@type": "Article",
            "headline": article.product_name,
            "description": description,
            "image": image,
            "author": {"@type": "Person", "name": article.full_name},
            "publisher": {
                "@type": "Organization",
                "name": settings.SITE_NAME,
                "logo": {"@type": "ImageObject", "url": settings.DEFAULT_SHARE_IMAGE},
            },
            "url": url,
        }
        if article.approved_at:
            json_ld["datePublished"] = _iso(article.approved_at)

        return {
            'title': title,
            'description': description,
            'image': image,
            'url': url,
            'headline': article.product_name,
            'author': article.full_name,
            'site_name': settings.SITE_NAME,
            # article text must not close the script element
            'json_ld': json.dumps(json_ld, indent=2).replace("<", "\\u003c"),
        }

    def render_article_page(self, slug: str) -> str:
        """
        Metadata page for social crawlers

        Raises:
            NotFoundError: unknown slug or article not approved
        """
        article = self.repo.find_by_slug(slug, approved_only=True)
        if article is None:
            raise NotFoundError("Article not found")
        return self.env.get_template("article_meta.html").render(**self.article_metadata(article))

    def article_exists(self, slug: str) -> bool:
        return self.repo.find_by_slug(slug, approved_only=True) is not None


_seo_service: Optional[SEOService] = None


def get_seo_service() -> SEOService:
    global _seo_service
    if _seo_service is None:
        _seo_service = SEOService()
    return _seo_service
