"""
Web page fetcher
Pulls readable text from product sales pages for AI product copy
"""
import re
import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

SCRIPT_RE = re.compile(r"<script[^>]*>[\s\S]*?</script>", re.IGNORECASE)
STYLE_RE = re.compile(r"<style[^>]*>[\s\S]*?</style>", re.IGNORECASE)
TAG_RE = re.compile(r"<[^>]*>")
WHITESPACE_RE = re.compile(r"\s+")


def html_to_text(html: str, limit: int = 2000) -> str:
    text = SCRIPT_RE.sub("", html)
    text = STYLE_RE.sub("", text)
    text = TAG_RE.sub(" ", text)
    text = WHITESPACE_RE.sub(" ", text).strip()
    return text[:limit]


class WebConnector:

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._transport = transport

    async def fetch_text(self, url: str, limit: int = 2000) -> str:
        """Text content of url; empty string when the page can't be fetched"""
        try:
            async with httpx.AsyncClient(transport=self._transport, follow_redirects=True) as client:
                response = await client.get(url, timeout=15.0)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Error fetching website content from {url}: {e}")
            return ""

        return html_to_text(response.text, limit)
