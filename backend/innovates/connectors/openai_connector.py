"""
OpenAI API Connector
Chat completions used for article and product copy generation
"""
import logging
from typing import Dict, List, Optional

import httpx

from innovates.core.config import settings
from innovates.core.exceptions import ConfigurationError, ExternalServiceError

logger = logging.getLogger(__name__)


class OpenAIConnector:
    """Connector for the OpenAI chat completions endpoint"""

    def __init__(self, api_key: str = None, model: str = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = api_key or settings.OPENAI_API_KEY
        if not self.api_key:
            raise ConfigurationError(
                "OpenAI API key not configured",
                details="Set OPENAI_API_KEY to enable article generation"
            )

        self.model = model or settings.OPENAI_MODEL
        self.base_url = "https://api.openai.com/v1"
        self.headers = {
            'Authorization': f'Bearer {self.api_key}',
            'Content-Type': 'application/json',
        }
        self._transport = transport

    async def chat(self, messages: List[Dict[str, str]], max_tokens: int = 2000,
                   temperature: float = 0.7) -> str:
        """
        Run a chat completion

        Args:
            messages: [{"role": "system"|"user", "content": "..."}]

        Returns:
            Text of the first choice
        """
        async with httpx.AsyncClient(transport=self._transport) as client:
            response = await client.post(
                f"{self.base_url}/chat/completions",
                json={
                    'model': self.model,
                    'messages': messages,
                    'max_tokens': max_tokens,
                    'temperature': temperature,
                },
                headers=self.headers,
                timeout=60.0
            )

        if response.status_code >= 400:
            logger.error(f"OpenAI API error: {response.status_code} - {response.text}")
            raise ExternalServiceError(
                f"OpenAI API error: {response.status_code}",
                details=response.text
            )

        data = response.json()
        choices = data.get('choices') or []
        if not choices:
            raise ExternalServiceError("OpenAI returned no choices", details=data)

        usage = data.get('usage', {})
        logger.info(f"OpenAI completion ok (model={self.model}, tokens={usage.get('total_tokens')})")
        return choices[0]['message']['content']
