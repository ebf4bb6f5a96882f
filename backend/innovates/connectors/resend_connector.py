"""
Resend API Connector
Delivers transactional and newsletter emails
"""
import logging
from typing import Dict, Optional

import httpx

from innovates.core.config import settings
from innovates.core.exceptions import ConfigurationError, ExternalServiceError
from innovates.domain.email import EmailMessage

logger = logging.getLogger(__name__)


class ResendConnector:
    """Connector for the Resend email API"""

    def __init__(self, api_key: str = None, default_from: str = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = api_key or settings.RESEND_API_KEY
        if not self.api_key:
            raise ConfigurationError("RESEND_API_KEY is not set")

        self.default_from = default_from or settings.EMAIL_FROM
        self.base_url = "https://api.resend.com"
        self.headers = {
            'Authorization': f'Bearer {self.api_key}',
            'Content-Type': 'application/json',
        }
        self._transport = transport

    async def send(self, message: EmailMessage) -> Dict:
        """
        Send one email

        Returns:
            Resend response ({"id": "..."})

        Raises:
            ExternalServiceError: Resend rejected the message
        """
        payload = {
            'from': message.from_address or self.default_from,
            'to': message.to,
            'subject': message.subject,
            'html': message.html,
        }
        if message.text:
            payload['text'] = message.text
        if message.reply_to:
            payload['reply_to'] = message.reply_to
        if message.headers:
            payload['headers'] = message.headers

        async with httpx.AsyncClient(transport=self._transport) as client:
            response = await client.post(
                f"{self.base_url}/emails",
                json=payload,
                headers=self.headers,
                timeout=30.0
            )

        if response.status_code >= 400:
            try:
                error = response.json()
            except ValueError:
                error = {'message': response.text}
            logger.error(f"Resend API error for {message.to}: {response.status_code} - {error}")
            raise ExternalServiceError(
                f"Resend API error: {error.get('message', 'unknown error')}",
                details=error
            )

        result = response.json()
        logger.info(f"Email sent to {message.to} (id={result.get('id')})")
        return result
