"""
PayPal Orders API Connector
Creates and captures PayPal orders for featured story upgrades
"""
import logging
from typing import Dict, Optional

import httpx

from innovates.core.config import settings
from innovates.core.exceptions import ConfigurationError, ExternalServiceError

logger = logging.getLogger(__name__)

PAYPAL_BASE_URLS = {
    "sandbox": "https://api-m.sandbox.paypal.com",
    "live": "https://api-m.paypal.com",
}


def format_amount(amount_cents: int) -> str:
    """5000 -> '50.00'"""
    return f"{amount_cents / 100:.2f}"


class PayPalConnector:
    """
    Connector for the PayPal REST API (v2 orders)

    Handles:
    - OAuth client-credentials token
    - Order creation (intent CAPTURE)
    - Order capture
    """

    def __init__(self, client_id: str = None, client_secret: str = None, mode: str = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.client_id = client_id or settings.PAYPAL_CLIENT_ID
        self.client_secret = client_secret or settings.PAYPAL_CLIENT_SECRET
        self.mode = mode or settings.PAYPAL_MODE

        if not self.client_id or not self.client_secret:
            raise ConfigurationError("PayPal credentials not configured. Set PAYPAL_CLIENT_ID and PAYPAL_CLIENT_SECRET")

        self.base_url = PAYPAL_BASE_URLS.get(self.mode, PAYPAL_BASE_URLS["sandbox"])
        self._access_token: Optional[str] = None
        self._transport = transport

    async def get_access_token(self) -> str:
        if self._access_token:
            return self._access_token

        async with httpx.AsyncClient(transport=self._transport) as client:
            response = await client.post(
                f"{self.base_url}/v1/oauth2/token",
                auth=(self.client_id, self.client_secret),
                data={'grant_type': 'client_credentials'},
                headers={'Accept': 'application/json'},
                timeout=30.0
            )

        if response.status_code >= 400:
            logger.error(f"PayPal token request failed: {response.status_code} - {response.text}")
            raise ExternalServiceError("Failed to get PayPal access token")

        self._access_token = response.json()['access_token']
        return self._access_token

    async def _post(self, endpoint: str, payload: Optional[Dict] = None) -> Dict:
        token = await self.get_access_token()

        async with httpx.AsyncClient(transport=self._transport) as client:
            response = await client.post(
                f"{self.base_url}{endpoint}",
                json=payload if payload is not None else {},
                headers={
                    'Content-Type': 'application/json',
                    'Authorization': f'Bearer {token}',
                },
                timeout=30.0
            )

        body = response.json() if response.content else {}
        if response.status_code >= 400:
            logger.error(f"PayPal API error {response.status_code} on {endpoint}: {body}")
            raise ExternalServiceError("PayPal request failed", details=body)

        return body

    async def create_order(self, amount_cents: int, currency: str, description: str,
                           reference_id: str, return_url: str, cancel_url: str) -> Dict:
        """
        Create a PayPal order

        Returns:
            PayPal order (id, status, links)
        """
        order = await self._post("/v2/checkout/orders", {
            'intent': 'CAPTURE',
            'purchase_units': [{
                'amount': {
                    'currency_code': currency.upper(),
                    'value': format_amount(amount_cents),
                },
                'description': description,
                'reference_id': reference_id,
            }],
            'application_context': {
                'return_url': return_url,
                'cancel_url': cancel_url,
                'brand_name': settings.SITE_NAME,
                'user_action': 'PAY_NOW',
            },
        })
        logger.info(f"PayPal order created: {order.get('id')}")
        return order

    async def capture_order(self, order_id: str) -> Dict:
        capture = await self._post(f"/v2/checkout/orders/{order_id}/capture")
        logger.info(f"PayPal order captured: {order_id} status={capture.get('status')}")
        return capture
