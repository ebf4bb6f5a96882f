"""
Stripe API Connector
Handles Checkout sessions, customers and webhook signatures via the Stripe REST API
"""
import hmac
import json
import time
import hashlib
import logging
from typing import Dict, List, Optional, Any

import httpx

from innovates.core.config import settings
from innovates.core.exceptions import ConfigurationError, ExternalServiceError, ValidationError

logger = logging.getLogger(__name__)

STRIPE_API_VERSION = "2023-10-16"
WEBHOOK_TOLERANCE_SECONDS = 300


def encode_form(data: Dict[str, Any], prefix: str = "") -> List[tuple]:
    """
    Flatten nested dicts/lists into Stripe's bracketed form encoding

    {"line_items": [{"quantity": 2}]} -> [("line_items[0][quantity]", "2")]
    """
    pairs = []
    for key, value in data.items():
        if value is None:
            continue
        full_key = f"{prefix}[{key}]" if prefix else str(key)

        if isinstance(value, dict):
            pairs.extend(encode_form(value, full_key))
        elif isinstance(value, (list, tuple)):
            for index, element in enumerate(value):
                element_key = f"{full_key}[{index}]"
                if isinstance(element, dict):
                    pairs.extend(encode_form(element, element_key))
                else:
                    pairs.append((element_key, str(element)))
        elif isinstance(value, bool):
            pairs.append((full_key, "true" if value else "false"))
        else:
            pairs.append((full_key, str(value)))
    return pairs


class StripeConnector:
    """
    Connector for the Stripe REST API

    Handles:
    - Checkout session creation and retrieval
    - Payment intent retrieval (metadata for marketplace orders)
    - Customer lookup/creation
    - Webhook signature verification
    """

    def __init__(self, secret_key: str = None, webhook_secret: str = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Args:
            secret_key: Stripe secret key (defaults to STRIPE_SECRET_KEY)
            webhook_secret: Signing secret for webhooks (defaults to STRIPE_WEBHOOK_SECRET)
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.secret_key = secret_key or settings.STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret or settings.STRIPE_WEBHOOK_SECRET

        if not self.secret_key:
            raise ConfigurationError("STRIPE_SECRET_KEY is not set")

        self.base_url = "https://api.stripe.com/v1"
        self.headers = {
            'Authorization': f'Bearer {self.secret_key}',
            'Stripe-Version': STRIPE_API_VERSION,
        }
        self._transport = transport

    async def _request(self, method: str, endpoint: str, data: Dict = None, params: Dict = None) -> Dict:
        url = f"{self.base_url}{endpoint}"

        async with httpx.AsyncClient(transport=self._transport) as client:
            response = await client.request(
                method,
                url,
                headers=self.headers,
                data=encode_form(data) if data else None,
                params=params,
                timeout=30.0
            )

        if response.status_code >= 400:
            try:
                message = response.json().get('error', {}).get('message', response.text)
            except ValueError:
                message = response.text
            logger.error(f"Stripe API error {response.status_code} on {endpoint}: {message}")
            raise ExternalServiceError(f"Stripe error: {message}", details={'status': response.status_code})

        return response.json()

    # ==================== CHECKOUT ====================

    async def create_checkout_session(self, params: Dict[str, Any]) -> Dict:
        """
        Create a Checkout session

        Args:
            params: Session parameters using Stripe's field names (line_items,
                mode, success_url, cancel_url, metadata, ...)

        Returns:
            Session object (id, url, ...)
        """
        session = await self._request("POST", "/checkout/sessions", data=params)
        logger.info(f"Stripe checkout session created: {session.get('id')}")
        return session

    async def retrieve_checkout_session(self, session_id: str) -> Dict:
        return await self._request("GET", f"/checkout/sessions/{session_id}")

    async def retrieve_payment_intent(self, payment_intent_id: str) -> Dict:
        return await self._request("GET", f"/payment_intents/{payment_intent_id}")

    # ==================== CUSTOMERS ====================

    async def find_customer_by_email(self, email: str) -> Optional[Dict]:
        result = await self._request("GET", "/customers", params={'email': email, 'limit': 1})
        customers = result.get('data', [])
        return customers[0] if customers else None

    async def create_customer(self, email: str, name: Optional[str] = None,
                              address: Optional[Dict[str, Any]] = None) -> Dict:
        return await self._request("POST", "/customers", data={
            'email': email,
            'name': name,
            'address': address,
        })

    async def get_or_create_customer(self, email: str, name: Optional[str] = None,
                                     address: Optional[Dict[str, Any]] = None) -> str:
        """Reuse the Stripe customer for email or create one; returns the customer id"""
        existing = await self.find_customer_by_email(email)
        if existing:
            logger.info(f"Existing Stripe customer found: {existing['id']}")
            return existing['id']

        customer = await self.create_customer(email, name, address)
        logger.info(f"New Stripe customer created: {customer['id']}")
        return customer['id']

    # ==================== WEBHOOKS ====================

    def construct_event(self, payload: bytes, signature_header: Optional[str],
                        now: Optional[float] = None) -> Dict:
        """
        Verify a webhook's Stripe-Signature header and parse the event

        The header looks like "t=1492774577,v1=5257a869...". The expected
        signature is HMAC-SHA256 over "{t}.{payload}" with the endpoint secret.

        Raises:
            ValidationError: missing/invalid signature or timestamp outside tolerance
        """
        if not self.webhook_secret:
            raise ConfigurationError("STRIPE_WEBHOOK_SECRET is not set")
        if not signature_header:
            raise ValidationError("Missing Stripe-Signature header")

        timestamp = None
        signatures = []
        for part in signature_header.split(","):
            key, _, value = part.strip().partition("=")
            if key == "t":
                timestamp = value
            elif key == "v1":
                signatures.append(value)

        if not timestamp or not signatures:
            raise ValidationError("Malformed Stripe-Signature header")

        signed_payload = f"{timestamp}.".encode() + payload
        expected = hmac.new(self.webhook_secret.encode(), signed_payload, hashlib.sha256).hexdigest()

        if not any(hmac.compare_digest(expected, sig) for sig in signatures):
            raise ValidationError("Invalid Stripe webhook signature")

        current = now if now is not None else time.time()
        try:
            if abs(current - int(timestamp)) > WEBHOOK_TOLERANCE_SECONDS:
                raise ValidationError("Stripe webhook timestamp outside tolerance")
        except ValueError:
            raise ValidationError("Malformed Stripe-Signature timestamp")

        return json.loads(payload)
