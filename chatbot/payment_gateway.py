# chatbot/payment_gateway.py
"""
Payment Gateway

Encapsulates all calls to Paystack:
- initialize_payment (create a checkout link for an order)
- verify_payment     (confirm a reference after the redirect)

Two implementations share the same interface:
- PaystackGateway: real REST calls through httpx.
- MockPaymentGateway: in-process stand-in used outside production.

Both raise GatewayError when the gateway declines and GatewayTransportError
when it cannot be reached. Nothing is retried.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol

import httpx

from .config import Settings
from .errors import GatewayError, GatewayTransportError
from .models import PaymentInitialization, PaymentVerification

logger = logging.getLogger(__name__)


class PaymentGateway(Protocol):
    async def initialize_payment(self, amount: int, email: str, session_id: str) -> PaymentInitialization:
        ...

    async def verify_payment(self, reference: str) -> PaymentVerification:
        ...


class PaystackGateway:
    def __init__(
        self,
        secret_key: str,
        *,
        base_url: str = "https://api.paystack.co",
        callback_url: str = "http://localhost:3001/api/payment/callback",
        currency: str = "NGN",
        timeout: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.callback_url = callback_url
        self.currency = currency
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "PaystackGateway":
        return cls(
            settings.PAYSTACK_SECRET_KEY,
            base_url=settings.PAYSTACK_BASE_URL,
            callback_url=settings.callback_url,
            currency=settings.CURRENCY,
            timeout=settings.GATEWAY_TIMEOUT,
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"Authorization": f"Bearer {self.secret_key}"},
            transport=self._transport,
        )

    async def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Send one request and return the `data` object of a successful reply.
        """
        try:
            async with self._client() as client:
                resp = await client.request(method, path, json=payload)
        except httpx.HTTPError as exc:
            raise GatewayTransportError(str(exc) or exc.__class__.__name__) from exc

        try:
            body = resp.json()
        except ValueError as exc:
            raise GatewayTransportError(
                f"Unexpected response from payment gateway (HTTP {resp.status_code})"
            ) from exc

        # Paystack answers errors with {"status": false, "message": "..."} and a 4xx code.
        if not isinstance(body, dict) or not body.get("status"):
            message = body.get("message") if isinstance(body, dict) else None
            raise GatewayError(message or "Unknown error")

        data = body.get("data")
        if not isinstance(data, dict):
            raise GatewayTransportError("Payment gateway response is missing data")
        data.setdefault("message", body.get("message"))
        return data

    async def initialize_payment(self, amount: int, email: str, session_id: str) -> PaymentInitialization:
        reference = str(uuid.uuid4())
        order_id = str(uuid.uuid4())

        payload = {
            "reference": reference,
            "amount": amount * 100,  # kobo
            "email": email,
            "currency": self.currency,
            "callback_url": self.callback_url,
            "metadata": {"orderId": order_id, "sessionId": session_id},
        }

        try:
            data = await self._request("POST", "/transaction/initialize", payload)
        except GatewayError as exc:
            logger.error("Payment initialization failed for order %s, reason: %s", order_id, exc.reason)
            raise

        authorization_url = data.get("authorization_url")
        if not authorization_url:
            raise GatewayError("Payment gateway did not return an authorization URL", reference=reference)

        logger.info(
            "Payment initialized for order %s, reference: %s, amount: %s, email: %s",
            order_id,
            reference,
            amount,
            email,
        )
        return PaymentInitialization(
            order_id=order_id,
            reference=data.get("reference") or reference,
            authorization_url=authorization_url,
            amount=amount,
        )

    async def verify_payment(self, reference: str) -> PaymentVerification:
        try:
            data = await self._request("GET", f"/transaction/verify/{reference}")
        except GatewayError as exc:
            exc.reference = reference
            logger.error("Payment verification failed for reference %s: %s", reference, exc.reason)
            raise

        logger.info("Payment verification response for reference %s: status=%s", reference, data.get("status"))
        return PaymentVerification(
            status=str(data.get("status") or "unknown"),
            amount=int(data.get("amount") or 0),
            paid_at=data.get("paid_at") or None,
            reference=str(data.get("reference") or reference),
            metadata=data.get("metadata") or {},
            message=data.get("gateway_response") or data.get("message"),
        )


class MockPaymentGateway:
    """
    Always-succeeding stand-in for development.

    Remembers which session initialized each reference so the callback can be
    exercised end to end without Paystack.
    """

    def __init__(self, *, delay: float = 0.0, fail_with: Optional[str] = None) -> None:
        self.delay = delay
        self.fail_with = fail_with
        self._initialized: Dict[str, Dict[str, Any]] = {}

    async def _simulate_latency(self) -> None:
        if self.delay > 0:
            await asyncio.sleep(self.delay)

    async def initialize_payment(self, amount: int, email: str, session_id: str) -> PaymentInitialization:
        await self._simulate_latency()

        if self.fail_with:
            logger.info("[MOCK] Payment initialization failed for email: %s", email)
            raise GatewayError(self.fail_with)

        reference = str(uuid.uuid4())
        order_id = str(uuid.uuid4())
        self._initialized[reference] = {"orderId": order_id, "sessionId": session_id, "amount": amount}

        logger.info(
            "[MOCK] Payment initialized for order %s, reference: %s, amount: %s, email: %s",
            order_id,
            reference,
            amount,
            email,
        )
        return PaymentInitialization(
            order_id=order_id,
            reference=reference,
            authorization_url=f"https://mock-checkout.paystack.com/{reference}",
            amount=amount,
        )

    async def verify_payment(self, reference: str) -> PaymentVerification:
        await self._simulate_latency()

        known = self._initialized.get(reference, {})
        amount = int(known.get("amount", 2500))
        metadata = {k: v for k, v in known.items() if k != "amount"}

        logger.info("[MOCK] Payment verification successful for reference %s", reference)
        return PaymentVerification(
            status="success",
            amount=amount * 100,
            paid_at=datetime.now(timezone.utc),
            reference=reference,
            metadata=metadata,
            message="Successful",
        )


def build_gateway(settings: Settings) -> PaymentGateway:
    if settings.use_mock_gateway:
        logger.info("Running in %s mode - using MOCK payment gateway", settings.APP_ENV)
        return MockPaymentGateway(delay=settings.MOCK_GATEWAY_DELAY)

    settings.require_gateway_credentials()
    logger.info("Running in production mode - using Paystack API")
    return PaystackGateway.from_settings(settings)
