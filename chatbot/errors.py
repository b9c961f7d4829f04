# chatbot/errors.py
"""
Error taxonomy for the ordering chatbot.

- InputValidationError / StateInvariantViolation are always recovered inside
  the conversation engine: their message IS the corrective reply.
- GatewayError covers payment initialization/verification failures.
- OrderLookupError and its children are raised while reconciling a payment
  callback; each maps to its own outcome page.
- ConfigurationError is the only fatal one and is raised at startup.
"""

from __future__ import annotations

from typing import Optional


class ChatbotError(Exception):
    """Base class for every error raised by the chatbot package."""


class ConfigurationError(ChatbotError):
    """Mandatory configuration (gateway credentials) is missing."""


class InputValidationError(ChatbotError):
    """Malformed command, email or date/time string."""


class StateInvariantViolation(ChatbotError):
    """Operation attempted in a state that forbids it (e.g. checkout with an empty cart)."""


class GatewayError(ChatbotError):
    """
    The payment gateway declined a request or answered with an error payload.
    `reason` is the gateway's own message, shown to the customer.
    """

    def __init__(self, reason: str, reference: Optional[str] = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.reference = reference


class GatewayTransportError(GatewayError):
    """The gateway could not be reached (timeout, connection error, bad payload)."""


class OrderLookupError(ChatbotError, LookupError):
    """Base for lookups that fail while reconciling a payment callback."""

    def __init__(self, message: str, reference: Optional[str] = None) -> None:
        super().__init__(message)
        self.reference = reference


class MissingReferenceError(OrderLookupError):
    pass


class SessionNotFoundError(OrderLookupError):
    def __init__(self, reference: str, session_id: Optional[str]) -> None:
        super().__init__(
            f"Session not found for payment reference: {reference}, session: {session_id}",
            reference=reference,
        )
        self.session_id = session_id


class OrderNotFoundError(OrderLookupError):
    def __init__(self, reference: str, session_id: str) -> None:
        super().__init__(
            f"Order not found for reference: {reference}, session: {session_id}",
            reference=reference,
        )
        self.session_id = session_id


class PaymentNotSuccessfulError(OrderLookupError):
    """The gateway verified the reference but the charge did not succeed."""

    def __init__(self, reference: str, status: str, message: Optional[str] = None) -> None:
        super().__init__(
            f"Payment verification failed for reference: {reference}, status: {status}",
            reference=reference,
        )
        self.status = status
        self.gateway_message = message
