# chatbot/models.py
"""
Pydantic models for the HTTP surface and for payloads exchanged with the
payment gateway.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    """
    Incoming payload from the chat widget.

    Both fields are optional at the schema level so the endpoint can answer a
    missing one with the bot's own 400 message instead of a validation dump.
    """
    model_config = ConfigDict(populate_by_name=True)

    message: Optional[str] = Field(None, description="Raw text typed by the customer")
    session_id: Optional[str] = Field(None, alias="sessionId", description="Client-generated session id")


class ChatResponse(BaseModel):
    response: str


class ErrorResponse(BaseModel):
    error: str


class PaymentInitialization(BaseModel):
    """
    Result of a successful initializePayment call.

    `amount` is in the major currency unit (NGN).
    """
    order_id: str
    reference: str
    authorization_url: str
    amount: int


class PaymentVerification(BaseModel):
    """
    Result of a verifyPayment call that reached the gateway.

    `amount` is in the minor currency unit (kobo).
    """
    status: str
    amount: int = 0
    paid_at: Optional[datetime] = None
    reference: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    message: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.status == "success"

    @property
    def session_id(self) -> Optional[str]:
        value = self.metadata.get("sessionId")
        return str(value) if value else None

    @property
    def order_id(self) -> Optional[str]:
        value = self.metadata.get("orderId")
        return str(value) if value else None

    @property
    def amount_major(self) -> float:
        return self.amount / 100


class PaymentOutcome(BaseModel):
    """
    Successful reconciliation of a payment callback.
    """
    reference: str
    order_id: Optional[str]
    session_id: str
    amount: float
    paid_at: Optional[datetime] = None
