# chatbot/session_context.py
"""
SessionContext

Everything the bot knows about one chat client:
- Cart (current_order): item id -> quantity.
- Order history, scheduled orders and orders awaiting payment.
- Conversation state plus an optional pending prompt (scheduling).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

Cart = Dict[int, int]


class ConversationState(str, Enum):
    MAIN = "main"
    ORDERING = "ordering"
    COLLECTING_EMAIL = "collecting_email"


class PendingPrompt(str, Enum):
    """A question the bot asked that the next free-text message may answer."""
    SCHEDULE_TIME = "schedule_time"


class OrderStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    SCHEDULED = "scheduled"
    COMPLETED = "completed"


@dataclass
class Order:
    """
    Snapshot of a cart with its accounting and lifecycle status.

    Only status and the payment_* fields change after creation.
    """
    id: str
    items: Cart
    total: int
    status: OrderStatus
    timestamp: datetime
    customer_email: Optional[str] = None
    payment_reference: Optional[str] = None
    payment_amount: Optional[float] = None
    payment_date: Optional[datetime] = None
    scheduled_time: Optional[datetime] = None

    def mark_paid(
        self,
        reference: Optional[str] = None,
        amount: Optional[float] = None,
        paid_at: Optional[datetime] = None,
    ) -> None:
        self.status = OrderStatus.PAID
        if reference is not None:
            self.payment_reference = reference
        if amount is not None:
            self.payment_amount = amount
        if paid_at is not None:
            self.payment_date = paid_at


@dataclass
class Session:
    session_id: str
    created_at: datetime
    current_order: Cart = field(default_factory=dict)
    order_history: List[Order] = field(default_factory=list)
    scheduled_orders: List[Order] = field(default_factory=list)
    pending_orders: Dict[str, Order] = field(default_factory=dict)
    state: ConversationState = ConversationState.MAIN
    pending_prompt: Optional[PendingPrompt] = None

    # -------------------------------------------------------------------------
    # Scheduling overlay
    # -------------------------------------------------------------------------
    @property
    def is_scheduling(self) -> bool:
        return self.pending_prompt is PendingPrompt.SCHEDULE_TIME

    def start_scheduling(self) -> None:
        self.pending_prompt = PendingPrompt.SCHEDULE_TIME

    def stop_scheduling(self) -> None:
        if self.is_scheduling:
            self.pending_prompt = None

    # -------------------------------------------------------------------------
    # Cart helpers
    # -------------------------------------------------------------------------
    @property
    def has_items(self) -> bool:
        return bool(self.current_order)

    def clear_cart(self) -> None:
        self.current_order = {}

    def first_pending_reference(self) -> Optional[str]:
        """
        Reference of the first order still awaiting payment, in creation order.
        """
        for reference, order in self.pending_orders.items():
            if order.status is OrderStatus.PENDING:
                return reference
        return None

    def settle_pending(self, reference: str) -> Order:
        """
        Move the pending order for `reference` into history. Caller marks it paid.
        """
        order = self.pending_orders.pop(reference)
        self.order_history.append(order)
        return order
