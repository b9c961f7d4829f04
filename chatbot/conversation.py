# chatbot/conversation.py
"""
ConversationEngine

The "brain" of the ordering bot.

Responsibilities:
- Interpret one raw chat message against the session's current state.
- Mutate the cart, order history, pending payments and scheduled orders.
- Hand off to the payment gateway when the customer gives an email after "100".
- Reconcile the gateway's payment callback with the pending order.
- Report every transition and payment event to the AuditTrail.

This module does NOT:
- Deal with HTTP / FastAPI directly (that happens in app.py).
- Retry gateway calls.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

from .audit_trail import AuditTrail
from .errors import (
    GatewayError,
    InputValidationError,
    MissingReferenceError,
    OrderNotFoundError,
    PaymentNotSuccessfulError,
    SessionNotFoundError,
    StateInvariantViolation,
)
from .input_validator import (
    CANCEL,
    CHECKOUT,
    PAY,
    SCHEDULE,
    SHOW_MENU,
    SIMULATE_PAYMENT,
    VIEW_CURRENT,
    VIEW_HISTORY,
    VIEW_SCHEDULED,
    classify_command,
    is_valid_datetime,
    is_valid_email,
    parse_schedule_time,
)
from .menu_catalog import MENU, MenuItem
from .models import PaymentOutcome
from .order_accounting import (
    DISPLAY_DATETIME_FORMAT,
    add_item_to_order,
    calculate_total,
    create_order,
    create_scheduled_order,
    format_current_order,
    format_menu,
    format_order_history,
    format_order_summary,
    format_scheduled_orders,
)
from .payment_gateway import PaymentGateway
from .session_context import ConversationState, OrderStatus, Session
from .session_store import SessionStore

logger = logging.getLogger(__name__)


INVALID_OPTION = (
    "❌ Invalid option. Here are your available options:\n\n"
    "🔢 MAIN MENU:\n"
    "1. Place an order - Browse our menu\n"
    "99. Checkout order - Review and pay for your order\n"
    "97. See current order - View items in your cart\n"
    "98. See order history - View past orders\n"
    "0. Cancel order - Clear your cart\n"
    "102. Schedule order - Schedule for later\n"
    "103. See scheduled orders\n\n"
    "💡 After checkout (99), use 100 to pay, then 101 to complete payment."
)
INVALID_EMAIL = (
    "❌ Invalid email format. Please enter a valid email address:\nExample: john.doe@example.com"
)
INVALID_SCHEDULE_TIME = "Invalid date or time. Please enter a future date in the format: DD/MM/YYYY HH:MM"
EMPTY_CART = "🛒 Your cart is empty. Please select 1 to place an order."
NO_HISTORY = "📋 No order history."
NO_CURRENT_ORDER = "No current order."
ORDER_CANCELLED = "Order cancelled. Your cart is now empty."
ASK_EMAIL = "📧 Please provide your email address for the payment receipt:\n\nExample: john.doe@example.com"
NO_ORDER_TO_PAY = "No order to pay for. Please select 1 to place an order."
NO_PENDING_PAYMENT = "❌ No pending payment found. Please start a new order by selecting 1."
ASK_SCHEDULE_TIME = (
    "When would you like to schedule your order? "
    "Please enter the date and time in this format: DD/MM/YYYY HH:MM"
)
NO_ORDER_TO_SCHEDULE = "No order to schedule. Please select 1 to place an order first."
NO_SCHEDULED_ORDERS = "No scheduled orders."
READY_TO_PAY = "💳 Ready to pay? Type '100' to proceed to payment."


class ConversationEngine:
    """
    You typically create this once at startup and reuse it for all requests.
    """

    def __init__(
        self,
        session_store: SessionStore,
        gateway: PaymentGateway,
        audit_trail: AuditTrail,
        catalog: Mapping[int, MenuItem] = MENU,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.session_store = session_store
        self.gateway = gateway
        self.audit_trail = audit_trail
        self.catalog = catalog
        # Local wall-clock time; schedule strings are entered in local time too.
        self._clock = clock

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------
    async def handle(self, message: str, session_id: str) -> str:
        """
        Process one chat message and return the reply text.

        Holds the session's lock for the whole turn, including the payment
        gateway call, so nothing else can change the session meanwhile.
        Audit events are collected during the turn and emitted once the lock
        is released.
        """
        audit_events: List[Dict[str, Any]] = []
        async with self.session_store.acquire(session_id) as session:
            previous_state = session.state
            was_scheduling = session.is_scheduling

            try:
                reply = await self._route_message(message, session, audit_events)
            except (InputValidationError, StateInvariantViolation) as exc:
                reply = str(exc)

            if previous_state is not session.state or was_scheduling != session.is_scheduling:
                logger.info(
                    "Session %s: %s -> %s (scheduling=%s)",
                    session_id,
                    previous_state.value,
                    session.state.value,
                    session.is_scheduling,
                )
            audit_events.append(
                self.audit_trail.transition_event(
                    session=session,
                    command=message,
                    previous_state=previous_state,
                    was_scheduling=was_scheduling,
                )
            )

        await self.audit_trail.emit_all(audit_events)
        return reply

    async def reconcile_payment(self, reference: Optional[str]) -> PaymentOutcome:
        """
        Settle a pending order after the gateway redirects back with `reference`.

        Raises one distinct error per failure: MissingReferenceError,
        GatewayError / GatewayTransportError, PaymentNotSuccessfulError,
        SessionNotFoundError, OrderNotFoundError.
        """
        if not reference:
            logger.error("Payment callback error: Missing reference parameter")
            raise MissingReferenceError("Reference parameter is missing. Please try again.")

        # Verify before locking: the gateway call does not touch session state.
        try:
            verification = await self.gateway.verify_payment(reference)
        except GatewayError as exc:
            await self.audit_trail.record_event(
                "payment_failed", session_id=None, reference=reference, reason=exc.reason
            )
            raise

        session_id = verification.session_id
        if not verification.is_success:
            await self.audit_trail.record_event(
                "payment_failed", session_id=session_id, reference=reference, status=verification.status
            )
            raise PaymentNotSuccessfulError(reference, verification.status, verification.message)

        if not session_id:
            raise SessionNotFoundError(reference, None)

        async with self.session_store.acquire(session_id, create=False) as session:
            if session is None:
                raise SessionNotFoundError(reference, session_id)

            order = session.pending_orders.get(reference)
            if order is None:
                raise OrderNotFoundError(reference, session_id)

            order.mark_paid(
                reference=reference,
                amount=verification.amount_major,
                paid_at=verification.paid_at or datetime.now(timezone.utc),
            )
            session.settle_pending(reference)
            session.clear_cart()
            session.state = ConversationState.MAIN

        logger.info(
            "Payment successful for order %s, reference: %s, amount: %s NGN",
            verification.order_id,
            reference,
            verification.amount_major,
        )
        await self.audit_trail.record_event(
            "payment_completed",
            session_id=session_id,
            reference=reference,
            order_id=order.id,
            amount=verification.amount_major,
        )
        return PaymentOutcome(
            reference=reference,
            order_id=verification.order_id or order.id,
            session_id=session_id,
            amount=verification.amount_major,
            paid_at=order.payment_date,
        )

    # -------------------------------------------------------------------------
    # Routing
    # -------------------------------------------------------------------------
    async def _route_message(self, message: str, session: Session, audit_events: List[Dict[str, Any]]) -> str:
        # Free-text answers first: they would never pass numeric validation.
        if session.state is ConversationState.COLLECTING_EMAIL:
            return await self._handle_email(message, session, audit_events)

        if session.is_scheduling and is_valid_datetime(message):
            return self._handle_schedule_time(message, session, audit_events)

        option = classify_command(message, len(self.catalog))
        if option is None:
            raise InputValidationError(INVALID_OPTION)

        if option == SHOW_MENU:
            return self._handle_menu_or_first_item(session)
        elif option == CHECKOUT:
            return self._handle_checkout(session)
        elif option == VIEW_HISTORY:
            return self._handle_history(session)
        elif option == VIEW_CURRENT:
            return self._handle_current_order(session)
        elif option == CANCEL:
            session.clear_cart()
            return ORDER_CANCELLED
        elif option == PAY:
            return self._handle_pay(session)
        elif option == SIMULATE_PAYMENT:
            return self._handle_simulated_payment(session, audit_events)
        elif option == SCHEDULE:
            return self._handle_schedule(session)
        elif option == VIEW_SCHEDULED:
            return self._handle_view_scheduled(session)
        elif option in self.catalog and session.state in (ConversationState.MAIN, ConversationState.ORDERING):
            session.state = ConversationState.MAIN
            return add_item_to_order(session.current_order, option, self.catalog)

        raise InputValidationError(INVALID_OPTION)

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------
    def _handle_menu_or_first_item(self, session: Session) -> str:
        """
        "1" shows the menu, unless the menu is already open, in which case it
        adds item 1.
        """
        if session.state is ConversationState.ORDERING:
            session.state = ConversationState.MAIN
            return add_item_to_order(session.current_order, SHOW_MENU, self.catalog)

        session.state = ConversationState.ORDERING
        return format_menu(self.catalog)

    def _handle_checkout(self, session: Session) -> str:
        if not session.has_items:
            raise StateInvariantViolation(EMPTY_CART)
        summary, _ = format_order_summary(session.current_order, self.catalog)
        return summary + READY_TO_PAY

    def _handle_history(self, session: Session) -> str:
        if not session.order_history:
            return NO_HISTORY
        return format_order_history(session.order_history, self.catalog)

    def _handle_current_order(self, session: Session) -> str:
        if not session.has_items:
            return NO_CURRENT_ORDER
        return format_current_order(session.current_order, self.catalog)

    def _handle_view_scheduled(self, session: Session) -> str:
        if not session.scheduled_orders:
            return NO_SCHEDULED_ORDERS
        return format_scheduled_orders(session.scheduled_orders, self.catalog)

    def _handle_pay(self, session: Session) -> str:
        if not session.has_items:
            raise StateInvariantViolation(NO_ORDER_TO_PAY)
        session.state = ConversationState.COLLECTING_EMAIL
        return ASK_EMAIL

    async def _handle_email(self, message: str, session: Session, audit_events: List[Dict[str, Any]]) -> str:
        """
        Handler: email after "100"

        Creates the pending order and asks the gateway for a payment link.
        Whatever the gateway says, the session goes back to MAIN. On failure
        the cart is kept so the customer can try "100" again.
        """
        if not is_valid_email(message):
            raise InputValidationError(INVALID_EMAIL)

        session.state = ConversationState.MAIN
        if not session.has_items:
            raise StateInvariantViolation(NO_ORDER_TO_PAY)

        customer_email = message
        total = calculate_total(session.current_order, self.catalog)
        order = create_order(
            session.current_order,
            OrderStatus.PENDING,
            catalog=self.catalog,
            now=self._clock,
            customer_email=customer_email,
        )

        try:
            payment = await self.gateway.initialize_payment(total, customer_email, session.session_id)
        except GatewayError as exc:
            logger.error("Payment initialization failed for session %s: %s", session.session_id, exc.reason)
            audit_events.append(
                self.audit_trail.build_event(
                    "payment_failed", session_id=session.session_id, order_id=order.id, reason=exc.reason
                )
            )
            return f"❌ Payment initialization failed. Reason: {exc.reason}. Please try again."

        session.pending_orders[payment.reference] = order
        audit_events.append(
            self.audit_trail.build_event(
                "payment_initialized",
                session_id=session.session_id,
                reference=payment.reference,
                order_id=order.id,
                amount=payment.amount,
            )
        )

        response = "💳 PAYMENT READY\n\n"
        response += f"Order ID: {payment.order_id}\n"
        response += f"Amount: NGN{payment.amount}\n\n"
        response += f"🔗 Payment Link: {payment.authorization_url}\n\n"
        response += "📱 Click the link above to complete your payment securely with Paystack.\n\n"
        response += f"📧 Receipt will be sent to: {customer_email}\n\n"
        response += "⚠️ Note: This is a test transaction. Use test card: 4084084084084081"
        return response

    def _handle_simulated_payment(self, session: Session, audit_events: List[Dict[str, Any]]) -> str:
        """
        Handler: "101"

        Completes the first pending order without waiting for the gateway
        callback. With several pending orders the oldest one wins and the rest
        are discarded.
        """
        session.state = ConversationState.MAIN

        reference = session.first_pending_reference()
        if reference is None:
            raise StateInvariantViolation(NO_PENDING_PAYMENT)

        order = session.settle_pending(reference)
        order.mark_paid(reference=reference)
        session.pending_orders.clear()
        session.clear_cart()

        audit_events.append(
            self.audit_trail.build_event(
                "payment_completed",
                session_id=session.session_id,
                reference=reference,
                order_id=order.id,
                amount=order.total,
                simulated=True,
            )
        )

        response = "✅ PAYMENT SUCCESSFUL!\n\n"
        response += f"💰 Amount Paid: NGN{order.total}\n"
        response += f"📋 Order ID: {order.id}\n"
        response += "✨ Your order has been confirmed and will be prepared shortly.\n\n"
        response += "🙏 Thank you for your patronage!\n\n"
        response += "To place another order, select '1' from the main menu."
        return response

    def _handle_schedule(self, session: Session) -> str:
        if not session.has_items:
            raise StateInvariantViolation(NO_ORDER_TO_SCHEDULE)
        session.start_scheduling()
        return ASK_SCHEDULE_TIME

    def _handle_schedule_time(self, message: str, session: Session, audit_events: List[Dict[str, Any]]) -> str:
        """
        Handler: DD/MM/YYYY HH:MM while scheduling

        Invalid or past times keep the prompt open.
        """
        scheduled_time = parse_schedule_time(message)
        if scheduled_time <= self._clock():
            raise InputValidationError(INVALID_SCHEDULE_TIME)

        if not session.has_items:
            # Cart was cancelled ("0") after "102".
            session.stop_scheduling()
            raise StateInvariantViolation(NO_ORDER_TO_SCHEDULE)

        order = create_scheduled_order(
            session.current_order, scheduled_time, catalog=self.catalog, now=self._clock
        )
        session.scheduled_orders.append(order)
        session.clear_cart()
        session.stop_scheduling()

        audit_events.append(
            self.audit_trail.build_event(
                "order_scheduled",
                session_id=session.session_id,
                order_id=order.id,
                scheduled_time=scheduled_time.isoformat(),
                amount=order.total,
            )
        )
        return (
            f"Your order has been scheduled for {scheduled_time.strftime(DISPLAY_DATETIME_FORMAT)}. "
            "Select 103 to view scheduled orders."
        )
