import asyncio
import os
import sys
from datetime import datetime, timezone
from typing import List, Optional

import pytest

# Project root on sys.path so `app` and `chatbot` import without installation.
ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from chatbot.audit_trail import AuditTrail
from chatbot.conversation import ConversationEngine
from chatbot.errors import GatewayError
from chatbot.models import PaymentInitialization, PaymentVerification
from chatbot.session_store import SessionStore

FIXED_NOW = datetime(2030, 1, 15, 12, 0)


class FakeGateway:
    """Scriptable payment gateway double."""

    def __init__(self, reference: str = "R1", fail_with: Optional[str] = None) -> None:
        self.references: List[str] = [reference]
        self.fail_with = fail_with
        self.verify_status = "success"
        self.verify_error: Optional[Exception] = None
        self.verify_session_id: Optional[str] = None
        self.init_calls: List[tuple] = []
        self.verify_calls: List[str] = []
        self._sessions = {}
        self._amounts = {}

    async def initialize_payment(self, amount, email, session_id):
        self.init_calls.append((amount, email, session_id))
        if self.fail_with:
            raise GatewayError(self.fail_with)
        reference = self.references.pop(0) if self.references else f"R{len(self.init_calls)}"
        self._sessions[reference] = session_id
        self._amounts[reference] = amount
        return PaymentInitialization(
            order_id=f"ORD-{reference}",
            reference=reference,
            authorization_url=f"https://checkout.test/{reference}",
            amount=amount,
        )

    async def verify_payment(self, reference):
        self.verify_calls.append(reference)
        if self.verify_error is not None:
            raise self.verify_error
        session_id = self.verify_session_id or self._sessions.get(reference)
        metadata = {"orderId": f"ORD-{reference}"}
        if session_id:
            metadata["sessionId"] = session_id
        return PaymentVerification(
            status=self.verify_status,
            amount=self._amounts.get(reference, 0) * 100,
            paid_at=datetime(2030, 1, 15, 12, 5, tzinfo=timezone.utc),
            reference=reference,
            metadata=metadata,
            message="Approved" if self.verify_status == "success" else "Declined",
        )


@pytest.fixture
def run():
    loop = asyncio.new_event_loop()
    yield loop.run_until_complete
    loop.close()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def store():
    return SessionStore()


@pytest.fixture
def audit():
    return AuditTrail()


@pytest.fixture
def engine(store, gateway, audit):
    return ConversationEngine(
        session_store=store,
        gateway=gateway,
        audit_trail=audit,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def chat(engine, run):
    """Send one message for a session id and return the reply."""

    def _send(message, session_id="s1"):
        return run(engine.handle(message, session_id))

    return _send
