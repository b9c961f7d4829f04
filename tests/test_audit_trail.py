import asyncio
import json

import httpx

from chatbot.audit_trail import AuditTrail
from chatbot.conversation import ConversationEngine
from chatbot.session_context import ConversationState, Session
from chatbot.session_store import SessionStore

from conftest import FIXED_NOW, FakeGateway


def make_session():
    session = Session(session_id="s1", created_at=FIXED_NOW)
    session.current_order = {2: 3}
    session.state = ConversationState.ORDERING
    return session


class TestAuditTrail:
    def test_transition_event_is_buffered_only_when_emitted(self, run):
        audit = AuditTrail(clock=lambda: FIXED_NOW)
        event = audit.transition_event(
            session=make_session(), command="1", previous_state=ConversationState.MAIN, was_scheduling=False
        )
        assert len(audit.events) == 0

        run(audit.emit(event))

        [recorded] = audit.events
        assert recorded["event"] == "state_transition"
        assert recorded["from"] == {"state": "main", "scheduling": False}
        assert recorded["to"] == {"state": "ordering", "scheduling": False}
        assert recorded["cart_items"] == 3
        assert recorded["timestamp"] == FIXED_NOW.isoformat()

    def test_posts_to_webhook(self, run):
        received = []

        def handler(request):
            received.append(json.loads(request.content))
            return httpx.Response(204)

        audit = AuditTrail("https://hooks.test/audit", transport=httpx.MockTransport(handler))
        run(audit.record_event("payment_initialized", session_id="s1", reference="R1", amount=2500))

        assert received == [list(audit.events)[0]]
        assert received[0]["reference"] == "R1"

    def test_webhook_failure_does_not_raise(self, run):
        def handler(request):
            return httpx.Response(500)

        audit = AuditTrail("https://hooks.test/audit", transport=httpx.MockTransport(handler))
        run(audit.record_event("payment_failed", session_id="s1", reason="declined"))
        assert len(audit.events) == 1

    def test_event_buffer_is_bounded(self, run):
        audit = AuditTrail(max_events=2)
        for i in range(5):
            run(audit.record_event("order_scheduled", session_id=f"s{i}"))
        assert [e["session_id"] for e in audit.events] == ["s3", "s4"]


class TestAuditDeliveryOutsideSessionLock:
    def test_slow_webhook_does_not_block_next_command(self, run):
        store = SessionStore()

        async def scenario():
            entered = asyncio.Event()
            release = asyncio.Event()

            async def handler(request):
                entered.set()
                await release.wait()
                return httpx.Response(204)

            audit = AuditTrail("https://hooks.test/audit", transport=httpx.MockTransport(handler))
            engine = ConversationEngine(store, FakeGateway(), audit, clock=lambda: FIXED_NOW)

            first = asyncio.ensure_future(engine.handle("2", "s1"))
            await asyncio.wait_for(entered.wait(), timeout=1)

            # First turn's webhook post is still in flight; the session must be free.
            async def peek_cart():
                async with store.acquire("s1") as session:
                    return dict(session.current_order)

            cart = await asyncio.wait_for(peek_cart(), timeout=1)

            release.set()
            reply = await first
            return cart, reply, audit

        cart, reply, audit = run(scenario())

        assert cart == {2: 1}
        assert "Fried Rice" in reply
        assert [e["event"] for e in audit.events] == ["state_transition"]

    def test_payment_events_follow_the_transition_order(self, run, store, gateway):
        audit = AuditTrail()
        engine = ConversationEngine(store, gateway, audit, clock=lambda: FIXED_NOW)
        for message in ("2", "100", "a@b.co"):
            run(engine.handle(message, "s1"))

        assert [e["event"] for e in audit.events][-2:] == ["payment_initialized", "state_transition"]
