# chatbot/audit_trail.py
"""
Audit Trail

Structured record of what happened to each session:
- state transitions (state before/after, command, cart size)
- payment events (initialized, failed, completed)
- scheduled orders

Every event is logged. When AUDIT_WEBHOOK_URL is configured the same payload
is also posted there, e.g. to feed a dashboard. Webhook failures are logged
and never reach the customer.

Callers holding a session lock build payloads with transition_event() /
build_event() and emit them after releasing the lock.
"""

from __future__ import annotations

import logging
from collections import deque
from datetime import datetime, timezone
from typing import Any, Callable, Deque, Dict, Iterable, Optional

import httpx

from .session_context import ConversationState, Session

logger = logging.getLogger(__name__)


class AuditTrail:
    def __init__(
        self,
        webhook_url: Optional[str] = None,
        *,
        timeout: float = 10.0,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_events: int = 1000,
    ) -> None:
        self.webhook_url = webhook_url
        self.timeout = timeout
        self._clock = clock
        self._transport = transport
        self.events: Deque[Dict[str, Any]] = deque(maxlen=max_events)

    # -------------------------------------------------------------------------
    # Payload builders
    #
    # Pure snapshots of session state. Safe to call while a session lock is
    # held; delivery happens later through emit().
    # -------------------------------------------------------------------------
    def transition_event(
        self,
        *,
        session: Session,
        command: Optional[str],
        previous_state: ConversationState,
        was_scheduling: bool,
    ) -> Dict[str, Any]:
        return {
            "event": "state_transition",
            "session_id": session.session_id,
            "command": command,
            "from": {"state": previous_state.value, "scheduling": was_scheduling},
            "to": {"state": session.state.value, "scheduling": session.is_scheduling},
            "cart_items": sum(session.current_order.values()),
            "timestamp": self._clock().isoformat(),
        }

    def build_event(self, event: str, *, session_id: Optional[str], **fields: Any) -> Dict[str, Any]:
        payload = {"event": event, "session_id": session_id}
        payload.update(fields)
        payload["timestamp"] = self._clock().isoformat()
        return payload

    # -------------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------------
    async def record_event(self, event: str, *, session_id: Optional[str], **fields: Any) -> None:
        await self.emit(self.build_event(event, session_id=session_id, **fields))

    async def emit_all(self, payloads: Iterable[Dict[str, Any]]) -> None:
        for payload in payloads:
            await self.emit(payload)

    async def emit(self, payload: Dict[str, Any]) -> None:
        self.events.append(payload)
        logger.info("audit %s", payload["event"], extra={"audit": payload})

        if not self.webhook_url:
            return

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(self.webhook_url, json=payload)
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Audit webhook delivery failed for %s: %s", payload["event"], exc)
