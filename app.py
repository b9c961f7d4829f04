# app.py
"""
FastAPI entrypoint for the restaurant ordering chatbot.

Exposes:
- POST /api/chat               → one chat turn {message, sessionId} -> {response}
- GET  /api/payment/callback   → Paystack redirect target, renders an HTML outcome page
- GET  /health                 → simple health check

State lives in the in-process SessionStore; nothing survives a restart.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse

from chatbot import callback_pages
from chatbot.audit_trail import AuditTrail
from chatbot.config import settings
from chatbot.conversation import ConversationEngine
from chatbot.errors import (
    GatewayError,
    GatewayTransportError,
    MissingReferenceError,
    OrderNotFoundError,
    PaymentNotSuccessfulError,
    SessionNotFoundError,
)
from chatbot.models import ChatRequest, ChatResponse, ErrorResponse
from chatbot.payment_gateway import build_gateway
from chatbot.session_store import SessionStore

logger = logging.getLogger("chatbot.app")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


configure_logging(settings.LOG_LEVEL)

# ---------------------------------------------------------------------------
# App & dependencies wiring
# ---------------------------------------------------------------------------

app = FastAPI(title="Restaurant ChatBot", version="1.0.0")

# Basic CORS policy (adjust origins as needed)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Shared in-process singletons. build_gateway raises ConfigurationError in
# production without PAYSTACK_SECRET_KEY, which aborts startup.
session_store = SessionStore()
payment_gateway = build_gateway(settings)
audit_trail = AuditTrail(settings.AUDIT_WEBHOOK_URL)

engine = ConversationEngine(
    session_store=session_store,
    gateway=payment_gateway,
    audit_trail=audit_trail,
)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@app.get("/health")
async def health() -> dict:
    return {"status": "ok", "service": "restaurant_chatbot"}


@app.post(
    "/api/chat",
    response_model=ChatResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def chat(req: ChatRequest):
    """
    Main chat endpoint.

    The chat widget should send:
    {
      "message": "99",
      "sessionId": "some-client-generated-id"
    }
    """
    if not req.message or not req.session_id:
        return JSONResponse(status_code=400, content={"error": "Message and sessionId are required"})

    try:
        reply = await engine.handle(req.message, req.session_id)
    except Exception:
        logger.exception("Error processing chat message for session %s", req.session_id)
        return JSONResponse(status_code=500, content={"error": "Error processing your message"})

    return ChatResponse(response=reply)


@app.get("/api/payment/callback", response_class=HTMLResponse)
async def payment_callback(reference: Optional[str] = None) -> HTMLResponse:
    """
    Paystack redirects the customer here with ?reference=... after checkout.
    """
    try:
        outcome = await engine.reconcile_payment(reference)
    except MissingReferenceError:
        return HTMLResponse(callback_pages.missing_reference(), status_code=400)
    except GatewayTransportError as exc:
        logger.error("Payment verification error for reference %s: %s", reference, exc.reason)
        return HTMLResponse(callback_pages.verification_error(exc.reason), status_code=500)
    except GatewayError as exc:
        return HTMLResponse(callback_pages.payment_not_found(reference, exc.reason), status_code=404)
    except PaymentNotSuccessfulError as exc:
        logger.error(str(exc))
        return HTMLResponse(
            callback_pages.payment_failed(
                reference, exc.status, exc.gateway_message or "Payment was not successful"
            )
        )
    except SessionNotFoundError as exc:
        logger.error(str(exc))
        return HTMLResponse(callback_pages.session_not_found(reference), status_code=404)
    except OrderNotFoundError as exc:
        logger.error(str(exc))
        return HTMLResponse(callback_pages.order_not_found(reference), status_code=404)

    return HTMLResponse(callback_pages.payment_successful(outcome))


# For local dev convenience:
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=True,
    )
