# chatbot/callback_pages.py
"""
HTML pages shown in the customer's browser after the payment gateway
redirects back to /api/payment/callback.
"""

from __future__ import annotations

from html import escape
from typing import Iterable

from .models import PaymentOutcome

_RETURN_LINK = (
    '<p><a href="/" style="background: #007bff; color: white; padding: 10px 20px; '
    'text-decoration: none; border-radius: 5px;">Return to ChatBot</a></p>'
)


def _amount(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:.2f}"


def _page(title: str, heading: str, color: str, paragraphs: Iterable[str]) -> str:
    body = "\n".join(f"<p>{escape(p)}</p>" for p in paragraphs)
    return (
        "<html>\n"
        f"<head><title>{escape(title)}</title></head>\n"
        '<body style="font-family: Arial, sans-serif; text-align: center; padding: 50px;">\n'
        f'<h1 style="color: {color};">{escape(heading)}</h1>\n'
        f"{body}\n"
        f"{_RETURN_LINK}\n"
        "</body>\n"
        "</html>\n"
    )


def payment_successful(outcome: PaymentOutcome) -> str:
    return _page(
        "Payment Successful",
        "✅ Payment Successful!",
        "green",
        [
            f"Your order {outcome.order_id} has been confirmed.",
            f"Amount paid: NGN{_amount(outcome.amount)}",
            f"Reference: {outcome.reference}",
        ],
    )


def missing_reference() -> str:
    return _page(
        "Payment Error",
        "❌ Payment Error",
        "red",
        ["Reference parameter is missing. Please try again."],
    )


def payment_failed(reference: str, status: str, reason: str) -> str:
    return _page(
        "Payment Failed",
        "❌ Payment Failed",
        "red",
        [f"Status: {status}", f"Reason: {reason}", f"Reference: {reference}"],
    )


def payment_not_found(reference: str, reason: str) -> str:
    return _page(
        "Payment Not Found",
        "❌ Payment Not Found",
        "red",
        ["The payment gateway could not verify this payment.", f"Reason: {reason}", f"Reference: {reference}"],
    )


def session_not_found(reference: str) -> str:
    return _page(
        "Session Not Found",
        "❌ Session Not Found",
        "red",
        ["Your session could not be found. Please try again.", f"Reference: {reference}"],
    )


def order_not_found(reference: str) -> str:
    return _page(
        "Order Not Found",
        "❌ Order Not Found",
        "red",
        ["The order associated with this payment could not be found.", f"Reference: {reference}"],
    )


def verification_error(reason: str) -> str:
    return _page(
        "Payment Verification Error",
        "❌ Payment Verification Error",
        "red",
        [
            "An error occurred while verifying your payment. Please contact support.",
            f"Error: {reason or 'Verification failed'}",
        ],
    )
