# chatbot/order_accounting.py
"""
Order Accounting

Pure helpers over a cart (item id -> quantity): totals, the text blocks the
chat client shows verbatim, and Order construction.

Unknown item ids are skipped everywhere instead of raising.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Callable, Iterable, List, Mapping, Tuple

from .errors import InputValidationError
from .menu_catalog import MENU, MenuItem
from .session_context import Cart, Order, OrderStatus

CURRENCY_LABEL = "NGN"
DISPLAY_DATETIME_FORMAT = "%d/%m/%Y, %H:%M:%S"

NEXT_STEPS = (
    "\n\n📋 What's next?\n1️⃣ See menu\n9️⃣9️⃣ Checkout\n9️⃣7️⃣ See current order\n1️⃣0️⃣2️⃣ Schedule order"
)


def _lines(cart: Cart, catalog: Mapping[int, MenuItem]) -> Iterable[Tuple[MenuItem, int, int]]:
    for item_id, quantity in cart.items():
        item = catalog.get(item_id)
        if item is None:
            continue
        yield item, quantity, item.price * quantity


def calculate_total(cart: Cart, catalog: Mapping[int, MenuItem] = MENU) -> int:
    return sum(line_total for _, _, line_total in _lines(cart, catalog))


def format_menu(catalog: Mapping[int, MenuItem] = MENU) -> str:
    response = "Please select an item from the menu:\n"
    for item_id, item in catalog.items():
        response += f"{item_id}. {item.name} - {CURRENCY_LABEL}{item.price}\n"
    response += "\nEnter the number of an item to add to your order, or type 99 to checkout."
    return response


def format_order_summary(cart: Cart, catalog: Mapping[int, MenuItem] = MENU) -> Tuple[str, int]:
    summary = "🛒 ORDER SUMMARY\n\n"
    total = 0
    for item, quantity, line_total in _lines(cart, catalog):
        summary += f"{item.name} (x{quantity}) - {CURRENCY_LABEL}{line_total}\n"
        total += line_total
    summary += f"\n💰 TOTAL: {CURRENCY_LABEL}{total}\n\n"
    return summary, total


def format_current_order(cart: Cart, catalog: Mapping[int, MenuItem] = MENU) -> str:
    response = "🛒 Your current order:\n\n"
    total = 0
    for item, quantity, line_total in _lines(cart, catalog):
        response += f"• {item.name} (x{quantity}) - {CURRENCY_LABEL}{line_total}\n"
        total += line_total
    response += f"\n💰 Total: {CURRENCY_LABEL}{total}"
    return response


def format_order_history(orders: List[Order], catalog: Mapping[int, MenuItem] = MENU) -> str:
    response = "📋 Your order history:\n\n"
    for index, order in enumerate(orders, start=1):
        response += f"🧾 Order #{index} (ID: {order.id}):\n"
        response += f"   Status: {order.status.value}\n"
        response += f"   Date: {order.timestamp.strftime(DISPLAY_DATETIME_FORMAT)}\n"
        response += "   Items:\n"
        for item, quantity, line_total in _lines(order.items, catalog):
            response += f"   • {item.name} (x{quantity}) - {CURRENCY_LABEL}{line_total}\n"
        response += f"   💰 Total: {CURRENCY_LABEL}{order.total}\n\n"
    return response


def format_scheduled_orders(orders: List[Order], catalog: Mapping[int, MenuItem] = MENU) -> str:
    response = "Your scheduled orders:\n"
    for index, order in enumerate(orders, start=1):
        response += f"\nScheduled Order #{index}:"
        if order.scheduled_time is not None:
            response += f"\n  Scheduled for: {order.scheduled_time.strftime(DISPLAY_DATETIME_FORMAT)}"
        response += f"\n  Status: {order.status.value}"
        response += "\n  Items:\n"
        for item, quantity, _ in _lines(order.items, catalog):
            response += f"    {item.name} (x{quantity})\n"
        response += f"  Total: {CURRENCY_LABEL}{order.total}\n"
    return response


def add_item_to_order(cart: Cart, item_id: int, catalog: Mapping[int, MenuItem] = MENU) -> str:
    """
    Increment `item_id` in `cart` (in place) and return the confirmation text.
    """
    item = catalog.get(item_id)
    if item is None:
        raise InputValidationError("Invalid menu item")

    cart[item_id] = cart.get(item_id, 0) + 1
    response = f"✅ {item.name} has been added to your order. Current quantity: {cart[item_id]}"
    return response + NEXT_STEPS


def create_order(
    cart: Cart,
    status: OrderStatus = OrderStatus.PENDING,
    *,
    catalog: Mapping[int, MenuItem] = MENU,
    now: Callable[[], datetime] = datetime.now,
    **extra: Any,
) -> Order:
    """
    Snapshot `cart` into a new Order with a fresh id and timestamp.

    `extra` fills optional Order fields (customer_email, scheduled_time, ...).
    """
    return Order(
        id=str(uuid.uuid4()),
        items=dict(cart),
        total=calculate_total(cart, catalog),
        status=status,
        timestamp=now(),
        **extra,
    )


def create_scheduled_order(
    cart: Cart,
    scheduled_time: datetime,
    *,
    catalog: Mapping[int, MenuItem] = MENU,
    now: Callable[[], datetime] = datetime.now,
) -> Order:
    return create_order(
        cart,
        OrderStatus.SCHEDULED,
        catalog=catalog,
        now=now,
        scheduled_time=scheduled_time,
    )
