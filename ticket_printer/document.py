"""
Document model for print jobs.
Immutable tickets built from untyped inbound payloads.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import ValidationError
from .utils.formatting import to_decimal

# Largest accepted amount or quantity
MAX_NUMBER = Decimal("1e15")


@dataclass(frozen=True)
class LineItem:
    """One ordered product line."""

    name: str
    quantity: int
    unit_price: Decimal

    @property
    def line_subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class PriceBreakdown:
    """
    Amounts shown in the price section of a receipt.

    ``total`` is authoritative: it is displayed as received and never
    recomputed from the other amounts.
    """

    subtotal: Decimal
    tax: Decimal
    total: Decimal
    discount: Decimal = Decimal("0")
    delivery_fee: Decimal = Decimal("0")
    payment_method: Optional[str] = None
    show_tax: bool = True


@dataclass(frozen=True)
class Ticket:
    """A sale ticket, rendered both as the customer receipt and the kitchen ticket."""

    order_id: str
    customer_name: str
    line_items: Tuple[LineItem, ...]
    price_breakdown: PriceBreakdown
    qr_payload: str
    issued_at: datetime
    note: Optional[str] = None
    paid: bool = False

    @classmethod
    def from_payload(cls, payload: Any, show_tax_default: bool = True,
                     now: Optional[datetime] = None) -> "Ticket":
        """
        Build a ticket from a ``print_ticket`` event payload.

        Args:
            payload: Decoded JSON payload
            show_tax_default: Used when the payload carries no ``showTax``
            now: Issue time when the payload carries no ``date``

        Returns:
            Fully-populated immutable Ticket

        Raises:
            ValidationError: If a field is missing or malformed
        """
        if not isinstance(payload, Mapping):
            raise ValidationError("payload must be an object")

        order_id = _require_str(payload, "order")
        customer_name = _require_str(payload, "customer")
        line_items = _parse_items(payload.get("items"))

        qr_payload = payload.get("qrUrl", payload.get("qrCodeUrl"))
        if not isinstance(qr_payload, str) or not qr_payload:
            raise ValidationError("qrUrl is required and must be a string")

        note = payload.get("note")
        if note is not None and not isinstance(note, str):
            raise ValidationError("note must be a string")

        paid = payload.get("paid", False)
        if not isinstance(paid, bool):
            raise ValidationError("paid must be a boolean")

        show_tax = payload.get("showTax", show_tax_default)
        if not isinstance(show_tax, bool):
            raise ValidationError("showTax must be a boolean")

        payment_method = payload.get("paymentMethod")
        if payment_method is not None and not isinstance(payment_method, str):
            raise ValidationError("paymentMethod must be a string")

        breakdown = PriceBreakdown(
            subtotal=_amount(payload, "subtotal"),
            tax=_amount(payload, "tax"),
            total=_amount(payload, "total"),
            discount=_amount(payload, "discountAmount", required=False),
            delivery_fee=_amount(payload, "deliveryFee", required=False),
            payment_method=payment_method or None,
            show_tax=show_tax,
        )

        return cls(
            order_id=order_id,
            customer_name=customer_name,
            line_items=line_items,
            price_breakdown=breakdown,
            qr_payload=qr_payload,
            issued_at=_parse_date(payload.get("date"), now),
            note=(note.strip() or None) if note else None,
            paid=paid,
        )


def _require_str(payload: Mapping, key: str) -> str:
    if key not in payload or payload[key] is None:
        raise ValidationError(f"{key} is required")
    value = payload[key]
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    if not value.strip():
        raise ValidationError(f"{key} must not be empty")
    return value


def _number(value: Any, field: str) -> Decimal:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal, str)):
        raise ValidationError(f"{field} must be a number")
    try:
        number = Decimal(value) if isinstance(value, str) else to_decimal(value)
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number")
    if not number.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    if abs(number) >= MAX_NUMBER:
        raise ValidationError(f"{field} is out of range")
    return number


def _amount(payload: Mapping, key: str, required: bool = True) -> Decimal:
    value = payload.get(key)
    if value is None:
        if required:
            raise ValidationError(f"{key} is required")
        return Decimal("0")
    amount = _number(value, key)
    if amount < 0:
        raise ValidationError(f"{key} must not be negative")
    return amount


def _parse_items(items: Any) -> Tuple[LineItem, ...]:
    if not isinstance(items, list):
        raise ValidationError("items is required and must be a list")
    if not items:
        raise ValidationError("items must not be empty")

    parsed = []
    for index, item in enumerate(items):
        if not isinstance(item, Mapping):
            raise ValidationError(f"items[{index}] must be an object")

        name = item.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValidationError(f"items[{index}].name is required")

        quantity = _number(item.get("quantity"), f"items[{index}].quantity")
        if quantity != quantity.to_integral_value():
            raise ValidationError(f"items[{index}].quantity must be an integer")
        if quantity < 1:
            raise ValidationError(f"items[{index}].quantity must be at least 1")

        if item.get("price") is None:
            raise ValidationError(f"items[{index}].price is required")
        price = _number(item["price"], f"items[{index}].price")
        if price < 0:
            raise ValidationError(f"items[{index}].price must not be negative")

        parsed.append(LineItem(name=name.strip(), quantity=int(quantity), unit_price=price))

    return tuple(parsed)


def _parse_date(value: Any, now: Optional[datetime]) -> datetime:
    if value is None:
        return now or datetime.now()
    if not isinstance(value, str):
        raise ValidationError("date must be an ISO-8601 string")
    try:
        # fromisoformat() before 3.11 does not accept a trailing Z
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"date is not a valid ISO-8601 timestamp: {value}")


def summarize_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Short description of a payload for log lines."""
    items = payload.get("items") if isinstance(payload, dict) else None
    return {
        "order_id": payload.get("order", "unknown") if isinstance(payload, dict) else "unknown",
        "items": len(items) if isinstance(items, list) else 0,
    }
