"""
Layout renderer for the ticket printer client.
Turns a Ticket into the ordered PrinterCommand sequence for the customer
receipt or the kitchen ticket. Pure: no I/O, same ticket in, same commands out.
"""

import textwrap
from typing import List, Optional

from .commands import Align, Alignment, Clear, Cut, Emphasis, Image, PrinterCommand, QR, Rule, TextLine
from .config import config
from .document import PriceBreakdown, Ticket
from .errors import RenderError
from .jobs import JobKind
from .utils.formatting import format_price, format_short_date, truncate_text

RECEIPT_NAME_WIDTH = 18
KITCHEN_NAME_WIDTH = 26
QTY_WIDTH = 4
UNIT_PRICE_WIDTH = 10

THANK_YOU = "¡Gracias por su compra!"
PAID_BANNER = "*** PAID ***"


class LayoutRenderer:
    """
    Renders tickets into printer commands.

    Two formats are supported: ``standard`` (logo, column table, thank-you
    footer) and ``legacy`` (the compact layout of the first client). The price
    section follows the same rules in both.
    """

    def __init__(self, line_width: Optional[int] = None, ticket_format: Optional[str] = None,
                 logo_path: Optional[str] = None, qr_cell_size: Optional[int] = None):
        self.line_width = line_width or config.LINE_WIDTH
        self.ticket_format = ticket_format or config.TICKET_FORMAT
        self.logo_path = config.LOGO_PATH if logo_path is None else logo_path
        self.qr_cell_size = qr_cell_size or config.QR_CELL_SIZE

        if self.ticket_format not in ("standard", "legacy"):
            raise ValueError(f"Unknown ticket format: {self.ticket_format}")
        if self.ticket_format == "standard" and self.line_width < 42:
            raise ValueError("The standard ticket format needs at least 42 columns")

    def render(self, kind: JobKind, document) -> List[PrinterCommand]:
        """
        Render a document for the given job kind.

        Raises:
            RenderError: If the document or kind cannot be laid out
        """
        if not isinstance(document, Ticket):
            raise RenderError(f"Cannot render {type(document).__name__} as a ticket")

        if kind is JobKind.CUSTOMER_RECEIPT:
            if self.ticket_format == "legacy":
                return self.render_legacy_receipt(document)
            return self.render_customer_receipt(document)
        if kind is JobKind.KITCHEN_TICKET:
            return self.render_kitchen_ticket(document)

        raise RenderError(f"No layout for job kind {kind}")

    def render_customer_receipt(self, ticket: Ticket) -> List[PrinterCommand]:
        commands: List[PrinterCommand] = [Clear(), Align(Alignment.CENTER)]

        # Header
        if self.logo_path:
            commands.append(Image(self.logo_path))
        commands += [
            Emphasis(True),
            TextLine(f"Venta #{ticket.order_id}"),
            Emphasis(False),
            TextLine(f"Cliente: {ticket.customer_name}"),
            TextLine(f"Fecha: {format_short_date(ticket.issued_at)}"),
            Rule(),
        ]

        # Item table
        commands.append(Align(Alignment.LEFT))
        commands.append(TextLine(self._item_row("Cant", "Producto".ljust(RECEIPT_NAME_WIDTH),
                                                "P.Unit", "Importe")))
        for item in ticket.line_items:
            commands.append(TextLine(self._item_row(
                f"{item.quantity}x",
                truncate_text(item.name, RECEIPT_NAME_WIDTH),
                format_price(item.unit_price),
                format_price(item.line_subtotal),
            )))
        commands.append(Rule())

        commands += self._price_section(ticket.price_breakdown, ticket.paid)
        commands += self._note_section(ticket.note)

        # Footer
        commands += [
            Align(Alignment.CENTER),
            QR(ticket.qr_payload, self.qr_cell_size),
            TextLine(THANK_YOU),
            Cut(),
        ]
        return commands

    def render_legacy_receipt(self, ticket: Ticket) -> List[PrinterCommand]:
        commands: List[PrinterCommand] = [
            Clear(),
            Align(Alignment.CENTER),
            TextLine(f"Venta #{ticket.order_id}"),
            TextLine(f"Cliente: {ticket.customer_name}"),
            TextLine(f"Fecha: {format_short_date(ticket.issued_at)}"),
            Rule(),
            Align(Alignment.LEFT),
        ]
        for item in ticket.line_items:
            commands.append(TextLine(f"{item.quantity}x {item.name} - {format_price(item.unit_price)}"))
        commands.append(Rule())

        commands += self._price_section(ticket.price_breakdown, ticket.paid)
        commands += self._note_section(ticket.note)
        commands += [
            Align(Alignment.CENTER),
            QR(ticket.qr_payload, self.qr_cell_size),
            Cut(),
        ]
        return commands

    def render_kitchen_ticket(self, ticket: Ticket) -> List[PrinterCommand]:
        # No prices, payment method or QR on kitchen output
        commands: List[PrinterCommand] = [
            Clear(),
            Align(Alignment.CENTER),
            Emphasis(True),
            TextLine("COCINA"),
            Emphasis(False),
            TextLine(f"Cliente: {ticket.customer_name}"),
            TextLine(f"Fecha: {format_short_date(ticket.issued_at)}"),
            Rule(),
            Align(Alignment.LEFT),
        ]
        for item in ticket.line_items:
            line = f"{item.quantity}x {truncate_text(item.name, KITCHEN_NAME_WIDTH)}"
            commands.append(TextLine(line.rstrip()))

        commands += self._note_section(ticket.note)
        commands.append(Cut())
        return commands

    def _item_row(self, qty: str, name: str, unit_price: str, subtotal: str) -> str:
        rest = self.line_width - (QTY_WIDTH + RECEIPT_NAME_WIDTH + UNIT_PRICE_WIDTH + 3)
        return f"{qty:>{QTY_WIDTH}} {name} {unit_price:<{UNIT_PRICE_WIDTH}} {subtotal:>{rest}}"

    def _price_section(self, prices: PriceBreakdown, paid: bool) -> List[PrinterCommand]:
        commands: List[PrinterCommand] = [Align(Alignment.RIGHT)]

        if prices.show_tax and prices.tax > 0:
            commands.append(TextLine(f"Subtotal: {format_price(prices.subtotal)}"))
            commands.append(TextLine(f"IVA: {format_price(prices.tax)}"))

        if prices.discount > 0:
            commands.append(TextLine(f"Descuento: -{format_price(prices.discount)}"))

        if prices.delivery_fee == 0:
            commands.append(TextLine("Envío: Gratis"))
        else:
            commands.append(TextLine(f"Envío: {format_price(prices.delivery_fee)}"))

        commands += [
            Emphasis(True),
            TextLine(f"Total: {format_price(prices.total)}"),
            Emphasis(False),
        ]

        if prices.payment_method:
            commands.append(TextLine(f"Pago: {prices.payment_method}"))

        # Paid banner always follows the price block
        if paid:
            commands += [
                Align(Alignment.CENTER),
                Emphasis(True),
                TextLine(PAID_BANNER),
                Emphasis(False),
            ]
        return commands

    def _note_section(self, note: Optional[str]) -> List[PrinterCommand]:
        if not note:
            return []
        commands: List[PrinterCommand] = [Rule(), Align(Alignment.LEFT), TextLine("Nota:")]
        for line in textwrap.wrap(note, self.line_width) or [note]:
            commands.append(TextLine(line))
        return commands
