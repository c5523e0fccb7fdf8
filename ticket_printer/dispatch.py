"""
Event dispatch table for the ticket printer client.
Maps inbound event names to print jobs or direct hardware signals.
"""

from typing import Any, Optional

from .config import config
from .document import Ticket, summarize_payload
from .errors import ValidationError
from .jobs import JobKind, PrintJob
from .sequencer import JobSequencer
from .utils.logger import logger

EVENT_PRINT_TICKET = "print_ticket"
EVENT_CHECK_CONNECTION = "check_connection"
EVENT_EMIT_BUZZER = "emit_buzzer"


class EventDispatcher:
    """
    Routes inbound events.

    ``print_ticket`` becomes a queued customer receipt; ``check_connection``
    and ``emit_buzzer`` sound the buzzer directly through the sequencer's
    signal path. ``check_connection`` always requires connectivity;
    ``emit_buzzer`` follows the configured buzzer policy.
    """

    def __init__(self, sequencer: JobSequencer, buzzer_policy: Optional[str] = None,
                 show_tax_default: Optional[bool] = None):
        self.sequencer = sequencer
        self.buzzer_policy = buzzer_policy or config.BUZZER_POLICY
        self.show_tax_default = config.SHOW_TAX if show_tax_default is None else show_tax_default

        if self.buzzer_policy not in ("gated", "ungated"):
            raise ValueError(f"Unknown buzzer policy: {self.buzzer_policy}")

        # Event handlers
        self.handlers = {
            EVENT_PRINT_TICKET: self._handle_print_ticket,
            EVENT_CHECK_CONNECTION: self._handle_check_connection,
            EVENT_EMIT_BUZZER: self._handle_emit_buzzer,
        }

    async def dispatch(self, event: str, payload: Any = None) -> Any:
        """
        Handle one inbound event.

        Returns:
            The queued PrintJob for ``print_ticket``, whether the signal was
            sent for buzzer events, None for rejected or unknown events
        """
        handler = self.handlers.get(event)
        if handler is None:
            logger.warning(f"⚠️ Unknown event: {event}")
            return None

        try:
            return await handler(payload)
        except ValidationError as e:
            logger.error(f"❌ Rejected {event}: {str(e)}", **self._describe(payload))
            return None

    async def _handle_print_ticket(self, payload: Any) -> PrintJob:
        # No await before submit: arrival order is queue order
        ticket = Ticket.from_payload(payload, show_tax_default=self.show_tax_default)
        logger.info("🧾 Ticket received", order_id=ticket.order_id, items=len(ticket.line_items))
        return self.sequencer.submit(PrintJob(kind=JobKind.CUSTOMER_RECEIPT, document=ticket))

    async def _handle_check_connection(self, payload: Any) -> bool:
        return await self.sequencer.send_signal(gated=True)

    async def _handle_emit_buzzer(self, payload: Any) -> bool:
        return await self.sequencer.send_signal(gated=self.buzzer_policy == "gated")

    def _describe(self, payload: Any) -> dict:
        if isinstance(payload, dict):
            return summarize_payload(payload)
        return {"payload_type": type(payload).__name__}
