"""
Shared fixtures for the ticket printer client tests.
Runs without hardware or broker: in-memory escpos device and fake executors.
"""

import asyncio
import os
from datetime import datetime

# Must be set before the package reads its configuration
os.environ["LOG_FILE"] = ""
os.environ["PRINTER_CONNECTION"] = "dummy"
os.environ["API_WS_URL"] = "ws://localhost:8080/printer"
os.environ.setdefault("LOG_LEVEL", "DEBUG")

import pytest

from ticket_printer.document import Ticket
from ticket_printer.errors import NotConnected
from ticket_printer.renderer import LayoutRenderer

ISSUED_AT = datetime(2025, 3, 14, 13, 45)


def make_payload(**overrides) -> dict:
    """Minimal valid print_ticket payload."""
    payload = {
        "order": "100",
        "customer": "Ana",
        "items": [{"name": "Taco", "quantity": 2, "price": 15}],
        "subtotal": 30,
        "tax": 0,
        "total": 30,
        "qrUrl": "https://x/1",
    }
    payload.update(overrides)
    return payload


def make_ticket(**overrides) -> Ticket:
    return Ticket.from_payload(make_payload(**overrides), now=ISSUED_AT)


def texts(commands) -> list:
    """Text of every TextLine command, in order."""
    return [command.text for command in commands if hasattr(command, "text")]


class RecordingExecutor:
    """
    Stand-in for CommandExecutor that records every command sequence.

    ``connectivity`` yields the result of each successive probe; once it is
    exhausted the printer stays connected.
    """

    def __init__(self, connectivity=(), write_delay: float = 0.0):
        self.sequences = []
        self.events = []
        self._connectivity = iter(connectivity)
        self.write_delay = write_delay

    async def execute(self, commands, require_connection: bool = True) -> int:
        commands = list(commands)
        if require_connection and not next(self._connectivity, True):
            raise NotConnected("Printer is not connected")

        self.events.append("begin")
        await asyncio.sleep(self.write_delay)
        self.sequences.append(commands)
        self.events.append("end")
        return len(commands)


@pytest.fixture
def payload() -> dict:
    return make_payload()


@pytest.fixture
def ticket() -> Ticket:
    return make_ticket()


@pytest.fixture
def renderer() -> LayoutRenderer:
    return LayoutRenderer(line_width=48, ticket_format="standard", logo_path="", qr_cell_size=6)
