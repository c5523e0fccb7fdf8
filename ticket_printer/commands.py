"""
Abstract printer commands.
Device-independent instructions produced by the layout renderer and
replayed in order by the command executor.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union


# ESC 'B' n t: pulse the buzzer n=2 times, t=2 x 100ms each
BUZZER_SIGNAL = bytes([0x1B, 0x42, 0x02, 0x02])


class Alignment(Enum):
    """Text alignment options."""

    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


@dataclass(frozen=True)
class Clear:
    """Start a new document; drops anything staged but not flushed."""


@dataclass(frozen=True)
class Align:
    alignment: Alignment


@dataclass(frozen=True)
class Emphasis:
    on: bool


@dataclass(frozen=True)
class TextLine:
    text: str


@dataclass(frozen=True)
class Rule:
    """Horizontal separator across the full line width."""


@dataclass(frozen=True)
class QR:
    payload: str
    cell_size: int


@dataclass(frozen=True)
class Image:
    ref: str


@dataclass(frozen=True)
class Raw:
    data: bytes


@dataclass(frozen=True)
class Cut:
    """Feed and cut the paper."""


PrinterCommand = Union[Clear, Align, Emphasis, TextLine, Rule, QR, Image, Raw, Cut]


def buzzer_sequence():
    """Command sequence for the hardware buzzer signal."""
    return [Clear(), Raw(BUZZER_SIGNAL)]
