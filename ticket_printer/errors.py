"""
Error taxonomy for the ticket printer client.
Every error here is contained at the job or event boundary.
"""


class PrinterClientError(Exception):
    """Base class for ticket printer client errors."""


class ValidationError(PrinterClientError):
    """Inbound payload is malformed or missing required fields."""


class RenderError(PrinterClientError):
    """A document reached the renderer in a shape it cannot lay out."""


class JobStateError(PrinterClientError):
    """Illegal print job state transition."""


class DeviceError(PrinterClientError):
    """The printer rejected or failed a write."""


class NotConnected(DeviceError):
    """The printer was unreachable when the job was about to be emitted."""


class DeviceTimeout(DeviceError):
    """A flush exceeded its time budget."""
