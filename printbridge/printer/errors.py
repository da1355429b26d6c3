"""Printer error taxonomy."""


class PrinterError(Exception):
    """Base error for printer operations."""


class AccessDenied(PrinterError):
    """Raised when no device or port was granted."""


class HandshakeFailed(PrinterError):
    """Raised when the open/configure/claim sequence fails."""


class TransferFailed(PrinterError):
    """Raised when writing bytes to the printer fails."""


class TransferTimeout(TransferFailed):
    """Raised when a write does not complete in time."""


class NotFound(PrinterError):
    """Raised when selecting a device absent from the last discovery."""

    def __init__(self, device_id: str):
        super().__init__(f"Device {device_id!r} not found; run discovery again")
        self.device_id = device_id


class CapabilityUnavailable(PrinterError):
    """Raised when the host lacks support for a transport."""


class NoDeviceSelected(PrinterError):
    """Raised when a transport needs a selected device and none is set."""
