"""Printer module: transport drivers, device registry and print dispatch."""
from printbridge.printer.connection import (
    TransportDriver,
    SerialDriver,
    SystemDialogDriver,
    USBDriver,
)
from printbridge.printer.document import PrintDocument
from printbridge.printer.errors import (
    AccessDenied,
    CapabilityUnavailable,
    HandshakeFailed,
    NoDeviceSelected,
    NotFound,
    PrinterError,
    TransferFailed,
    TransferTimeout,
)
from printbridge.printer.manager import PrinterManager
from printbridge.printer.models import Device, PrintResult, TransportKind
from printbridge.printer.registry import DeviceRegistry

__all__ = [
    "TransportDriver",
    "SerialDriver",
    "SystemDialogDriver",
    "USBDriver",
    "PrintDocument",
    "AccessDenied",
    "CapabilityUnavailable",
    "HandshakeFailed",
    "NoDeviceSelected",
    "NotFound",
    "PrinterError",
    "TransferFailed",
    "TransferTimeout",
    "PrinterManager",
    "Device",
    "PrintResult",
    "TransportKind",
    "DeviceRegistry",
]
