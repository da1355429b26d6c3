"""Printer manager: discovery across transports and print dispatch."""
import logging
from typing import Dict, List, Mapping, Optional

from printbridge.printer.connection import (
    SerialDriver,
    SystemDialogDriver,
    TransportDriver,
    USBDriver,
)
from printbridge.printer.models import Device, PrintResult, TransportKind
from printbridge.printer.registry import DeviceRegistry

logger = logging.getLogger(__name__)


class PrinterManager:
    """Single entry point for discovering printers and printing receipts.

    Construct one per application and pass it to whatever needs it. Every
    ``print`` call resolves to a ``PrintResult``; only ``select`` raises
    (``NotFound``), because it happens before any transport is engaged.
    """

    def __init__(
        self,
        usb: Optional[TransportDriver] = None,
        serial: Optional[TransportDriver] = None,
        system: Optional[TransportDriver] = None,
        registry: Optional[DeviceRegistry] = None,
    ):
        self.registry = registry or DeviceRegistry()
        self._drivers: Dict[TransportKind, TransportDriver] = {
            TransportKind.USB: usb or USBDriver(),
            TransportKind.SERIAL: serial or SerialDriver(),
            TransportKind.SYSTEM: system or SystemDialogDriver(),
        }
        self._routes = {
            TransportKind.USB: self._print_usb,
            TransportKind.SERIAL: self._print_serial,
            TransportKind.SYSTEM: self._print_system,
        }
        missing = set(TransportKind) - set(self._routes)
        if missing:
            raise ValueError(f"No print route for {sorted(k.value for k in missing)}")

    @classmethod
    def from_config(cls, config: Mapping) -> "PrinterManager":
        """Build a manager from a Flask config (or any mapping)."""
        return cls(
            usb=USBDriver(
                vendor_ids=config.get("USB_VENDOR_IDS"),
                endpoint=config.get("USB_OUT_ENDPOINT", 0x01),
                timeout_ms=config.get("USB_TIMEOUT_MS", 5000),
            ),
            serial=SerialDriver(
                port=config.get("SERIAL_PORT"),
                baudrate=config.get("SERIAL_BAUDRATE", 9600),
                write_timeout=config.get("SERIAL_WRITE_TIMEOUT", 5.0),
            ),
            system=SystemDialogDriver(
                settle_delay=config.get("PRINT_SETTLE_DELAY", 0.5),
                command=config.get("SYSTEM_PRINT_COMMAND", "lp"),
            ),
        )

    def driver(self, kind: TransportKind) -> TransportDriver:
        return self._drivers[kind]

    # Discovery

    def discover_all(self) -> List[Device]:
        """Run discovery on every transport and replace the registry snapshot.

        Handles from the previous snapshot are released first; a re-discovered
        device comes back with a fresh handle.
        """
        self._release_handles()
        devices: List[Device] = []
        for kind, driver in self._drivers.items():
            try:
                found = driver.discover()
            except Exception:
                logger.exception("%s discovery failed", kind.value)
                continue
            for device in found:
                device.transport_kind = kind
                devices.append(device)
        self.registry.set_discovered(devices)
        logger.info("Discovered %d printer(s)", len(devices))
        return devices

    def _release_handles(self) -> None:
        for device in self.registry.devices():
            if device.handle is None:
                continue
            try:
                self._drivers[device.transport_kind].release(device)
            except Exception:
                logger.exception("Failed to release %s", device.id)

    # Selection

    def select(self, device_id: str) -> Device:
        """Select a device from the last discovery. Raises NotFound."""
        return self.registry.select(device_id)

    def current(self) -> Optional[Device]:
        return self.registry.current()

    # Printing

    def print(self, content: str, kind=TransportKind.SYSTEM) -> PrintResult:
        """Print content through the given transport.

        Args:
            content: Preformatted receipt text or markup, sent as-is.
            kind: TransportKind or its string value; anything unrecognized
                routes to the system print dialog.

        Returns:
            PrintResult. Never raises.
        """
        kind = TransportKind.parse(kind)
        try:
            result = self._routes[kind](content)
            if not isinstance(result, PrintResult):
                raise TypeError(
                    f"{kind.value} driver returned {type(result).__name__}, not PrintResult"
                )
            if result.success:
                logger.info("Printed via %s: %s", kind.value, result.message)
            else:
                logger.warning("Print via %s failed: %s", kind.value, result.message)
            return result
        except Exception as e:
            logger.exception("Printing error")
            return PrintResult.failed(f"Printing failed: {e}")

    def _print_usb(self, content: str) -> PrintResult:
        device = self.registry.current()
        if device is None or device.transport_kind is not TransportKind.USB or device.handle is None:
            return PrintResult.failed("No USB printer selected")
        return self._drivers[TransportKind.USB].send(content, device)

    def _print_serial(self, content: str) -> PrintResult:
        return self._drivers[TransportKind.SERIAL].send(content)

    def _print_system(self, content: str) -> PrintResult:
        device = self.registry.current()
        if device is not None and device.transport_kind is not TransportKind.SYSTEM:
            device = None
        return self._drivers[TransportKind.SYSTEM].send(content, device)

    # Capabilities

    def capabilities(self) -> Dict[str, bool]:
        """Report which transports the host supports."""
        caps = {}
        for kind, driver in self._drivers.items():
            try:
                caps[kind.value] = bool(driver.available())
            except Exception:
                logger.exception("%s capability check failed", kind.value)
                caps[kind.value] = False
        return caps

    def capabilities_available(self) -> bool:
        return any(self.capabilities().values())

    def close(self) -> None:
        """Cancel pending system prints and release claimed devices."""
        self._release_handles()
        for driver in self._drivers.values():
            driver.close()

    def __repr__(self):
        return f"PrinterManager({self.registry!r})"
