"""Printer transport drivers for USB, Serial, and the system print dialog."""
import errno
import logging
import os
import shutil
import subprocess
import tempfile
import threading
from abc import ABC, abstractmethod
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set

from printbridge.printer.document import PrintDocument
from printbridge.printer.errors import (
    AccessDenied,
    CapabilityUnavailable,
    HandshakeFailed,
    NoDeviceSelected,
    TransferFailed,
    TransferTimeout,
)
from printbridge.printer.models import Device, PrintResult, TransportKind

# Serial support (optional)
try:
    import serial
    import serial.tools.list_ports
    SERIAL_AVAILABLE = True
except ImportError:
    SERIAL_AVAILABLE = False

# USB support (optional)
try:
    import usb.core
    import usb.util
    USB_AVAILABLE = True
except ImportError:
    USB_AVAILABLE = False

logger = logging.getLogger(__name__)

ENCODING = "utf-8"


class TransportDriver(ABC):
    """Abstract base class for printer transports."""

    kind: TransportKind

    @abstractmethod
    def discover(self) -> List[Device]:
        """Return the devices reachable through this transport."""

    @abstractmethod
    def send(self, content: str, device: Optional[Device] = None) -> PrintResult:
        """Push content to the printer. Failures are returned, not raised."""

    @abstractmethod
    def available(self) -> bool:
        """Check whether the host supports this transport at all."""

    def release(self, device: Device) -> None:
        """Give back the live resource held by a discovered device."""

    def close(self) -> None:
        """Release anything the driver still holds."""


def first_candidate(candidates: Sequence) -> Optional[object]:
    """Default USB chooser: grant the first matching device."""
    return candidates[0] if candidates else None


class USBDriver(TransportDriver):
    """USB bulk-transfer printer driver."""

    kind = TransportKind.USB

    # Thermal printer controller chipset vendor IDs
    KNOWN_VENDORS = {
        0x0483: "STMicroelectronics",
        0x04b8: "Epson",
        0x0416: "WinChipHead",
        0x03f0: "HP",
        0x1a86: "QinHeng (CH340)",
        0x10c4: "Silicon Labs",
        0x067b: "Prolific",
    }

    CONFIGURATION = 1
    INTERFACE = 0

    def __init__(
        self,
        vendor_ids: Optional[Iterable[int]] = None,
        chooser: Optional[Callable[[Sequence], Optional[object]]] = None,
        endpoint: int = 0x01,
        timeout_ms: int = 5000,
    ):
        """Initialize driver.

        Args:
            vendor_ids: Allow-list of vendor IDs, defaults to KNOWN_VENDORS.
            chooser: Picks the one granted device out of the candidates,
                returning None when the user declines.
            endpoint: Outbound bulk endpoint address.
            timeout_ms: Bulk transfer timeout.
        """
        self.vendor_ids = frozenset(self.KNOWN_VENDORS if vendor_ids is None else vendor_ids)
        self.chooser = chooser or first_candidate
        self.endpoint = endpoint
        self.timeout_ms = timeout_ms

    def available(self) -> bool:
        if not USB_AVAILABLE:
            return False
        try:
            usb.core.find()
        except usb.core.NoBackendError:
            return False
        return True

    def discover(self) -> List[Device]:
        """Request access to a single allow-listed printer and claim it.

        Returns at most one device. Failures are logged and yield an empty
        list so the rest of a detection pass can proceed.
        """
        try:
            candidates = self._candidates()
            granted = self.chooser(candidates) if candidates else None
            if granted is None:
                raise AccessDenied("No USB printer granted")
            return [self._open(granted)]
        except (AccessDenied, CapabilityUnavailable, HandshakeFailed) as e:
            logger.warning("No USB printers detected: %s", e)
            return []

    def _candidates(self) -> list:
        if not USB_AVAILABLE:
            raise CapabilityUnavailable("pyusb not installed. Run: pip install pyusb")
        try:
            found = usb.core.find(
                find_all=True,
                custom_match=lambda dev: dev.idVendor in self.vendor_ids,
            )
            return list(found or ())
        except usb.core.NoBackendError as e:
            raise CapabilityUnavailable(f"No USB backend available: {e}")
        except usb.core.USBError as e:
            raise AccessDenied(f"USB enumeration denied: {e}")

    def _open(self, dev) -> Device:
        device_id = f"{dev.idVendor:04x}:{dev.idProduct:04x}"

        # Detach kernel driver if active
        try:
            if dev.is_kernel_driver_active(self.INTERFACE):
                dev.detach_kernel_driver(self.INTERFACE)
        except (usb.core.USBError, NotImplementedError):
            pass  # Not supported on every platform

        try:
            dev.set_configuration(self.CONFIGURATION)
            usb.util.claim_interface(dev, self.INTERFACE)
        except (usb.core.USBError, NotImplementedError, ValueError) as e:
            try:
                usb.util.dispose_resources(dev)
            except usb.core.USBError:
                pass
            raise HandshakeFailed(f"USB device {device_id} handshake failed: {e}")

        logger.info("Claimed USB printer %s", device_id)
        return Device(
            id=device_id,
            name=self._device_name(dev),
            transport_kind=self.kind,
            connected=True,
            handle=dev,
        )

    @staticmethod
    def _device_name(dev) -> str:
        try:
            name = usb.util.get_string(dev, dev.iProduct) if dev.iProduct else None
        except (usb.core.USBError, NotImplementedError, ValueError):
            name = None
        return name or f"Thermal Printer ({dev.idProduct:04x})"

    def send(self, content: str, device: Optional[Device] = None) -> PrintResult:
        """Write content as raw bytes in a single bulk transfer."""
        try:
            if device is None or device.handle is None:
                raise NoDeviceSelected("No USB printer selected")
            data = content.encode(ENCODING)
            try:
                device.handle.write(self.endpoint, data, self.timeout_ms)
            except usb.core.USBTimeoutError as e:
                raise TransferTimeout(f"transfer timed out after {self.timeout_ms} ms ({e})")
            except usb.core.USBError as e:
                raise TransferFailed(str(e))
            logger.info("Sent %d bytes to USB printer %s", len(data), device.id)
            return PrintResult.ok("Printed successfully")
        except Exception as e:
            logger.error("USB printing error: %s", e)
            return PrintResult.failed(f"USB printing failed: {e}")

    def release(self, device: Device) -> None:
        """Release the claimed interface and dispose the handle."""
        if device.handle is None:
            return
        try:
            usb.util.release_interface(device.handle, self.INTERFACE)
            usb.util.dispose_resources(device.handle)
        except usb.core.USBError as e:
            logger.debug("Releasing USB printer %s failed: %s", device.id, e)
        device.handle = None
        device.connected = False

    def __repr__(self):
        return f"USBDriver(vendors={len(self.vendor_ids)}, endpoint=0x{self.endpoint:02x})"


class SerialDriver(TransportDriver):
    """Serial port printer driver.

    There is no discovery step: a port is requested each time something is
    printed, opened, written to and closed again.
    """

    kind = TransportKind.SERIAL

    def __init__(
        self,
        port: Optional[str] = None,
        baudrate: int = 9600,
        write_timeout: Optional[float] = 5.0,
        port_request: Optional[Callable[[], Optional[str]]] = None,
        serial_factory: Optional[Callable] = None,
    ):
        self.port = port
        self.baudrate = baudrate
        self.write_timeout = write_timeout
        self.port_request = port_request or self._default_port_request
        self.serial_factory = serial_factory

    def available(self) -> bool:
        return SERIAL_AVAILABLE

    def discover(self) -> List[Device]:
        return []

    def _default_port_request(self) -> Optional[str]:
        if self.port:
            return self.port
        ports = serial.tools.list_ports.comports()
        return ports[0].device if ports else None

    def _open(self, port: str):
        factory = self.serial_factory or serial.Serial
        try:
            return factory(port, self.baudrate, write_timeout=self.write_timeout)
        except OSError as e:
            # pyserial wraps open() errors in SerialException but keeps errno
            if e.errno in (errno.EACCES, errno.EPERM):
                raise AccessDenied(f"Access to {port} denied: {e}")
            raise HandshakeFailed(f"Failed to open {port}: {e}")

    def _write(self, conn, data: bytes) -> None:
        try:
            conn.write(data)
            conn.flush()
        except serial.SerialTimeoutException as e:
            raise TransferTimeout(f"write timed out after {self.write_timeout}s ({e})")
        except OSError as e:
            raise TransferFailed(f"Failed to send data: {e}")

    def send(self, content: str, device: Optional[Device] = None) -> PrintResult:
        """Open a freshly requested port at the configured baud rate and write content."""
        try:
            if not SERIAL_AVAILABLE:
                raise CapabilityUnavailable("pyserial not installed. Run: pip install pyserial")
            port = self.port_request()
            if not port:
                raise AccessDenied("No serial port selected")
            data = content.encode(ENCODING)
            conn = self._open(port)
            try:
                self._write(conn, data)
            finally:
                conn.close()
            logger.info("Sent %d bytes to serial printer on %s", len(data), port)
            return PrintResult.ok("Printed via serial port")
        except Exception as e:
            logger.error("Serial printing error: %s", e)
            return PrintResult.failed(f"Serial printing failed: {e}")

    def __repr__(self):
        return f"SerialDriver({self.port or '<request>'}@{self.baudrate})"


class SystemDialogDriver(TransportDriver):
    """Fallback driver that hands a styled document to the host print flow.

    The document is written to a temporary file and submitted after a short
    settle delay. ``send`` returns as soon as the submission is scheduled; the
    outcome of the native print flow is only logged.
    """

    kind = TransportKind.SYSTEM

    # Title, destination and job-option flags of the supported spool commands
    COMMAND_FLAGS = {
        "lp": ("-t", "-d", "-o"),
        "lpr": ("-T", "-P", "-o"),
    }

    def __init__(
        self,
        settle_delay: float = 0.5,
        command: str = "lp",
        document: Optional[PrintDocument] = None,
        launcher: Optional[Callable[[str, Optional[str]], None]] = None,
        timer_factory: Callable = threading.Timer,
    ):
        if os.path.basename(command) not in self.COMMAND_FLAGS:
            supported = ", ".join(sorted(self.COMMAND_FLAGS))
            raise ValueError(f"Unsupported print command {command!r} (expected one of: {supported})")
        self.settle_delay = settle_delay
        self.command = command
        self.document = document or PrintDocument()
        self.launcher = launcher or self._launch
        self.timer_factory = timer_factory
        self._pending: Dict[str, threading.Timer] = {}
        self._firing: Set[str] = set()
        self._lock = threading.Lock()

    def available(self) -> bool:
        return shutil.which(self.command) is not None

    def discover(self) -> List[Device]:
        """Enumerate CUPS destinations, tolerating hosts without CUPS."""
        result = _run_command(["lpstat", "-p"])
        if result is not None and result.returncode == 0:
            devices = _parse_printer_status(result.stdout)
            if devices:
                return devices

        result = _run_command(["lpstat", "-e"])
        if result is None or result.returncode != 0:
            return []
        return [
            Device(id=name, name=name, transport_kind=self.kind, connected=True)
            for name in (line.strip() for line in result.stdout.splitlines())
            if name
        ]

    def send(self, content: str, device: Optional[Device] = None) -> PrintResult:
        destination = None
        if device is not None and device.transport_kind is self.kind:
            destination = device.id
        try:
            path = self._write_document(content)
            self._schedule(path, destination)
        except Exception as e:
            logger.error("System printing error: %s", e)
            return PrintResult.failed(f"System printing failed: {e}")
        return PrintResult.ok("Print dialog opened")

    @property
    def pending(self) -> int:
        """Number of scheduled print actions that have not fired yet."""
        with self._lock:
            return len(self._pending)

    def _write_document(self, content: str) -> str:
        text = self.document.render(content)
        fd, path = tempfile.mkstemp(prefix="printbridge-", suffix=self.document.SUFFIX)
        try:
            with os.fdopen(fd, "w", encoding=ENCODING) as fh:
                fh.write(text)
        except OSError:
            _remove_quietly(path)
            raise
        return path

    def _schedule(self, path: str, destination: Optional[str]) -> None:
        timer = self.timer_factory(self.settle_delay, self._fire, args=(path, destination))
        timer.daemon = True
        with self._lock:
            self._pending[path] = timer
        try:
            timer.start()
        except RuntimeError:
            with self._lock:
                self._pending.pop(path, None)
            _remove_quietly(path)
            raise

    def _fire(self, path: str, destination: Optional[str]) -> None:
        with self._lock:
            if path not in self._pending:
                return  # cancelled
            self._firing.add(path)
        try:
            self.launcher(path, destination)
            logger.info("Submitted %s to the system print flow", path)
        except Exception:
            logger.exception("System print flow failed for %s", path)
        finally:
            _remove_quietly(path)
            with self._lock:
                self._pending.pop(path, None)
                self._firing.discard(path)

    def _launch(self, path: str, destination: Optional[str]) -> None:
        title_flag, destination_flag, option_flag = self.COMMAND_FLAGS[os.path.basename(self.command)]
        args = [self.command, title_flag, self.document.title]
        if destination:
            args += [destination_flag, destination]
        args += self.document.option_args(option_flag)
        args.append(path)
        result = _run_command(args)
        if result is None:
            raise CapabilityUnavailable(f"'{self.command}' not found on this host")
        if result.returncode != 0:
            raise TransferFailed(f"{' '.join(args)} -> {(result.stderr or '').strip()}")

    def cancel_pending(self) -> int:
        """Cancel scheduled print actions that have not fired yet."""
        with self._lock:
            pending = {
                path: timer for path, timer in self._pending.items()
                if path not in self._firing
            }
            for path in pending:
                del self._pending[path]
        for path, timer in pending.items():
            timer.cancel()
            _remove_quietly(path)
        if pending:
            logger.info("Cancelled %d pending system print(s)", len(pending))
        return len(pending)

    def close(self) -> None:
        self.cancel_pending()

    def __repr__(self):
        return f"SystemDialogDriver({self.command}, delay={self.settle_delay}s)"


def _parse_printer_status(output: str) -> List[Device]:
    """Parse ``lpstat -p`` lines like ``printer NAME is idle.  enabled since ...``."""
    devices = []
    for line in output.splitlines():
        parts = line.split()
        if len(parts) < 2 or parts[0] != "printer":
            continue
        name = parts[1]
        devices.append(Device(
            id=name,
            name=name,
            transport_kind=TransportKind.SYSTEM,
            connected="disabled" not in line,
        ))
    return devices


def _run_command(cmd: Sequence[str]) -> Optional[subprocess.CompletedProcess]:
    try:
        return subprocess.run(
            list(cmd),
            check=False,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError:
        return None


def _remove_quietly(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
