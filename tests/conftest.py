from __future__ import annotations

import subprocess

import pytest
import usb.core
import usb.util

from printbridge.printer import PrinterManager, SerialDriver, SystemDialogDriver, USBDriver


class FakeUSBDevice:
    def __init__(
        self,
        product_name: str | None = "EPSON-TM20",
        id_vendor: int = 0x04B8,
        id_product: int = 0x0E15,
        fail_configure: bool = False,
        fail_claim: bool = False,
        fail_write: Exception | None = None,
    ) -> None:
        self.idVendor = id_vendor
        self.idProduct = id_product
        self.iProduct = 2 if product_name else 0
        self.product_name = product_name
        self.fail_configure = fail_configure
        self.fail_claim = fail_claim
        self.fail_write = fail_write
        self.configuration: int | None = None
        self.claimed: list[int] = []
        self.writes: list[tuple[int, bytes]] = []
        self.disposed = False

    def is_kernel_driver_active(self, interface: int) -> bool:
        return False

    def detach_kernel_driver(self, interface: int) -> None:
        raise AssertionError("kernel driver is not active")

    def set_configuration(self, configuration: int | None = None) -> None:
        if self.fail_configure:
            raise usb.core.USBError("Access denied (insufficient permissions)")
        self.configuration = configuration

    def write(self, endpoint: int, data: bytes, timeout: int | None = None) -> int:
        if self.fail_write is not None:
            raise self.fail_write
        self.writes.append((endpoint, bytes(data)))
        return len(data)


def fake_claim_interface(dev: FakeUSBDevice, interface: int) -> None:
    if dev.fail_claim:
        raise usb.core.USBError("Resource busy")
    dev.claimed.append(interface)


class FakeUSBBus:
    def __init__(self) -> None:
        self.devices: list[FakeUSBDevice] = []

    def find(self, find_all=False, custom_match=None, **kwargs):
        matched = [d for d in self.devices if custom_match is None or custom_match(d)]
        if find_all:
            return iter(matched)
        return matched[0] if matched else None


class FakeSerialPort:
    def __init__(self, port: str, baudrate: int, write_timeout, fail_write: Exception | None) -> None:
        self.port = port
        self.baudrate = baudrate
        self.write_timeout = write_timeout
        self.fail_write = fail_write
        self.written = bytearray()
        self.close_count = 0

    def write(self, data: bytes) -> int:
        if self.fail_write is not None:
            raise self.fail_write
        self.written.extend(data)
        return len(data)

    def flush(self) -> None:
        pass

    def close(self) -> None:
        self.close_count += 1


class FakeSerialFactory:
    def __init__(self) -> None:
        self.opened: list[FakeSerialPort] = []
        self.fail_open: Exception | None = None
        self.fail_write: Exception | None = None

    def __call__(self, port: str, baudrate: int, write_timeout=None) -> FakeSerialPort:
        if self.fail_open is not None:
            raise self.fail_open
        conn = FakeSerialPort(port, baudrate, write_timeout, self.fail_write)
        self.opened.append(conn)
        return conn


class FakeTimer:
    def __init__(self, interval: float, function, args=()) -> None:
        self.interval = interval
        self.function = function
        self.args = args
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if not self.cancelled:
            self.function(*self.args)


class FakeTimerFactory:
    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def __call__(self, interval: float, function, args=()) -> FakeTimer:
        timer = FakeTimer(interval, function, args)
        self.timers.append(timer)
        return timer


class FakeLauncher:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str | None, str]] = []

    def __call__(self, path: str, destination: str | None) -> None:
        with open(path, encoding="utf-8") as fh:
            self.calls.append((path, destination, fh.read()))


@pytest.fixture
def usb_bus(monkeypatch: pytest.MonkeyPatch) -> FakeUSBBus:
    bus = FakeUSBBus()
    monkeypatch.setattr(usb.core, "find", bus.find)
    monkeypatch.setattr(usb.util, "claim_interface", fake_claim_interface)
    monkeypatch.setattr(usb.util, "release_interface", lambda dev, intf: dev.claimed.remove(intf))
    monkeypatch.setattr(usb.util, "dispose_resources", lambda dev: setattr(dev, "disposed", True))
    monkeypatch.setattr(usb.util, "get_string", lambda dev, index: dev.product_name)
    return bus


@pytest.fixture
def lpstat(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Fake ``lpstat``: maps the flag to its stdout; unknown flags mean no CUPS."""
    outputs: dict[str, str] = {}

    def fake_run(cmd, check, capture_output, text):
        if cmd[0] != "lpstat" or cmd[1] not in outputs:
            raise FileNotFoundError(cmd[0])
        return subprocess.CompletedProcess(cmd, 0, stdout=outputs[cmd[1]], stderr="")

    monkeypatch.setattr(subprocess, "run", fake_run)
    return outputs


@pytest.fixture
def serial_factory() -> FakeSerialFactory:
    return FakeSerialFactory()


@pytest.fixture
def timers() -> FakeTimerFactory:
    return FakeTimerFactory()


@pytest.fixture
def launcher() -> FakeLauncher:
    return FakeLauncher()


@pytest.fixture
def system_driver(timers: FakeTimerFactory, launcher: FakeLauncher):
    driver = SystemDialogDriver(settle_delay=0.5, launcher=launcher, timer_factory=timers)
    yield driver
    driver.cancel_pending()


@pytest.fixture
def manager(usb_bus, lpstat, serial_factory, system_driver) -> PrinterManager:
    return PrinterManager(
        usb=USBDriver(),
        serial=SerialDriver(port="/dev/ttyFAKE0", serial_factory=serial_factory),
        system=system_driver,
    )
