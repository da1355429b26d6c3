#!/usr/bin/env python3
"""
Thermal Receipt Printer Tester
Discovers printers and prints a test receipt via USB, Serial, or the system dialog
"""

import logging
import sys
import time

from printbridge.printer import (
    NotFound,
    PrinterManager,
    SerialDriver,
    SystemDialogDriver,
    TransportKind,
    USBDriver,
)

TEST_RECEIPT = (
    "=== PRINTER TEST ===\n"
    "\n"
    "Connection: {transport}\n"
    "Status: OK\n"
    "\n\n\n"
)


def list_printers(manager: PrinterManager) -> bool:
    """Run discovery and list what was found."""
    caps = manager.capabilities()
    print("Capabilities: " + ", ".join(f"{k}={'yes' if v else 'no'}" for k, v in caps.items()))

    print("Detecting printers...")
    devices = manager.discover_all()
    for device in devices:
        state = "connected" if device.connected else "offline"
        print(f"  Found: [{device.transport_kind.value}] {device.id} - {device.name} ({state})")

    if not devices:
        print("  No printers detected. You can still print using the system print dialog.")
    return bool(devices)


def print_test(manager: PrinterManager, kind: TransportKind, device_id: str = None) -> bool:
    """Print the test receipt and report the outcome."""
    if kind is TransportKind.USB or device_id:
        manager.discover_all()
        try:
            if device_id:
                manager.select(device_id)
            else:
                usb_devices = [d for d in manager.registry.devices() if d.transport_kind is kind]
                if usb_devices:
                    manager.select(usb_devices[0].id)
        except NotFound as e:
            print(f"✗ {e}")
            return False

    result = manager.print(TEST_RECEIPT.format(transport=kind.value), kind)
    mark = "✓" if result.success else "✗"
    print(f"{mark} {result.message}")
    return result.success


def main():
    import argparse

    parser = argparse.ArgumentParser(
        description="Thermal Receipt Printer Tester",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python printer-test.py discover
  python printer-test.py usb
  python printer-test.py usb 04b8:0e15
  python printer-test.py serial COM3
  python printer-test.py serial /dev/ttyUSB0 115200
  python printer-test.py system
  python printer-test.py system Receipt_Printer
        """
    )

    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Show driver log output")

    subparsers = parser.add_subparsers(dest="mode", required=True)

    subparsers.add_parser("discover", help="List detected printers")

    # USB subcommand
    usb_parser = subparsers.add_parser("usb", help="Print test receipt over USB")
    usb_parser.add_argument("device_id", nargs="?", help="Device id, vendor:product in hex (e.g., 04b8:0e15)")

    # Serial subcommand
    serial_parser = subparsers.add_parser("serial", help="Print test receipt over serial")
    serial_parser.add_argument("port", nargs="?", help="Serial port (e.g., COM3, /dev/ttyUSB0)")
    serial_parser.add_argument("baudrate", nargs="?", type=int, default=9600,
                               help="Baud rate (default: 9600)")

    # System subcommand
    system_parser = subparsers.add_parser("system", help="Print test receipt via the system print flow")
    system_parser.add_argument("destination", nargs="?", help="System printer name")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    print("=" * 40)
    print("Thermal Printer Tester")
    print("=" * 40 + "\n")

    system = SystemDialogDriver()
    serial_driver = SerialDriver(
        port=getattr(args, "port", None),
        baudrate=getattr(args, "baudrate", 9600),
    )
    manager = PrinterManager(usb=USBDriver(), serial=serial_driver, system=system)

    mode = args.mode
    try:
        if mode == "discover":
            ok = list_printers(manager)
        elif mode == "usb":
            ok = print_test(manager, TransportKind.USB, args.device_id)
        elif mode == "serial":
            ok = print_test(manager, TransportKind.SERIAL)
        else:
            ok = print_test(manager, TransportKind.SYSTEM, args.destination)
            # Let the settle delay elapse before the process exits
            while ok and system.pending:
                time.sleep(0.1)
    finally:
        manager.close()

    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
