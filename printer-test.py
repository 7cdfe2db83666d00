#!/usr/bin/env python3
"""
Thermal Ticket Printer Connectivity Tester
Opens a Serial, USB or Network channel and prints a short ESC/POS test ticket
"""

import sys

from cafe_pos.printer import ESCPOSBuilder, PrinterError, create_channel, format_date
from cafe_pos.printer.connection import DEFAULT_BAUDRATE, USB_AVAILABLE

if USB_AVAILABLE:
    import usb.core

# Common thermal printer vendor IDs
KNOWN_VENDORS = {
    0x04b8: "Epson",
    0x0519: "Star Micronics",
    0x0dd4: "Custom",
    0x0fe6: "Bixolon",
    0x1504: "Sewoo",
    0x0493: "MAG-TEK",
    0x1a86: "QinHeng (CH340)",
}


def build_test_ticket(connection: str, address: str, width: int = 32) -> bytes:
    """ESC/POS bytes for the test ticket."""
    from datetime import datetime

    builder = ESCPOSBuilder(width=width, label="test")
    builder.align_center().double_size().text("TEST IMPRIMANTE").newline()
    builder.normal().line("=")
    builder.align_left()
    builder.text(f"Connexion: {connection}").newline()
    builder.text(f"Adresse: {address}").newline()
    builder.text(f"Date: {format_date(datetime.now())}").newline()
    builder.text("Statut: OK").newline()
    builder.line()
    builder.align_center().text("àéèçù ÀÉÈÇÙ").newline()
    builder.cut()
    return builder.build()


def test_channel(spec: dict, address: str, rate: int = None, print_test: bool = True) -> bool:
    """Open the channel described by ``spec`` and optionally print a test ticket."""
    print(f"Testing {spec['type']} connection to {address}...")
    try:
        channel = create_channel(spec)
        channel.open(rate)
    except PrinterError as e:
        print(f"✗ {e}")
        return False

    try:
        print(f"✓ Connected to {channel!r}")
        if print_test:
            channel.write(build_test_ticket(spec["type"], address))
            print("✓ Test page sent")
        else:
            # Just send initialize command to verify communication
            channel.write(b"\x1b\x40")
        return True
    except PrinterError as e:
        print(f"✗ {e}")
        return False
    finally:
        channel.close()


def list_usb_printers() -> bool:
    """List connected USB devices from known printer vendors."""
    if not USB_AVAILABLE:
        print("✗ pyusb not installed. Run: pip install pyusb")
        return False

    print("Scanning for USB printers...")
    found = False
    for dev in usb.core.find(find_all=True):
        if dev.idVendor in KNOWN_VENDORS:
            print(f"  Found: {KNOWN_VENDORS[dev.idVendor]} - {dev.idVendor:04x}:{dev.idProduct:04x}")
            found = True

    if not found:
        print("  No known printer vendors detected")
    return found


def main():
    import argparse

    parser = argparse.ArgumentParser(
        description="Thermal Ticket Printer Connectivity Tester",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python printer-test.py net 192.168.1.100
  python printer-test.py net 192.168.1.100 9100 --no-print
  python printer-test.py serial COM3
  python printer-test.py serial /dev/ttyUSB0 115200
  python printer-test.py usb
  python printer-test.py usb 04b8 0e15 --no-print
        """
    )

    parser.add_argument("--no-print", action="store_true",
                        help="Skip printing test page (connection test only)")

    subparsers = parser.add_subparsers(dest="mode", required=True)

    net_parser = subparsers.add_parser("net", help="Test network printer")
    net_parser.add_argument("ip", help="Printer IP address")
    net_parser.add_argument("port", nargs="?", type=int, default=9100,
                            help="Port number (default: 9100)")

    serial_parser = subparsers.add_parser("serial", help="Test serial printer")
    serial_parser.add_argument("port", help="Serial port (e.g., COM3, /dev/ttyUSB0)")
    serial_parser.add_argument("baudrate", nargs="?", type=int, default=DEFAULT_BAUDRATE,
                               help=f"Baud rate (default: {DEFAULT_BAUDRATE})")

    usb_parser = subparsers.add_parser("usb", help="Test USB printer")
    usb_parser.add_argument("vendor_id", nargs="?", help="Vendor ID in hex (e.g., 04b8)")
    usb_parser.add_argument("product_id", nargs="?", help="Product ID in hex (e.g., 0e15)")

    args = parser.parse_args()

    print("=" * 40)
    print("Thermal Printer Connectivity Tester")
    print("=" * 40 + "\n")

    print_test = not args.no_print

    if args.mode == "net":
        spec = {"type": "network", "ip": args.ip, "port": args.port}
        ok = test_channel(spec, f"{args.ip}:{args.port}", print_test=print_test)

    elif args.mode == "serial":
        spec = {"type": "serial", "port": args.port}
        ok = test_channel(spec, args.port, rate=args.baudrate, print_test=print_test)

    elif args.vendor_id and args.product_id:
        spec = {"type": "usb", "vendor_id": args.vendor_id, "product_id": args.product_id}
        ok = test_channel(spec, f"{args.vendor_id}:{args.product_id}", print_test=print_test)

    else:
        ok = list_usb_printers()

    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
