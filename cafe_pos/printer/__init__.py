"""Printer module: ESC/POS encoding and ticket delivery."""
from cafe_pos.printer.connection import (
    DeviceChannel,
    NetworkChannel,
    SerialChannel,
    USBChannel,
    create_channel,
)
from cafe_pos.printer.coordinator import DeliveryCoordinator, DeliveryOutcome, create_coordinator
from cafe_pos.printer.directives import PrintJob, job_from_list
from cafe_pos.printer.escpos import ESCPOSBuilder, encode, format_currency, format_date, horizontal_line
from cafe_pos.printer.exceptions import (
    ChannelUnavailable,
    DeliveryError,
    HostServiceUnavailable,
    PayloadTooLarge,
    PresentationFailure,
    PrinterError,
    TransmissionError,
)
from cafe_pos.printer.renderer import TemplateRenderer
from cafe_pos.printer.sanitize import sanitize
from cafe_pos.printer.transports import TransportKind

__all__ = [
    "DeviceChannel",
    "NetworkChannel",
    "SerialChannel",
    "USBChannel",
    "create_channel",
    "DeliveryCoordinator",
    "DeliveryOutcome",
    "create_coordinator",
    "PrintJob",
    "job_from_list",
    "ESCPOSBuilder",
    "encode",
    "format_currency",
    "format_date",
    "horizontal_line",
    "ChannelUnavailable",
    "DeliveryError",
    "HostServiceUnavailable",
    "PayloadTooLarge",
    "PresentationFailure",
    "PrinterError",
    "TransmissionError",
    "TemplateRenderer",
    "sanitize",
    "TransportKind",
]
