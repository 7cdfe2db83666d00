"""
Printer delivery exceptions.

Exception Hierarchy:
    PrinterError (base)
    ├── PayloadTooLarge         - barcode payload exceeds the 1-byte length field (encoding)
    └── DeliveryError           - a transport tier could not deliver (runtime, graceful)
        ├── ChannelUnavailable      - no device granted/selected, or it could not be opened
        ├── TransmissionError       - write failed mid-stream, cached channel invalidated
        ├── HostServiceUnavailable  - no system print capability, or the job was rejected
        └── PresentationFailure     - even the manual fallback could not be presented

Tier failures are caught by the DeliveryCoordinator and turn into the next
tier. Only PresentationFailure (all tiers exhausted) and PayloadTooLarge reach
the caller. Each exception carries an ``operator_message`` naming the physical
cause, suitable for a single notification on the till.
"""

from typing import Any, Dict, Optional


class PrinterError(Exception):
    """Base exception for all printer errors."""

    operator_message = "Problème d'impression — vérifiez l'imprimante."

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class PayloadTooLarge(PrinterError):
    """Barcode payload does not fit the protocol's single-byte length field."""

    operator_message = "Code-barres trop long pour l'imprimante."

    def __init__(self, length: int, limit: int = 255):
        super().__init__(
            f"Barcode payload is {length} bytes, protocol limit is {limit}",
            {"length": length, "limit": limit},
        )
        self.length = length
        self.limit = limit


class DeliveryError(PrinterError):
    """Base class for transport tier failures."""


class ChannelUnavailable(DeliveryError):
    """No device channel authorized/selected, or the device could not be opened."""

    operator_message = "Imprimante non connectée — vérifiez le câble."


class TransmissionError(DeliveryError):
    """Writing to the device failed; the cached channel must be discarded."""

    operator_message = "Problème de connexion imprimante — vérifiez le câble."


class HostServiceUnavailable(DeliveryError):
    """No system print service, or it rejected the job."""

    operator_message = "Service d'impression du système indisponible."


class PresentationFailure(DeliveryError):
    """The manual fallback surface could not be created."""

    operator_message = "Problème de connexion imprimante — vérifiez le câble."

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, outcome=None):
        super().__init__(message, details)
        self.outcome = outcome
