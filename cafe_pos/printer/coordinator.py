"""Delivery coordinator: gets encoded tickets onto paper, or in front of the operator."""
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple, Union

from cafe_pos.printer.directives import PrintJob
from cafe_pos.printer.escpos import encode
from cafe_pos.printer.exceptions import PresentationFailure
from cafe_pos.printer.fallback import create_presenter
from cafe_pos.printer.host import PrintOptions, create_host_service
from cafe_pos.printer.selection import OperatorDeviceSelector
from cafe_pos.printer.transports import (
    DeliveryAttempt,
    DirectChannelTransport,
    HostServiceTransport,
    HumanFallbackTransport,
    Transport,
    TransportKind,
)

logger = logging.getLogger(__name__)

Printable = Union[PrintJob, bytes]


@dataclass
class DeliveryOutcome:
    """Result of delivering one buffer through the transport chain."""
    label: str
    attempts: List[DeliveryAttempt] = field(default_factory=list)
    cancelled: bool = False

    @property
    def succeeded(self) -> bool:
        return bool(self.attempts) and self.attempts[-1].succeeded

    @property
    def via(self) -> Optional[TransportKind]:
        return self.attempts[-1].transport if self.succeeded else None

    @property
    def reference(self) -> Optional[str]:
        return self.attempts[-1].reference if self.succeeded else None

    @property
    def reason(self) -> str:
        if self.cancelled:
            return "cancelled"
        failures = [a.reason for a in self.attempts if not a.succeeded]
        return failures[-1] if failures else ""

    def raise_for_failure(self) -> None:
        """Raise PresentationFailure if no transport, not even the fallback, worked."""
        if not self.succeeded:
            raise PresentationFailure(
                f"Could not deliver '{self.label}': {self.reason or 'no transport configured'}",
                {"attempts": [a.to_dict() for a in self.attempts]},
                outcome=self,
            )

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "succeeded": self.succeeded,
            "via": self.via.value if self.via else None,
            "reference": self.reference,
            "cancelled": self.cancelled,
            "attempts": [a.to_dict() for a in self.attempts],
        }


class DeliveryCoordinator:
    """Tries each transport in order until one delivers the buffer.

    Args:
        transports: Tiers in priority order, typically direct channel, host
            print service, then the human fallback
        copy_delay: Seconds between the customer and staff printouts
    """

    def __init__(self, transports: Sequence[Transport], copy_delay: float = 2.0):
        self.transports = list(transports)
        self.copy_delay = copy_delay

    def transport(self, kind: TransportKind) -> Optional[Transport]:
        for transport in self.transports:
            if transport.kind is kind:
                return transport
        return None

    @staticmethod
    def render(job: PrintJob) -> bytes:
        """Render a job to the bytes sent to the printer."""
        return encode(job)

    def _prepare(self, item: Printable, label: Optional[str]) -> Tuple[bytes, str]:
        if isinstance(item, PrintJob):
            return self.render(item), label or item.label
        return bytes(item), label or "ticket"

    def deliver(self, item: Printable, label: Optional[str] = None,
                raise_on_failure: bool = True) -> DeliveryOutcome:
        """Deliver one job or encoded buffer.

        Raises:
            PayloadTooLarge: the job cannot be encoded; nothing is sent.
            PresentationFailure: every tier failed, including the fallback
                (only when ``raise_on_failure``).
        """
        buffer, label = self._prepare(item, label)
        return self._run(buffer, label, raise_on_failure)

    def _run(self, buffer: bytes, label: str, raise_on_failure: bool) -> DeliveryOutcome:
        outcome = DeliveryOutcome(label)
        logger.info("Delivering '%s' (%d bytes)", label, len(buffer))
        for transport in self.transports:
            attempt = transport.attempt(buffer, label)
            outcome.attempts.append(attempt)
            if attempt.succeeded:
                return outcome

        logger.error("All transports failed for '%s': %s", label, outcome.reason)
        if raise_on_failure:
            outcome.raise_for_failure()
        return outcome

    def deliver_pair(self, customer: Printable, staff: Printable,
                     cancel: Optional[threading.Event] = None
                     ) -> Tuple[DeliveryOutcome, DeliveryOutcome]:
        """Deliver the customer copy, wait, then deliver the staff copy.

        Both copies are encoded before anything is sent. The staff copy runs
        the whole transport chain on its own even if the customer copy ended
        in the fallback or failed. Setting ``cancel`` during the wait skips
        the staff copy. Neither outcome raises; check ``succeeded``.
        """
        customer_buffer, customer_label = self._prepare(customer, "customer")
        staff_buffer, staff_label = self._prepare(staff, "staff")

        first = self._run(customer_buffer, customer_label, raise_on_failure=False)

        if self.copy_delay > 0:
            logger.debug("Waiting %.1fs before staff copy", self.copy_delay)
        if cancel is not None:
            if cancel.wait(self.copy_delay):
                logger.info("Staff copy '%s' cancelled", staff_label)
                return first, DeliveryOutcome(staff_label, cancelled=True)
        elif self.copy_delay > 0:
            time.sleep(self.copy_delay)

        second = self._run(staff_buffer, staff_label, raise_on_failure=False)
        return first, second

    def close(self) -> None:
        """Release held devices."""
        for transport in self.transports:
            transport.close()


def create_coordinator(config: dict) -> DeliveryCoordinator:
    """Factory function to build the coordinator from app config.

    ``PRINT_TRANSPORTS`` lists the tiers in order, from ``direct``, ``host``
    and ``manual``.
    """
    transports: List[Transport] = []
    for name in config.get("PRINT_TRANSPORTS", ("direct", "host", "manual")):
        name = name.strip().lower()
        if name == "direct":
            selector = OperatorDeviceSelector(
                timeout=config.get("DEVICE_GRANT_TIMEOUT", 0),
                spec=config.get("PRINTER_DEVICE"),
            )
            transports.append(DirectChannelTransport(selector, rate=config.get("PRINTER_BAUDRATE", 9600)))
        elif name == "host":
            service = create_host_service(
                config.get("HOST_PRINT_BACKEND", "none"),
                printer_name=config.get("HOST_PRINTER_NAME"),
                raw=config.get("HOST_PRINT_RAW", True),
            )
            options = PrintOptions(
                silent=True,
                margins=config.get("HOST_PRINT_MARGINS", "none"),
                duplex=config.get("HOST_PRINT_DUPLEX", False),
                copies=config.get("HOST_PRINT_COPIES", 1),
            )
            transports.append(HostServiceTransport(service, options))
        elif name == "manual":
            presenter = create_presenter(
                config.get("FALLBACK_MODE", "preview"),
                directory=config.get("FALLBACK_DIR"),
                capacity=config.get("FALLBACK_CAPACITY", 50),
            )
            transports.append(HumanFallbackTransport(presenter))
        else:
            raise ValueError(f"Unknown transport: {name}")

    return DeliveryCoordinator(transports, copy_delay=config.get("COPY_DELAY", 2.0))
