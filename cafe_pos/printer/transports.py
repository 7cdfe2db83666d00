"""Transport tiers tried by the DeliveryCoordinator, in priority order."""
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from cafe_pos.printer.connection import DEFAULT_BAUDRATE, DeviceChannel, create_channel
from cafe_pos.printer.exceptions import (
    ChannelUnavailable,
    DeliveryError,
    HostServiceUnavailable,
    TransmissionError,
)
from cafe_pos.printer.fallback import FallbackPresenter
from cafe_pos.printer.host import HostPrintService, PrintOptions
from cafe_pos.printer.sanitize import sanitize
from cafe_pos.printer.selection import DeviceSelector

logger = logging.getLogger(__name__)


class TransportKind(Enum):
    DIRECT = "direct"
    HOST_SERVICE = "host_service"
    MANUAL_FALLBACK = "manual_fallback"


@dataclass(frozen=True)
class DeliveryAttempt:
    """Outcome of one transport for one buffer."""
    transport: TransportKind
    succeeded: bool
    reason: str = ""
    reference: Optional[str] = None
    error: Optional[DeliveryError] = None

    def to_dict(self) -> dict:
        return {
            "transport": self.transport.value,
            "succeeded": self.succeeded,
            "reason": self.reason,
            "reference": self.reference,
        }


class Transport(ABC):
    """One delivery mechanism. Each attempt is all-or-nothing."""

    kind: TransportKind

    @abstractmethod
    def deliver(self, buffer: bytes, label: str) -> Optional[str]:
        """Deliver the whole buffer and return a reference to the result.

        Raises:
            DeliveryError: the buffer was not delivered by this transport.
        """

    def attempt(self, buffer: bytes, label: str = "ticket") -> DeliveryAttempt:
        """Try to deliver, turning a DeliveryError into a failed attempt."""
        try:
            reference = self.deliver(buffer, label)
        except DeliveryError as e:
            logger.warning("%s failed for '%s': %s", self.kind.value, label, e)
            return DeliveryAttempt(self.kind, False, reason=e.message, error=e)
        logger.info("'%s' delivered via %s", label, self.kind.value)
        return DeliveryAttempt(self.kind, True, reference=reference)

    def close(self) -> None:
        """Release anything the transport holds."""


class DirectChannelTransport(Transport):
    """Writes the exact ESC/POS bytes to a previously granted device.

    The bound channel is cached and reused across jobs so the operator is not
    asked to pick the printer again. A failed write closes and drops it; the
    next job acquires a fresh one. One lock guards the channel so only one
    transmission is ever in flight.
    """

    kind = TransportKind.DIRECT

    def __init__(self, selector: DeviceSelector, rate: int = DEFAULT_BAUDRATE,
                 channel_factory: Callable[[dict], DeviceChannel] = create_channel):
        self.selector = selector
        self.rate = rate
        self.channel_factory = channel_factory
        self._channel: Optional[DeviceChannel] = None
        self._lock = threading.Lock()

    @property
    def channel(self) -> Optional[DeviceChannel]:
        return self._channel

    def deliver(self, buffer: bytes, label: str) -> Optional[str]:
        with self._lock:
            channel = self._channel
            if channel is None or not channel.is_open:
                channel = self._acquire()
            try:
                channel.write(buffer)
            except TransmissionError:
                self._invalidate()
                raise
            return repr(channel)

    def _acquire(self) -> DeviceChannel:
        self._invalidate()
        spec = self.selector.select()
        if not spec:
            raise ChannelUnavailable("No printer device granted")
        try:
            channel = self.channel_factory(spec)
        except (KeyError, ValueError) as e:
            raise ChannelUnavailable(f"Invalid device spec: {e}", {"spec": spec})
        channel.open(self.rate)
        self._channel = channel
        logger.info("Bound printer channel %r", channel)
        return channel

    def _invalidate(self) -> None:
        if self._channel is not None:
            logger.warning("Discarding printer channel %r", self._channel)
            self._channel.close()
            self._channel = None

    def invalidate(self) -> None:
        """Drop the cached channel; the next job acquires a new one."""
        with self._lock:
            self._invalidate()

    def close(self) -> None:
        self.invalidate()


class HostServiceTransport(Transport):
    """Submits the job to the host's print service."""

    kind = TransportKind.HOST_SERVICE

    def __init__(self, service: Optional[HostPrintService],
                 options: Optional[PrintOptions] = None, text_encoding: str = "utf-8"):
        self.service = service
        self.options = options or PrintOptions()
        self.text_encoding = text_encoding

    def deliver(self, buffer: bytes, label: str) -> Optional[str]:
        if self.service is None or not self.service.is_available():
            raise HostServiceUnavailable("No host print service on this system")

        if self.service.raw:
            data = buffer
        else:
            data = sanitize(buffer).encode(self.text_encoding, errors="replace") + b"\n"

        submission = self.service.submit(data, self.options, job_name=label)
        if not submission.ok:
            raise HostServiceUnavailable(
                submission.reason or "Print job rejected",
                {"printer": self.service.printer_name},
            )
        return self.service.printer_name or "default"


class HumanFallbackTransport(Transport):
    """Presents a plain-text rendering for the operator to print by hand.

    Cutting and styling are lost, but the ticket is never silently dropped.
    """

    kind = TransportKind.MANUAL_FALLBACK

    def __init__(self, presenter: FallbackPresenter):
        self.presenter = presenter

    def deliver(self, buffer: bytes, label: str) -> Optional[str]:
        text = sanitize(buffer)
        return self.presenter.present(label, text, buffer)
