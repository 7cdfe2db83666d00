"""Direct device channels: Serial, USB and Network printers."""
import logging
import socket
from abc import ABC, abstractmethod
from typing import Optional

from cafe_pos.printer.exceptions import ChannelUnavailable, TransmissionError

# Serial support (optional)
try:
    import serial
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

DEFAULT_BAUDRATE = 9600


class DeviceChannel(ABC):
    """A bound communication channel to a physical printer.

    ``open(rate)`` binds the channel at a fixed transmission rate,
    ``write(data)`` sends bytes and ``close()`` releases the device. Open
    failures raise ChannelUnavailable; write failures raise TransmissionError.
    """

    rate: Optional[int] = None

    @abstractmethod
    def open(self, rate: Optional[int] = None) -> None:
        """Bind the device."""

    @abstractmethod
    def close(self) -> None:
        """Release the device. Never raises."""

    @abstractmethod
    def write(self, data: bytes) -> None:
        """Send data to the printer."""

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Check if the channel can be written to."""


class SerialChannel(DeviceChannel):
    """Serial port printer channel."""

    def __init__(self, port: str, timeout: float = 3.0):
        if not SERIAL_AVAILABLE:
            raise ChannelUnavailable("pyserial not installed. Run: pip install pyserial")
        self.port = port
        self.timeout = timeout
        self.rate = None
        self._serial: Optional["serial.Serial"] = None

    def open(self, rate: Optional[int] = None) -> None:
        """Open the serial port at ``rate`` baud."""
        self.rate = rate or DEFAULT_BAUDRATE
        try:
            self._serial = serial.Serial(self.port, self.rate, timeout=self.timeout)
        except serial.SerialException as e:
            self._serial = None
            raise ChannelUnavailable(f"Failed to open {self.port}: {e}", {"port": self.port})

    def close(self) -> None:
        """Close serial port."""
        if self._serial:
            try:
                self._serial.close()
            except serial.SerialException:
                logger.debug("Ignoring error closing %s", self.port)
            self._serial = None

    def write(self, data: bytes) -> None:
        """Send data to serial printer."""
        if not self._serial:
            raise TransmissionError("Not connected", {"port": self.port})
        try:
            self._serial.write(data)
            self._serial.flush()
        except serial.SerialException as e:
            raise TransmissionError(f"Failed to send data: {e}", {"port": self.port})

    @property
    def is_open(self) -> bool:
        """Check if serial port is open."""
        return self._serial is not None and self._serial.is_open

    def __repr__(self):
        return f"SerialChannel({self.port}@{self.rate})"


class USBChannel(DeviceChannel):
    """USB printer channel."""

    def __init__(self, vendor_id: int, product_id: int):
        if not USB_AVAILABLE:
            raise ChannelUnavailable("pyusb not installed. Run: pip install pyusb")
        self.vendor_id = vendor_id
        self.product_id = product_id
        self._device = None
        self._endpoint_out = None

    def open(self, rate: Optional[int] = None) -> None:
        """Claim the USB printer and find its OUT endpoint.

        USB bulk transfers have no baud rate; ``rate`` is only recorded.
        """
        self.rate = rate
        try:
            self._device = usb.core.find(idVendor=self.vendor_id, idProduct=self.product_id)
        except (usb.core.USBError, usb.core.NoBackendError) as e:
            self._device = None
            raise ChannelUnavailable(f"USB backend unavailable: {e}", {"device": repr(self)})
        if not self._device:
            raise ChannelUnavailable(
                f"USB device {self.vendor_id:04x}:{self.product_id:04x} not found"
            )

        # Detach kernel driver if active
        try:
            if self._device.is_kernel_driver_active(0):
                self._device.detach_kernel_driver(0)
        except (usb.core.USBError, NotImplementedError):
            logger.debug("Kernel driver check not supported for %r", self)

        # Set configuration
        try:
            self._device.set_configuration()
        except usb.core.USBError:
            logger.debug("%r already configured", self)

        # Find OUT endpoint on the first interface
        try:
            intf = self._device.get_active_configuration()[(0, 0)]
            self._endpoint_out = usb.util.find_descriptor(
                intf,
                custom_match=lambda e: usb.util.endpoint_direction(e.bEndpointAddress) == usb.util.ENDPOINT_OUT
            )
        except (usb.core.USBError, KeyError) as e:
            self.close()
            raise ChannelUnavailable(f"Could not configure {self!r}: {e}", {"device": repr(self)})

        if not self._endpoint_out:
            self.close()
            raise ChannelUnavailable("Could not find USB OUT endpoint")

    def close(self) -> None:
        """Release USB device."""
        if self._device:
            try:
                usb.util.dispose_resources(self._device)
            except usb.core.USBError:
                logger.debug("Ignoring error releasing %r", self)
            self._device = None
            self._endpoint_out = None

    def write(self, data: bytes) -> None:
        """Send data to USB printer."""
        if not self._endpoint_out:
            raise TransmissionError("Not connected")
        try:
            self._endpoint_out.write(data)
        except usb.core.USBError as e:
            raise TransmissionError(f"Failed to send data: {e}")

    @property
    def is_open(self) -> bool:
        """Check if USB device is claimed."""
        return self._device is not None and self._endpoint_out is not None

    def __repr__(self):
        return f"USBChannel({self.vendor_id:04x}:{self.product_id:04x})"


class NetworkChannel(DeviceChannel):
    """TCP/IP (raw port 9100) printer channel."""

    def __init__(self, ip: str, port: int = 9100, timeout: float = 5.0):
        self.ip = ip
        self.port = port
        self.timeout = timeout
        self._socket: Optional[socket.socket] = None

    def open(self, rate: Optional[int] = None) -> None:
        """Connect to network printer."""
        self.rate = rate
        try:
            self._socket = socket.create_connection((self.ip, self.port), timeout=self.timeout)
        except OSError as e:
            self._socket = None
            raise ChannelUnavailable(f"Failed to connect to {self.ip}:{self.port}: {e}")

    def close(self) -> None:
        """Close network connection."""
        if self._socket:
            try:
                self._socket.close()
            except OSError:
                logger.debug("Ignoring error closing %r", self)
            self._socket = None

    def write(self, data: bytes) -> None:
        """Send data to network printer."""
        if not self._socket:
            raise TransmissionError("Not connected")
        try:
            self._socket.sendall(data)
        except OSError as e:
            raise TransmissionError(f"Failed to send data: {e}")

    @property
    def is_open(self) -> bool:
        """Check if socket is connected."""
        return self._socket is not None

    def __repr__(self):
        return f"NetworkChannel({self.ip}:{self.port})"


def create_channel(spec: dict) -> DeviceChannel:
    """Factory function to create a device channel from a device spec.

    Args:
        spec: Dictionary with 'type' and connection parameters.
            - Serial: {"type": "serial", "port": "/dev/ttyUSB0"}
            - USB: {"type": "usb", "vendor_id": "04b8", "product_id": "0e15"}
            - Network: {"type": "network", "ip": "192.168.1.100", "port": 9100}

    Returns:
        DeviceChannel instance, not yet opened.
    """
    channel_type = spec.get("type", "").lower()

    if channel_type == "serial":
        return SerialChannel(
            port=spec["port"],
            timeout=spec.get("timeout", 3.0)
        )
    elif channel_type == "usb":
        # Handle hex string or int for vendor/product IDs
        vendor_id = spec["vendor_id"]
        product_id = spec["product_id"]
        if isinstance(vendor_id, str):
            vendor_id = int(vendor_id, 16)
        if isinstance(product_id, str):
            product_id = int(product_id, 16)
        return USBChannel(vendor_id=vendor_id, product_id=product_id)
    elif channel_type == "network":
        return NetworkChannel(
            ip=spec["ip"],
            port=spec.get("port", 9100),
            timeout=spec.get("timeout", 5.0)
        )
    else:
        raise ValueError(f"Unknown channel type: {channel_type}")
