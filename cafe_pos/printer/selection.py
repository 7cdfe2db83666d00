"""Device selection: which printer the operator has authorized."""
import logging
import threading
from abc import ABC, abstractmethod
from typing import Optional

logger = logging.getLogger(__name__)


class DeviceSelector(ABC):
    """Source of the device spec used to acquire a direct channel."""

    @abstractmethod
    def select(self) -> Optional[dict]:
        """Return a device spec for create_channel(), or None if declined."""


class OperatorDeviceSelector(DeviceSelector):
    """A device granted by the operator at the till.

    ``select()`` returns the current grant straight away. With no grant it
    waits up to ``timeout`` seconds for ``grant()`` to be called (None waits
    forever, 0 declines at once). A grant stays valid until ``revoke()``;
    ``spec`` pre-authorizes a device from configuration.
    """

    def __init__(self, timeout: Optional[float] = 0, spec: Optional[dict] = None):
        self.timeout = timeout
        self._spec: Optional[dict] = None
        self._granted = threading.Event()
        self._lock = threading.Lock()
        if spec:
            self.grant(spec)

    def grant(self, spec: dict) -> None:
        """Authorize a device."""
        if not spec.get("type"):
            raise ValueError("Device spec needs a 'type'")
        with self._lock:
            self._spec = dict(spec)
            self._granted.set()
        logger.info("Operator granted printer device %s", spec)

    def revoke(self) -> None:
        with self._lock:
            self._spec = None
            self._granted.clear()
        logger.info("Printer device grant revoked")

    @property
    def granted(self) -> Optional[dict]:
        with self._lock:
            return dict(self._spec) if self._spec else None

    def select(self) -> Optional[dict]:
        spec = self.granted
        if spec:
            return spec
        if self.timeout == 0:
            return None

        logger.info("Waiting for operator to grant a printer device")
        if not self._granted.wait(self.timeout):
            logger.warning("No printer device granted within %ss", self.timeout)
            return None
        return self.granted
