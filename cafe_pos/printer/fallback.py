"""Manual fallback surfaces for tickets no printer transport accepted."""
import itertools
import logging
import re
import threading
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

from cafe_pos.printer.exceptions import PresentationFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FallbackTicket:
    """A sanitized ticket waiting for the operator to print it by hand."""
    id: str
    label: str
    text: str
    raw: bytes = field(repr=False, default=b"")
    created_at: datetime = field(default_factory=datetime.now)


class FallbackPresenter(ABC):
    """Surface that shows a plain-text ticket for manual printing."""

    @abstractmethod
    def present(self, label: str, text: str, raw: bytes) -> str:
        """Present the ticket and return a reference to it.

        Raises:
            PresentationFailure: the surface could not be created.
        """


class PreviewFallbackPresenter(FallbackPresenter):
    """Keeps recent tickets in memory for the print preview page.

    The web UI opens ``/print/fallback/<id>`` which shows the text with a
    print button.
    """

    def __init__(self, capacity: int = 50):
        self.capacity = capacity
        self._tickets: "OrderedDict[str, FallbackTicket]" = OrderedDict()
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def present(self, label: str, text: str, raw: bytes) -> str:
        if self.capacity <= 0:
            raise PresentationFailure("Preview store is disabled", {"label": label})
        with self._lock:
            ticket_id = str(next(self._ids))
            self._tickets[ticket_id] = FallbackTicket(ticket_id, label, text, raw)
            while len(self._tickets) > self.capacity:
                self._tickets.popitem(last=False)
        logger.info("Ticket '%s' queued for manual printing as preview %s", label, ticket_id)
        return ticket_id

    def get(self, ticket_id: str) -> Optional[FallbackTicket]:
        with self._lock:
            return self._tickets.get(ticket_id)

    def recent(self) -> list:
        with self._lock:
            return list(reversed(self._tickets.values()))


class FileFallbackPresenter(FallbackPresenter):
    """Writes ``ticket_<timestamp>.txt`` and the raw ``.bin`` next to it.

    The text file can be printed from any editor; the ``.bin`` keeps the
    exact ESC/POS bytes for thermal printer utilities.
    """

    def __init__(self, directory):
        self.directory = Path(directory)

    def present(self, label: str, text: str, raw: bytes) -> str:
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        safe_label = re.sub(r"[^\w-]+", "_", label)
        base = self.directory / f"ticket_{stamp}_{safe_label}"
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            base.with_suffix(".txt").write_text(text + "\n", encoding="utf-8")
            if raw:
                base.with_suffix(".bin").write_bytes(raw)
        except OSError as e:
            raise PresentationFailure(
                f"Could not write fallback ticket: {e}",
                {"directory": str(self.directory)},
            )
        path = str(base.with_suffix(".txt"))
        logger.info("Ticket '%s' written for manual printing: %s", label, path)
        return path


def create_presenter(mode: str, directory: Optional[str] = None,
                     capacity: int = 50) -> FallbackPresenter:
    """Build the fallback presenter named in config."""
    mode = (mode or "preview").lower()
    if mode == "preview":
        return PreviewFallbackPresenter(capacity=capacity)
    elif mode == "file":
        if not directory:
            raise ValueError("FALLBACK_DIR is required for file fallback")
        return FileFallbackPresenter(directory)
    raise ValueError(f"Unknown fallback mode: {mode}")
