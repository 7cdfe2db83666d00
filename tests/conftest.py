"""
Shared fixtures for printer and API tests.

Devices are replaced by FakeChannel instances built through a ChannelFactory,
so the direct transport runs its real acquire/write/invalidate logic without
hardware.
"""
import threading

import pytest

from cafe_pos import create_app, db as _db
from cafe_pos.printer.connection import DeviceChannel
from cafe_pos.printer.directives import (
    Alignment,
    CutMode,
    CutPaper,
    Emphasis,
    Initialize,
    LineFeed,
    Literal,
    PrintJob,
    SelectCharacterSet,
    SetAlignment,
    SetEmphasis,
)
from cafe_pos.printer.exceptions import TransmissionError
from cafe_pos.printer.transports import TransportKind

TOTAL_BYTES = (
    b"\x1b@"          # initialize
    b"\x1bt\x02"      # code table cp850
    b"\x1ba\x01"      # center
    b"\x1bE\x01"      # bold on
    b"TOTAL: 45.00 MAD"
    b"\x1bE\x00"      # bold off
    b"\n\n"
    b"\x1dV\x00"      # full cut
)


class FakeChannel(DeviceChannel):
    """In-memory device channel recording every write."""

    def __init__(self, spec=None, fail_writes=0, write_delay=0.0):
        self.spec = spec or {}
        self.fail_writes = fail_writes
        self.write_delay = write_delay
        self.writes = []
        self.opened = 0
        self.closed = 0
        self.in_flight = 0
        self.max_in_flight = 0
        self._open = False
        self._counter = threading.Lock()

    def open(self, rate=None):
        self.rate = rate
        self.opened += 1
        self._open = True

    def close(self):
        self.closed += 1
        self._open = False

    def write(self, data):
        if not self._open:
            raise TransmissionError("Not connected")
        with self._counter:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.write_delay:
                threading.Event().wait(self.write_delay)
            if self.fail_writes:
                self.fail_writes -= 1
                raise TransmissionError("Cable unplugged")
            self.writes.append(data)
        finally:
            with self._counter:
                self.in_flight -= 1

    @property
    def is_open(self):
        return self._open

    def __repr__(self):
        return f"FakeChannel({self.spec.get('port', 'fake')})"


class ChannelFactory:
    """Stands in for create_channel(); ``fail_writes[n]`` applies to the n-th channel."""

    def __init__(self, fail_writes=(), write_delay=0.0):
        self.fail_writes = list(fail_writes)
        self.write_delay = write_delay
        self.channels = []

    def __call__(self, spec):
        n = len(self.channels)
        fails = self.fail_writes[n] if n < len(self.fail_writes) else 0
        channel = FakeChannel(spec, fail_writes=fails, write_delay=self.write_delay)
        self.channels.append(channel)
        return channel

    @property
    def writes(self):
        return [data for channel in self.channels for data in channel.writes]


@pytest.fixture
def total_job():
    """The TOTAL ticket: centred bold line, two feeds and a full cut."""
    return PrintJob([
        Initialize(),
        SelectCharacterSet("cp850"),
        SetAlignment(Alignment.CENTER),
        SetEmphasis(Emphasis.BOLD),
        Literal("TOTAL: 45.00 MAD"),
        SetEmphasis(Emphasis.NORMAL),
        LineFeed(2),
        CutPaper(CutMode.FULL),
    ], label="customer")


@pytest.fixture
def total_directives():
    """The TOTAL ticket in its JSON form, as the till sends it."""
    return [
        {"type": "init"},
        {"type": "charset", "code_page": "cp850"},
        {"type": "align", "value": "center"},
        {"type": "bold", "value": True},
        {"type": "text", "text": "TOTAL: 45.00 MAD"},
        {"type": "bold", "value": False},
        {"type": "feed", "count": 2},
        {"type": "cut", "mode": "full"},
    ]


@pytest.fixture
def channel_factory():
    return ChannelFactory()


@pytest.fixture
def app(channel_factory):
    """Flask app on in-memory SQLite, with fake device channels."""
    app = create_app("testing", {"LOG_LEVEL": "WARNING"})
    coordinator = app.extensions["delivery_coordinator"]
    coordinator.transport(TransportKind.DIRECT).channel_factory = channel_factory
    with app.app_context():
        yield app
        _db.session.remove()
        _db.drop_all()
    coordinator.close()


@pytest.fixture
def client(app):
    return app.test_client()
