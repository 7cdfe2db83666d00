"""Tests for the host print services."""
import os
from unittest.mock import MagicMock, Mock, call, patch

import pytest

from cafe_pos.printer.host import (
    CupsPrintService,
    PrintOptions,
    WindowsSpoolerService,
    create_host_service,
)


class TestCupsPrintService:

    def test_raw_command(self):
        service = CupsPrintService("POS80")
        cmd = service.build_command("/tmp/t.bin", PrintOptions(), "customer")
        assert cmd == ["lp", "-t", "customer", "-n", "1", "-d", "POS80", "-o", "raw", "/tmp/t.bin"]

    def test_text_command_without_margins(self):
        service = CupsPrintService(raw=False)
        cmd = service.build_command("/tmp/t.txt", PrintOptions(duplex=True, copies=2), "staff")
        assert cmd[:5] == ["lp", "-t", "staff", "-n", "2"]
        assert "-d" not in cmd
        assert "sides=two-sided-long-edge" in cmd
        assert "page-top=0" in cmd
        assert cmd[-1] == "/tmp/t.txt"

    @patch("cafe_pos.printer.host.shutil.which")
    def test_available_when_lp_installed(self, mock_which):
        mock_which.return_value = "/usr/bin/lp"
        assert CupsPrintService().is_available()
        mock_which.return_value = None
        assert not CupsPrintService().is_available()

    @patch("cafe_pos.printer.host.subprocess.run")
    def test_submit_sends_file_then_removes_it(self, mock_run):
        seen = {}

        def run(cmd, **kwargs):
            with open(cmd[-1], "rb") as f:
                seen["data"] = f.read()
            seen["path"] = cmd[-1]
            return Mock(returncode=0, stderr="")

        mock_run.side_effect = run
        result = CupsPrintService("POS80").submit(b"\x1b@TOTAL", PrintOptions(), "customer")

        assert result.ok
        assert seen["data"] == b"\x1b@TOTAL"
        assert not os.path.exists(seen["path"])

    @patch("cafe_pos.printer.host.subprocess.run")
    def test_submit_rejected(self, mock_run):
        mock_run.return_value = Mock(returncode=1, stderr="lp: The printer or class does not exist.\n")
        result = CupsPrintService("Nope").submit(b"x", PrintOptions())

        assert not result.ok
        assert result.reason == "lp failed: lp: The printer or class does not exist."

    @patch("cafe_pos.printer.host.subprocess.run")
    def test_submit_lp_missing(self, mock_run):
        mock_run.side_effect = FileNotFoundError("lp")
        result = CupsPrintService().submit(b"x", PrintOptions())
        assert not result.ok


class FakeWinError(Exception):
    pass


@pytest.fixture
def win32():
    fake_print = MagicMock()
    fake_print.OpenPrinter.return_value = "handle"
    fake_types = MagicMock()
    fake_types.error = FakeWinError
    with patch("cafe_pos.printer.host.win32print", fake_print), \
            patch("cafe_pos.printer.host.pywintypes", fake_types):
        yield fake_print


class TestWindowsSpoolerService:

    def test_raw_job(self, win32):
        result = WindowsSpoolerService("POS-80C").submit(b"\x1b@", PrintOptions(), "customer")

        assert result.ok
        win32.OpenPrinter.assert_called_once_with("POS-80C")
        win32.StartDocPrinter.assert_called_once_with("handle", 1, ("customer", None, "RAW"))
        win32.WritePrinter.assert_called_once_with("handle", b"\x1b@")
        win32.EndDocPrinter.assert_called_once_with("handle")
        win32.ClosePrinter.assert_called_once_with("handle")

    def test_uses_default_printer(self, win32):
        win32.GetDefaultPrinter.return_value = "Default POS"
        WindowsSpoolerService().submit(b"x", PrintOptions())
        win32.OpenPrinter.assert_called_once_with("Default POS")

    def test_copies(self, win32):
        WindowsSpoolerService("POS").submit(b"x", PrintOptions(copies=2))
        assert win32.WritePrinter.call_args_list == [call("handle", b"x")] * 2

    def test_write_failure_closes_printer(self, win32):
        win32.WritePrinter.side_effect = FakeWinError("spooler stopped")
        result = WindowsSpoolerService("POS").submit(b"x", PrintOptions())

        assert not result.ok
        assert "spooler stopped" in result.reason
        win32.EndDocPrinter.assert_called_once()
        win32.ClosePrinter.assert_called_once()

    def test_text_mode(self, win32):
        service = create_host_service("windows", "POS", raw=False)
        service.submit(b"x", PrintOptions())
        assert win32.StartDocPrinter.call_args[0][2][2] == "TEXT"


def test_create_host_service():
    assert create_host_service("none") is None
    assert isinstance(create_host_service("cups", "POS80"), CupsPrintService)
    with pytest.raises(ValueError):
        create_host_service("lpd")
