"""Host-integrated print services (CUPS, Windows spooler)."""
import logging
import os
import shutil
import subprocess
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, NamedTuple, Optional

try:
    import pywintypes
    import win32print
except ImportError:  # pragma: no cover
    pywintypes = None  # type: ignore[assignment]
    win32print = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PrintOptions:
    """Job options passed to the host print service.

    ``margins`` is ``"none"`` (print edge to edge) or ``"default"``.
    Both backends submit without any dialog, so ``silent`` is informational.
    """
    silent: bool = True
    margins: str = "none"
    duplex: bool = False
    copies: int = 1


class Submission(NamedTuple):
    ok: bool
    reason: str = ""


class HostPrintService(ABC):
    """System print service accepting whole jobs for a named printer.

    ``raw`` services pass ESC/POS bytes through untouched; others receive a
    plain-text rendering and lose cutting and styling.
    """

    raw: bool = True

    def __init__(self, printer_name: Optional[str] = None):
        self.printer_name = printer_name

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the service exists on this host."""

    @abstractmethod
    def submit(self, data: bytes, options: PrintOptions, job_name: str = "ticket") -> Submission:
        """Submit a job. Returns whether the service accepted it, and why not."""


class CupsPrintService(HostPrintService):
    """CUPS printing through the ``lp`` command (macOS/Linux)."""

    def __init__(self, printer_name: Optional[str] = None, raw: bool = True, timeout: float = 10.0):
        super().__init__(printer_name)
        self.raw = raw
        self.timeout = timeout

    def is_available(self) -> bool:
        return shutil.which("lp") is not None

    def build_command(self, path: str, options: PrintOptions, job_name: str) -> List[str]:
        cmd = ["lp", "-t", job_name, "-n", str(options.copies)]
        if self.printer_name:
            cmd += ["-d", self.printer_name]
        if self.raw:
            cmd += ["-o", "raw"]
        else:
            cmd += ["-o", "sides=two-sided-long-edge" if options.duplex else "sides=one-sided"]
            if options.margins == "none":
                for side in ("left", "right", "top", "bottom"):
                    cmd += ["-o", f"page-{side}=0"]
        cmd.append(path)
        return cmd

    def submit(self, data: bytes, options: PrintOptions, job_name: str = "ticket") -> Submission:
        # Write bytes to a temp file and send it via lp
        fd, temp_path = tempfile.mkstemp(suffix=".bin", prefix="pos_ticket_")
        try:
            os.write(fd, data)
            os.close(fd)
            cmd = self.build_command(temp_path, options, job_name)
            logger.debug("Running %s", " ".join(cmd))
            try:
                result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
            except (OSError, subprocess.SubprocessError) as e:
                return Submission(False, f"lp failed: {e}")
            if result.returncode != 0:
                return Submission(False, f"lp failed: {result.stderr.strip()}")
            logger.info("CUPS: sent %d bytes to '%s'", len(data), self.printer_name or "default")
            return Submission(True)
        finally:
            try:
                os.unlink(temp_path)
            except OSError:
                logger.debug("Temp file %s already removed", temp_path)


class WindowsSpoolerService(HostPrintService):
    """RAW jobs through the Windows print spooler."""

    def is_available(self) -> bool:
        return win32print is not None

    def submit(self, data: bytes, options: PrintOptions, job_name: str = "ticket") -> Submission:
        target = (self.printer_name or "").strip()
        try:
            if not target:
                target = win32print.GetDefaultPrinter()
        except pywintypes.error as e:
            return Submission(False, f"No default printer: {e}")
        if not target:
            return Submission(False, "No printer specified or available as default")

        datatype = "RAW" if self.raw else "TEXT"
        try:
            handle = win32print.OpenPrinter(target)
            try:
                for _ in range(max(options.copies, 1)):
                    win32print.StartDocPrinter(handle, 1, (job_name, None, datatype))
                    page_started = False
                    try:
                        win32print.StartPagePrinter(handle)
                        page_started = True
                        win32print.WritePrinter(handle, data)
                    finally:
                        if page_started:
                            win32print.EndPagePrinter(handle)
                        win32print.EndDocPrinter(handle)
            finally:
                win32print.ClosePrinter(handle)
        except pywintypes.error as e:
            return Submission(False, f"Spooler rejected job: {e}")

        logger.info("Spooler: sent %d bytes to '%s'", len(data), target)
        return Submission(True)


def create_host_service(backend: str, printer_name: Optional[str] = None,
                        raw: bool = True) -> Optional[HostPrintService]:
    """Build the host print service named in config, or None for ``none``."""
    backend = (backend or "none").lower()
    if backend == "cups":
        return CupsPrintService(printer_name, raw=raw)
    elif backend == "windows":
        service = WindowsSpoolerService(printer_name)
        service.raw = raw
        return service
    elif backend == "none":
        return None
    raise ValueError(f"Unknown host print backend: {backend}")
