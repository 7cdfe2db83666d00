"""ESC/POS command encoder for thermal printers."""
from datetime import datetime
from typing import Iterable, NamedTuple, Optional

from cafe_pos.printer.directives import (
    Alignment,
    Barcode,
    CutMode,
    CutPaper,
    Directive,
    Emphasis,
    HorizontalRule,
    Initialize,
    LineFeed,
    Literal,
    PrintJob,
    Scale,
    SelectCharacterSet,
    SetAlignment,
    SetEmphasis,
    SetLineSpacing,
    SetScale,
    Symbology,
)
from cafe_pos.printer.exceptions import PayloadTooLarge

ESC = b'\x1b'
GS = b'\x1d'
LF = b'\n'

BARCODE_MAX_PAYLOAD = 255


class Command(NamedTuple):
    """One device command: fixed prefix followed by ``params`` parameter bytes.

    ``payload`` commands carry a length byte and that many data bytes after
    their parameters (GS k).
    """
    prefix: bytes
    params: int = 0
    payload: bool = False


# Every command the encoder emits. The fallback sanitizer strips exactly
# these, so a new command must be registered here.
COMMANDS = {
    "init": Command(ESC + b'@'),                 # ESC @
    "code_table": Command(ESC + b't', 1),        # ESC t n
    "align": Command(ESC + b'a', 1),             # ESC a n
    "emphasis": Command(ESC + b'E', 1),          # ESC E n
    "print_mode": Command(ESC + b'!', 1),        # ESC ! n
    "line_spacing": Command(ESC + b'3', 1),      # ESC 3 n
    "default_line_spacing": Command(ESC + b'2'),  # ESC 2
    "cut": Command(GS + b'V', 1),                # GS V m
    "barcode_height": Command(GS + b'h', 1),     # GS h n
    "barcode_width": Command(GS + b'w', 1),      # GS w n
    "hri_position": Command(GS + b'H', 1),       # GS H n
    "barcode": Command(GS + b'k', 1, payload=True),  # GS k m n d1..dn
}

ALIGNMENTS = {
    Alignment.LEFT: 0,
    Alignment.CENTER: 1,
    Alignment.RIGHT: 2,
}

EMPHASIS = {
    Emphasis.NORMAL: 0,
    Emphasis.BOLD: 1,
}

SCALES = {
    Scale.NORMAL: 0x00,
    Scale.DOUBLE_HEIGHT: 0x10,
    Scale.DOUBLE_WIDTH: 0x20,
    Scale.LARGE: 0x30,
}

CUTS = {
    CutMode.FULL: 0,
    CutMode.PARTIAL: 1,
}

# ESC t code tables for single-byte Western character sets
CODE_PAGES = {
    "cp437": 0,   # USA: Standard Europe
    "cp850": 2,   # Multilingual
    "cp860": 3,   # Portuguese
    "cp863": 4,   # Canadian-French
    "cp865": 5,   # Nordic
    "cp1252": 16,  # WPC1252
    "cp858": 19,  # Multilingual + euro
}

HRI_BELOW = 2


def command(name: str, *params: int) -> bytes:
    """Encode a registered command with its parameter bytes."""
    spec = COMMANDS[name]
    if len(params) != spec.params:
        raise ValueError(f"{name} takes {spec.params} parameter(s), got {len(params)}")
    return spec.prefix + bytes(params)


def barcode_payload(directive: Barcode, code_page: str) -> bytes:
    """Return the payload bytes of a barcode, rejecting oversize payloads."""
    data = directive.payload.encode(code_page, errors="replace")
    if len(data) > BARCODE_MAX_PAYLOAD:
        raise PayloadTooLarge(len(data), BARCODE_MAX_PAYLOAD)
    return data


def validate(job: Iterable[Directive], code_page: str = "cp437") -> None:
    """Check a job can be encoded without emitting anything.

    Raises:
        PayloadTooLarge: a barcode payload exceeds the length byte.
        ValueError: unknown code page or directive.
    """
    for directive in job:
        if isinstance(directive, SelectCharacterSet):
            if directive.code_page not in CODE_PAGES:
                raise ValueError(f"Unsupported code page: {directive.code_page}")
            code_page = directive.code_page
        elif isinstance(directive, Barcode):
            barcode_payload(directive, code_page)


def encode_directive(directive: Directive, code_page: str = "cp437") -> bytes:
    """Encode a single directive to its device byte sequence."""
    if isinstance(directive, Initialize):
        return command("init")
    elif isinstance(directive, SelectCharacterSet):
        return command("code_table", CODE_PAGES[directive.code_page])
    elif isinstance(directive, SetAlignment):
        return command("align", ALIGNMENTS[directive.alignment])
    elif isinstance(directive, SetEmphasis):
        return command("emphasis", EMPHASIS[directive.emphasis])
    elif isinstance(directive, SetScale):
        return command("print_mode", SCALES[directive.scale])
    elif isinstance(directive, SetLineSpacing):
        if directive.dots is None:
            return command("default_line_spacing")
        return command("line_spacing", directive.dots)
    elif isinstance(directive, LineFeed):
        return LF * directive.count
    elif isinstance(directive, HorizontalRule):
        return (directive.char * directive.width).encode(code_page, errors="replace")
    elif isinstance(directive, CutPaper):
        return command("cut", CUTS[directive.mode])
    elif isinstance(directive, Barcode):
        data = barcode_payload(directive, code_page)
        return (
            command("barcode_height", directive.height)
            + command("barcode_width", directive.width)
            + command("hri_position", HRI_BELOW)
            + command("barcode", directive.symbology.value)
            + bytes([len(data)])
            + data
        )
    elif isinstance(directive, Literal):
        return directive.text.encode(code_page, errors="replace")
    raise ValueError(f"Unknown directive: {directive!r}")


def encode(job: Iterable[Directive]) -> bytes:
    """Render a job to the byte stream sent to the printer.

    The whole job is validated first, so an oversize barcode fails before any
    byte is produced. Text is encoded in the code page selected by the job's
    last SelectCharacterSet (cp437, the printer's power-on table, until then).
    """
    directives = list(job)
    validate(directives)

    buffer = bytearray()
    code_page = "cp437"
    for directive in directives:
        if isinstance(directive, SelectCharacterSet):
            code_page = directive.code_page
        buffer.extend(encode_directive(directive, code_page))
    return bytes(buffer)


# Formatting helpers for callers building Literal text

def format_currency(amount: float, currency: str = "MAD") -> str:
    """Format an amount as ``45.00 MAD``."""
    return f"{amount:.2f} {currency}"


def format_date(date: datetime) -> str:
    """Format a timestamp the way tickets show it: ``18/10/2026 13:05``."""
    return date.strftime("%d/%m/%Y %H:%M")


def horizontal_line(char: str = "-", width: int = 32) -> str:
    """Return ``char`` repeated ``width`` times (no line terminator)."""
    if width <= 0:
        return ""
    return char * width


class ESCPOSBuilder:
    """Fluent builder for print jobs."""

    def __init__(self, width: int = 48, code_page: str = "cp850", label: str = "ticket"):
        """Initialize builder.

        Args:
            width: Character width per line (48 for 80mm, 32 for 58mm paper)
            code_page: Single-byte character set selected at job start
            label: Name of the job in logs and history
        """
        self.width = width
        self.code_page = code_page
        self.label = label
        self._job = PrintJob.begin(code_page, label=label)

    def reset(self) -> "ESCPOSBuilder":
        """Drop everything added so far and start a new job."""
        self._job = PrintJob.begin(self.code_page, label=self.label)
        return self

    def add(self, directive: Directive) -> "ESCPOSBuilder":
        self._job.append(directive)
        return self

    # Text formatting methods

    def text(self, content: str) -> "ESCPOSBuilder":
        """Add plain text."""
        if content:
            self._job.append(Literal(content))
        return self

    def newline(self, count: int = 1) -> "ESCPOSBuilder":
        """Add newline(s)."""
        return self.add(LineFeed(count))

    def bold(self, on: bool = True) -> "ESCPOSBuilder":
        """Set bold mode."""
        return self.add(SetEmphasis(Emphasis.BOLD if on else Emphasis.NORMAL))

    def double_height(self, on: bool = True) -> "ESCPOSBuilder":
        """Set double height mode."""
        return self.add(SetScale(Scale.DOUBLE_HEIGHT if on else Scale.NORMAL))

    def double_width(self, on: bool = True) -> "ESCPOSBuilder":
        """Set double width mode."""
        return self.add(SetScale(Scale.DOUBLE_WIDTH if on else Scale.NORMAL))

    def double_size(self, on: bool = True) -> "ESCPOSBuilder":
        """Set double height and width."""
        return self.add(SetScale(Scale.LARGE if on else Scale.NORMAL))

    def normal(self) -> "ESCPOSBuilder":
        """Reset to normal text size and weight."""
        self.add(SetScale(Scale.NORMAL))
        return self.add(SetEmphasis(Emphasis.NORMAL))

    def line_spacing(self, dots: Optional[int] = None) -> "ESCPOSBuilder":
        """Set line spacing in dots, or restore the default."""
        return self.add(SetLineSpacing(dots))

    # Alignment methods

    def align_left(self) -> "ESCPOSBuilder":
        return self.add(SetAlignment(Alignment.LEFT))

    def align_center(self) -> "ESCPOSBuilder":
        return self.add(SetAlignment(Alignment.CENTER))

    def align_right(self) -> "ESCPOSBuilder":
        return self.add(SetAlignment(Alignment.RIGHT))

    # Line formatting

    def line(self, char: str = "-") -> "ESCPOSBuilder":
        """Print a horizontal line across the paper."""
        self.add(HorizontalRule(char, self.width))
        return self.add(LineFeed(1))

    def feed(self, lines: int = 1) -> "ESCPOSBuilder":
        """Feed paper by number of lines."""
        return self.add(LineFeed(lines))

    # Paper control

    def cut(self, partial: bool = False, feed: int = 4) -> "ESCPOSBuilder":
        """Cut the paper."""
        # Feed a bit before cutting to ensure content clears the cutter
        if feed:
            self.add(LineFeed(feed))
        return self.add(CutPaper(CutMode.PARTIAL if partial else CutMode.FULL))

    # Barcode printing

    def barcode(self, data: str, symbology: Symbology = Symbology.CODE128,
                height: int = 50) -> "ESCPOSBuilder":
        """Print a barcode with its human-readable line below.

        Raises:
            PayloadTooLarge: data does not fit in the barcode length byte.
        """
        directive = Barcode(data, symbology, height=height)
        barcode_payload(directive, self.code_page)
        return self.add(directive)

    # Build output

    def job(self) -> PrintJob:
        """Return a copy of the job built so far."""
        return PrintJob(list(self._job.directives), label=self._job.label)

    def build(self) -> bytes:
        """Build and return the command buffer."""
        return encode(self._job)

    def __bytes__(self) -> bytes:
        """Allow bytes() conversion."""
        return self.build()

    def __len__(self) -> int:
        """Return the number of directives."""
        return len(self._job)
