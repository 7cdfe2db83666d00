"""Plain-text rendering of ESC/POS buffers for the manual fallback.

The sanitizer walks the buffer with the encoder's own command table, so every
command the encoder can emit is stripped and nothing else is. Literal text and
line breaks are kept, tabs and carriage returns print as spaces, the barcode
payload is kept as a text line (what the printer prints below the bars) and
runs of 3 or more blank lines collapse to a single blank line.
"""
import re
from typing import List, Sequence, Union

from cafe_pos.printer.escpos import CODE_PAGES, COMMANDS, ESC, GS, LF

_RULES = {spec.prefix: (name, spec) for name, spec in COMMANDS.items()}
_CODE_TABLES = {number: name for name, number in CODE_PAGES.items()}
_INTRODUCERS = (ESC[0], GS[0])
_NEWLINE = LF[0]
_BLANKS = (0x09, 0x0d)  # tab and carriage return print as a space

BLANK_RUN_PATTERN = re.compile(r'\n(?:[ \t]*\n){3,}')


def _is_control(code: int) -> bool:
    return (code < 0x20 and code != _NEWLINE) or code == 0x7f


def _printable(codes) -> List[int]:
    return [0x20 if c in _BLANKS else c for c in codes if c in _BLANKS or not _is_control(c)]


def sanitize(data: Union[bytes, bytearray, str], code_page: str = "cp437") -> str:
    """Strip protocol commands from a buffer and return printable text.

    Args:
        data: Encoded buffer, or text holding ESC/POS sequences as characters
        code_page: Character set in effect at the start of the buffer; an
            ESC t command inside the buffer switches it

    Returns:
        Text with no control characters other than newlines. Sanitizing the
        result again returns it unchanged.
    """
    is_text = isinstance(data, str)
    codes: Sequence[int] = [ord(ch) for ch in data] if is_text else bytes(data)
    pieces: List[str] = []

    def literal(start: int, end: int) -> str:
        if is_text:
            return "".join(map(chr, _printable(codes[start:end])))
        return bytes(_printable(codes[start:end])).decode(code_page, errors="replace")

    i = 0
    start = 0
    n = len(codes)
    while i < n:
        code = codes[i]
        if code not in _INTRODUCERS:
            i += 1
            continue

        pieces.append(literal(start, i))
        if i + 1 >= n or codes[i + 1] > 0xff:
            # Lone introducer
            i += 1
            start = i
            continue

        rule = _RULES.get(bytes([code, codes[i + 1]]))
        if rule is None:
            # Unknown command: drop the introducer and its command byte
            i += 2
            start = i
            continue

        name, spec = rule
        params_at = i + len(spec.prefix)
        i = params_at + spec.params
        if name == "code_table" and params_at < n:
            code_page = _CODE_TABLES.get(codes[params_at], code_page)
        if spec.payload and i < n:
            length = codes[i]
            payload = literal(i + 1, min(i + 1 + length, n))
            i = i + 1 + length
            so_far = "".join(pieces)
            if so_far and not so_far.endswith("\n"):
                pieces.append("\n")
            pieces.append(payload + "\n")
        start = min(i, n)
        i = start

    pieces.append(literal(start, n))
    return _tidy("".join(pieces))


def _tidy(text: str) -> str:
    lines = [line.rstrip() for line in text.split("\n")]
    text = "\n".join(lines).strip("\n")
    return BLANK_RUN_PATTERN.sub("\n\n", text)


def has_control_bytes(text: str) -> bool:
    """True if ``text`` still holds anything other than printable text and newlines."""
    return any(_is_control(ord(ch)) for ch in text)
