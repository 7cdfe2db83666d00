"""Print job directives.

A print job is an ordered list of directives. Alignment, emphasis and scale
are modes: they stay active until changed again or the job ends.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, List, Optional, Union


class Alignment(Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class Emphasis(Enum):
    NORMAL = "normal"
    BOLD = "bold"


class Scale(Enum):
    NORMAL = "normal"
    DOUBLE_HEIGHT = "doubleHeight"
    DOUBLE_WIDTH = "doubleWidth"
    LARGE = "large"


class CutMode(Enum):
    FULL = "full"
    PARTIAL = "partial"


class Symbology(Enum):
    """Barcode types, valued by their GS k function-B selector."""
    UPC_A = 65
    EAN13 = 67
    EAN8 = 68
    CODE39 = 69
    CODE128 = 73


@dataclass(frozen=True)
class Initialize:
    """Reset the printer to its power-on modes."""


@dataclass(frozen=True)
class SelectCharacterSet:
    code_page: str = "cp850"


@dataclass(frozen=True)
class SetAlignment:
    alignment: Alignment


@dataclass(frozen=True)
class SetEmphasis:
    emphasis: Emphasis


@dataclass(frozen=True)
class SetScale:
    scale: Scale


@dataclass(frozen=True)
class SetLineSpacing:
    """Line spacing in dots; ``None`` restores the printer default."""
    dots: Optional[int] = None

    def __post_init__(self):
        if self.dots is not None and not 0 <= self.dots <= 255:
            raise ValueError(f"Line spacing must be 0-255 dots, got {self.dots}")


@dataclass(frozen=True)
class LineFeed:
    count: int = 1

    def __post_init__(self):
        if self.count < 0:
            raise ValueError(f"LineFeed count must be >= 0, got {self.count}")


@dataclass(frozen=True)
class HorizontalRule:
    char: str = "-"
    width: int = 32

    def __post_init__(self):
        if len(self.char) != 1:
            raise ValueError(f"HorizontalRule char must be a single character, got {self.char!r}")
        if self.width < 0:
            raise ValueError(f"HorizontalRule width must be >= 0, got {self.width}")


@dataclass(frozen=True)
class CutPaper:
    mode: CutMode = CutMode.FULL


@dataclass(frozen=True)
class Barcode:
    payload: str
    symbology: Symbology = Symbology.CODE128
    height: int = 50
    width: int = 2

    def __post_init__(self):
        if not 1 <= self.height <= 255:
            raise ValueError(f"Barcode height must be 1-255 dots, got {self.height}")
        if not 1 <= self.width <= 255:
            raise ValueError(f"Barcode module width must be 1-255, got {self.width}")


@dataclass(frozen=True)
class Literal:
    text: str


Directive = Union[
    Initialize, SelectCharacterSet, SetAlignment, SetEmphasis, SetScale,
    SetLineSpacing, LineFeed, HorizontalRule, CutPaper, Barcode, Literal,
]


@dataclass
class PrintJob:
    """Ordered list of directives making up one printout."""
    directives: List[Directive] = field(default_factory=list)
    label: str = "ticket"

    @classmethod
    def begin(cls, code_page: str = "cp850", label: str = "ticket") -> "PrintJob":
        """Start a well-formed job: initialize, then select the character set."""
        return cls([Initialize(), SelectCharacterSet(code_page)], label=label)

    def append(self, directive: Directive) -> "PrintJob":
        self.directives.append(directive)
        return self

    def extend(self, directives: Iterable[Directive]) -> "PrintJob":
        self.directives.extend(directives)
        return self

    def __iter__(self) -> Iterator[Directive]:
        return iter(self.directives)

    def __len__(self) -> int:
        return len(self.directives)


# JSON form, used by the HTTP API: {"type": "align", "value": "center"}

def directive_from_dict(data: dict) -> Directive:
    """Build a directive from its JSON form."""
    kind = (data.get("type") or "").lower()

    if kind == "init":
        return Initialize()
    elif kind == "charset":
        return SelectCharacterSet(data.get("code_page", "cp850"))
    elif kind == "align":
        return SetAlignment(Alignment(data.get("value", "left")))
    elif kind == "bold":
        on = data.get("value", True)
        return SetEmphasis(Emphasis.BOLD if on else Emphasis.NORMAL)
    elif kind == "emphasis":
        return SetEmphasis(Emphasis(data.get("value", "normal")))
    elif kind == "scale":
        return SetScale(Scale(data.get("value", "normal")))
    elif kind == "spacing":
        return SetLineSpacing(data.get("dots"))
    elif kind == "feed":
        return LineFeed(int(data.get("count", 1)))
    elif kind == "rule":
        return HorizontalRule(data.get("char", "-"), int(data.get("width", 32)))
    elif kind == "cut":
        return CutPaper(CutMode(data.get("mode", "full")))
    elif kind == "barcode":
        symbology = data.get("symbology", "CODE128")
        return Barcode(
            payload=str(data["payload"]),
            symbology=Symbology[symbology.upper()],
            height=int(data.get("height", 50)),
            width=int(data.get("width", 2)),
        )
    elif kind == "text":
        return Literal(str(data.get("text", "")))
    else:
        raise ValueError(f"Unknown directive type: {kind}")


def job_from_list(items: list, label: str = "ticket") -> PrintJob:
    """Build a job from a list of JSON directives.

    Jobs that do not start with ``init`` get the initialize and character set
    directives prepended so the printer always starts from a known state.
    """
    directives = [directive_from_dict(item) for item in items]
    if directives and isinstance(directives[0], Initialize):
        return PrintJob(directives, label=label)
    head: List[Directive] = [Initialize()]
    if not any(isinstance(d, SelectCharacterSet) for d in directives):
        head.append(SelectCharacterSet())
    return PrintJob(head + directives, label=label)
