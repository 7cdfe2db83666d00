"""Ticket templates: a small markup compiled into print jobs.

Example::

    [center][double-size]{{shop}}[/double-size][/center]
    [line]
    {{#each items}}{{qty}} x {{name}}  {{price}}
    {{/each}}[line char==]
    [bold]TOTAL: {{total}}[/bold]
    [barcode type=code128]{{order_id}}[/barcode]
    [cut]
"""
import re
from typing import Dict, Iterator, Optional, Tuple

from cafe_pos.printer.directives import Alignment, PrintJob, SetAlignment, Symbology
from cafe_pos.printer.escpos import ESCPOSBuilder, encode
from cafe_pos.printer.sanitize import sanitize

# Tags switching a mode on, with their closing tag switching it off
TOGGLES = {
    "bold": ESCPOSBuilder.bold,
    "double-height": ESCPOSBuilder.double_height,
    "double-width": ESCPOSBuilder.double_width,
    "double-size": ESCPOSBuilder.double_size,
}

# Closing an alignment tag returns to the left margin
ALIGNMENTS = {
    "left": Alignment.LEFT,
    "center": Alignment.CENTER,
    "right": Alignment.RIGHT,
}

Token = Tuple[str, str, Dict[str, str]]


class TemplateRenderer:
    """Compiles template markup into a print job.

    Markup supports:
    - Variables: {{variable_name}}
    - Loops: {{#each items}}...{{/each}}, with {{key}} for dict items and
      {{.}} for plain values
    - Tags: [center], [right], [left], [bold], [double-height],
      [double-width], [double-size], [normal], [spacing dots=30], [line],
      [line char==], [feed n=2], [cut], [cut partial=true],
      [barcode type=ean13 height=80]...[/barcode]

    Unknown tags are dropped.
    """

    VAR_PATTERN = re.compile(r'\{\{(\w+)\}\}')
    EACH_PATTERN = re.compile(r'\{\{#each\s+(\w+)\}\}(.*?)\{\{/each\}\}', re.DOTALL)
    TAG_PATTERN = re.compile(r'\[(/?)([\w-]+)(?:\s+([^\]]*))?\]')
    ATTR_PATTERN = re.compile(r'([\w-]+)=["\']?([^"\'\s\]]+)["\']?')

    def __init__(self, width: int = 48, code_page: str = "cp850"):
        """
        Args:
            width: Characters per line, used by [line]
            code_page: Character set selected at the start of each job
        """
        self.width = width
        self.code_page = code_page

    def compile(self, template: str, variables: Optional[dict] = None,
                label: str = "ticket") -> PrintJob:
        """Expand loops and variables, then turn the markup into directives.

        Raises:
            PayloadTooLarge: a barcode does not fit its length byte.
            ValueError: a tag attribute has an invalid value.
        """
        variables = variables or {}
        content = self._expand(template, variables)

        builder = ESCPOSBuilder(width=self.width, code_page=self.code_page, label=label)
        for kind, value, attrs in self._tokens(content):
            if kind == "text":
                builder.text(value)
            elif kind == "newline":
                builder.newline()
            elif kind == "barcode":
                symbology = Symbology[attrs.get("type", "code128").upper()]
                builder.barcode(value, symbology, height=int(attrs.get("height", 50)))
            else:
                self._apply_tag(builder, value, attrs, closing=kind == "close")
        return builder.job()

    def render(self, template: str, variables: Optional[dict] = None) -> bytes:
        """Render template to ESC/POS bytes."""
        return encode(self.compile(template, variables))

    def render_preview(self, template: str, variables: Optional[dict] = None) -> str:
        """The plain text the manual fallback would show for this template."""
        return sanitize(self.render(template, variables))

    def extract_variables(self, template: str) -> list:
        """Sorted names of the variables and loop lists a template uses."""
        names = set(self.VAR_PATTERN.findall(template))
        names.update(match.group(1) for match in self.EACH_PATTERN.finditer(template))
        return sorted(names)

    def _expand(self, template: str, variables: dict) -> str:
        def each(match):
            items = variables.get(match.group(1), [])
            if not isinstance(items, list):
                return ""
            return "".join(self._expand_item(match.group(2), item) for item in items)

        def variable(match):
            return str(variables.get(match.group(1), match.group(0)))

        content = self.EACH_PATTERN.sub(each, template)
        # Missing variables stay visible so a broken template is noticed
        return self.VAR_PATTERN.sub(variable, content)

    def _expand_item(self, body: str, item) -> str:
        if isinstance(item, dict):
            return self.VAR_PATTERN.sub(
                lambda m: str(item[m.group(1)]) if m.group(1) in item else m.group(0), body)
        return body.replace("{{.}}", str(item))

    def _tokens(self, content: str) -> Iterator[Token]:
        """Split markup into text, newline, tag and barcode tokens."""
        pos = 0
        for match in self.TAG_PATTERN.finditer(content):
            if match.start() < pos:
                # Inside barcode data already consumed
                continue
            yield from self._text_tokens(content[pos:match.start()])
            closing, name, attr_text = match.group(1) == "/", match.group(2).lower(), match.group(3)
            attrs = dict(self.ATTR_PATTERN.findall(attr_text or ""))
            pos = match.end()

            if name == "barcode" and not closing:
                end = content.find("[/barcode]", pos)
                if end > pos:
                    yield "barcode", content[pos:end], attrs
                    pos = end + len("[/barcode]")
                continue
            yield ("close" if closing else "open"), name, attrs
        yield from self._text_tokens(content[pos:])

    @staticmethod
    def _text_tokens(text: str) -> Iterator[Token]:
        for i, line in enumerate(text.split("\n")):
            if i:
                yield "newline", "", {}
            if line:
                yield "text", line, {}

    def _apply_tag(self, builder: ESCPOSBuilder, name: str, attrs: Dict[str, str], closing: bool):
        if name in TOGGLES:
            TOGGLES[name](builder, not closing)
        elif name in ALIGNMENTS:
            alignment = Alignment.LEFT if closing else ALIGNMENTS[name]
            builder.add(SetAlignment(alignment))
        elif closing:
            return
        elif name == "normal":
            builder.normal()
        elif name == "spacing":
            dots = attrs.get("dots")
            builder.line_spacing(int(dots) if dots else None)
        elif name == "line":
            builder.line(attrs.get("char", "-"))
        elif name == "feed":
            builder.feed(int(attrs.get("n", 1)))
        elif name == "cut":
            builder.cut(partial=attrs.get("partial", "false").lower() == "true")
