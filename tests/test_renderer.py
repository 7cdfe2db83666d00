"""Tests for the template DSL."""
import pytest

from cafe_pos.printer.directives import Barcode, HorizontalRule, LineFeed, Symbology
from cafe_pos.printer.exceptions import PayloadTooLarge
from cafe_pos.printer.renderer import TemplateRenderer

TOTAL_TEMPLATE = "[center][bold]TOTAL: {{total}}[/bold][/center]\n[cut]"


@pytest.fixture
def renderer():
    return TemplateRenderer(width=32)


def test_render_total(renderer):
    data = renderer.render(TOTAL_TEMPLATE, {"total": "45.00 MAD"})
    assert data == (
        b"\x1b@\x1bt\x02"
        b"\x1ba\x01\x1bE\x01TOTAL: 45.00 MAD\x1bE\x00\x1ba\x00"
        b"\n\n\n\n\n"
        b"\x1dV\x00"
    )


def test_render_preview(renderer):
    assert renderer.render_preview(TOTAL_TEMPLATE, {"total": "45.00 MAD"}) == "TOTAL: 45.00 MAD"


def test_loop(renderer):
    template = "{{#each items}}{{name}} x{{qty}}\n{{/each}}"
    items = [{"name": "Café", "qty": 2}, {"name": "Thé", "qty": 1}]
    assert renderer.render_preview(template, {"items": items}) == "Café x2\nThé x1"


def test_missing_variable_kept(renderer):
    assert renderer.render_preview("Table {{table}}") == "Table {{table}}"


def test_line_uses_paper_width(renderer):
    job = renderer.compile("[line char==]")
    assert HorizontalRule("=", 32) in job.directives
    assert LineFeed(1) in job.directives


def test_feed_and_partial_cut(renderer):
    data = renderer.render("A[feed n=3][cut partial=true]")
    assert data.endswith(b"A\n\n\n\n\n\n\n\x1dV\x01")


def test_barcode_tag(renderer):
    job = renderer.compile("[barcode type=ean13 height=80]6111234567890[/barcode]", label="staff")
    assert Barcode("6111234567890", Symbology.EAN13, height=80) in job.directives
    assert job.label == "staff"


def test_barcode_too_long(renderer):
    with pytest.raises(PayloadTooLarge):
        renderer.compile("[barcode]" + "9" * 256 + "[/barcode]")


def test_extract_variables(renderer):
    template = "{{shop}}\n{{#each items}}{{name}}{{/each}}\n{{total}}"
    assert renderer.extract_variables(template) == ["items", "name", "shop", "total"]
