"""Tests for the ESC/POS command encoder."""
from datetime import datetime

import pytest

from cafe_pos.printer.directives import (
    Barcode,
    CutMode,
    CutPaper,
    HorizontalRule,
    Initialize,
    LineFeed,
    Literal,
    PrintJob,
    Scale,
    SelectCharacterSet,
    SetLineSpacing,
    SetScale,
    Symbology,
    job_from_list,
)
from cafe_pos.printer.escpos import (
    ESCPOSBuilder,
    command,
    encode,
    encode_directive,
    format_currency,
    format_date,
    horizontal_line,
)
from cafe_pos.printer.exceptions import PayloadTooLarge

from conftest import TOTAL_BYTES


class TestEncode:
    """Byte output of whole jobs."""

    def test_total_ticket_bytes(self, total_job):
        data = encode(total_job)
        assert data == TOTAL_BYTES
        assert data.endswith(b"\x1dV\x00")

    def test_encoding_is_deterministic(self, total_job):
        assert encode(total_job) == encode(total_job)

    def test_text_uses_selected_code_page(self):
        job = PrintJob([Initialize(), SelectCharacterSet("cp850"), Literal("Café")])
        assert encode(job) == b"\x1b@\x1bt\x02Caf\x82"

    def test_unencodable_text_is_replaced(self):
        job = PrintJob.begin("cp850").append(Literal("5 €"))
        assert encode(job).endswith(b"5 ?")

    def test_unknown_code_page_rejected(self):
        with pytest.raises(ValueError):
            encode(PrintJob([SelectCharacterSet("utf-8")]))

    def test_oversize_barcode_fails_before_any_output(self):
        job = PrintJob.begin().extend([Literal("Order 12"), Barcode("9" * 256)])
        with pytest.raises(PayloadTooLarge) as exc:
            encode(job)
        assert exc.value.length == 256
        assert exc.value.limit == 255


class TestDirectives:
    """Single directive encodings."""

    def test_horizontal_rule_of_32_dashes(self):
        assert encode_directive(HorizontalRule("-", 32)) == b"-" * 32

    def test_zero_width_rule_is_empty(self):
        assert encode_directive(HorizontalRule("=", 0)) == b""

    def test_line_feed_zero_is_empty(self):
        assert encode_directive(LineFeed(0)) == b""

    def test_line_feed_count(self):
        assert encode_directive(LineFeed(3)) == b"\n\n\n"

    @pytest.mark.parametrize("scale,mode", [
        (Scale.NORMAL, 0x00),
        (Scale.DOUBLE_HEIGHT, 0x10),
        (Scale.DOUBLE_WIDTH, 0x20),
        (Scale.LARGE, 0x30),
    ])
    def test_scale_print_mode(self, scale, mode):
        assert encode_directive(SetScale(scale)) == b"\x1b!" + bytes([mode])

    def test_partial_cut(self):
        assert encode_directive(CutPaper(CutMode.PARTIAL)) == b"\x1dV\x01"

    def test_line_spacing(self):
        assert encode_directive(SetLineSpacing(24)) == b"\x1b3\x18"
        assert encode_directive(SetLineSpacing()) == b"\x1b2"

    def test_empty_barcode(self):
        data = encode_directive(Barcode(""))
        assert data == b"\x1dh\x32\x1dw\x02\x1dH\x02\x1dkI\x00"

    def test_barcode_at_length_limit(self):
        data = encode_directive(Barcode("7" * 255, Symbology.CODE39))
        assert data.endswith(b"\x1dkE\xff" + b"7" * 255)

    def test_barcode_over_length_limit(self):
        with pytest.raises(PayloadTooLarge):
            encode_directive(Barcode("7" * 256))

    def test_invalid_directive_values(self):
        with pytest.raises(ValueError):
            LineFeed(-1)
        with pytest.raises(ValueError):
            SetLineSpacing(256)
        with pytest.raises(ValueError):
            HorizontalRule("--", 10)

    @pytest.mark.parametrize("height, width", [(0, 3), (256, 3), (80, 0), (80, 300)])
    def test_barcode_dimensions_out_of_range(self, height, width):
        with pytest.raises(ValueError):
            Barcode("12345", height=height, width=width)

    def test_command_checks_parameter_count(self):
        assert command("align", 2) == b"\x1ba\x02"
        with pytest.raises(ValueError):
            command("align")


class TestJobFromList:

    def test_prepends_init_and_charset(self):
        job = job_from_list([{"type": "text", "text": "Hi"}])
        assert job.directives == [Initialize(), SelectCharacterSet("cp850"), Literal("Hi")]

    def test_keeps_job_starting_with_init(self, total_directives, total_job):
        job = job_from_list(total_directives, label="customer")
        assert encode(job) == encode(total_job)

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            job_from_list([{"type": "qr"}])


class TestBuilder:

    def test_builds_total_ticket(self):
        data = (
            ESCPOSBuilder(width=32)
            .align_center()
            .bold()
            .text("TOTAL: 45.00 MAD")
            .bold(False)
            .newline(2)
            .cut(feed=0)
            .build()
        )
        assert data == TOTAL_BYTES

    def test_line_spans_paper_width(self):
        data = ESCPOSBuilder(width=32).line("=").build()
        assert data.endswith(b"=" * 32 + b"\n")

    def test_empty_text_is_skipped(self):
        builder = ESCPOSBuilder()
        before = len(builder)
        builder.text("")
        assert len(builder) == before

    def test_barcode_validated_when_added(self):
        with pytest.raises(PayloadTooLarge):
            ESCPOSBuilder().barcode("1" * 300)

    def test_reset_starts_new_job(self):
        builder = ESCPOSBuilder(code_page="cp858").text("x")
        builder.reset()
        assert builder.build() == b"\x1b@\x1bt\x13"

    def test_job_is_a_copy(self):
        builder = ESCPOSBuilder(label="staff").text("a")
        job = builder.job()
        builder.text("b")
        assert len(job) == 3
        assert job.label == "staff"


def test_format_helpers():
    assert format_currency(45) == "45.00 MAD"
    assert format_currency(3.5, "EUR") == "3.50 EUR"
    assert format_date(datetime(2026, 10, 18, 13, 5)) == "18/10/2026 13:05"
    assert horizontal_line("-", 4) == "----"
    assert horizontal_line("-", 0) == ""
    assert horizontal_line("-", -3) == ""
