"""Tests for width, amount, datetime and body normalization."""

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from cardspend.core.errors import EncodingNormalizationError, FieldExtractionError
from cardspend.emails.body import (
    EmailBody,
    decode_bytes,
    html_to_text,
    select_segment,
    select_text,
    split_body,
)
from cardspend.emails.formats import MUFG_FORMAT, SMBC_FORMAT
from cardspend.emails.normalizer import (
    clean_text_value,
    ensure_decodable,
    normalize_body_text,
    normalize_width,
    parse_amount,
    parse_datetime,
)

TOKYO = ZoneInfo("Asia/Tokyo")


class TestAmountNormalization:
    """Test amount parsing."""

    def test_full_width_digits(self):
        assert parse_amount("３９０") == 390

    def test_thousands_separators(self):
        assert parse_amount("1,234") == 1234
        assert parse_amount("１，２３４") == 1234
        assert parse_amount("1,000,000") == 1000000

    def test_zero(self):
        assert parse_amount("0") == 0

    def test_invalid_amounts(self):
        for value in ("", "abc", "12.5", "-100", "１２三"):
            with pytest.raises(FieldExtractionError) as exc_info:
                parse_amount(value)
            assert exc_info.value.field == "amount"


class TestDatetimeNormalization:
    """Test datetime parsing with format patterns."""

    def test_mufg_with_seconds(self):
        parsed = parse_datetime("2025年1月21日 12:08:00", MUFG_FORMAT.date_patterns)
        assert parsed == datetime(2025, 1, 21, 12, 8, 0, tzinfo=TOKYO)

    def test_mufg_without_seconds(self):
        parsed = parse_datetime("2025年1月21日 12:08", MUFG_FORMAT.date_patterns)
        assert parsed == datetime(2025, 1, 21, 12, 8, tzinfo=TOKYO)

    def test_full_width_and_ideographic_space(self):
        parsed = parse_datetime("２０２５年１月２１日　１２：０８", MUFG_FORMAT.date_patterns)
        assert parsed == datetime(2025, 1, 21, 12, 8, tzinfo=TOKYO)

    def test_smbc_pattern(self):
        parsed = parse_datetime("2025/05/10  15:30", SMBC_FORMAT.date_patterns)
        assert parsed == datetime(2025, 5, 10, 15, 30, tzinfo=TOKYO)

    def test_reference_timezone_attached(self):
        parsed = parse_datetime("2025/05/10 15:30", SMBC_FORMAT.date_patterns)
        assert parsed.tzinfo is not None
        assert parsed.utcoffset().total_seconds() == 9 * 3600

    def test_no_pattern_matches(self):
        with pytest.raises(FieldExtractionError) as exc_info:
            parse_datetime("2025-05-10T15:30", SMBC_FORMAT.date_patterns)
        assert exc_info.value.field == "datetime_of_use"


class TestEncodingNormalization:
    """Test residue detection and width conversion."""

    def test_normalize_width(self):
        assert normalize_width("２０２５／０１／２１　１２：０８") == "2025/01/21 12:08"

    def test_clean_values_pass(self):
        assert ensure_decodable("マツヤ\n") == "マツヤ\n"

    def test_replacement_character(self):
        with pytest.raises(EncodingNormalizationError) as exc_info:
            ensure_decodable("マツ\ufffdヤ", "where_to_use")
        assert exc_info.value.details["field"] == "where_to_use"
        assert exc_info.value.details["position"] == 2

    def test_lone_surrogate(self):
        with pytest.raises(EncodingNormalizationError):
            ensure_decodable("abc\udcff")

    def test_control_character(self):
        with pytest.raises(EncodingNormalizationError):
            ensure_decodable("abc\x1b$B")

    def test_decode_bytes_candidates(self):
        assert decode_bytes("マツヤ".encode("utf-8")) == "マツヤ"
        assert decode_bytes("マツヤ".encode("iso-2022-jp")) == "マツヤ"

    def test_decode_bytes_failure(self):
        with pytest.raises(EncodingNormalizationError):
            decode_bytes(b"\xff\xff\xff")


class TestTextCleanup:
    """Test body and value cleanup."""

    def test_clean_text_value(self):
        assert clean_text_value("  マツヤ  ") == "マツヤ"
        assert clean_text_value("マツヤ</td>") == "マツヤ"
        assert clean_text_value("<b>マツヤ</b>") == "マツヤ"
        assert clean_text_value("A&amp;B") == "A&B"

    def test_clean_text_value_keeps_inner_ideographic_space(self):
        assert clean_text_value("Ｄ　三菱ＵＦＪ－ＪＣＢデビット ") == "Ｄ　三菱ＵＦＪ－ＪＣＢデビット"

    def test_normalize_body_text(self):
        text = "line1 \r\nline2 \tx\r\n\r\n"
        assert normalize_body_text(text) == "line1\nline2  x"


class TestBodySelection:
    """Test body splitting and segment selection."""

    def test_html_to_text_drops_markup_and_style(self):
        text = html_to_text(
            "<html><head><style>p {color: red}</style></head>"
            "<body><p>一行目</p><p>二行目</p></body></html>"
        )
        assert text == "一行目\n二行目"

    def test_bare_plain_text(self):
        body = split_body("ご利用日時：2025/05/10 15:30")
        assert body.plain == "ご利用日時：2025/05/10 15:30"
        assert body.html is None

    def test_bare_html(self):
        body = split_body("<div>hello</div>")
        assert body.html == "<div>hello</div>"
        assert body.plain is None

    def test_separator_lines_are_not_boundaries(self):
        body = split_body("header\n-----------------\nfooter")
        assert body.plain == "header\n-----------------\nfooter"

    def test_select_text_prefers_plain(self):
        body = EmailBody(plain="plain text", html="<p>html text</p>")
        assert select_text(body, "plain") == "plain text"
        assert select_text(body, "html") == "html text"

    def test_select_text_falls_back_to_stripped_html(self):
        body = EmailBody(plain="  \n", html="<p>html text</p>")
        assert select_text(body, "plain") == "html text"

    def test_select_text_empty(self):
        assert select_text(EmailBody()) == ""

    def test_select_segment_reports_stripped_html(self):
        body = EmailBody(plain="plain text", html="<p>html text</p>")
        assert select_segment(body, "plain") == ("plain text", False)
        assert select_segment(body, "html") == ("html text", True)
        assert select_segment(EmailBody(html="<p>only</p>")) == ("only", True)
