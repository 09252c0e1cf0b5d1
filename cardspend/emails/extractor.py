"""Card usage extraction from raw notification emails."""

from __future__ import annotations

import logging
import re
import unicodedata

from cardspend.core.errors import EncodingNormalizationError, FieldExtractionError, UnrecognizedFormatError
from cardspend.emails.body import decode_bytes, select_segment, split_body
from cardspend.emails.formats import DETECTION_ORDER, CardFormat, FieldRule, get_format
from cardspend.emails.models import CardCompany, CardUsage, ExtractedFields
from cardspend.emails.normalizer import (
    clean_text_value,
    ensure_decodable,
    normalize_body_text,
    parse_amount,
    parse_datetime,
)

logger = logging.getLogger(__name__)

# Blanks between an anchor and its value on the same line.
_INLINE_BLANKS = re.compile(r"[ \t\u3000]*")
# A line that starts another 【...】 label.
_LABEL_LINE = re.compile(r"[ \t\u3000]*【")


class CardUsageExtractor:
    """Turns one raw email into a CardUsage.

    Pipeline:
    1. Decode bytes and split the body into plain/HTML segments
    2. Detect the issuer (unless the caller already knows it)
    3. Capture each field with the format's anchor + value rules
    4. Normalize amount and datetime, clean free-text fields
    """

    def extract(
        self, email_text: str | bytes, known_company: CardCompany | None = None
    ) -> CardUsage:
        """Extract a card usage from raw email text.

        Args:
            email_text: Full RFC 822 message, bare body or raw bytes
            known_company: Skip detection and apply this issuer's format

        Returns:
            CardUsage without an id

        Raises:
            UnrecognizedFormatError: If no format detector matches
            FieldExtractionError: If a required field is missing or does not parse
            EncodingNormalizationError: If the content cannot be decoded
        """
        if isinstance(email_text, bytes):
            email_text = decode_bytes(email_text)

        body = split_body(email_text)

        if known_company is not None:
            fmt = get_format(known_company)
            logger.debug(f"[EXTRACTOR] Using caller-provided format: {fmt.company.value}")
        else:
            fmt = self.detect(body.probe_text())

        segment, from_html = select_segment(body, fmt.preferred_part)
        text = normalize_body_text(segment)
        if not text:
            raise FieldExtractionError(
                "body", "Email has no readable text segment", {"company": fmt.company.value}
            )

        fields = self.extract_fields(text, fmt, from_html=from_html)

        usage = CardUsage(
            card_name=fields.card_name or "",
            amount=parse_amount(fields.amount or ""),
            where_to_use=fields.where_to_use or "",
            datetime_of_use=parse_datetime(fields.datetime_of_use or "", fmt.date_patterns),
            card_company=fmt.company,
        )

        logger.info(
            f"[EXTRACTOR] ✓ Extracted {fmt.company.value} usage: "
            f"amount={usage.amount}, at={usage.datetime_of_use.isoformat()}"
        )
        return usage

    def detect(self, probe_text: str) -> CardFormat:
        """Return the first format in detection order whose detector matches.

        Raises:
            UnrecognizedFormatError: If none matches
        """
        probe = unicodedata.normalize("NFKC", probe_text)
        for company in DETECTION_ORDER:
            fmt = get_format(company)
            if fmt.detector.matches(probe):
                logger.debug(f"[EXTRACTOR] Detected format: {company.value}")
                return fmt

        logger.info("[EXTRACTOR] ✗ No card format matched")
        raise UnrecognizedFormatError(
            "Email does not match any known card company format",
            {"tried": [company.value for company in DETECTION_ORDER]},
        )

    def extract_fields(self, text: str, fmt: CardFormat, from_html: bool = False) -> ExtractedFields:
        """Capture raw field values. Required fields must all be present.

        Stripped HTML puts each table cell on its own line, so with
        ``from_html`` a value may start on the line after its anchor.
        """
        patterns_matched: dict[str, str] = {}
        values: dict[str, str | None] = {}

        for name, rule in fmt.fields.items():
            values[name] = self._capture(name, rule, text, patterns_matched, from_html)

        for name in ("card_name", "where_to_use"):
            value = values.get(name)
            if value:
                try:
                    ensure_decodable(value, name)
                except EncodingNormalizationError:
                    logger.info(f"[EXTRACTOR] ✗ Undecodable residue in {name}")
                    raise

        return ExtractedFields(**values, patterns_matched=patterns_matched)

    def _capture(
        self,
        name: str,
        rule: FieldRule,
        text: str,
        patterns_matched: dict[str, str],
        from_html: bool = False,
    ) -> str | None:
        anchor = rule.anchor_re.search(text)
        if anchor is None:
            if rule.required:
                logger.info(f"[EXTRACTOR] ✗ Missing anchor for {name}")
                raise FieldExtractionError(
                    name, f"Anchor for {name} not found", {"anchor": rule.anchor}
                )
            return rule.default

        rest = text[anchor.end():]
        rest = rest[_INLINE_BLANKS.match(rest).end():]
        if from_html and rest.startswith("\n"):
            following = rest[1:]
            next_line = following.split("\n", 1)[0]
            if next_line.strip(" \t\u3000") and not _LABEL_LINE.match(next_line):
                rest = following[_INLINE_BLANKS.match(following).end():]
        match = rule.value_re.match(rest)
        if match is None:
            if rule.required:
                snippet = rest.split("\n", 1)[0][:40]
                logger.info(f"[EXTRACTOR] ✗ Value for {name} does not match: {snippet!r}")
                raise FieldExtractionError(
                    name, f"Value for {name} not found after anchor", {"text": snippet}
                )
            return rule.default

        value = clean_text_value(match.group("value"))
        if not value:
            if rule.required:
                raise FieldExtractionError(name, f"Value for {name} is empty")
            value = rule.default
        patterns_matched[name] = rule.anchor
        return value
