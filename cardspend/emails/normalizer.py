"""Width, whitespace, amount and datetime normalization for extracted fields."""

from __future__ import annotations

import html
import logging
import re
import unicodedata
from datetime import datetime

from cardspend.core.dates import ensure_aware
from cardspend.core.errors import EncodingNormalizationError, FieldExtractionError

logger = logging.getLogger(__name__)


# ============================================================================
# Encoding / Width Normalization
# ============================================================================

REPLACEMENT_CHAR = "\ufffd"

_TAG_FRAGMENT = re.compile(r"<[^<>\n]*>|</?[A-Za-z][^<>\n]*$|^[^<>\n]*>")


def ensure_decodable(value: str, field: str | None = None) -> str:
    """
    Reject text that still carries decoding residue.

    Residue is the replacement character left by lossy decoding, lone
    surrogates left by ``surrogateescape`` and non-whitespace control
    characters.

    Raises:
        EncodingNormalizationError: If any residue is found
    """
    for position, char in enumerate(value):
        category = unicodedata.category(char)
        if char == REPLACEMENT_CHAR or category == "Cs" or (
            category == "Cc" and char not in "\n\r\t"
        ):
            raise EncodingNormalizationError(
                f"Undecodable character U+{ord(char):04X} at position {position}",
                {"field": field, "position": position},
            )
    return value


def normalize_width(value: str, field: str | None = None) -> str:
    """
    Convert full-width digits and punctuation to their ASCII forms.

    Handles:
    - "３９０" -> "390"
    - "２０２５／０１／２１　１２：０８" -> "2025/01/21 12:08"
    - "１，２３４" -> "1,234"

    Args:
        value: Captured field value
        field: Field name, used in error details

    Returns:
        NFKC-normalized text
    """
    ensure_decodable(value, field)
    return unicodedata.normalize("NFKC", value)


def normalize_body_text(text: str) -> str:
    """
    Normalize line endings and inline blanks of a plain-text body.

    The ideographic space is kept: issuers use it inside card names.
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = text.replace("\u00a0", " ").replace("\t", " ")
    lines = [line.rstrip(" ") for line in text.split("\n")]
    return "\n".join(lines).strip("\n")


def clean_text_value(value: str) -> str:
    """
    Trim a free-text value and drop stray markup fragments.

    Handles:
    - "  マツヤ  " -> "マツヤ"
    - "マツヤ</td>" -> "マツヤ"
    - "Ｄ　三菱ＵＦＪ－ＪＣＢデビット" -> unchanged
    """
    cleaned = _TAG_FRAGMENT.sub("", value)
    cleaned = html.unescape(cleaned)
    return cleaned.strip()


# ============================================================================
# Amount Normalization
# ============================================================================

def parse_amount(value: str) -> int:
    """
    Parse a captured amount as a non-negative whole number.

    Handles:
    - "390" -> 390
    - "３９０" -> 390
    - "1,234" -> 1234
    - "１，２３４" -> 1234

    Raises:
        FieldExtractionError: If the value is not a whole number
    """
    normalized = normalize_width(value, "amount")
    cleaned = re.sub(r"[,\s]", "", normalized)
    if not cleaned.isascii() or not cleaned.isdigit():
        raise FieldExtractionError(
            "amount", f"Amount is not a whole number: {value!r}", {"value": value}
        )
    return int(cleaned)


# ============================================================================
# Datetime Normalization
# ============================================================================

def parse_datetime(value: str, patterns: tuple[str, ...]) -> datetime:
    """
    Parse a captured datetime with the format's declared patterns.

    Full-width digits and separators are normalized first and runs of blanks
    collapse to a single space. A value without an offset gets the reference
    timezone.

    Raises:
        FieldExtractionError: If no pattern matches
    """
    normalized = normalize_width(value, "datetime_of_use")
    normalized = re.sub(r"\s+", " ", normalized).strip()

    for pattern in patterns:
        try:
            parsed = datetime.strptime(normalized, pattern)
        except ValueError:
            continue
        return ensure_aware(parsed)

    logger.debug(f"No date pattern matched {normalized!r} (tried {len(patterns)})")
    raise FieldExtractionError(
        "datetime_of_use",
        f"Datetime does not match any known pattern: {value!r}",
        {"value": value, "patterns": list(patterns)},
    )
