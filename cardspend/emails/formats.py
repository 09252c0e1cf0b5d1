"""Card company email formats.

Each supported issuer has exactly one ``CardFormat`` entry in
``CARD_FORMATS``. The extractor never branches on the issuer itself: it runs
the detectors in ``DETECTION_ORDER`` and then applies the selected format's
field rules.

Structure:
CardFormat
  detector:       Probes run against an NFKC-normalized copy of the email, so
                  "三菱ＵＦＪ" and "三菱UFJ" are the same probe.
                  any_of  - at least one must be present (issuer identity)
                  all_of  - every one must be present (layout markers)
  fields:         FieldRule per CardUsage attribute.
                  anchor  - regex locating the label
                  value   - regex matched right after the anchor (leading
                            blanks skipped); must define a ``value`` group
                  required/default - optional fields fall back to ``default``
  date_patterns:  strptime patterns tried in order after width normalization.
  preferred_part: Which body part is read when both plain and HTML exist.

Guidelines for extending:
- Add a member to ``CardCompany``, one entry here, and its place in
  ``DETECTION_ORDER``. Put stricter detectors first.
- Value patterns must accept both ASCII and full-width digits
  (``[0-9０-９]``); normalization happens after capture.
- Never width-normalize card names: issuers display them in full width.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Literal

from cardspend.emails.models import CardCompany

# Blank characters inside a line, including the ideographic space.
_BLANK = r"[ \t\u3000]"
_DIGIT = r"[0-9０-９]"
_AMOUNT = rf"(?P<value>{_DIGIT}[0-9０-９,，]*){_BLANK}*円"


@dataclass(frozen=True)
class FieldRule:
    anchor: str
    value: str
    required: bool = True
    default: str | None = None

    def __post_init__(self) -> None:
        if "(?P<value>" not in self.value:
            raise ValueError(f"Value pattern must define a 'value' group: {self.value}")

    @property
    def anchor_re(self) -> re.Pattern[str]:
        return re.compile(self.anchor, re.MULTILINE)

    @property
    def value_re(self) -> re.Pattern[str]:
        return re.compile(self.value, re.MULTILINE)


@dataclass(frozen=True)
class Detector:
    any_of: tuple[str, ...]
    all_of: tuple[str, ...] = ()

    def matches(self, probe_text: str) -> bool:
        return any(p in probe_text for p in self.any_of) and all(
            p in probe_text for p in self.all_of
        )


@dataclass(frozen=True)
class CardFormat:
    company: CardCompany
    display_name: str
    detector: Detector
    fields: dict[str, FieldRule] = field(default_factory=dict)
    date_patterns: tuple[str, ...] = ()
    preferred_part: Literal["plain", "html"] = "plain"


MUFG_FORMAT = CardFormat(
    company=CardCompany.MUFG,
    display_name="三菱UFJ銀行 デビット",
    detector=Detector(
        any_of=("三菱UFJ", "mufg.jp", "MUFG"),
        all_of=("【ご利用金額】",),
    ),
    fields={
        "card_name": FieldRule(
            anchor=rf"カード名称{_BLANK}*[:：]",
            value=r"(?P<value>[^\n]+)",
        ),
        "datetime_of_use": FieldRule(
            anchor=r"【ご利用日時[（(]日本時間[）)]】",
            value=(
                rf"(?P<value>{_DIGIT}{{4}}年{_DIGIT}{{1,2}}月{_DIGIT}{{1,2}}日"
                rf"{_BLANK}*{_DIGIT}{{1,2}}[:：]{_DIGIT}{{2}}(?:[:：]{_DIGIT}{{2}})?)"
            ),
        ),
        "amount": FieldRule(anchor=r"【ご利用金額】", value=_AMOUNT),
        "where_to_use": FieldRule(
            anchor=r"【ご利用先】",
            value=r"(?P<value>[^\n]*)",
            required=False,
            default="",
        ),
    },
    date_patterns=(
        "%Y年%m月%d日 %H:%M:%S",
        "%Y年%m月%d日 %H:%M",
        "%Y年%m月%d日%H:%M:%S",
        "%Y年%m月%d日%H:%M",
    ),
    preferred_part="plain",
)

_SMBC_DATE = (
    rf"{_DIGIT}{{4}}[/／]{_DIGIT}{{1,2}}[/／]{_DIGIT}{{1,2}}"
    rf"{_BLANK}+{_DIGIT}{{1,2}}[:：]{_DIGIT}{{2}}"
)
_SMBC_ANCHOR = rf"ご利用日時{_BLANK}*[:：]"

SMBC_FORMAT = CardFormat(
    company=CardCompany.SMBC,
    display_name="三井住友カード",
    detector=Detector(
        any_of=("三井住友", "SMBC", "vpass.ne.jp", "smbc-card.com"),
        all_of=("ご利用日時:",),
    ),
    fields={
        # "三井住友カード 様" greeting line; the card name precedes the honorific.
        "card_name": FieldRule(
            anchor=rf"^(?=[^\n]*カード{_BLANK}*様)",
            value=rf"(?P<value>[^\n]*?カード){_BLANK}*様",
            required=False,
            default="三井住友カード",
        ),
        "datetime_of_use": FieldRule(
            anchor=_SMBC_ANCHOR,
            value=rf"(?P<value>{_SMBC_DATE})",
        ),
        # ご利用日時：2025/05/10 15:30 スーパーマーケット 2,468円
        "where_to_use": FieldRule(
            anchor=rf"{_SMBC_ANCHOR}{_BLANK}*{_SMBC_DATE}",
            value=rf"(?P<value>[^\n]*?){_BLANK}*{_DIGIT}[0-9０-９,，]*{_BLANK}*円",
            required=False,
            default="",
        ),
        "amount": FieldRule(
            anchor=(
                rf"{_SMBC_ANCHOR}[^\n]*?(?<![0-9０-９,，])"
                rf"(?={_DIGIT}[0-9０-９,，]*{_BLANK}*円)"
            ),
            value=_AMOUNT,
        ),
    },
    date_patterns=("%Y/%m/%d %H:%M",),
    preferred_part="html",
)

CARD_FORMATS: dict[CardCompany, CardFormat] = {
    CardCompany.MUFG: MUFG_FORMAT,
    CardCompany.SMBC: SMBC_FORMAT,
}

# Fixed detection priority; the first matching detector wins.
DETECTION_ORDER: tuple[CardCompany, ...] = (CardCompany.MUFG, CardCompany.SMBC)


def get_format(company: CardCompany) -> CardFormat:
    """Return the registered format for an issuer."""
    return CARD_FORMATS[company]


__all__ = [
    "CARD_FORMATS",
    "DETECTION_ORDER",
    "CardFormat",
    "Detector",
    "FieldRule",
    "get_format",
]
