"""Card usage email extraction.

This module handles:
- Issuer format registry (detectors, field anchors, date patterns)
- Body segment selection for MIME, boundary-split and bare bodies
- Width and encoding normalization
- Mailbox gateways delivering raw emails to a callback
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cardspend.emails.extractor import CardUsageExtractor
    from cardspend.emails.formats import CARD_FORMATS, DETECTION_ORDER
    from cardspend.emails.models import CardCompany, CardUsage

__all__ = [
    "CARD_FORMATS",
    "DETECTION_ORDER",
    "CardCompany",
    "CardUsage",
    "CardUsageExtractor",
]
