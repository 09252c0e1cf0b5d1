"""Body segment selection for raw notification emails.

Raw input comes in three shapes:

- a full RFC 822 message (headers, MIME parts, transfer encodings, charsets)
- a bare body whose plain and HTML parts are separated by boundary markers
- a bare plain-text or HTML body

``split_body`` turns any of them into an ``EmailBody`` holding the decoded
plain and HTML segments; ``select_text`` picks the segment a format reads and
strips markup when only HTML is available.
"""

from __future__ import annotations

import email
import logging
import re
from dataclasses import dataclass
from email import policy
from email.message import EmailMessage
from typing import Literal

from bs4 import BeautifulSoup

from cardspend.core.errors import EncodingNormalizationError

logger = logging.getLogger(__name__)

# Charsets tried, in order, when raw bytes carry no usable declaration.
CANDIDATE_CHARSETS = ("utf-8", "iso-2022-jp", "shift_jis", "euc-jp")

_HEADER_LINE = re.compile(r"^[A-Za-z][A-Za-z0-9-]*:[ \t]")
_BOUNDARY_LINE = re.compile(r"^--(?=[^\n]*[0-9A-Za-z])[0-9A-Za-z'()+_,./:=?-]{4,}(?:--)?[ \t]*$", re.MULTILINE)
_HTML_MARKER = re.compile(r"<(?:!doctype|html|head|body|div|table|tr|td|p|br|span|font)\b", re.IGNORECASE)


@dataclass
class EmailBody:
    """Decoded segments of one email."""

    headers: str = ""
    plain: str | None = None
    html: str | None = None

    def probe_text(self) -> str:
        """All decoded content, used by format detectors."""
        parts = [self.headers, self.plain or ""]
        if self.html:
            parts.append(html_to_text(self.html))
        return "\n".join(parts)


def decode_bytes(raw: bytes) -> str:
    """
    Decode raw email bytes with the first candidate charset that fits.

    Raises:
        EncodingNormalizationError: If no candidate charset decodes the bytes
    """
    charsets = CANDIDATE_CHARSETS
    # ISO-2022-JP is 7-bit and would otherwise decode as UTF-8 with its
    # escape sequences left in.
    if b"\x1b" in raw:
        charsets = ("iso-2022-jp",) + tuple(c for c in CANDIDATE_CHARSETS if c != "iso-2022-jp")

    for charset in charsets:
        try:
            return raw.decode(charset)
        except UnicodeDecodeError:
            continue
    raise EncodingNormalizationError(
        "Email bytes do not decode with any supported charset",
        {"charsets": list(CANDIDATE_CHARSETS), "length": len(raw)},
    )


def html_to_text(markup: str) -> str:
    """Strip markup, keeping one line per block element."""
    soup = BeautifulSoup(markup, "lxml")
    for element in soup(["script", "style", "head"]):
        element.decompose()
    text = soup.get_text(separator="\n")
    lines = (line.strip(" \t") for line in text.splitlines())
    return "\n".join(line for line in lines if line)


def split_body(raw_text: str) -> EmailBody:
    """Decode an email of any supported shape into its plain and HTML segments."""
    if _looks_like_message(raw_text):
        return _split_message(raw_text)
    if _BOUNDARY_LINE.search(raw_text):
        return _split_boundaries(raw_text)
    if _HTML_MARKER.search(raw_text):
        return EmailBody(html=raw_text)
    return EmailBody(plain=raw_text)


def select_text(body: EmailBody, preferred: Literal["plain", "html"] = "plain") -> str:
    """
    Return the text a format extracts fields from.

    The preferred segment wins when present. Plain text is otherwise used
    as-is; HTML is only ever returned with its markup stripped.
    """
    text, _ = select_segment(body, preferred)
    return text


def select_segment(
    body: EmailBody, preferred: Literal["plain", "html"] = "plain"
) -> tuple[str, bool]:
    """Like ``select_text``, also telling whether the text is stripped HTML."""
    if preferred == "html" and body.html:
        return html_to_text(body.html), True
    if body.plain and body.plain.strip():
        return body.plain, False
    if body.html:
        logger.debug("No plain-text segment, stripping markup from HTML segment")
        return html_to_text(body.html), True
    return "", False


def _looks_like_message(raw_text: str) -> bool:
    """True when the text starts with a header block declaring a content type."""
    text = raw_text.replace("\r\n", "\n").lstrip("\n")
    head, _, _ = text.partition("\n\n")
    lines = head.split("\n")
    if not lines or not _HEADER_LINE.match(lines[0]):
        return False
    return any(line.lower().startswith(("content-type:", "mime-version:")) for line in lines)


def _split_message(raw_text: str) -> EmailBody:
    message = email.message_from_string(raw_text, policy=policy.default)
    assert isinstance(message, EmailMessage)

    headers = "\n".join(f"{name}: {value}" for name, value in message.items())
    body = EmailBody(headers=headers)

    for part in message.walk():
        if part.is_multipart():
            continue
        if part.get_content_disposition() == "attachment":
            continue
        content_type = part.get_content_type()
        if content_type not in ("text/plain", "text/html"):
            continue

        content = _part_content(part)
        if content_type == "text/plain" and body.plain is None:
            body.plain = content
        elif content_type == "text/html" and body.html is None:
            body.html = content

    return body


def _part_content(part: EmailMessage) -> str:
    """Decode one MIME part, honouring its transfer encoding and charset."""
    charset = part.get_content_charset() or "utf-8"

    # An 8bit body parsed from text is already decoded; get_content() would
    # re-encode it as escapes.
    payload = part.get_payload()
    encoding = str(part.get("Content-Transfer-Encoding", "7bit")).strip().lower()
    if isinstance(payload, str) and not payload.isascii() and encoding not in ("base64", "quoted-printable"):
        return payload

    try:
        content = part.get_content()
    except LookupError as e:
        raise EncodingNormalizationError(
            f"Unknown charset declared by MIME part: {charset}",
            {"charset": charset},
        ) from e
    except UnicodeDecodeError as e:
        raise EncodingNormalizationError(
            f"MIME part does not decode as {charset}",
            {"charset": charset},
        ) from e

    if isinstance(content, bytes):
        return decode_bytes(content)
    return content


def _split_boundaries(raw_text: str) -> EmailBody:
    body = EmailBody()
    for segment in _BOUNDARY_LINE.split(raw_text):
        segment = _strip_part_headers(segment).strip()
        if not segment:
            continue
        if _HTML_MARKER.search(segment):
            if body.html is None:
                body.html = segment
        elif body.plain is None:
            body.plain = segment
    return body


def _strip_part_headers(segment: str) -> str:
    """Drop a leading ``Content-Type: ...`` style header block from a segment."""
    lines = segment.lstrip("\r\n").split("\n")
    if not lines or not _HEADER_LINE.match(lines[0]):
        return segment
    for index, line in enumerate(lines):
        if not line.strip():
            return "\n".join(lines[index + 1:])
    return ""
