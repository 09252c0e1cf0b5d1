"""IMAP connector and polling mailbox gateway."""

from __future__ import annotations

import asyncio
import imaplib
import logging

from cardspend.core.config import get_settings
from cardspend.core.errors import EncodingNormalizationError
from cardspend.emails.body import decode_bytes
from cardspend.emails.gateway import MailboxGateway, OnEmail

logger = logging.getLogger(__name__)


def decode_raw_message(raw: bytes) -> str:
    """Decode a fetched RFC 822 message.

    Bytes that fit no candidate charset are kept as surrogate escapes so
    the extractor rejects them instead of guessing.
    """
    try:
        return decode_bytes(raw)
    except EncodingNormalizationError:
        return raw.decode("utf-8", errors="surrogateescape")


class IMAPConnector:
    """Blocking IMAP4-over-SSL session used by one poll.

    Use as a context manager: login on enter, logout on exit.
    """

    def __init__(self, host: str, user: str, password: str, timeout: int = 30):
        self.host = host
        self.user = user
        self.password = password
        self.timeout = timeout
        self._imap: imaplib.IMAP4_SSL | None = None

    def connect(self) -> None:
        """Open the SSL connection and log in.

        Raises:
            imaplib.IMAP4.error: On rejected credentials
            OSError: On network failure
        """
        logger.debug(f"[IMAP] Opening {self.host} as {self.user}")
        imap = imaplib.IMAP4_SSL(self.host, timeout=self.timeout)
        try:
            imap.login(self.user, self.password)
        except imaplib.IMAP4.error as e:
            logger.error(f"[IMAP] ✗ Login to {self.host} rejected: {e}")
            imap.shutdown()
            raise
        self._imap = imap

    def disconnect(self) -> None:
        imap, self._imap = self._imap, None
        if imap is None:
            return
        try:
            imap.logout()
        except (imaplib.IMAP4.error, OSError) as e:
            logger.warning(f"[IMAP] Logout from {self.host} failed: {e}")

    def __enter__(self) -> IMAPConnector:
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.disconnect()

    def fetch_unseen(self, mailbox_name: str) -> list[tuple[str, str]]:
        """Fetch unseen messages as raw text without marking them seen.

        Args:
            mailbox_name: Mailbox to select

        Returns:
            (message id, raw RFC 822 message) pairs, oldest first
        """
        if not self._imap:
            raise RuntimeError("IMAPConnector is not connected")

        status, _ = self._imap.select(mailbox_name)
        if status != "OK":
            raise imaplib.IMAP4.error(f"Cannot select mailbox {mailbox_name}: {status}")

        status, message_ids = self._imap.search(None, "UNSEEN")
        if status != "OK":
            logger.error(f"[IMAP] ✗ UNSEEN search failed: {status}")
            return []

        ids = message_ids[0].split()
        if not ids:
            logger.debug(f"[IMAP] No unseen messages in {mailbox_name}")
            return []

        logger.info(f"[IMAP] {len(ids)} unseen message(s) in {mailbox_name}")

        messages = []
        for msg_id in ids:
            raw = self._fetch_raw(msg_id)
            if raw is None:
                continue
            messages.append((msg_id.decode(), decode_raw_message(raw)))

        return messages

    def mark_seen(self, msg_ids: list[str]) -> None:
        """Set \\Seen on messages of the selected mailbox."""
        if not self._imap:
            raise RuntimeError("IMAPConnector is not connected")
        for msg_id in msg_ids:
            status, _ = self._imap.store(msg_id, "+FLAGS", "\\Seen")
            if status != "OK":
                logger.error(f"[IMAP] ✗ Could not mark message {msg_id} seen: {status}")

    def _fetch_raw(self, msg_id: bytes) -> bytes | None:
        assert self._imap is not None
        status, msg_data = self._imap.fetch(msg_id.decode(), "(BODY.PEEK[])")
        if status != "OK" or not msg_data:
            logger.error(f"[IMAP] ✗ Fetch of message {msg_id.decode()} failed: {status}")
            return None

        # msg_data is a list of (envelope, body) tuples plus closing b")"
        email_tuple = msg_data[0]
        if not isinstance(email_tuple, tuple) or len(email_tuple) < 2:
            return None
        raw = email_tuple[1]
        return raw if isinstance(raw, bytes) else None


class IMAPMailboxGateway(MailboxGateway):
    """Polls a mailbox for UNSEEN messages and hands each one to a callback.

    Blocking imaplib calls run in a worker thread. Each poll opens and
    closes its own connection. A message is marked seen only after its
    callback completes, so a failed one is fetched again on the next poll.
    """

    def __init__(
        self,
        host: str,
        user: str,
        password: str,
        poll_interval_seconds: float = 60,
        timeout: int = 30,
    ):
        self.host = host
        self.user = user
        self.password = password
        self.poll_interval_seconds = poll_interval_seconds
        self.timeout = timeout
        self._stop_event = asyncio.Event()
        self.running = False

    @classmethod
    def from_settings(cls) -> IMAPMailboxGateway:
        settings = get_settings()
        if not all([settings.IMAP_HOST, settings.IMAP_USER, settings.IMAP_PASS]):
            raise ValueError("IMAP_HOST, IMAP_USER and IMAP_PASS must be set")
        return cls(
            host=settings.IMAP_HOST,  # type: ignore[arg-type]
            user=settings.IMAP_USER,  # type: ignore[arg-type]
            password=settings.IMAP_PASS,  # type: ignore[arg-type]
            poll_interval_seconds=settings.IMAP_POLL_INTERVAL_SECONDS,
            timeout=settings.IMAP_TIMEOUT_SECONDS,
        )

    async def poll_once(self, mailbox_name: str, on_email: OnEmail) -> int:
        """Fetch unseen messages once and deliver them.

        Returns:
            Number of messages whose callback completed
        """
        connector = IMAPConnector(self.host, self.user, self.password, self.timeout)
        try:
            await asyncio.to_thread(connector.connect)
            messages = await asyncio.to_thread(connector.fetch_unseen, mailbox_name)
        except (imaplib.IMAP4.error, OSError) as e:
            logger.error(f"[MAILBOX] ✗ Poll of {mailbox_name} failed: {e}")
            await asyncio.to_thread(connector.disconnect)
            return 0

        delivered: list[str] = []
        try:
            for msg_id, raw in messages:
                try:
                    await on_email(raw)
                    delivered.append(msg_id)
                except Exception as e:
                    logger.error(f"[MAILBOX] ✗ Callback failed for message {msg_id}: {e}", exc_info=True)

            if delivered:
                try:
                    await asyncio.to_thread(connector.mark_seen, delivered)
                except (imaplib.IMAP4.error, OSError) as e:
                    logger.error(f"[MAILBOX] ✗ Marking {len(delivered)} message(s) seen failed: {e}")
        finally:
            await asyncio.to_thread(connector.disconnect)

        if messages:
            logger.info(f"[MAILBOX] Delivered {len(delivered)}/{len(messages)} messages")
        return len(delivered)

    async def connect(self, mailbox_name: str, on_email: OnEmail) -> None:
        self._stop_event.clear()
        self.running = True
        logger.info(
            f"[MAILBOX] Watching {mailbox_name} on {self.host} "
            f"every {self.poll_interval_seconds}s"
        )
        try:
            while not self._stop_event.is_set():
                await self.poll_once(mailbox_name, on_email)
                try:
                    await asyncio.wait_for(
                        self._stop_event.wait(), timeout=self.poll_interval_seconds
                    )
                except asyncio.TimeoutError:
                    pass
        finally:
            self.running = False
            logger.info(f"[MAILBOX] Stopped watching {mailbox_name}")

    async def stop(self) -> None:
        self._stop_event.set()
