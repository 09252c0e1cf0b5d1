"""Tests for the IMAP connector and polling mailbox gateway."""

import asyncio
import imaplib

import pytest

from cardspend.emails.imap_connector import IMAPConnector, IMAPMailboxGateway, decode_raw_message
from tests.fixtures.sample_emails import MUFG_PLAIN, SMBC_PLAIN


class FakeIMAP:
    """Stands in for imaplib.IMAP4_SSL with an in-memory mailbox."""

    instances: list["FakeIMAP"] = []
    mailbox: dict[bytes, bytes] = {}
    flagged: set[bytes] = set()
    fail_login = False

    def __init__(self, host, timeout=None):
        self.host = host
        self.timeout = timeout
        self.seen: list[str] = []
        self.fetched_parts: list[str] = []
        self.selected = None
        self.logged_out = False
        FakeIMAP.instances.append(self)

    def login(self, user, password):
        if FakeIMAP.fail_login:
            raise imaplib.IMAP4.error("authentication failed")
        return "OK", [b"logged in"]

    def select(self, mailbox_name):
        self.selected = mailbox_name
        if mailbox_name != "INBOX":
            return "NO", [b"no such mailbox"]
        return "OK", [str(len(FakeIMAP.mailbox)).encode()]

    def search(self, charset, criterion):
        unseen = [msg_id for msg_id in FakeIMAP.mailbox if msg_id not in FakeIMAP.flagged]
        return "OK", [b" ".join(unseen)]

    def fetch(self, msg_id, parts):
        self.fetched_parts.append(parts)
        raw = FakeIMAP.mailbox[msg_id.encode()]
        return "OK", [(f"{msg_id} (BODY[] {{{len(raw)}}}".encode(), raw), b")"]

    def store(self, msg_id, command, flags):
        assert (command, flags) == ("+FLAGS", "\\Seen")
        self.seen.append(msg_id)
        FakeIMAP.flagged.add(msg_id.encode())
        return "OK", []

    def logout(self):
        self.logged_out = True
        return "BYE", []

    def shutdown(self):
        self.logged_out = True


@pytest.fixture
def fake_imap(monkeypatch):
    FakeIMAP.instances = []
    FakeIMAP.mailbox = {
        b"1": MUFG_PLAIN.encode("utf-8"),
        b"2": SMBC_PLAIN.encode("shift_jis"),
    }
    FakeIMAP.flagged = set()
    FakeIMAP.fail_login = False
    monkeypatch.setattr(imaplib, "IMAP4_SSL", FakeIMAP)
    return FakeIMAP


class TestDecodeRawMessage:
    def test_decodes_known_charsets(self):
        assert decode_raw_message(MUFG_PLAIN.encode("utf-8")) == MUFG_PLAIN
        assert decode_raw_message(SMBC_PLAIN.encode("shift_jis")) == SMBC_PLAIN

    def test_undecodable_bytes_keep_surrogates(self):
        decoded = decode_raw_message(b"abc\xff\xff")
        assert decoded.startswith("abc")
        assert "\udcff" in decoded


class TestIMAPConnector:
    def test_fetch_unseen_leaves_messages_unseen(self, fake_imap):
        with IMAPConnector("imap.example.com", "user", "secret") as connector:
            messages = connector.fetch_unseen("INBOX")

        assert messages == [("1", MUFG_PLAIN), ("2", SMBC_PLAIN)]
        conn = fake_imap.instances[0]
        assert conn.fetched_parts == ["(BODY.PEEK[])", "(BODY.PEEK[])"]
        assert conn.seen == []
        assert conn.logged_out is True

    def test_mark_seen(self, fake_imap):
        with IMAPConnector("imap.example.com", "user", "secret") as connector:
            connector.fetch_unseen("INBOX")
            connector.mark_seen(["2"])

        assert fake_imap.instances[0].seen == ["2"]
        assert fake_imap.flagged == {b"2"}

    def test_unknown_mailbox(self, fake_imap):
        with IMAPConnector("imap.example.com", "user", "secret") as connector:
            with pytest.raises(imaplib.IMAP4.error):
                connector.fetch_unseen("Archive")

    def test_fetch_requires_connection(self):
        with pytest.raises(RuntimeError):
            IMAPConnector("imap.example.com", "user", "secret").fetch_unseen("INBOX")


@pytest.mark.asyncio
class TestIMAPMailboxGateway:
    async def test_poll_once_delivers_messages(self, fake_imap):
        received = []

        async def on_email(raw):
            received.append(raw)

        gateway = IMAPMailboxGateway("imap.example.com", "user", "secret")
        assert await gateway.poll_once("INBOX", on_email) == 2
        assert received == [MUFG_PLAIN, SMBC_PLAIN]
        assert fake_imap.instances[0].seen == ["1", "2"]
        assert fake_imap.instances[0].logged_out is True

    async def test_failing_callback_does_not_stop_delivery(self, fake_imap):
        received = []

        async def on_email(raw):
            if raw == MUFG_PLAIN:
                raise ValueError("boom")
            received.append(raw)

        gateway = IMAPMailboxGateway("imap.example.com", "user", "secret")
        assert await gateway.poll_once("INBOX", on_email) == 1
        assert received == [SMBC_PLAIN]
        assert fake_imap.instances[0].seen == ["2"]

    async def test_failed_message_is_fetched_again(self, fake_imap):
        attempts = []

        async def on_email(raw):
            attempts.append(raw)
            if raw == MUFG_PLAIN and attempts.count(MUFG_PLAIN) == 1:
                raise RuntimeError("store unavailable")

        gateway = IMAPMailboxGateway("imap.example.com", "user", "secret")
        assert await gateway.poll_once("INBOX", on_email) == 1
        assert await gateway.poll_once("INBOX", on_email) == 1

        assert attempts == [MUFG_PLAIN, SMBC_PLAIN, MUFG_PLAIN]
        assert fake_imap.flagged == {b"1", b"2"}

    async def test_login_failure_is_logged(self, fake_imap):
        fake_imap.fail_login = True

        async def on_email(raw):
            raise AssertionError("should not be called")

        gateway = IMAPMailboxGateway("imap.example.com", "user", "secret")
        assert await gateway.poll_once("INBOX", on_email) == 0

    async def test_connect_until_stopped(self, fake_imap):
        received = []
        delivered = asyncio.Event()

        async def on_email(raw):
            received.append(raw)
            if len(received) == 2:
                delivered.set()

        gateway = IMAPMailboxGateway("imap.example.com", "user", "secret", poll_interval_seconds=30)
        task = asyncio.create_task(gateway.connect("INBOX", on_email))

        await asyncio.wait_for(delivered.wait(), timeout=5)
        assert gateway.running is True

        await gateway.stop()
        await asyncio.wait_for(task, timeout=5)
        assert gateway.running is False
        assert received == [MUFG_PLAIN, SMBC_PLAIN]


def test_from_settings_requires_credentials(monkeypatch):
    from cardspend.core.config import Settings

    monkeypatch.setattr(
        "cardspend.emails.imap_connector.get_settings",
        lambda: Settings(IMAP_HOST=None, IMAP_USER=None, IMAP_PASS=None),
    )
    with pytest.raises(ValueError):
        IMAPMailboxGateway.from_settings()
