"""Mailbox gateway interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Awaitable, Callable

# Receives one raw email (full RFC 822 text)
OnEmail = Callable[[str], Awaitable[None]]


class MailboxGateway(ABC):
    """Delivers raw emails of a mailbox to a callback."""

    @abstractmethod
    async def connect(self, mailbox_name: str, on_email: OnEmail) -> None:
        """Watch ``mailbox_name`` and await ``on_email`` for each new message.

        Runs until ``stop`` is called. A failing callback does not stop the
        gateway.
        """

    @abstractmethod
    async def stop(self) -> None:
        """Stop watching."""
