"""Alert and card usage notification delivery."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Any

import httpx

from cardspend.core.config import get_settings
from cardspend.core.dates import to_reference
from cardspend.core.errors import AlertDeliveryError
from cardspend.emails.models import CardUsage
from cardspend.reports.models import AlertEvent, ReportType, ThresholdLevel

logger = logging.getLogger(__name__)

# Embed colours and icons per level
_LEVEL_STYLE: dict[ThresholdLevel, tuple[int, str]] = {
    ThresholdLevel.LEVEL1: (16766720, "🔔"),  # orange
    ThresholdLevel.LEVEL2: (15548997, "⚠️"),  # dark orange
    ThresholdLevel.LEVEL3: (15158332, "🚨"),  # red
}

_WEEKLY_MESSAGES = {
    ThresholdLevel.LEVEL1: "金額が{threshold:,}円を超過。ペース注意。",
    ThresholdLevel.LEVEL2: "金額が{threshold:,}円を超過。支出見直し。",
    ThresholdLevel.LEVEL3: "金額が{threshold:,}円を超過。予算大幅超過！",
}

_MONTHLY_MESSAGES = {
    ThresholdLevel.LEVEL1: "今月の合計金額が{threshold:,}円を超過。予算管理を見直してください。",
    ThresholdLevel.LEVEL2: "今月の合計金額が{threshold:,}円を超過。出費を抑えましょう！",
    ThresholdLevel.LEVEL3: "今月の合計金額が{threshold:,}円を超過。緊急の予算見直しが必要です！",
}

_USAGE_COLOR = 14805795


def alert_message(event: AlertEvent) -> str:
    """Level-specific advice line for an alert."""
    messages = _WEEKLY_MESSAGES if event.report_type == ReportType.WEEKLY else _MONTHLY_MESSAGES
    return messages[event.crossed_level].format(threshold=event.threshold)


def alert_title(event: AlertEvent) -> str:
    start = to_reference(event.period_start)
    if event.report_type == ReportType.WEEKLY:
        return f"{start.year}年{start.month}月{start.day}日からの週 ウィークリーアラート"
    return f"{start.year}年{start.month}月 マンスリーアラート"


def format_period(event: AlertEvent) -> str:
    """Inclusive date range, e.g. ``2025/01/19 ～ 2025/01/25``."""
    start = to_reference(event.period_start)
    last_day = to_reference(event.period_end) - timedelta(days=1)
    return f"{start:%Y/%m/%d} ～ {last_day:%Y/%m/%d}"


class AlertNotifier(ABC):
    """Delivery boundary for alerts and new-usage notifications."""

    @abstractmethod
    async def send_alert(self, event: AlertEvent) -> None:
        """
        Deliver an alert.

        Raises:
            AlertDeliveryError: If delivery fails
        """

    @abstractmethod
    async def send_card_usage(self, usage: CardUsage) -> None:
        """Deliver a new-usage notification."""


class LoggingNotifier(AlertNotifier):
    """Writes notifications to the log only. Used when no webhook is configured."""

    async def send_alert(self, event: AlertEvent) -> None:
        logger.warning(
            f"[ALERT] {alert_title(event)} level={int(event.crossed_level)} "
            f"total={event.total_amount} period={format_period(event)}: {alert_message(event)}"
        )

    async def send_card_usage(self, usage: CardUsage) -> None:
        logger.info(
            f"[USAGE] {usage.card_company.value} {usage.amount}円 "
            f"at {usage.where_to_use or '-'} ({usage.datetime_of_use.isoformat()})"
        )


class DiscordWebhookNotifier(AlertNotifier):
    """Posts embeds to a Discord webhook."""

    def __init__(
        self,
        webhook_url: str,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Args:
            webhook_url: Discord webhook URL
            timeout: Request timeout in seconds (defaults to NOTIFIER_TIMEOUT_SECONDS)
            client: Shared client; a short-lived one is opened per request otherwise
        """
        self.webhook_url = webhook_url
        self.timeout = timeout if timeout is not None else get_settings().NOTIFIER_TIMEOUT_SECONDS
        self._client = client

    async def send_alert(self, event: AlertEvent) -> None:
        color, icon = _LEVEL_STYLE[event.crossed_level]
        kind = "ウィークリー" if event.report_type == ReportType.WEEKLY else "マンスリー"
        embed = {
            "title": f"{icon} {alert_title(event)}",
            "description": f"# {event.total_amount:,}円\n{kind}利用合計額\n-",
            "color": color,
            "fields": [
                {"name": "期間", "value": format_period(event), "inline": False},
                {"name": "利用件数", "value": f"{event.usage_count}件", "inline": False},
                {"name": "補足情報", "value": alert_message(event), "inline": False},
            ],
        }
        try:
            await self._post({"embeds": [embed]})
        except AlertDeliveryError as e:
            e.event = event
            raise
        logger.info(f"[NOTIFY] ✓ Alert level {int(event.crossed_level)} sent to Discord")

    async def send_card_usage(self, usage: CardUsage) -> None:
        when = to_reference(usage.datetime_of_use)
        embed = {
            "title": "利用情報",
            "description": f"# {usage.amount:,}円\nお支払いが完了しました\n-",
            "color": _USAGE_COLOR,
            "fields": [
                {"name": "日時", "value": f"{when:%Y/%m/%d %H:%M}", "inline": False},
                {"name": "利用先", "value": usage.where_to_use or "不明", "inline": False},
                {"name": "カード名", "value": usage.card_name or "不明"},
            ],
        }
        await self._post({"embeds": [embed]})
        logger.info("[NOTIFY] ✓ Card usage sent to Discord")

    async def _post(self, payload: dict[str, Any]) -> None:
        try:
            if self._client is not None:
                response = await self._client.post(self.webhook_url, json=payload, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.webhook_url, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"[NOTIFY] ✗ Discord webhook request failed: {e}")
            raise AlertDeliveryError(f"Discord webhook request failed: {e}") from e

        if response.status_code >= 400:
            logger.error(f"[NOTIFY] ✗ Discord webhook returned {response.status_code}")
            raise AlertDeliveryError(
                f"Discord webhook returned HTTP {response.status_code}",
                details={"status_code": response.status_code, "body": response.text[:200]},
            )


def get_notifier() -> AlertNotifier:
    """Discord notifier when DISCORD_WEBHOOK_URL is set, logging otherwise."""
    url = get_settings().DISCORD_WEBHOOK_URL
    if url:
        return DiscordWebhookNotifier(url)
    return LoggingNotifier()
