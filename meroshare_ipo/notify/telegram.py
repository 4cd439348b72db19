"""
Telegram notifier

Class: TelegramNotifier
Methods:

__init__ : class initializer, checks the bot token with getMe
send: format a workflow notification and post it with sendMessage
close: close the HTTP session
format_message: render a notification as Telegram HTML

Function: build_notifier: create the notifier for one run (NullNotifier on any init problem)
"""

from __future__ import annotations

import html
from typing import Any

import requests

from meroshare_ipo.core.notifications import ApplicationStatus, Notification, NotificationKind
from meroshare_ipo.notify.base import Notifier, NotifierError, NullNotifier
from meroshare_ipo.utils.config import Settings
from meroshare_ipo.utils.logger import get_logger

logger = get_logger("meroshare_ipo.notify.telegram")

API_URL = "https://api.telegram.org/bot{token}/{method}"

_STATUS_ICON = {
    ApplicationStatus.success.value: "✅",
    ApplicationStatus.failed.value: "❌",
    ApplicationStatus.unknown.value: "⚠️",
}


def _esc(value: Any) -> str:
    return html.escape("" if value is None else str(value))


def _fmt_number(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return "N/A" if value is None else str(value)


def format_message(notification: Notification) -> str:
    """Render a notification as Telegram HTML.

    Args:
        notification (Notification): kind + payload decided by the workflow

    Returns:
        str: message body for parse_mode=HTML
    """

    p = notification.payload
    kind = notification.kind

    if kind == NotificationKind.ipo_available:
        lines = ["🎉 <b>IPO available</b>"]
        if p.get("company_name"):
            lines.append(f"Company: <b>{_esc(p['company_name'])}</b>")
        if p.get("share_type"):
            lines.append(f"Type: {_esc(p['share_type'])}")
        if p.get("share_group"):
            lines.append(f"Group: {_esc(p['share_group'])}")
        return "\n".join(lines)

    if kind == NotificationKind.ipo_not_found:
        return "ℹ️ No IPO is open for application right now."

    if kind == NotificationKind.application_status:
        status = p.get("status", ApplicationStatus.unknown.value)
        icon = _STATUS_ICON.get(status, "⚠️")
        return f"{icon} <b>IPO application: {_esc(status)}</b>\n{_esc(p.get('message', ''))}".rstrip()

    if kind == NotificationKind.open_for_review:
        return "\n".join(
            [
                "🔎 <b>IPO open, manual review needed</b>",
                f"Company: {_esc(p.get('company_name') or 'N/A')}",
                f"Share value per unit: {_esc(_fmt_number(p.get('share_value_per_unit')))}",
                f"Min unit: {_esc(_fmt_number(p.get('min_unit')))}",
                f"Reason: {_esc(p.get('reason', ''))}",
            ]
        )

    # NotificationKind.error
    return f"🚨 <b>MeroShare automation error</b>\n{_esc(p.get('message', 'Unknown error'))}"


class TelegramNotifier(Notifier):
    """Send workflow notifications to one chat through the Telegram Bot API."""

    _token: str = ""
    _chat_id: str = ""

    def __init__(self, token: str, chat_id: str, timeout: int = 15, verify: bool = True):
        if not token or not chat_id:
            raise NotifierError("Telegram bot token and chat id are required")

        self._token = token
        self._chat_id = str(chat_id)
        self._timeout = timeout
        self._session = requests.Session()

        if verify:
            try:
                self._check_bot()
            except NotifierError:
                self.close()
                raise

    def close(self) -> None:
        self._session.close()

    def _url(self, method: str) -> str:
        return API_URL.format(token=self._token, method=method)

    def _check_bot(self) -> None:
        """Call getMe once so a bad token is caught at start-up.

        Raises:
            NotifierError: on transport errors or a rejected token
        """

        try:
            response = self._session.get(self._url("getMe"), timeout=self._timeout)
            body = response.json()
        except (requests.RequestException, ValueError) as e:
            raise NotifierError(f"Telegram bot initialization failed: {e}") from e

        if not response.ok or not body.get("ok"):
            raise NotifierError(
                "Telegram bot initialization failed: {}".format(body.get("description", response.status_code))
            )
        logger.info("Telegram bot ready: @%s", body.get("result", {}).get("username", "?"))

    def send(self, notification: Notification) -> bool:
        """Post a notification; problems are logged, never raised.

        Returns:
            bool: True if Telegram accepted the message
        """

        data = {
            "chat_id": self._chat_id,
            "text": format_message(notification),
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        try:
            response = self._session.post(url=self._url("sendMessage"), json=data, timeout=self._timeout)
        except requests.RequestException as e:
            logger.warning("Failed to send %s notification: %s", notification.kind.value, e)
            return False

        if not response.ok:
            logger.warning(
                "Telegram rejected %s notification; status -> %s; error -> %s",
                notification.kind.value,
                response.status_code,
                response.text,
            )
            return False

        logger.info("Sent %s notification", notification.kind.value)
        return True


def build_notifier(settings: Settings, verify: bool = True) -> Notifier:
    """Create the notifier for one run. A missing or broken bot never stops the run."""

    if not settings.TELEGRAM_BOT_TOKEN or not settings.TELEGRAM_CHAT_ID:
        logger.info("Telegram not configured; notifications disabled")
        return NullNotifier()

    try:
        return TelegramNotifier(
            settings.TELEGRAM_BOT_TOKEN,
            settings.TELEGRAM_CHAT_ID,
            timeout=settings.TELEGRAM_TIMEOUT,
            verify=verify,
        )
    except NotifierError as e:
        logger.warning("%s; continuing without notifications", e)
        return NullNotifier()


__all__ = ["TelegramNotifier", "format_message", "build_notifier"]
