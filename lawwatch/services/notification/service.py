"""
Notification Dispatch Service

Delivers persisted monitoring notifications over the enabled channels.
Delivery is attempted once per notification; failures are reported back to
the caller, which logs them and moves on.
"""

import asyncio
import re
import smtplib
from email.message import EmailMessage
from typing import Callable, Dict, List, Optional

from lawwatch.core.config import NotificationSettings, settings
from lawwatch.core.domain.entities import Notification, NotificationPreferences
from lawwatch.core.enums import NotificationChannel, NotificationType
from lawwatch.core.exceptions import NotificationDispatchError, ErrorCode
from lawwatch.core.logging_config import get_logger
from lawwatch.core.result import Result, Ok, Err

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_valid_email(address: Optional[str]) -> bool:
    return bool(address) and EMAIL_PATTERN.match(address) is not None

# ======================== NOTIFICATION DISPATCHER ========================

class NotificationDispatcher:
    """
    Channel-based notification delivery.

    Features:
    - LOG channel (always available)
    - EMAIL channel over SMTP to the monitoring's address, or one resolved per user
    - Per-monitoring email opt-out
    - Per-channel outcome reporting
    """

    def __init__(
        self,
        config: Optional[NotificationSettings] = None,
        recipient_resolver: Optional[Callable[[str], Optional[str]]] = None
    ):
        self.config = config or settings.notification
        self.recipient_resolver = recipient_resolver
        self.logger = get_logger(__name__)

        self.channels = {
            NotificationChannel.EMAIL: self._send_email_notification,
            NotificationChannel.LOG: self._send_log_notification,
        }

        self.enabled_channels: List[NotificationChannel] = [
            NotificationChannel(name.upper()) for name in self.config.enabled_channels
        ]

    # ======================== MAIN DISPATCH METHOD ========================

    async def dispatch(
        self,
        notification: Notification,
        preferences: Optional[NotificationPreferences] = None
    ) -> Result[Dict[str, str]]:
        """
        Deliver ``notification`` over every enabled channel.

        EMAIL is skipped when ``preferences`` opt out of email.

        Returns:
            Ok with per-channel status when every channel succeeded, otherwise
            Err naming the failed channels
        """
        outcome: Dict[str, str] = {}
        failures: List[str] = []

        for channel in self.enabled_channels:
            handler = self.channels.get(channel)
            if handler is None:
                continue
            if channel is NotificationChannel.EMAIL and preferences is not None and not preferences.email:
                outcome[channel.value] = "skipped"
                continue
            try:
                await handler(notification, preferences)
                outcome[channel.value] = "sent"
            except NotificationDispatchError as e:
                outcome[channel.value] = "failed"
                failures.append(f"{channel.value}: {e.message}")

        if failures:
            return Err(
                f"Notification {notification.id} delivery failed ({'; '.join(failures)})",
                ErrorCode.NOTIFICATION_ERROR
            )

        self.logger.info(
            f"Notification dispatched: {notification.title}",
            extra={"notification_id": notification.id, "channels": outcome}
        )
        return Ok(outcome)

    # ======================== MESSAGE FORMATTING ========================

    def format_message(self, notification: Notification) -> str:
        diff = notification.diff
        return (
            f"{notification.title}\n\n"
            f"{notification.summary}\n\n"
            f"Detected: {diff.detected_at.strftime('%Y-%m-%d %H:%M:%S UTC')}\n"
            f"Categories: {', '.join(diff.summary.affected_categories) or '-'}\n"
        )

    @staticmethod
    def _email_subject(notification: Notification) -> str:
        prefix = {
            NotificationType.IMMEDIATE: "[LawWatch]",
            NotificationType.DAILY_SUMMARY: "[LawWatch Daily]",
            NotificationType.WEEKLY_SUMMARY: "[LawWatch Weekly]",
        }[notification.notification_type]
        return f"{prefix} {notification.title}"

    # ======================== CHANNEL IMPLEMENTATIONS ========================

    async def _send_log_notification(
        self,
        notification: Notification,
        preferences: Optional[NotificationPreferences] = None
    ) -> None:
        self.logger.info(
            f"NOTIFICATION ({notification.notification_type.value}):\n{self.format_message(notification)}",
            extra={"notification_id": notification.id, "user_id": notification.user_id}
        )

    async def _send_email_notification(
        self,
        notification: Notification,
        preferences: Optional[NotificationPreferences] = None
    ) -> None:
        recipient = self._recipient_for(notification, preferences)
        if not is_valid_email(recipient):
            raise NotificationDispatchError(
                f"No valid email address for user {notification.user_id}",
                channel=NotificationChannel.EMAIL.value
            )
        if not is_valid_email(self.config.from_address):
            raise NotificationDispatchError(
                f"Invalid sender address: {self.config.from_address}",
                channel=NotificationChannel.EMAIL.value
            )

        message = EmailMessage()
        message['Subject'] = self._email_subject(notification)
        message['From'] = self.config.from_address
        message['To'] = recipient
        message.set_content(self.format_message(notification))

        try:
            await asyncio.to_thread(self._deliver_smtp, message)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationDispatchError(
                f"SMTP delivery to {recipient} failed: {e}",
                channel=NotificationChannel.EMAIL.value,
                cause=e
            ) from e

    def _recipient_for(
        self,
        notification: Notification,
        preferences: Optional[NotificationPreferences]
    ) -> Optional[str]:
        if preferences is not None and preferences.email_address:
            return preferences.email_address
        if self.recipient_resolver is not None:
            return self.recipient_resolver(notification.user_id)
        return None

    def _deliver_smtp(self, message: EmailMessage) -> None:
        with smtplib.SMTP(
            self.config.smtp_host,
            self.config.smtp_port,
            timeout=self.config.smtp_timeout_seconds
        ) as server:
            if self.config.smtp_use_tls:
                server.starttls()
            if self.config.smtp_user and self.config.smtp_password:
                server.login(self.config.smtp_user, self.config.smtp_password.get_secret_value())
            server.send_message(message)
