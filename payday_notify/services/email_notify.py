"""
Send notification e-mails via SMTP (Google Gmail or other).
Set SMTP_USER, SMTP_PASSWORD in .env. Use a Gmail App Password (not your normal password).
The recipient address comes from the user's profile.
"""
import logging
import smtplib
from concurrent.futures import Executor
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from typing import Callable

from payday_notify.config import Settings, settings as default_settings
from payday_notify.services.repository import NotificationRepository
from payday_notify.services.types import Channel, Notification

logger = logging.getLogger(__name__)


def _from_address(cfg: Settings) -> str:
    if cfg.notify_from:
        return cfg.notify_from
    if cfg.smtp_user:
        return f"SplitSave <{cfg.smtp_user}>"
    return "SplitSave <noreply@localhost>"


def send_notification_email(to_email: str, notification: Notification, *, cfg: Settings | None = None) -> bool:
    """
    Send one notification as a plain-text + HTML e-mail via SMTP.
    Returns True if sent, False if skipped (no address / SMTP not configured) or failed.
    """
    cfg = cfg or default_settings
    to_email = (to_email or "").strip()
    if not to_email:
        return False
    if not cfg.smtp_user or not cfg.smtp_password:
        logger.debug("SMTP_USER or SMTP_PASSWORD not set; skipping email notify")
        return False
    lines = [notification.message]
    if notification.action_url:
        lines += ["", f"Open: {notification.action_url}"]
    body = "\n".join(lines)
    msg = MIMEMultipart("alternative")
    msg["Subject"] = notification.title
    msg["From"] = _from_address(cfg)
    msg["To"] = to_email
    msg.attach(MIMEText(body, "plain"))
    msg.attach(MIMEText(f"<pre style='font-family:sans-serif'>{escape(body)}</pre>", "html"))
    try:
        with smtplib.SMTP(cfg.smtp_host, cfg.smtp_port, timeout=10) as server:
            server.starttls()
            server.login(cfg.smtp_user, cfg.smtp_password)
            server.sendmail(cfg.smtp_user, [to_email], msg.as_string())
        logger.info("Email sent to %s for notification %s", to_email, notification.id)
        return True
    except Exception as e:
        logger.exception("Failed to send notification email: %s", e)
        return False


class EmailChannel:
    """
    E-mail delivery. With an executor the send is fire-and-forget: send() returns once the
    message is queued and SMTP failures are only logged.
    """

    name = Channel.EMAIL

    def __init__(
        self,
        repository: NotificationRepository,
        *,
        sender: Callable[[str, Notification], bool] = send_notification_email,
        executor: Executor | None = None,
    ):
        self.repository = repository
        self._sender = sender
        self._executor = executor

    def _address(self, user_id: str) -> str | None:
        profile = self.repository.get_profile(user_id)
        if profile is None:
            return None
        return (profile.email or "").strip() or None

    def _send_logged(self, to_email: str, notification: Notification) -> bool:
        try:
            return self._sender(to_email, notification)
        except Exception as e:
            logger.exception("Email send for %s failed: %s", notification.id, e)
            return False

    def send(self, notification: Notification) -> bool:
        to_email = self._address(notification.user_id)
        if not to_email:
            logger.debug("No email address for user %s; skipping email", notification.user_id)
            return False
        if self._executor is not None:
            self._executor.submit(self._send_logged, to_email, notification)
            return True
        return self._sender(to_email, notification)
