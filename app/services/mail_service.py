from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage

import resend

from app.core.config import Settings
from app.models.verification_code_models import VerificationPurpose
from app.utils.logger import mask_secret

logger = logging.getLogger(__name__)

SUBJECTS = {
    VerificationPurpose.EMAIL_VERIFY: "Email verification",
    VerificationPurpose.PASSWORD_RESET: "Password reset code",
}


@dataclass(frozen=True)
class CodeNotification:
    email: str
    purpose: VerificationPurpose
    code: str
    token: str


def render_body(notification: CodeNotification, ttl_hours: int) -> str:
    if notification.purpose is VerificationPurpose.PASSWORD_RESET:
        lead = "Your password reset code is"
    else:
        lead = "Your email verification code is"
    return (
        f"{lead} {notification.code}.\n"
        f"Verification token: {notification.token}\n"
        f"It will expire in {ttl_hours} hours."
    )


class Mailer:
    """Sends verification codes via Resend, SMTP, or the log, whichever is configured.

    Fire-and-forget: delivery failures are logged, never raised, and never undo
    the stored code (the principal can ask for a resend).
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def send_code(self, notification: CodeNotification) -> bool:
        subject = SUBJECTS[notification.purpose]
        body = render_body(notification, self.settings.VERIFICATION_CODE_TTL_HOURS)
        try:
            if self.settings.RESEND_API_KEY:
                self._send_resend(notification.email, subject, body)
                logger.info("Sent %s email to %s via Resend", notification.purpose.value, notification.email)
            elif self.settings.SMTP_HOST:
                self._send_smtp(notification.email, subject, body)
                logger.info("Sent %s email to %s", notification.purpose.value, notification.email)
            else:
                logger.info(
                    "Mail transport not configured; %s code for %s (masked=%s)",
                    notification.purpose.value,
                    notification.email,
                    mask_secret(notification.code),
                )
            return True
        except Exception:
            logger.exception("Failed to send %s email to %s", notification.purpose.value, notification.email)
            return False

    def _send_resend(self, to: str, subject: str, body: str) -> None:
        resend.api_key = self.settings.RESEND_API_KEY
        resend.Emails.send(
            {
                "from": self.settings.MAIL_FROM,
                "to": to,
                "subject": subject,
                "text": body,
            }
        )

    def _send_smtp(self, to: str, subject: str, body: str) -> None:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.settings.MAIL_FROM
        msg["To"] = to
        msg.set_content(body)

        with smtplib.SMTP(self.settings.SMTP_HOST, self.settings.SMTP_PORT, timeout=10) as server:
            server.starttls()
            if self.settings.SMTP_USER and self.settings.SMTP_PASS:
                server.login(self.settings.SMTP_USER, self.settings.SMTP_PASS)
            server.send_message(msg)
