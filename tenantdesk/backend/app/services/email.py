# backend/app/services/email.py
from __future__ import annotations

import logging
import smtplib
from datetime import datetime
from email.message import EmailMessage
from typing import Optional

from ..config import settings

log = logging.getLogger("tenantdesk.email")


def smtp_is_configured() -> bool:
    return bool(settings.smtp_host and settings.smtp_from)


def send_email(to_email: str, subject: str, body: str, *, html: Optional[str] = None) -> tuple[bool, str]:
    """
    Sends one message. Never raises: returns (ok, error) so batch jobs can
    count failures and move on.
    """
    if not smtp_is_configured():
        return False, "SMTP not configured"
    if not to_email:
        return False, "missing recipient"

    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = settings.smtp_from
    msg["To"] = to_email
    msg.set_content(body)
    if html:
        msg.add_alternative(html, subtype="html")

    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as smtp:
            if settings.smtp_use_tls:
                smtp.starttls()
            if settings.smtp_user:
                smtp.login(settings.smtp_user, settings.smtp_password or "")
            smtp.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        log.warning("email send failed", extra={"action": "email_send"})
        return False, str(e)[:400]
    return True, ""


# -------------------------
# Message builders: (subject, body)
# -------------------------
def _link(path: str) -> str:
    return f"{settings.public_base_url.rstrip('/')}{path}"


def subscription_ending_email(*, plan_name: Optional[str], days_remaining: int) -> tuple[str, str]:
    subject = f"Your subscription {plan_name or ''} is ending soon".replace("  ", " ")
    body = (
        f"Your subscription ends in {days_remaining} day(s).\n"
        f"Renew it to keep access to your buildings and tenants:\n{_link('/dashboard/account/billing')}\n"
    )
    return subject, body


def subscription_ending_support_email(
    *, plan_name: Optional[str], client_email: str, days_remaining: int
) -> tuple[str, str]:
    subject = f"Subscription {plan_name or ''} ending soon".replace("  ", " ")
    body = (
        f"The subscription for client {client_email} is about to end.\n"
        f"It ends in {days_remaining} day(s). Make sure to follow up with them.\n"
    )
    return subject, body


def calendar_reminder_email(
    *, title: str, description: Optional[str], starts_at: datetime, minutes_remaining: int
) -> tuple[str, str]:
    subject = f"Reminder: {title}"
    lines = [
        "An event in your building is coming up.",
        title,
        f"Starts at: {starts_at.strftime('%Y-%m-%d %H:%M')} UTC",
        f"Starts in {minutes_remaining} minutes.",
    ]
    if description:
        lines.append(f"Description: {description}")
    lines.append(_link("/dashboard/calendar/"))
    return subject, "\n".join(lines) + "\n"


def incident_created_email(*, title: str, building_label: str, priority: str, incident_id: int) -> tuple[str, str]:
    subject = f"Emergency incident reported: {title}"
    body = (
        f"A new emergency incident was reported in {building_label}.\n"
        f"Priority: {priority}\n"
        f"{_link(f'/dashboard/service-requests/{incident_id}')}\n"
    )
    return subject, body


def notification_digest_email(*, titles: list[str]) -> tuple[str, str]:
    if len(titles) == 1:
        subject = titles[0]
    else:
        subject = f"You have {len(titles)} new notifications"
    body = "\n".join(f"- {t}" for t in titles) + f"\n\n{_link('/dashboard/notifications')}\n"
    return subject, body
