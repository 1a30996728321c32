# inkbook/services/email_notifier.py
from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage

from inkbook.core.config import get_settings
from inkbook.schemas.booking import BookingNotice

logger = logging.getLogger(__name__)


def build_booking_request_email_body(notice: BookingNotice) -> str:
    """
    Plain-text body asking the client to confirm the booked dates and pay
    the deposit.
    """
    lines: list[str] = []

    lines.append(f"Hi {notice.client_name},")
    lines.append("")
    artist = notice.artist_name or "Your artist"
    lines.append(f"{artist} has booked the following sessions for \"{notice.title}\":")
    lines.append("")

    for s in notice.sessions:
        lines.append(
            f"- {s.date.strftime('%a, %b %d %Y')}: {s.start_time.label} - {s.end_time.label}"
        )

    lines.append("")
    if notice.location_name:
        lines.append(f"Location: {notice.location_name}")
    lines.append(f"Session rate: {notice.session_rate:.2f}")
    lines.append(f"Deposit due to confirm: {notice.deposit_amount:.2f}")
    if notice.notes:
        lines.append("")
        lines.append(f"Notes: {notice.notes}")

    lines.append("")
    lines.append("Regards,")
    lines.append(artist)

    return "\n".join(lines)


def send_booking_request_email(notice: BookingNotice, subject: str | None = None) -> bool:
    """
    Send the booking request to the client via SMTP.

    Returns
    -------
    bool
        True if the message was handed to the SMTP server.
        False if email is not configured or sending failed (logged).
    """
    settings = get_settings()

    if not notice.client_email:
        return False

    if not settings.SMTP_HOST or not settings.SMTP_FROM_ADDRESS:
        # Email system not configured
        logger.info("SMTP not configured; skipping booking email to %s", notice.client_email)
        return False

    if subject is None:
        subject = f"[{settings.APP_NAME}] Booking request: {notice.title}"

    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = settings.SMTP_FROM_ADDRESS
    msg["To"] = notice.client_email
    msg.set_content(build_booking_request_email_body(notice))

    try:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as smtp:
            if settings.SMTP_USE_TLS:
                smtp.starttls()
            if settings.SMTP_USERNAME and settings.SMTP_PASSWORD:
                smtp.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
            smtp.send_message(msg)
        return True
    except (smtplib.SMTPException, OSError) as exc:
        # The booking is already committed; a failed email never undoes it.
        logger.warning("Failed to send booking email to %s: %s", notice.client_email, exc)
        return False
