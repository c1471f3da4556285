import logging
import os
import smtplib
from email.mime.text import MIMEText
from email.utils import formataddr

from . import models

logger = logging.getLogger(__name__)

SMTP_HOST = os.getenv("SMTP_HOST", "localhost")
SMTP_PORT = int(os.getenv("SMTP_PORT", "25"))
SMTP_USER = os.getenv("SMTP_USER")
SMTP_PASS = os.getenv("SMTP_PASS")
SMTP_FROM = os.getenv("SMTP_FROM", "no-reply@reservations.local")
SMTP_FROM_NAME = os.getenv("SMTP_FROM_NAME", "Reservations")


def _send_mail(to: str, subject: str, body: str) -> bool:
    msg = MIMEText(body)
    msg["Subject"] = subject
    msg["From"] = formataddr((SMTP_FROM_NAME, SMTP_FROM))
    msg["To"] = to
    try:
        with smtplib.SMTP(SMTP_HOST, SMTP_PORT, timeout=10) as s:
            if SMTP_USER and SMTP_PASS:
                s.starttls()
                s.login(SMTP_USER, SMTP_PASS)
            s.sendmail(SMTP_FROM, [to], msg.as_string())
        return True
    except (OSError, smtplib.SMTPException) as e:
        logger.warning("Could not send mail to %s: %s", to, e)
        return False


def send_confirmation_email(booking: models.Booking) -> bool:
    """Best-effort: if an email is on file, try to send a confirmation.
    Never raises; returns False if sending fails.
    """
    to = (booking.customer_email or "").strip()
    if not to:
        return False
    table = booking.table.number if booking.table else "to be assigned"
    body = (
        f"Hello {booking.customer_name},\n\n"
        f"Your booking {booking.booking_number} is confirmed.\n"
        f"Date & Time: {booking.date.isoformat()} {booking.time}\n"
        f"Guests: {booking.guests}\n"
        f"Table: {table}\n\n"
        f"We look forward to seeing you!\n"
    )
    return _send_mail(to, f"Booking {booking.booking_number} confirmed", body)
