import html
import logging
from dataclasses import dataclass

import resend

from app.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class BookingEmailDetails:
    room_name: str
    time: str
    user_name: str


def send_email(to: str, subject: str, html_content: str) -> None:
    """Sends an email using the Resend service."""
    if not settings.RESEND_API_KEY or not settings.RESEND_API_KEY.get_secret_value():
        logger.error("RESEND_API_KEY is not configured or is empty. Cannot send email.")
        raise RuntimeError("Email relay is not configured")

    logger.info(f"Sending email to: {to} with subject: '{subject}' from: {settings.EMAIL_FROM_ADDRESS}")
    try:
        resend.api_key = settings.RESEND_API_KEY.get_secret_value()
        params = {
            "from": settings.EMAIL_FROM_ADDRESS,
            "to": [to],
            "subject": subject,
            "html": html_content,
        }
        email = resend.Emails.send(params)
        logger.info(f"Email sent successfully to {to}. Message ID: {email['id']}")
    except Exception as e:
        logger.error(f"Failed to send email to {to}. Error: {e}")
        raise


def _details_list(details: BookingEmailDetails) -> str:
    return f"""
    <p>Details:</p>
    <ul>
      <li>Room: {html.escape(details.room_name)}</li>
      <li>Time: {html.escape(details.time)}</li>
      <li>User: {html.escape(details.user_name)}</li>
    </ul>
    """


def booking_decision_html(details: BookingEmailDetails, decision: str) -> str:
    """Body for the 'approved' / 'rejected' email sent to the requester."""
    return f"""
    <h1>Booking {decision.capitalize()}</h1>
    <p>Dear {html.escape(details.user_name)},</p>
    <p>Your booking for {html.escape(details.room_name)} at {html.escape(details.time)} has been {decision}.</p>
    {_details_list(details)}
    <p>You can review your reservations at <a href="{settings.FRONTEND_URL}/history">{settings.FRONTEND_URL}/history</a>.</p>
    """


def new_booking_html(details: BookingEmailDetails) -> str:
    return f"""
    <h1>New Booking Request</h1>
    <p>A new booking has been requested.</p>
    {_details_list(details)}
    <p>Review pending requests at <a href="{settings.FRONTEND_URL}/admin/approvals">{settings.FRONTEND_URL}/admin/approvals</a>.</p>
    """
