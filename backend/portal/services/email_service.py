"""
Outbound email via Resend.

Used for meeting invitations. Callers decide whether a failure matters;
the booking flow treats it as best-effort.
"""

import asyncio
import html
import logging
import os
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import resend

from portal.core.timeutils import scheduling_timezone

logger = logging.getLogger(__name__)

RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "TBB Portal <noreply@tbbportal.com>")

resend.api_key = RESEND_API_KEY


@dataclass
class MeetingDetails:
    title: str
    start_time: datetime
    end_time: datetime
    google_meet_link: Optional[str] = None


def meeting_invitation_template(recipient_name: str, details: MeetingDetails) -> str:
    tz = scheduling_timezone()
    start = details.start_time.astimezone(tz)
    end = details.end_time.astimezone(tz)
    link_row = ""
    if details.google_meet_link:
        link_row = (
            f'<p><strong>Google Meet Link:</strong> '
            f'<a href="{html.escape(details.google_meet_link)}" style="color: #007bff;">Join Meeting</a></p>'
        )

    return f"""
      <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
        <h2 style="color: #333;">Meeting Invitation</h2>
        <p>Hello {html.escape(recipient_name)},</p>
        <p>Your meeting has been scheduled successfully!</p>

        <div style="background-color: #f5f5f5; padding: 20px; border-radius: 8px; margin: 20px 0;">
          <h3 style="margin-top: 0;">Meeting Details</h3>
          <p><strong>Title:</strong> {html.escape(details.title)}</p>
          <p><strong>Date:</strong> {start.strftime("%A %d %b %Y")}</p>
          <p><strong>Time:</strong> {start.strftime("%I:%M %p")} - {end.strftime("%I:%M %p")} ({tz.key})</p>
          {link_row}
        </div>

        <p>Please make sure to join the meeting on time. If you need to reschedule, please contact us at least 2 hours before the meeting.</p>

        <p>Best regards,<br>The TBB Team</p>
      </div>
    """


class EmailService:
    def __init__(self, from_address: Optional[str] = None):
        self.from_address = from_address or EMAIL_FROM_ADDRESS

    async def send_email(self, to: str, subject: str, html_content: str) -> dict:
        """Send one HTML email. Raises on any delivery failure."""
        if not RESEND_API_KEY:
            logger.error("RESEND_API_KEY not configured. Email not sent.")
            raise RuntimeError("Email service not configured")

        logger.info(f"Sending email via Resend to: {to}")
        response = await asyncio.to_thread(
            resend.Emails.send,
            {
                "from": self.from_address,
                "to": [to],
                "subject": subject,
                "html": html_content,
            },
        )
        logger.info(f"Email sent to {to}, subject: '{subject}'")
        return response

    async def send_meeting_invitation(
        self,
        recipient_email: str,
        recipient_name: str,
        details: MeetingDetails,
    ) -> dict:
        return await self.send_email(
            recipient_email,
            f"Meeting scheduled: {details.title}",
            meeting_invitation_template(recipient_name, details),
        )


email_service = EmailService()
