"""
Email service for sending invitation and account notification emails.
Uses Postmark HTTP API for email delivery.

Every send returns a bool and never raises: callers treat email as a
side effect that must not undo a committed operation.
"""

import httpx
import logging
from typing import Optional
from html import escape
from config import settings

logger = logging.getLogger(__name__)

EMAIL_STYLE = """
        body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; margin: 0; padding: 20px; background: #f9fafb; }
        .container { max-width: 600px; margin: 0 auto; background: white; padding: 30px; border-radius: 8px; }
        .header { text-align: center; border-bottom: 2px solid #0F766E; padding-bottom: 20px; margin-bottom: 20px; }
        .header h1 { margin: 0; font-size: 26px; color: #0F766E; }
        .code { background: #e5e7eb; padding: 12px; border-radius: 4px; font-family: 'Courier New', monospace; font-size: 22px; letter-spacing: 4px; margin: 10px 0; text-align: center; }
        .note { background: #fef3c7; border-left: 4px solid #f59e0b; padding: 12px; margin: 20px 0; border-radius: 4px; }
        .footer { text-align: center; padding: 20px; color: #6b7280; font-size: 12px; margin-top: 30px; border-top: 1px solid #e5e7eb; }
"""


def _wrap_html(title: str, body: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <style>{EMAIL_STYLE}</style>
</head>
<body>
    <div class="container">
        <div class="header">
            <h1>{title}</h1>
        </div>
        {body}
        <div class="footer">
            <p>{escape(settings.APP_NAME)}</p>
            <p>This is an automated message, please do not reply to this email.</p>
        </div>
    </div>
</body>
</html>"""


def generate_invitation_html(
    business_name: str,
    invited_by: str,
    code: str,
    expires_in_days: int,
    message: Optional[str] = None
) -> str:
    """Generate HTML email for a business invitation"""

    # Escape user-provided content to prevent HTML injection
    business_name = escape(business_name)
    invited_by = escape(invited_by)
    note = f'<div class="note"><p style="margin: 0;">{escape(message)}</p></div>' if message else ""

    body = f"""
        <p><strong>{invited_by}</strong> has invited you to join <strong>{business_name}</strong>.</p>
        {note}
        <p>Sign in and enter this invitation code to accept:</p>
        <div class="code">{code}</div>
        <p style="font-size: 14px; color: #6b7280;">The code is valid for {expires_in_days} days.</p>
        <p>Login: <a href="{settings.FRONTEND_URL}">{settings.FRONTEND_URL}</a></p>
    """
    return _wrap_html(f"Invitation to {business_name}", body)


def generate_invitation_plain(
    business_name: str,
    invited_by: str,
    code: str,
    expires_in_days: int,
    message: Optional[str] = None
) -> str:
    """Generate plain text email for a business invitation (fallback)"""
    note = f"\nMessage from {invited_by}:\n{message}\n" if message else ""

    return f"""Invitation to {business_name}

{invited_by} has invited you to join {business_name}.
{note}
Sign in and enter this invitation code to accept: {code}
The code is valid for {expires_in_days} days.

Login: {settings.FRONTEND_URL}
"""


def generate_reset_code_html(full_name: str, code: str, expires_in_minutes: int) -> str:
    """Generate HTML email for a password reset code"""
    full_name = escape(full_name)

    body = f"""
        <p>Hello <strong>{full_name}</strong>,</p>
        <p>We received a request to reset your password. Use this code to continue:</p>
        <div class="code">{code}</div>
        <div class="note">
            <p style="margin: 0;">This code expires in {expires_in_minutes} minutes. If you didn't request a password reset, you can ignore this email.</p>
        </div>
    """
    return _wrap_html("Password Reset Request", body)


def generate_reset_code_plain(full_name: str, code: str, expires_in_minutes: int) -> str:
    return f"""Password Reset Request

Hello {full_name},

We received a request to reset your password. Use this code to continue: {code}

This code expires in {expires_in_minutes} minutes. If you didn't request a password reset, you can ignore this email.
"""


def generate_account_created_html(full_name: str, email: str, temp_password: str) -> str:
    """Generate HTML email for an account created on the user's behalf"""
    full_name = escape(full_name)
    email = escape(email)

    body = f"""
        <p>Hello <strong>{full_name}</strong>,</p>
        <p>An account has been created for you. Sign in with:</p>
        <p><strong>Email:</strong> {email}</p>
        <p><strong>Temporary password:</strong></p>
        <div class="code">{temp_password}</div>
        <div class="note">
            <p style="margin: 0;">Please change your password immediately after your first login.</p>
        </div>
        <p>Login: <a href="{settings.FRONTEND_URL}">{settings.FRONTEND_URL}</a></p>
    """
    return _wrap_html("Your account is ready", body)


def generate_account_created_plain(full_name: str, email: str, temp_password: str) -> str:
    return f"""Your account is ready

Hello {full_name},

An account has been created for you. Sign in with:

Email: {email}
Temporary password: {temp_password}

Please change your password immediately after your first login.

Login: {settings.FRONTEND_URL}
"""


class EmailService:
    """Async email service using Postmark HTTP API"""

    POSTMARK_API_URL = "https://api.postmarkapp.com/email"

    def __init__(self):
        self.server_token = settings.POSTMARK_SERVER_TOKEN
        self.from_email = settings.POSTMARK_FROM_EMAIL
        self.from_name = settings.POSTMARK_FROM_NAME
        self.enabled = settings.POSTMARK_ENABLED
        self.test_mode = settings.EMAIL_TEST_MODE

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        plain_content: str
    ) -> bool:
        """
        Send email via Postmark HTTP API.

        Args:
            to_email: Recipient email address
            subject: Email subject line
            html_content: HTML version of email
            plain_content: Plain text fallback

        Returns:
            True if email sent successfully, False otherwise
        """

        # Test mode - log email instead of sending
        if self.test_mode:
            logger.info(f"[TEST MODE] Email to {to_email}: {subject}\n{plain_content}")
            return True

        if not self.enabled:
            logger.info(f"Postmark disabled - email not sent to {to_email}")
            return False

        if not self.server_token:
            logger.error(f"POSTMARK_SERVER_TOKEN not configured - email not sent to {to_email}")
            return False

        try:
            headers = {
                "Accept": "application/json",
                "Content-Type": "application/json",
                "X-Postmark-Server-Token": self.server_token
            }

            payload = {
                "From": f"{self.from_name} <{self.from_email}>",
                "To": to_email,
                "Subject": subject,
                "HtmlBody": html_content,
                "TextBody": plain_content,
                "MessageStream": "outbound"
            }

            async with httpx.AsyncClient() as client:
                response = await client.post(
                    self.POSTMARK_API_URL,
                    headers=headers,
                    json=payload,
                    timeout=30.0
                )

                if response.status_code == 200:
                    logger.info(f"Email sent successfully to {to_email}")
                    return True
                else:
                    logger.error(f"Postmark API error for {to_email}: {response.status_code} - {response.text}")
                    return False

        except httpx.TimeoutException:
            logger.error(f"Timeout sending email to {to_email}")
            return False

        except httpx.HTTPError as e:
            logger.error(f"Failed to send email to {to_email}: {str(e)}")
            return False

    async def send_invitation_email(
        self,
        to_email: str,
        business_name: str,
        invited_by: str,
        code: str,
        message: Optional[str] = None
    ) -> bool:
        """Send an invitation code to the invitee"""
        expires_in_days = settings.INVITATION_EXPIRE_DAYS

        return await self.send_email(
            to_email=to_email,
            subject=f"You're invited to join {business_name}",
            html_content=generate_invitation_html(business_name, invited_by, code, expires_in_days, message),
            plain_content=generate_invitation_plain(business_name, invited_by, code, expires_in_days, message)
        )

    async def send_password_reset_code(self, to_email: str, full_name: str, code: str) -> bool:
        """Send the 6-digit password reset code"""
        expires_in_minutes = settings.RESET_CODE_EXPIRE_MINUTES

        return await self.send_email(
            to_email=to_email,
            subject=f"Password Reset Code - {settings.APP_NAME}",
            html_content=generate_reset_code_html(full_name, code, expires_in_minutes),
            plain_content=generate_reset_code_plain(full_name, code, expires_in_minutes)
        )

    async def send_account_created_email(self, to_email: str, full_name: str, temp_password: str) -> bool:
        """Send login details for an account created by an administrator"""
        return await self.send_email(
            to_email=to_email,
            subject=f"Your {settings.APP_NAME} account",
            html_content=generate_account_created_html(full_name, to_email, temp_password),
            plain_content=generate_account_created_plain(full_name, to_email, temp_password)
        )


def get_email_service() -> EmailService:
    """Dependency providing the notifier used by the services"""
    return EmailService()
