from html import escape
from typing import NamedTuple, Optional


class EmailTemplate(NamedTuple):
    subject: str
    html: str


def share_email(document_title: str, sender_name: str, permission: str, message: Optional[str] = None) -> EmailTemplate:
    """Письмо о том, что с получателем поделились документом"""
    subject = f"{sender_name} shared a document with you"
    note = f"<p>Message: {escape(message)}</p>" if message else ""
    html = (
        "<h2>Document Shared</h2>"
        f"<p>{escape(sender_name)} has shared the document \"{escape(document_title)}\" with you.</p>"
        f"{note}"
        f"<p>You can access the document with {escape(permission)} permissions.</p>"
    )
    return EmailTemplate(subject, html)


def welcome_email(name: str) -> EmailTemplate:
    return EmailTemplate(
        "Welcome to EditSync!",
        f"<h2>Welcome, {escape(name)}!</h2>"
        "<p>Thank you for registering at EditSync. We're excited to have you on board.</p>"
    )


def password_reset_email(frontend_url: str, token: str, expire_minutes: int) -> EmailTemplate:
    reset_url = f"{frontend_url.rstrip('/')}/reset-password?token={token}"
    return EmailTemplate(
        "Password Reset Request",
        "<h2>Password Reset Request</h2>"
        f"<p>Click the link below to reset your password. This link will expire in {expire_minutes} minutes.</p>"
        f"<a href=\"{reset_url}\">Reset Password</a>"
        "<p>If you did not request this, please ignore this email.</p>"
    )
