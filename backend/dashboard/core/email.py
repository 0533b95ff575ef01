"""Email sending via Resend API.

Simple HTTP POST to Resend for registration emails. Delivery is
best-effort: registration has already been committed when these run, and
a failed send is logged rather than raised.
"""

import html
import logging
from urllib.parse import quote, urlencode

import httpx

from dashboard.core.config import settings

logger = logging.getLogger(__name__)

_RESEND_API_URL = "https://api.resend.com/emails"
_RESEND_TIMEOUT = 10.0

_REGISTRATION_SUBJECT = "Complete Your Registration"


def build_setup_password_url(token: str) -> str:
    """Build the one-time setup link embedded in the registration email.

    Format: ``{base_url}{setup_password_path}?token={token}``.

    Args:
        token: Plain (unhashed) verification token.

    Returns:
        Absolute URL to the password setup page.
    """
    params = urlencode({"token": token}, quote_via=quote)
    return f"{settings.base_url.rstrip('/')}{settings.setup_password_path}?{params}"


def render_registration_email(first_name: str, setup_url: str) -> tuple[str, str]:
    """Render plain-text and HTML bodies for the registration email.

    Args:
        first_name: Recipient's first name for the greeting.
        setup_url: Link produced by build_setup_password_url().

    Returns:
        (text_body, html_body).
    """
    text = (
        f"Hi {first_name},\n\n"
        "Thank you for registering! To complete your registration, please set "
        "up your password by visiting the following link:\n\n"
        f"{setup_url}\n\n"
        "This link will expire in 24 hours for security reasons.\n\n"
        "If you didn't request this registration, please ignore this email."
    )
    safe_name = html.escape(first_name)
    safe_url = html.escape(setup_url, quote=True)
    html_body = (
        f"<h2>Hi {safe_name},</h2>"
        "<p>Thank you for registering! To complete your registration, please "
        "set up your password by clicking the link below:</p>"
        f'<p><a href="{safe_url}">Set Up Your Password</a></p>'
        f"<p>Or copy and paste this link into your browser:<br>{safe_url}</p>"
        "<p><strong>Important:</strong> This link will expire in 24 hours for "
        "security reasons.</p>"
        "<p>If you didn't request this registration, please ignore this email.</p>"
    )
    return text, html_body


async def send_registration_email(
    *, to_email: str, first_name: str, token: str
) -> None:
    """Send the set-up-your-password email via Resend.

    Skips sending (with a warning) when no Resend API key is configured, so
    local development works without an email provider.

    Args:
        to_email: Recipient email address.
        first_name: Recipient's first name.
        token: Plain (unhashed) verification token.
    """
    api_key = settings.resend_api_key.get_secret_value()
    if not api_key:
        logger.warning("Email not configured; registration email not sent")
        return

    text, html_body = render_registration_email(
        first_name, build_setup_password_url(token)
    )

    try:
        async with httpx.AsyncClient() as client:
            resp = await client.post(
                _RESEND_API_URL,
                headers={"Authorization": f"Bearer {api_key}"},
                json={
                    "from": f"{settings.email_from_name} <{settings.email_from}>",
                    "to": to_email,
                    "subject": _REGISTRATION_SUBJECT,
                    "text": text,
                    "html": html_body,
                },
                timeout=_RESEND_TIMEOUT,
            )
            resp.raise_for_status()
    except Exception:
        # Never log the link itself: it carries the token
        logger.warning("Failed to send registration email", exc_info=True)
