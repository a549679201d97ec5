"""Corporate portal emails: rendering and delivery via the Resend API.

Delivery is best-effort. EmailSender.send_email logs failures and never
raises, so it can run as a FastAPI background task after the response has
already been sent.
"""

from dataclasses import dataclass
from html import escape

import httpx
import structlog

from corporate_auth.core.config import Settings

logger = structlog.get_logger()

_RESEND_API_URL = "https://api.resend.com/emails"
_RESEND_TIMEOUT = 10.0

_BRAND = "Dorset Transfer Company"
_SITE_URL = "https://dorsettransfercompany.co.uk"

LOGIN_SUBJECT = f"Your {_BRAND} Login Link"
RESET_SUBJECT = f"Reset Your Password - {_BRAND}"


@dataclass(frozen=True)
class RenderedEmail:
    """A fully rendered email, ready to hand to EmailSender."""

    to: str
    subject: str
    html: str
    text: str


def describe_ttl(seconds: int) -> str:
    """Render a TTL in the largest whole unit, e.g. ``5 days`` or ``15 minutes``."""
    for unit_seconds, unit in ((86400, "day"), (3600, "hour"), (60, "minute")):
        if seconds >= unit_seconds and seconds % unit_seconds == 0:
            count = seconds // unit_seconds
            return f"{count} {unit}{'s' if count != 1 else ''}"
    return f"{seconds} seconds"


def build_magic_link(portal_url: str, token: str) -> str:
    """Return the portal URL the emailed button points at."""
    return f"{portal_url.rstrip('/')}/verify?token={token}"


def _html_layout(title: str, greeting_name: str, body: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title}</title>
</head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
  <div style="text-align: center; margin-bottom: 30px;">
    <h1 style="color: #1a365d; margin: 0;">{_BRAND}</h1>
    <p style="color: #666; margin: 5px 0;">Corporate Travel Portal</p>
  </div>
  <div style="background: #f7fafc; border-radius: 8px; padding: 30px; margin-bottom: 20px;">
    <h2 style="color: #1a365d; margin-top: 0;">Hello {escape(greeting_name)},</h2>
{body}
  </div>
  <div style="text-align: center; color: #666; font-size: 12px; border-top: 1px solid #e2e8f0; padding-top: 20px;">
    <p>{_BRAND}<br>Professional Airport &amp; Executive Transfers</p>
    <p><a href="{_SITE_URL}" style="color: #2563eb;">dorsettransfercompany.co.uk</a></p>
  </div>
</body>
</html>
"""


def _button(link: str, label: str) -> str:
    return (
        '    <p style="text-align: center; margin: 30px 0;">\n'
        f'      <a href="{escape(link)}" style="background: #2563eb; color: white; '
        "padding: 14px 28px; text-decoration: none; border-radius: 6px; "
        f'display: inline-block; font-weight: bold;">{label}</a>\n'
        "    </p>"
    )


def render_login_email(
    *,
    to: str,
    user_name: str,
    company_name: str,
    magic_link: str,
    ttl_seconds: int,
) -> RenderedEmail:
    """Render the magic link login email.

    Args:
        to: Recipient address.
        user_name: Greeting name.
        company_name: Corporate account name shown in the body.
        magic_link: Full login URL including the token.
        ttl_seconds: Token lifetime, stated in the copy.

    Returns:
        RenderedEmail with HTML and plain-text bodies.
    """
    ttl = describe_ttl(ttl_seconds)
    company = f" ({escape(company_name)})" if company_name else ""
    body = "\n".join(
        [
            f"    <p>You requested a login link for your corporate account{company}.</p>",
            _button(magic_link, "Log In to Your Account"),
            '    <p style="color: #666; font-size: 14px;">'
            f"This link will expire in <strong>{ttl}</strong> and can only be used once.</p>",
            '    <p style="color: #666; font-size: 14px;">'
            "If you didn't request this link, you can safely ignore this email.</p>",
        ]
    )
    text = (
        f"Hello {user_name},\n\n"
        f"Click here to log in to your {_BRAND} corporate account:\n\n"
        f"{magic_link}\n\n"
        f"This link will expire in {ttl}.\n\n"
        "If you did not request this link, please ignore this email.\n\n"
        f"{_BRAND}"
    )
    return RenderedEmail(
        to=to,
        subject=LOGIN_SUBJECT,
        html=_html_layout(f"Login to {_BRAND}", user_name, body),
        text=text,
    )


def render_reset_email(
    *,
    to: str,
    user_name: str,
    company_name: str,
    magic_link: str,
    ttl_seconds: int,
) -> RenderedEmail:
    """Render the password reset email. Arguments match render_login_email."""
    ttl = describe_ttl(ttl_seconds)
    company = f" ({escape(company_name)})" if company_name else ""
    body = "\n".join(
        [
            "    <p>You requested to reset the password for your corporate "
            f"account{company}.</p>",
            _button(magic_link, "Reset Your Password"),
            '    <p style="color: #666; font-size: 14px;">'
            f"This link will expire in <strong>{ttl}</strong> and can only be used once.</p>",
            '    <p style="color: #666; font-size: 14px;">'
            "If you didn't request a password reset, you can safely ignore this email. "
            "Your password will not change.</p>",
        ]
    )
    text = (
        f"Hello {user_name},\n\n"
        f"You requested to reset your password for your {_BRAND} corporate account.\n\n"
        "Click here to reset your password:\n\n"
        f"{magic_link}\n\n"
        f"This link will expire in {ttl}.\n\n"
        "If you did not request this, please ignore this email.\n\n"
        f"{_BRAND}"
    )
    return RenderedEmail(
        to=to,
        subject=RESET_SUBJECT,
        html=_html_layout(f"Reset Your {_BRAND} Password", user_name, body),
        text=text,
    )


class EmailSender:
    """Transactional email client for the Resend HTTP API.

    Args:
        config: Settings providing the sender address and API key.
        transport: Optional httpx transport (tests pass a MockTransport).
    """

    def __init__(
        self,
        config: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._from = config.email_from
        self._api_key = config.resend_api_key
        self._transport = transport

    async def send_email(self, to: str, subject: str, html: str, text: str) -> bool:
        """Send one email.

        Never raises. Returns False (and logs) when no API key is configured
        or the provider rejects the request.
        """
        api_key = self._api_key.get_secret_value()
        if not api_key:
            logger.warning("email_not_configured", to=to, subject=subject)
            return False

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                resp = await client.post(
                    _RESEND_API_URL,
                    headers={"Authorization": f"Bearer {api_key}"},
                    json={
                        "from": self._from,
                        "to": to,
                        "subject": subject,
                        "html": html,
                        "text": text,
                    },
                    timeout=_RESEND_TIMEOUT,
                )
                resp.raise_for_status()
        except Exception:
            logger.warning("email_send_failed", to=to, subject=subject, exc_info=True)
            return False

        logger.info("email_sent", to=to, subject=subject)
        return True

    async def send(self, email: RenderedEmail) -> bool:
        """Send a RenderedEmail. Never raises."""
        return await self.send_email(email.to, email.subject, email.html, email.text)
