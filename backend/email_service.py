"""
Email service for sending transactional emails via a Postmark-style HTTP API.
"""
import asyncio
import logging
from typing import Optional

import httpx

from config import get_settings
from models import SubscriberEmail

logger = logging.getLogger(__name__)

AUTHORIZATION_HEADER = "X-Postmark-Server-Token"


class EmailDispatchError(Exception):
    """Raised when the email provider did not accept a message."""


class EmailClient:
    """
    Client for the transactional email provider.

    Holds one httpx.AsyncClient so connections are reused across sends.
    `timeout` caps each whole send, from connect to the last byte of the
    response; there are no retries.
    """

    def __init__(
        self,
        base_url: str,
        sender: str,
        authorization_token: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.sender = sender
        self.email_url = f"{base_url.rstrip('/')}/email"
        self.timeout = timeout
        self._authorization_token = authorization_token
        self._http_client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def send_email(
        self,
        recipient: str,
        subject: str,
        html_body: str,
        text_body: str,
    ) -> None:
        """
        Send a single email.

        Raises:
            EmailDispatchError: On a non-2xx response, transport error or timeout.
        """
        payload = {
            "From": self.sender,
            "To": recipient,
            "Subject": subject,
            "HtmlBody": html_body,
            "TextBody": text_body,
        }

        try:
            # httpx timeouts apply per phase, so bound the whole request here
            response = await asyncio.wait_for(
                self._http_client.post(
                    self.email_url,
                    json=payload,
                    headers={
                        AUTHORIZATION_HEADER: self._authorization_token,
                        "Content-Type": "application/json",
                    },
                ),
                timeout=self.timeout,
            )
            response.raise_for_status()
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            logger.error(f"Email provider timed out sending to {recipient}")
            raise EmailDispatchError(f"Timed out sending email to {recipient}") from e
        except httpx.HTTPStatusError as e:
            logger.error(f"Email provider returned {e.response.status_code} for {recipient}")
            raise EmailDispatchError(
                f"Email provider returned {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Error sending email to {recipient}: {str(e)}")
            raise EmailDispatchError(f"Failed to send email to {recipient}: {e}") from e

        logger.info(f"Email sent successfully to {recipient}")

    async def aclose(self) -> None:
        await self._http_client.aclose()


# Shared client for the application
_email_client: Optional[EmailClient] = None


def get_email_client() -> EmailClient:
    """
    Get or create the email client singleton from settings.

    Raises:
        SubscriberValidationError: If the configured sender is not a valid address.
    """
    global _email_client
    if _email_client is None:
        settings = get_settings()
        sender = SubscriberEmail.parse(settings.email_sender)
        _email_client = EmailClient(
            base_url=settings.email_base_url,
            sender=sender,
            authorization_token=settings.email_authorization_token,
            timeout=settings.email_timeout_seconds,
        )
    return _email_client


async def close_email_client() -> None:
    """Close the email client singleton, if one was created."""
    global _email_client
    if _email_client is not None:
        await _email_client.aclose()
        _email_client = None


def build_confirmation_link(base_url: str, subscription_token: str) -> str:
    """Build the link a subscriber follows to confirm their subscription."""
    return f"{base_url.rstrip('/')}/subscriptions/confirm?subscription_token={subscription_token}"


async def send_confirmation_email(
    client: EmailClient,
    recipient: str,
    name: str,
    confirmation_link: str,
) -> None:
    """Send the subscription confirmation email."""
    subject = "Welcome! Please confirm your subscription"

    html_body = f"""
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset="utf-8">
        <title>Confirm your subscription</title>
    </head>
    <body style="margin: 0; padding: 0; font-family: 'Helvetica Neue', Arial, sans-serif; color: #333;">
        <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
            <h2 style="margin-top: 0;">Hi {name},</h2>
            <p>Thanks for subscribing to our newsletter!</p>
            <p>Click <a href="{confirmation_link}">here</a> to confirm your subscription.</p>
            <p style="color: #999; font-size: 12px;">If you did not sign up, you can ignore this email.</p>
        </div>
    </body>
    </html>
    """

    text_body = (
        f"Hi {name},\n\n"
        "Thanks for subscribing to our newsletter!\n"
        f"Visit {confirmation_link} to confirm your subscription.\n\n"
        "If you did not sign up, you can ignore this email.\n"
    )

    await client.send_email(recipient, subject, html_body, text_body)
