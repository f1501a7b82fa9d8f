"""
Transactional email for the storefront.

This module provides:
- EmailSender protocol with two implementations:
  - ConsoleEmailSender: logs messages instead of sending (development/tests)
  - ResendEmailSender: delivers through the Resend HTTP API via httpx
- EmailService: renders the pt-BR verification, password reset and
  new-customer notification messages

Senders raise on delivery failure. Callers run them as follow-up actions,
which log and swallow the error so the primary request still succeeds.
"""

import html
import logging
from dataclasses import dataclass
from typing import Protocol
from urllib.parse import urlencode

import httpx

from storefront.core.config import Settings

logger = logging.getLogger(__name__)

BRAND = "ZK REZK"


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    html: str


class EmailDeliveryError(Exception):
    """Raised when the email provider rejects or cannot receive a message."""


class EmailSender(Protocol):
    async def send(self, message: EmailMessage) -> None:
        """Deliver one message or raise EmailDeliveryError."""
        ...


class ConsoleEmailSender:
    """Writes messages to the log. Nothing leaves the process."""

    async def send(self, message: EmailMessage) -> None:
        logger.info(f"[console email] to={message.to} subject={message.subject!r}")
        logger.debug(message.html)


class ResendEmailSender:
    """
    Sends messages through the Resend REST API.

    Args:
        api_key: Resend API key
        from_address: Sender, e.g. "ZK REZK <noreply@zkrezk.com>"
        api_url: Endpoint for POSTing emails
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        api_key: str,
        from_address: str,
        api_url: str = "https://api.resend.com/emails",
        timeout: float = 10.0,
    ):
        self.api_key = api_key
        self.from_address = from_address
        self.api_url = api_url
        self.timeout = timeout

    async def send(self, message: EmailMessage) -> None:
        payload = {
            "from": self.from_address,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.api_url,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise EmailDeliveryError(f"Resend delivery to {message.to} failed: {e}") from e

        logger.info(f"Email sent via Resend to {message.to}: {message.subject!r}")


def _layout(title: str, body: str) -> str:
    return f"""<!DOCTYPE html>
<html>
  <head><meta charset="utf-8"></head>
  <body style="font-family: 'Helvetica Neue', Arial, sans-serif; background: #f5f5f5; padding: 40px 20px;">
    <div style="max-width: 500px; margin: 0 auto; background: #fff; border: 1px solid #e0e0e0;">
      <div style="background: #000; color: #fff; padding: 30px; text-align: center;">
        <h1 style="margin: 0; font-size: 24px; letter-spacing: 4px; font-weight: 400;">{BRAND}</h1>
      </div>
      <div style="padding: 40px 30px; text-align: center;">
        <h2 style="font-size: 20px; font-weight: 400;">{title}</h2>
        {body}
      </div>
      <div style="padding: 20px 30px; text-align: center; border-top: 1px solid #e0e0e0;">
        <p style="color: #999; font-size: 11px; margin: 0;">&copy; {BRAND}. Todos os direitos reservados.</p>
      </div>
    </div>
  </body>
</html>"""


def _button(url: str, label: str) -> str:
    return (
        f'<a href="{url}" style="display: inline-block; background: #000; color: #fff; '
        f'padding: 15px 40px; text-decoration: none; font-size: 12px; letter-spacing: 2px; '
        f'text-transform: uppercase;">{label}</a>'
    )


class EmailService:
    """
    Builds and sends the storefront's transactional emails.

    Args:
        sender: Delivery backend
        public_base_url: Base URL for links; when None the caller passes
            the request's base URL
    """

    def __init__(self, sender: EmailSender, public_base_url: str | None = None):
        self.sender = sender
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailService":
        if settings.email_provider == "resend":
            if not settings.resend_api_key:
                raise ValueError("RESEND_API_KEY is required when EMAIL_PROVIDER=resend")
            sender: EmailSender = ResendEmailSender(
                api_key=settings.resend_api_key,
                from_address=settings.email_from,
                api_url=settings.resend_api_url,
                timeout=settings.email_timeout_seconds,
            )
        else:
            sender = ConsoleEmailSender()
        return cls(sender, settings.public_base_url)

    def _link(self, base_url: str, path: str, token: str) -> str:
        base = self.public_base_url or base_url.rstrip("/")
        return f"{base}{path}?{urlencode({'token': token})}"

    async def send_verification_email(self, to: str, token: str, base_url: str) -> None:
        url = self._link(base_url, "/verify-email", token)
        body = (
            '<p style="color: #666; font-size: 14px; line-height: 1.6;">'
            f"Obrigado por se registrar na {BRAND}. Por favor, confirme seu endereço "
            "de email clicando no botão abaixo.</p>"
            f"{_button(url, 'Confirmar Email')}"
            '<p style="margin-top: 30px; font-size: 12px; color: #666;">'
            "Se você não criou esta conta, ignore este email.</p>"
        )
        await self.sender.send(
            EmailMessage(
                to=to,
                subject=f"Confirme seu email - {BRAND}",
                html=_layout("Confirme seu email", body),
            )
        )

    async def send_password_reset_email(self, to: str, token: str, base_url: str) -> None:
        url = self._link(base_url, "/reset-password", token)
        body = (
            '<p style="color: #666; font-size: 14px; line-height: 1.6;">'
            "Recebemos uma solicitação para redefinir a senha da sua conta. "
            "Clique no botão abaixo para criar uma nova senha.</p>"
            f"{_button(url, 'Redefinir Senha')}"
            '<div style="background: #fff3cd; padding: 15px; margin-top: 20px; '
            'font-size: 12px; color: #856404;">'
            "Este link expira em 1 hora. Se você não solicitou a redefinição de senha, "
            "ignore este email.</div>"
        )
        await self.sender.send(
            EmailMessage(
                to=to,
                subject=f"Redefinir Senha - {BRAND}",
                html=_layout("Redefinir sua senha", body),
            )
        )

    async def send_new_customer_notification(self, to: str, customer_email: str) -> None:
        body = (
            '<p style="color: #666; font-size: 14px; line-height: 1.6;">'
            f"Um novo cliente se cadastrou na loja: <strong>{html.escape(customer_email)}</strong>.</p>"
        )
        await self.sender.send(
            EmailMessage(
                to=to,
                subject=f"Novo cliente cadastrado - {BRAND}",
                html=_layout("Novo cliente", body),
            )
        )
