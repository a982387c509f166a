"""
Recurring Billing Scheduler - Email Service

Handles transactional email sending for generated invoices and payment
reminders. Supports SendGrid or SMTP, with a logging mock for development.
"""

import asyncio
import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List, Optional

import httpx

from billing_scheduler.config import settings

logger = logging.getLogger(__name__)

SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"


class EmailProvider:
    """Email provider types."""
    SMTP = "smtp"
    SENDGRID = "sendgrid"
    MOCK = "mock"


@dataclass
class EmailMessage:
    """Email message data structure."""
    to: List[str]
    subject: str
    body_text: str
    body_html: Optional[str] = None
    reply_to: Optional[str] = None


class EmailService:
    """Service for sending transactional emails."""

    def __init__(self, timeout: float = 10.0):
        self.from_email = settings.email_from
        self.from_name = settings.mail_from_name
        self.timeout = timeout

        # SMTP settings
        self.smtp_host = settings.mail_server
        self.smtp_port = settings.mail_port
        self.smtp_username = settings.mail_username
        self.smtp_password = settings.mail_password
        self.smtp_use_tls = settings.mail_use_tls

        # SendGrid settings
        self.sendgrid_api_key = settings.sendgrid_api_key

    def _determine_provider(self) -> str:
        """Determine which email provider to use based on configuration."""
        if self.sendgrid_api_key:
            return EmailProvider.SENDGRID
        elif self.smtp_host:
            return EmailProvider.SMTP
        return EmailProvider.MOCK

    async def send_email(self, message: EmailMessage) -> bool:
        """
        Send an email using the configured provider.

        Returns False on delivery failure; never raises for provider errors.
        """
        provider = self._determine_provider()

        try:
            if provider == EmailProvider.SENDGRID:
                return await self._send_via_sendgrid(message)
            elif provider == EmailProvider.SMTP:
                # smtplib blocks; keep it off the event loop
                return await asyncio.to_thread(self._send_via_smtp, message)
            return await self._send_mock(message)
        except (httpx.HTTPError, smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email via {provider} to {message.to}: {e}")
            return False

    async def _send_via_sendgrid(self, message: EmailMessage) -> bool:
        """Send email via SendGrid API."""
        payload = {
            "personalizations": [
                {"to": [{"email": email} for email in message.to]},
            ],
            "from": {"email": self.from_email, "name": self.from_name},
            "subject": message.subject,
            "content": [{"type": "text/plain", "value": message.body_text}],
        }
        if message.body_html:
            payload["content"].append({"type": "text/html", "value": message.body_html})
        if message.reply_to:
            payload["reply_to"] = {"email": message.reply_to}

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                SENDGRID_SEND_URL,
                json=payload,
                headers={"Authorization": f"Bearer {self.sendgrid_api_key}"},
            )

        if response.status_code in (200, 202):
            logger.info(f"Email sent via SendGrid to {message.to}")
            return True

        logger.error(f"SendGrid API error: {response.status_code} - {response.text}")
        return False

    def _send_via_smtp(self, message: EmailMessage) -> bool:
        """Send email via SMTP."""
        msg = MIMEMultipart("alternative")
        msg["Subject"] = message.subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = ", ".join(message.to)
        if message.reply_to:
            msg["Reply-To"] = message.reply_to

        msg.attach(MIMEText(message.body_text, "plain"))
        if message.body_html:
            msg.attach(MIMEText(message.body_html, "html"))

        with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as server:
            if self.smtp_use_tls:
                server.starttls(context=ssl.create_default_context())
            if self.smtp_username and self.smtp_password:
                server.login(self.smtp_username, self.smtp_password)
            server.sendmail(self.from_email, message.to, msg.as_string())

        logger.info(f"Email sent via SMTP to {message.to}")
        return True

    async def _send_mock(self, message: EmailMessage) -> bool:
        """Mock email sending for development."""
        logger.info(f"[MOCK EMAIL] To: {message.to} | Subject: {message.subject}")
        logger.debug(f"[MOCK EMAIL] Body: {message.body_text[:200]}...")
        return True

    # ===========================================
    # TRANSACTIONAL EMAIL TEMPLATES
    # ===========================================

    async def send_invoice_email(
        self,
        to_email: str,
        customer_name: str,
        company_name: str,
        invoice_number: str,
        amount: str,
        currency: str,
        due_date: str,
        reply_to: Optional[str] = None,
    ) -> bool:
        """Send a newly generated invoice to the customer."""
        subject = f"Invoice {invoice_number} from {company_name}"

        body_text = (
            f"Hi {customer_name},\n\n"
            f"{company_name} has issued invoice {invoice_number} "
            f"for {currency} {amount}, due on {due_date}.\n\n"
            f"Thank you for your business.\n"
            f"{company_name}\n"
        )
        body_html = (
            f"<p>Hi {customer_name},</p>"
            f"<p>{company_name} has issued invoice <strong>{invoice_number}</strong> "
            f"for <strong>{currency} {amount}</strong>, due on {due_date}.</p>"
            f"<p>Thank you for your business.<br>{company_name}</p>"
        )

        return await self.send_email(EmailMessage(
            to=[to_email],
            subject=subject,
            body_text=body_text,
            body_html=body_html,
            reply_to=reply_to,
        ))

    async def send_payment_reminder_email(
        self,
        to_email: str,
        customer_name: str,
        company_name: str,
        invoice_number: str,
        amount: str,
        currency: str,
        due_date: str,
        overdue: bool,
        reply_to: Optional[str] = None,
    ) -> bool:
        """Send an overdue or due-soon payment reminder."""
        if overdue:
            subject = f"Payment overdue: invoice {invoice_number}"
            lead = f"Invoice {invoice_number} was due on {due_date} and is now overdue."
        else:
            subject = f"Payment due soon: invoice {invoice_number}"
            lead = f"Invoice {invoice_number} is due on {due_date}."

        body_text = (
            f"Hi {customer_name},\n\n"
            f"{lead} The outstanding balance is {currency} {amount}.\n\n"
            f"{company_name}\n"
        )

        return await self.send_email(EmailMessage(
            to=[to_email],
            subject=subject,
            body_text=body_text,
            body_html=f"<p>Hi {customer_name},</p><p>{lead} The outstanding balance is "
                      f"<strong>{currency} {amount}</strong>.</p><p>{company_name}</p>",
            reply_to=reply_to,
        ))
