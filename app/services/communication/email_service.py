from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional, Protocol

import aiosmtplib
from loguru import logger

from app.core.config import settings

_sender: "EmailNotificationSender | None" = None


class NotificationSender(Protocol):
    async def send_otp(self, email: str, code: str, name: Optional[str] = None) -> None:
        ...

    async def send_account_ready(self, email: str, account_number: str, name: Optional[str] = None) -> None:
        ...


class EmailNotificationSender:
    """
    SMTP delivery of onboarding emails.

    Errors are raised to the caller; the onboarding service decides whether a
    failed delivery matters.
    """

    def __init__(
        self,
        hostname: str,
        port: int,
        sender: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 10.0,
        bank_name: str = "NCBA"
    ):
        self.hostname = hostname
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.timeout = timeout
        self.bank_name = bank_name

    async def _send(self, recipient: str, subject: str, text: str, html: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["From"] = self.sender
        msg["To"] = recipient
        msg["Subject"] = subject
        msg.attach(MIMEText(text, "plain"))
        msg.attach(MIMEText(html, "html"))

        await aiosmtplib.send(
            msg,
            hostname=self.hostname,
            port=self.port,
            use_tls=self.port == 465,
            start_tls=self.port == 587,
            username=self.username,
            password=self.password,
            timeout=self.timeout,
        )
        logger.info(f"Sent '{subject}' to {recipient}")

    async def send_otp(self, email: str, code: str, name: Optional[str] = None) -> None:
        greeting = f"Hello {name}" if name else "Hello"
        text = (
            f"{greeting},\n\nYour verification code is: {code}\n"
            f"It expires in {settings.OTP_TTL_MINUTES} minutes.\n\n"
            "If you did not request this, contact support."
        )
        html = (
            f"<p>{greeting},</p><p>Your verification code is: <strong>{code}</strong></p>"
            f"<p>It expires in {settings.OTP_TTL_MINUTES} minutes.</p>"
        )
        await self._send(email, "Your Customer Verification Code", text, html)

    async def send_account_ready(self, email: str, account_number: str, name: Optional[str] = None) -> None:
        greeting = f"Hello {name}" if name else "Hello"
        text = (
            f"{greeting},\n\nWelcome to {self.bank_name}! Your account has been successfully verified and opened.\n\n"
            f"Your new 9-digit Current Account number is:\n{account_number}\n\n"
            "If you have any questions, please contact our support team."
        )
        html = (
            f"<p>{greeting},</p><p>Welcome to {self.bank_name}! Your account has been successfully verified and opened.</p>"
            f"<h3>Your new Current Account number is:</h3><h1>{account_number}</h1>"
            "<p>Thank you for choosing us!</p>"
        )
        await self._send(email, f"Welcome to {self.bank_name} - Your New Account Details", text, html)


def get_notification_sender() -> EmailNotificationSender:
    global _sender
    if _sender is None:
        _sender = EmailNotificationSender(
            hostname=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            sender=settings.SMTP_SENDER,
            username=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
            timeout=settings.SMTP_TIMEOUT_SECONDS,
            bank_name=settings.BANK_NAME,
        )
    return _sender
