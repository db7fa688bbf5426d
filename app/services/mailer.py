# app/services/email.py

import asyncio
import logging
import smtplib
import ssl
from email.mime.text import MIMEText

from app.core.config import settings

logger = logging.getLogger(__name__)


def _connect() -> smtplib.SMTP:
    """SSL на порту 465, иначе STARTTLS."""
    if settings.SMTP_PORT == 465:
        server = smtplib.SMTP_SSL(settings.SMTP_HOST, settings.SMTP_PORT, timeout=20)
    else:
        server = smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=20)
        server.ehlo()
        server.starttls(context=ssl.create_default_context())
    if settings.SMTP_USER:
        server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
    return server


def _send(to_addr: str, subject: str, body: str) -> None:
    msg = MIMEText(body, "plain", "utf-8")
    msg["Subject"] = subject
    msg["From"] = settings.SMTP_FROM
    msg["To"] = to_addr
    with _connect() as server:
        server.sendmail(settings.SMTP_FROM, [to_addr], msg.as_string())


async def send_email(to_addr: str, subject: str, body: str) -> None:
    """
    Отправляет простое текстовое письмо.
    В EMAIL_DEV_MODE письмо только пишется в лог.
    """
    if settings.EMAIL_DEV_MODE or not settings.SMTP_HOST:
        logger.warning(f"DEV EMAIL to={to_addr} subject={subject!r} body={body[:256]!r}")
        return

    try:
        await asyncio.to_thread(_send, to_addr, subject, body)
    except (smtplib.SMTPException, OSError):
        logger.error(f"Email send failed to {to_addr}", exc_info=True)
        raise
    logger.info(f"Email sent to {to_addr}")


async def send_otp_email(first_name: str, to_addr: str, otp: str) -> None:
    body = (
        f"Hello {first_name},\n\n"
        f"Your verification code is: {otp}\n\n"
        f"This code expires in {settings.OTP_EXPIRE_MINUTES} minutes.\n"
        "If you did not request this, you can ignore this email."
    )
    await send_email(to_addr, "Verify your account", body)
