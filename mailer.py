"""Outbound email for contact form notifications."""

import logging
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formatdate, make_msgid
from html import escape

import aiosmtplib

import config

logger = logging.getLogger(__name__)


def is_configured() -> bool:
    return bool(config.EMAIL_HOST and config.EMAIL_USER and config.EMAIL_PASS)


def contact_email_html(contact: dict) -> str:
    spam_note = '<p style="color: red;"><strong>Potential Spam</strong></p>' if contact.get("is_spam") else ""
    return f"""
        <h2>New Contact Form Submission</h2>
        <p><strong>Name:</strong> {escape(contact['name'])}</p>
        <p><strong>Email:</strong> {escape(contact['email'])}</p>
        <p><strong>Phone:</strong> {escape(contact.get('phone') or 'Not provided')}</p>
        <p><strong>Service:</strong> {escape(contact.get('service') or 'Not specified')}</p>
        <p><strong>Budget:</strong> {escape(contact.get('budget') or 'Not specified')}</p>
        <p><strong>Message:</strong></p>
        <p>{escape(contact['message'])}</p>
        <hr>
        <p><small>Submitted at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}</small></p>
        <p><small>IP Address: {escape(contact.get('ip_address') or '-')}</small></p>
        {spam_note}
    """


def contact_email_text(contact: dict) -> str:
    lines = [
        "New Contact Form Submission",
        f"Name: {contact['name']}",
        f"Email: {contact['email']}",
        f"Phone: {contact.get('phone') or 'Not provided'}",
        f"Service: {contact.get('service') or 'Not specified'}",
        f"Budget: {contact.get('budget') or 'Not specified'}",
        "",
        contact["message"],
    ]
    if contact.get("is_spam"):
        lines.append("\nPotential Spam")
    return "\n".join(lines)


def build_message(subject: str, text: str, html: str, to_addr: str) -> MIMEMultipart:
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = config.EMAIL_USER
    msg["To"] = to_addr
    msg["Date"] = formatdate(localtime=True)
    msg["Message-ID"] = make_msgid()
    msg.attach(MIMEText(text, "plain", "utf-8"))
    msg.attach(MIMEText(html, "html", "utf-8"))
    return msg


async def send_mail(msg: MIMEMultipart) -> None:
    smtp = aiosmtplib.SMTP(
        hostname=config.EMAIL_HOST,
        port=config.EMAIL_PORT,
        timeout=30,
        use_tls=config.EMAIL_PORT == 465,  # implicit TLS
        start_tls=False,
    )
    await smtp.connect()
    try:
        if config.EMAIL_PORT == 587:
            await smtp.starttls()
        await smtp.login(config.EMAIL_USER, config.EMAIL_PASS)
        await smtp.send_message(msg)
    finally:
        await smtp.quit()


async def send_contact_notification(contact: dict) -> None:
    if not is_configured():
        logger.info("Email not configured, skipping contact notification")
        return
    # Studio inbox receives its own notifications
    msg = build_message(
        f"New Contact Form Submission - {contact['name']}",
        contact_email_text(contact),
        contact_email_html(contact),
        config.EMAIL_USER,
    )
    await send_mail(msg)
    logger.info("Contact email notification sent")
