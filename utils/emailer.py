import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional

import resend
from flask import current_app

from security.vault import get_vault

logger = logging.getLogger(__name__)

# service type -> (host, port, implicit TLS)
SERVICE_PRESETS = {
    "gmail": ("smtp.gmail.com", 465, True),
    "sendgrid": ("smtp.sendgrid.net", 587, False),
}


@dataclass
class SmtpTransport:
    channel: str
    host: str
    port: int
    username: Optional[str]
    password: Optional[str]
    from_email: str
    use_ssl: bool = False
    use_tls: bool = True


@dataclass
class Delivery:
    status: str  # sent, logged, failed
    channel: Optional[str] = None
    error: Optional[str] = None


def provider_transport(provider) -> Optional[SmtpTransport]:
    """
    SMTP settings from a provider's saved email config, or None when the
    provider has none or the stored password cannot be decrypted.
    """
    if provider is None or not provider.email_service_type:
        return None

    password = get_vault().decrypt(provider.email_smtp_password_encrypted)
    if not password:
        logger.warning("Email credentials unavailable for provider %s, skipping provider SMTP", provider.id)
        return None

    service_type = provider.email_service_type
    if service_type in SERVICE_PRESETS:
        host, port, use_ssl = SERVICE_PRESETS[service_type]
    else:
        host = provider.email_smtp_host
        port = provider.email_smtp_port or 587
        use_ssl = bool(provider.email_smtp_secure)
    if not host:
        return None

    username = provider.email_smtp_user
    if service_type == "sendgrid" and not username:
        username = "apikey"

    from_email = provider.email_from_address or provider.email_smtp_user
    if not from_email or "@" not in from_email:
        from_email = current_app.config.get("EMAIL_FROM_ADDRESS")

    return SmtpTransport(
        channel="provider_smtp",
        host=host,
        port=int(port),
        username=username,
        password=password,
        from_email=from_email,
        use_ssl=use_ssl,
        use_tls=not use_ssl,
    )


def platform_transport() -> Optional[SmtpTransport]:
    host = current_app.config.get("SMTP_HOST")
    username = current_app.config.get("SMTP_USERNAME")
    from_email = current_app.config.get("SMTP_FROM_EMAIL") or username
    if not host or not from_email:
        return None
    return SmtpTransport(
        channel="platform_smtp",
        host=host,
        port=current_app.config.get("SMTP_PORT", 587),
        username=username,
        password=current_app.config.get("SMTP_PASSWORD"),
        from_email=from_email,
        use_tls=current_app.config.get("SMTP_USE_TLS", True),
    )


def send_via_smtp(transport: SmtpTransport, to_email: str, subject: str, body: str):
    msg = EmailMessage()
    msg["From"] = transport.from_email
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(body)

    try:
        if transport.use_ssl:
            server = smtplib.SMTP_SSL(transport.host, transport.port, timeout=10, context=ssl.create_default_context())
        else:
            server = smtplib.SMTP(transport.host, transport.port, timeout=10)
        with server:
            if transport.use_tls and not transport.use_ssl:
                server.starttls(context=ssl.create_default_context())
            if transport.username and transport.password:
                server.login(transport.username, transport.password)
            server.send_message(msg)
        return True, None
    except (smtplib.SMTPException, OSError) as exc:
        return False, str(exc)


def send_via_resend(to_email: str, subject: str, body: str):
    resend.api_key = current_app.config.get("RESEND_API_KEY")
    try:
        resend.Emails.send({
            "from": current_app.config.get("EMAIL_FROM_ADDRESS"),
            "to": [to_email],
            "subject": subject,
            "text": body,
        })
        return True, None
    except Exception as exc:
        return False, str(exc)


def send_email(to_email: str, subject: str, body: str, provider=None) -> Delivery:
    """
    Tries the provider's own SMTP, then the platform SMTP, then Resend.
    With nothing configured the message is only logged.
    """
    last_error = None
    attempted = False

    for transport in (provider_transport(provider), platform_transport()):
        if transport is None:
            continue
        attempted = True
        ok, err = send_via_smtp(transport, to_email, subject, body)
        if ok:
            logger.info("Email sent to %s via %s", to_email, transport.channel)
            return Delivery("sent", transport.channel)
        logger.warning("Email via %s to %s failed: %s", transport.channel, to_email, err)
        last_error = err

    if current_app.config.get("RESEND_API_KEY"):
        attempted = True
        ok, err = send_via_resend(to_email, subject, body)
        if ok:
            logger.info("Email sent to %s via resend", to_email)
            return Delivery("sent", "resend")
        logger.warning("Email via resend to %s failed: %s", to_email, err)
        last_error = err

    if not attempted:
        logger.info("No email transport configured; logged %r for %s", subject, to_email)
        return Delivery("logged")

    return Delivery("failed", error=(last_error or "")[:255])
