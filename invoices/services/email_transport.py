"""
Sender identity resolution for recurring invoice emails.

A user either sends through their own SMTP account or through the platform
default sender configured in ``settings.RECURRING_DEFAULT_SENDER``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional

from django.conf import settings
from django.core.mail import get_connection

if TYPE_CHECKING:
    from django.contrib.auth.models import User
    from invoices.models import EmailSettings

logger = logging.getLogger(__name__)

DEFAULT_SMTP_HOST = "smtp.office365.com"
DEFAULT_SMTP_PORT = 587

SERVICE_HOSTS = {
    "gmail": ("smtp.gmail.com", 587),
    "outlook": ("smtp-mail.outlook.com", 587),
    "hotmail": ("smtp-mail.outlook.com", 587),
    "live": ("smtp-mail.outlook.com", 587),
    "office365": ("smtp.office365.com", 587),
    "yahoo": ("smtp.mail.yahoo.com", 587),
}


@dataclass
class DeliveryIdentity:
    ready: bool
    reason: str = ""
    error_message: str = ""
    use_default_sender: bool = False
    delivery_method: str = "custom"
    from_address: Optional[str] = None
    reply_to: Optional[str] = None
    cc: Optional[str] = None
    host: Optional[str] = None
    port: Optional[int] = None
    username: Optional[str] = None
    password: Optional[str] = None
    use_tls: bool = True
    use_ssl: bool = False

    @classmethod
    def not_ready(cls, reason: str, error_message: str) -> "DeliveryIdentity":
        return cls(ready=False, reason=reason, error_message=error_message)


def custom_smtp_endpoint(email_settings: "EmailSettings") -> tuple:
    """Pick the SMTP host for a user's own account from their address domain."""
    domain = (email_settings.email or "").rpartition("@")[2].lower()
    labels = set(domain.split("."))
    if "gmail" in labels:
        return SERVICE_HOSTS["gmail"]
    if labels & {"outlook", "hotmail", "live"}:
        return SERVICE_HOSTS["outlook"]
    if domain == "office365.com" or domain.endswith(".office365.com"):
        return SERVICE_HOSTS["office365"]
    return (
        email_settings.smtp_host or DEFAULT_SMTP_HOST,
        email_settings.smtp_port or DEFAULT_SMTP_PORT,
    )


def _default_sender_config() -> Dict[str, Any]:
    return getattr(settings, "RECURRING_DEFAULT_SENDER", None) or {}


def default_sender_identity(owner_email: Optional[str]) -> Optional[DeliveryIdentity]:
    """
    Identity for the platform default sender, or None when it is not configured.

    A configured sender with an unusable port yields a not-ready identity.
    """
    config = _default_sender_config()
    email = config.get("email")
    password = config.get("password")
    if not email or not password:
        return None

    secure = bool(config.get("secure"))
    if config.get("host"):
        host = config["host"]
        try:
            port = int(config.get("port") or DEFAULT_SMTP_PORT)
        except (TypeError, ValueError):
            logger.error(f"Default sender port {config.get('port')!r} is not a number")
            return DeliveryIdentity.not_ready(
                "invalid-default-env", "Default email delivery is misconfigured. Please contact support."
            )
    else:
        service = (config.get("service") or "gmail").lower()
        host, port = SERVICE_HOSTS.get(service, SERVICE_HOSTS["gmail"])

    reply_to = owner_email or email
    return DeliveryIdentity(
        ready=True,
        use_default_sender=True,
        delivery_method="default",
        from_address=config.get("from_address") or email,
        reply_to=reply_to,
        cc=reply_to,
        host=host,
        port=port,
        username=email,
        password=password,
        use_tls=not secure,
        use_ssl=secure,
    )


def resolve_delivery_identity(user: "User") -> DeliveryIdentity:
    """
    Resolve who a recurring invoice email is sent as.

    Order: the platform default sender when the user picked it; the user's
    own SMTP credentials when complete; the default sender when the user's
    settings are missing or incomplete; otherwise a not-ready identity.
    """
    from invoices.models import EmailSettings

    email_settings = EmailSettings.objects.filter(user=user).first()
    owner_email = user.email or (email_settings.email if email_settings else None)

    if email_settings is None:
        identity = default_sender_identity(owner_email)
        if identity:
            return identity
        return DeliveryIdentity.not_ready(
            "missing-settings", "Email settings not found. Please configure them first."
        )

    if email_settings.delivery_method == EmailSettings.DeliveryMethod.DEFAULT:
        identity = default_sender_identity(owner_email)
        if identity:
            return identity
        return DeliveryIdentity.not_ready(
            "missing-default-env", "Default email delivery is unavailable. Please contact support."
        )

    if not email_settings.has_custom_credentials:
        identity = default_sender_identity(owner_email)
        if identity:
            if identity.ready:
                logger.info(f"User {user.pk} has incomplete SMTP settings, using default sender")
            return identity
        return DeliveryIdentity.not_ready(
            "missing-custom-credentials",
            "Email settings not found or incomplete. Please configure them first.",
        )

    host, port = custom_smtp_endpoint(email_settings)
    return DeliveryIdentity(
        ready=True,
        delivery_method="custom",
        from_address=email_settings.email,
        host=host,
        port=port,
        username=email_settings.email,
        password=email_settings.app_password,
        use_tls=True,
    )


def build_connection(identity: DeliveryIdentity):
    """Open-on-send mail connection for ``identity`` using the configured backend."""
    return get_connection(
        backend=settings.EMAIL_BACKEND,
        fail_silently=False,
        host=identity.host,
        port=identity.port,
        username=identity.username,
        password=identity.password,
        use_tls=identity.use_tls,
        use_ssl=identity.use_ssl,
        timeout=getattr(settings, "RECURRING_EMAIL_TIMEOUT", 30),
    )
