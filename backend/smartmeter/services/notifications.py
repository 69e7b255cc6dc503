"""Best-effort delivery of alert notifications.

The Notifier looks up the alert owner's contact details and hands a
``NotificationMessage`` to a gateway. Delivery problems come back as a
``DeliveryResult``; they are logged and never raised to the caller.
"""
import base64
import json
import logging
import smtplib
from dataclasses import dataclass, field
from email.message import EmailMessage
from typing import Dict, List, Optional

import firebase_admin
from firebase_admin import credentials, messaging
from firebase_admin.exceptions import FirebaseError

from smartmeter.exceptions import DeliveryError, StorageUnavailable

logger = logging.getLogger(__name__)


@dataclass
class NotificationMessage:
    email: Optional[str]
    push_token: Optional[str]
    device_name: str
    kind: str
    message: str
    data: Dict[str, float] = field(default_factory=dict)

    @property
    def subject(self):
        return f"[Smart Energy Meter] {self.kind} on {self.device_name}"


@dataclass
class DeliveryResult:
    ok: bool
    channels: List[str] = field(default_factory=list)
    error: Optional[str] = None


class EmailChannel:
    name = "email"

    def __init__(self, host: str, port: int = 587, user: Optional[str] = None,
                 password: Optional[str] = None, sender: str = "alerts@smartmeter.local"):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender

    def accepts(self, msg: NotificationMessage) -> bool:
        return bool(msg.email)

    def build(self, msg: NotificationMessage) -> EmailMessage:
        email = EmailMessage()
        email["Subject"] = msg.subject
        email["From"] = self.sender
        email["To"] = msg.email
        lines = [msg.message, ""]
        lines += [f"{key.replace('_', ' ').title()}: {value:.2f}" for key, value in msg.data.items()]
        email.set_content("\n".join(lines))
        return email

    def deliver(self, msg: NotificationMessage) -> None:
        try:
            with smtplib.SMTP(self.host, self.port, timeout=10) as smtp:
                smtp.starttls()
                if self.user:
                    smtp.login(self.user, self.password or "")
                smtp.send_message(self.build(msg))
        except (smtplib.SMTPException, OSError) as e:
            raise DeliveryError(self.name, str(e)) from e


def init_firebase(key_base64: str):
    if firebase_admin._apps:
        return firebase_admin.get_app()

    cred_dict = json.loads(
        base64.b64decode(key_base64).decode("utf-8")
    )
    cred = credentials.Certificate(cred_dict)
    return firebase_admin.initialize_app(cred)


class PushChannel:
    name = "push"

    def __init__(self, key_base64: str):
        self.key_base64 = key_base64

    def accepts(self, msg: NotificationMessage) -> bool:
        return bool(msg.push_token)

    def build(self, msg: NotificationMessage) -> messaging.Message:
        # FCM data payloads only carry strings
        data = {key: f"{value:.2f}" for key, value in msg.data.items()}
        data["device"] = msg.device_name
        return messaging.Message(
            notification=messaging.Notification(title=msg.subject, body=msg.message),
            data=data,
            token=msg.push_token,
        )

    def deliver(self, msg: NotificationMessage) -> None:
        try:
            init_firebase(self.key_base64)
            messaging.send(self.build(msg))
        except (FirebaseError, ValueError) as e:
            raise DeliveryError(self.name, str(e)) from e


class NotificationGateway:
    """Fan a message out to every configured channel that has a destination."""

    def __init__(self, channels=None):
        self.channels = list(channels or [])

    def send(self, msg: NotificationMessage) -> DeliveryResult:
        targets = [channel for channel in self.channels if channel.accepts(msg)]
        if not targets:
            logger.warning("No delivery channel configured, %s notification not sent", msg.device_name)
            return DeliveryResult(ok=False)

        delivered, errors = [], []
        for channel in targets:
            try:
                channel.deliver(msg)
                delivered.append(channel.name)
            except DeliveryError as e:
                errors.append(str(e))
        return DeliveryResult(
            ok=bool(delivered),
            channels=delivered,
            error="; ".join(errors) or None,
        )


def build_gateway(settings) -> NotificationGateway:
    channels = []
    if settings.smtp_host:
        channels.append(EmailChannel(
            settings.smtp_host,
            settings.smtp_port,
            settings.smtp_user,
            settings.smtp_password,
            settings.smtp_sender,
        ))
    if settings.firebase_key_base64:
        channels.append(PushChannel(settings.firebase_key_base64))
    return NotificationGateway(channels)


class Notifier:
    def __init__(self, user_directory, gateway: NotificationGateway):
        self.user_directory = user_directory
        self.gateway = gateway

    def notify(self, owner_id: int, device_id: str, alert, device_name: Optional[str] = None) -> Optional[DeliveryResult]:
        """Send ``alert`` to its owner. Never raises; returns None when nothing was attempted."""
        try:
            user = self.user_directory.find_by_id(owner_id)
        except StorageUnavailable as e:
            logger.error("Could not load owner %s for alert %s: %s", owner_id, alert.id, e)
            return None
        if user is None or not (user.email or user.push_token):
            logger.debug("Owner %s has no contact channel, skipping alert %s", owner_id, alert.id)
            return None

        msg = NotificationMessage(
            email=user.email,
            push_token=user.push_token,
            device_name=device_name or device_id,
            kind=alert.kind.replace("_", " ").title(),
            message=alert.message,
            data=dict(alert.data),
        )
        try:
            result = self.gateway.send(msg)
        except Exception as e:
            logger.exception("Notification gateway crashed for alert %s", alert.id)
            result = DeliveryResult(ok=False, error=str(e))

        if result.ok:
            logger.info("Alert %s notification sent via %s", alert.id, ", ".join(result.channels))
        if result.error:
            logger.error("Error sending alert %s notification: %s", alert.id, result.error)
        return result
