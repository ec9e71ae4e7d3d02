"""Delivery channels that hand rendered messages to the mail transport."""

from typing import Protocol
from uuid import uuid4

import httpx

from vaultswitch.common.config import CommonSettings
from vaultswitch.common.errors import DeliveryError
from vaultswitch.common.logging import logger
from vaultswitch.services.switch.templates import RenderedMessage


class DeliveryChannel(Protocol):
    def send(self, recipient: str, message: RenderedMessage) -> str:
        """Send one message and return the transport message id.

        Raises `DeliveryError` when the transport rejects or cannot be reached.
        """


class HttpRelayChannel:
    """Posts messages to an HTTP mail relay."""

    def __init__(
        self,
        relay_url: str,
        sender: str,
        api_key: str | None = None,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.relay_url = relay_url
        self.sender = sender
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    def send(self, recipient: str, message: RenderedMessage) -> str:
        headers = {"x-api-key": self.api_key} if self.api_key else {}
        body = {
            "from": self.sender,
            "to": recipient,
            "subject": message.subject,
            "html": message.html,
            "text": message.text,
        }
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                resp = client.post(self.relay_url, json=body, headers=headers)
        except httpx.HTTPError as exc:
            raise DeliveryError(f"mail relay unreachable: {exc}") from exc
        if resp.status_code >= 400:
            raise DeliveryError(f"mail relay rejected message (status={resp.status_code})")
        try:
            payload = resp.json()
        except ValueError:
            payload = {}
        message_id = payload.get("message_id") if isinstance(payload, dict) else None
        return message_id or str(uuid4())


class LoggingChannel:
    """Development channel: logs the message instead of sending it."""

    def send(self, recipient: str, message: RenderedMessage) -> str:
        message_id = str(uuid4())
        logger.info(
            "message_logged recipient=%s subject=%s message_id=%s",
            recipient,
            message.subject,
            message_id,
        )
        return message_id


def build_delivery_channel(config: CommonSettings) -> DeliveryChannel:
    """Relay channel when a relay URL is configured, logging channel otherwise."""

    if config.mail_relay_url:
        return HttpRelayChannel(
            config.mail_relay_url,
            sender=config.mail_from,
            api_key=config.mail_relay_api_key,
            timeout=config.delivery_timeout_seconds,
        )
    logger.warning("mail relay not configured; notifications will only be logged")
    return LoggingChannel()
