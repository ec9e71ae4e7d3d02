"""Trigger transaction: token issuance, persisted state change, nominee notice.

Ordering matters. The switch is persisted as triggered before the nominee is
contacted; if delivery then fails the switch stays triggered and the failure
is logged and recorded, never retried automatically.
"""

import secrets
from dataclasses import dataclass

from vaultswitch.common.clock import Clock
from vaultswitch.common.config import settings
from vaultswitch.common.errors import ConflictError, DeliveryError
from vaultswitch.common.logging import logger
from vaultswitch.common.metrics import notifications_total, optimistic_conflicts_total, switches_triggered_total
from vaultswitch.common.state_machine import TRIGGERED, switch_state, validate_transition
from vaultswitch.services.switch.delivery import DeliveryChannel
from vaultswitch.services.switch.evaluator import TOKEN_VALIDITY
from vaultswitch.services.switch.models import Switch
from vaultswitch.services.switch.notifier import FAILED, SENT, UNKNOWN_OWNER, owner_email_or_default
from vaultswitch.services.switch.store import NotificationLedger, OwnerDirectory, SwitchStore
from vaultswitch.services.switch.templates import render_message

# 32 random bytes, url-safe encoded: 256 bits of entropy.
TOKEN_BYTES = 32


@dataclass(frozen=True)
class TriggerResult:
    switch: Switch
    notification_status: str
    error: str | None = None


class TriggerExecutor:
    """Moves an expired switch to TRIGGERED and notifies the nominee."""

    def __init__(
        self,
        store: SwitchStore,
        ledger: NotificationLedger,
        channel: DeliveryChannel,
        directory: OwnerDirectory,
        clock: Clock,
        app_url: str | None = None,
        service_name: str = "switch",
    ) -> None:
        self.store = store
        self.ledger = ledger
        self.channel = channel
        self.directory = directory
        self.clock = clock
        self.app_url = (app_url or settings.app_url).rstrip("/")
        self.service_name = service_name

    def _new_token(self) -> str:
        token = secrets.token_urlsafe(TOKEN_BYTES)
        while self.store.token_exists(token):
            token = secrets.token_urlsafe(TOKEN_BYTES)
        return token

    def access_link(self, token: str) -> str:
        return f"{self.app_url}/vault/access/{token}"

    def execute(self, switch: Switch) -> TriggerResult:
        """Trigger `switch` as observed by the caller.

        The update is conditional on the observed `version`; a check-in that
        landed after the observation makes this raise `ConflictError` and no
        token is issued or sent.
        """

        validate_transition(switch_state(switch.is_active, switch.is_triggered), TRIGGERED)
        now = self.clock.now()
        token = self._new_token()
        expires_at = now + TOKEN_VALIDITY

        try:
            triggered = self.store.conditional_update(
                switch.id,
                switch.version,
                {
                    "is_triggered": True,
                    "triggered_at": now,
                    "access_token": token,
                    "token_expires_at": expires_at,
                    "updated_at": now,
                },
            )
        except ConflictError:
            optimistic_conflicts_total.labels(service=self.service_name, operation="trigger").inc()
            logger.warning("trigger lost race switch_id=%s version=%s", switch.id, switch.version)
            raise
        switches_triggered_total.labels(service=self.service_name).inc()
        logger.info("switch_triggered switch_id=%s expires_at=%s", switch.id, expires_at.isoformat())

        message = render_message(
            "triggered",
            nominee_name=triggered.nominee_name,
            owner_email=owner_email_or_default(self.directory, triggered.owner_ref, UNKNOWN_OWNER),
            personal_message=triggered.personal_message,
            access_link=self.access_link(token),
            expires_on=expires_at.strftime("%A, %B %d, %Y"),
        )
        status, error = SENT, None
        try:
            self.channel.send(triggered.nominee_email, message)
        except DeliveryError as exc:
            status, error = FAILED, str(exc)
            logger.error(
                "nominee notification failed after trigger switch_id=%s error=%s",
                switch.id,
                exc,
            )

        self.ledger.insert(
            switch_id=triggered.id,
            kind="triggered",
            recipient=triggered.nominee_email,
            status=status,
            sent_at=now,
            error=error,
        )
        notifications_total.labels(service=self.service_name, kind="triggered", status=status).inc()
        return TriggerResult(switch=triggered, notification_status=status, error=error)
