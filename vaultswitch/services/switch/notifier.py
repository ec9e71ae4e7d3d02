"""Staged owner warnings with a per-kind dedup window."""

from dataclasses import dataclass

from vaultswitch.common.clock import Clock
from vaultswitch.common.config import settings
from vaultswitch.common.errors import DeliveryError, NotFoundError
from vaultswitch.common.logging import logger
from vaultswitch.common.metrics import notifications_deduplicated_total, notifications_total
from vaultswitch.services.switch.delivery import DeliveryChannel
from vaultswitch.services.switch.evaluator import DEDUP_WINDOW, Assessment, Classification
from vaultswitch.services.switch.models import Switch
from vaultswitch.services.switch.store import NotificationLedger, OwnerDirectory
from vaultswitch.services.switch.templates import render_message

KIND_BY_CLASSIFICATION = {
    Classification.WARNING: "warning",
    Classification.FINAL_WARNING: "final_warning",
}

UNKNOWN_OWNER = "the vault owner"

SENT = "sent"
FAILED = "failed"
SKIPPED = "skipped"


@dataclass(frozen=True)
class DispatchResult:
    kind: str
    status: str
    recipient: str | None = None
    error: str | None = None


def nominee_display(switch: Switch) -> str:
    return switch.nominee_name or switch.nominee_email


def owner_email_or_default(directory: OwnerDirectory, owner_ref: str, default: str) -> str:
    """Owner email for messages addressed to the nominee; they still go out without one."""

    try:
        return directory.resolve_email(owner_ref)
    except NotFoundError:
        logger.warning("owner email unresolved owner_ref=%s", owner_ref)
        return default


class NotificationDispatcher:
    """Sends warning/final-warning messages to owners at most once per window."""

    def __init__(
        self,
        ledger: NotificationLedger,
        channel: DeliveryChannel,
        directory: OwnerDirectory,
        clock: Clock,
        app_url: str | None = None,
        service_name: str = "switch",
    ) -> None:
        self.ledger = ledger
        self.channel = channel
        self.directory = directory
        self.clock = clock
        self.app_url = (app_url or settings.app_url).rstrip("/")
        self.service_name = service_name

    def dispatch(self, switch: Switch, assessment: Assessment) -> DispatchResult:
        """Send the warning matching `assessment`, unless one went out recently.

        A delivery failure is recorded as a `failed` ledger row and returned; it
        does not raise, so the next scan may try again.
        """

        kind = KIND_BY_CLASSIFICATION.get(assessment.classification)
        if kind is None:
            raise ValueError(f"no owner notification for classification {assessment.classification.value}")

        now = self.clock.now()
        if self.ledger.exists_since(switch.id, kind, now - DEDUP_WINDOW):
            logger.info("notification deduplicated switch_id=%s kind=%s", switch.id, kind)
            notifications_deduplicated_total.labels(service=self.service_name, kind=kind).inc()
            return DispatchResult(kind=kind, status=SKIPPED)

        recipient = self.directory.resolve_email(switch.owner_ref)
        message = render_message(
            kind,
            days_remaining=assessment.days_remaining,
            nominee_display=nominee_display(switch),
            check_in_link=f"{self.app_url}/checkin",
        )
        status, error = SENT, None
        try:
            message_id = self.channel.send(recipient, message)
            logger.info(
                "notification sent switch_id=%s kind=%s days_remaining=%s message_id=%s",
                switch.id,
                kind,
                assessment.days_remaining,
                message_id,
            )
        except DeliveryError as exc:
            status, error = FAILED, str(exc)
            logger.warning("notification delivery failed switch_id=%s kind=%s error=%s", switch.id, kind, exc)

        self.ledger.insert(
            switch_id=switch.id,
            kind=kind,
            recipient=recipient,
            status=status,
            sent_at=now,
            error=error,
        )
        notifications_total.labels(service=self.service_name, kind=kind, status=status).inc()
        return DispatchResult(kind=kind, status=status, recipient=recipient, error=error)

    def send_test(self, switch: Switch) -> DispatchResult:
        """One-off test message to the nominee; never deduplicated."""

        now = self.clock.now()
        owner_email = owner_email_or_default(self.directory, switch.owner_ref, "Vault Owner")
        message = render_message(
            "test",
            nominee_name=switch.nominee_name,
            owner_email=owner_email,
        )
        status, error = SENT, None
        try:
            self.channel.send(switch.nominee_email, message)
        except DeliveryError as exc:
            status, error = FAILED, str(exc)
            logger.warning("test notification failed switch_id=%s error=%s", switch.id, exc)
        self.ledger.insert(
            switch_id=switch.id,
            kind="test",
            recipient=switch.nominee_email,
            status=status,
            sent_at=now,
            error=error,
        )
        notifications_total.labels(service=self.service_name, kind="test", status=status).inc()
        return DispatchResult(kind="test", status=status, recipient=switch.nominee_email, error=error)
