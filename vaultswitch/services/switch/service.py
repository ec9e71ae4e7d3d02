"""Switch service facade.

Wires the store, ledger, dispatcher, trigger executor, validator and scan
orchestrator together and exposes the operations the HTTP layer and the
scheduler call.
"""

from datetime import timedelta

from vaultswitch.common.clock import Clock, SystemClock, as_utc
from vaultswitch.common.config import CommonSettings, settings
from vaultswitch.common.errors import ConfigurationError, ConflictError, InvalidTransitionError
from vaultswitch.common.logging import logger
from vaultswitch.common.metrics import check_ins_total, optimistic_conflicts_total
from vaultswitch.common.state_machine import ARMED, INACTIVE, TRIGGERED, switch_state, validate_transition
from vaultswitch.services.switch.access import AccessTokenValidator
from vaultswitch.services.switch.delivery import DeliveryChannel, build_delivery_channel
from vaultswitch.services.switch.evaluator import DEFAULT_INACTIVITY_PERIOD_DAYS, days_since
from vaultswitch.services.switch.models import CheckInEvent, NotificationRecord, Switch
from vaultswitch.services.switch.notifier import DispatchResult, NotificationDispatcher
from vaultswitch.services.switch.scanner import ScanOrchestrator
from vaultswitch.services.switch.schemas import (
    AccessGrant,
    CheckInRequest,
    CheckInResponse,
    ConfigureSwitchRequest,
    ScanReport,
    SwitchStatus,
)
from vaultswitch.services.switch.store import NotificationLedger, OwnerDirectory, SwitchStore
from vaultswitch.services.switch.trigger import TriggerExecutor


class SwitchService:
    """Owns switch configuration, check-ins, scans and delegated access."""

    def __init__(
        self,
        session_factory,
        channel: DeliveryChannel | None = None,
        clock: Clock | None = None,
        config: CommonSettings = settings,
        service_name: str = "switch",
    ) -> None:
        self.session_factory = session_factory
        self.config = config
        self.clock = clock or SystemClock()
        self.service_name = service_name
        self.channel = channel or build_delivery_channel(config)
        self.store = SwitchStore(session_factory)
        self.ledger = NotificationLedger(session_factory)
        self.directory = OwnerDirectory(session_factory)
        self.dispatcher = NotificationDispatcher(
            self.ledger, self.channel, self.directory, self.clock, config.app_url, service_name
        )
        self.trigger = TriggerExecutor(
            self.store, self.ledger, self.channel, self.directory, self.clock, config.app_url, service_name
        )
        self.validator = AccessTokenValidator(self.store, self.directory, self.clock, service_name)
        self.scanner = ScanOrchestrator(self.store, self.dispatcher, self.trigger, self.clock, service_name)

    def configure_switch(self, req: ConfigureSwitchRequest) -> Switch:
        """Create the owner's switch, or update nominee details on the existing one.

        New switches start inactive; updating never resets the inactivity clock.
        """

        period = req.inactivity_period_days or DEFAULT_INACTIVITY_PERIOD_DAYS
        if req.inactivity_period_days is not None and req.inactivity_period_days <= 0:
            raise ConfigurationError(f"inactivity period must be positive, got {req.inactivity_period_days}")
        if not req.nominee_email.strip():
            raise ConfigurationError("nominee_email is required")

        values = {
            "nominee_email": req.nominee_email.strip(),
            "nominee_name": req.nominee_name,
            "nominee_relation": req.nominee_relation,
            "personal_message": req.personal_message,
            "inactivity_period_days": period,
        }
        existing = self.store.find_by_owner(req.owner_ref)
        if existing is None:
            switch = self.store.create(Switch(owner_ref=req.owner_ref, is_active=False, is_triggered=False, **values))
            logger.info("switch configured switch_id=%s owner_ref=%s created=true", switch.id, req.owner_ref)
            return switch
        switch = self.store.conditional_update(
            existing.id, existing.version, {**values, "updated_at": self.clock.now()}
        )
        logger.info("switch configured switch_id=%s owner_ref=%s created=false", switch.id, req.owner_ref)
        return switch

    def set_active(self, switch_id: str, active: bool) -> Switch:
        """Arm or disarm a switch.

        Arming stamps `last_check_in` so the timer starts now; disarming clears
        it, which keeps a re-armed switch from inheriting old inactivity. A
        triggered switch is re-armed by a check-in, not by activation.
        """

        switch = self.store.get_by_id(switch_id)
        current = switch_state(switch.is_active, switch.is_triggered)
        target = ARMED if active else INACTIVE
        if current == target:
            return switch
        if active and current == TRIGGERED:
            raise InvalidTransitionError(f"switch {switch_id} is triggered; check in to re-arm it")
        validate_transition(current, target)
        now = self.clock.now()
        values = {"is_active": active, "last_check_in": now if active else None, "updated_at": now}
        if current == TRIGGERED:
            # Disarming a triggered switch withdraws the nominee grant.
            values.update(is_triggered=False, access_token=None, token_expires_at=None)
        updated = self.store.conditional_update(switch.id, switch.version, values)
        logger.info("switch %s switch_id=%s", "activated" if active else "deactivated", switch_id)
        return updated

    def check_in(self, switch_id: str, origin: CheckInRequest | None = None) -> CheckInResponse:
        """Reset the inactivity clock and clear any trigger.

        Retries on a lost race by re-reading the row: the owner proving they are
        active must win over a trigger computed against older data.
        """

        origin = origin or CheckInRequest()
        attempts = max(1, self.config.check_in_conflict_retries)
        for attempt in range(1, attempts + 1):
            switch = self.store.get_by_id(switch_id)
            now = self.clock.now()
            values = {"last_check_in": now, "is_triggered": False, "updated_at": now}
            if self.config.clear_token_on_check_in:
                values.update(access_token=None, token_expires_at=None)
            event = CheckInEvent(
                switch_id=switch_id,
                checked_in_at=now,
                ip_address=origin.ip_address,
                user_agent=origin.user_agent,
                origin=dict(origin.metadata),
            )
            try:
                updated = self.store.conditional_update(switch.id, switch.version, values, audit=[event])
            except ConflictError:
                optimistic_conflicts_total.labels(service=self.service_name, operation="check_in").inc()
                logger.warning("check-in conflict retry=%s/%s switch_id=%s", attempt, attempts, switch_id)
                if attempt == attempts:
                    raise
                continue
            check_ins_total.labels(service=self.service_name).inc()
            if switch.is_triggered:
                logger.info("check-in reset triggered switch switch_id=%s", switch_id)
            logger.info("check-in recorded switch_id=%s", switch_id)
            return CheckInResponse(
                switch_id=updated.id,
                last_check_in=now,
                days_until_trigger=updated.inactivity_period_days,
                trigger_date=now + timedelta(days=updated.inactivity_period_days),
            )
        raise ConflictError(f"check-in for switch {switch_id} did not complete")

    def get_status(self, switch_id: str) -> SwitchStatus:
        switch = self.store.find_by_id(switch_id)
        if switch is None:
            return SwitchStatus(configured=False)
        last_check_in = as_utc(switch.last_check_in)
        elapsed = days_since(self.clock.now(), last_check_in) if last_check_in is not None else None
        if switch.is_triggered:
            until_trigger = 0
        elif elapsed is None:
            until_trigger = switch.inactivity_period_days
        else:
            until_trigger = max(0, switch.inactivity_period_days - elapsed)
        return SwitchStatus(
            configured=True,
            switch_id=switch.id,
            is_active=switch.is_active,
            is_triggered=switch.is_triggered,
            last_check_in=last_check_in,
            days_since_check_in=elapsed,
            days_until_trigger=until_trigger,
            inactivity_period_days=switch.inactivity_period_days,
            nominee_email=switch.nominee_email,
            nominee_name=switch.nominee_name,
        )

    def run_scan(self) -> ScanReport:
        return self.scanner.run_scan()

    def validate_access_token(self, token: str) -> AccessGrant:
        return self.validator.validate(token)

    def send_test_notification(self, switch_id: str) -> DispatchResult:
        switch = self.store.get_by_id(switch_id)
        return self.dispatcher.send_test(switch)

    def list_notifications(self, switch_id: str, limit: int = 100) -> list[NotificationRecord]:
        self.store.get_by_id(switch_id)
        return self.ledger.list_for_switch(switch_id, limit=limit)
