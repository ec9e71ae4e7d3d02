"""Periodic inactivity scan.

Each eligible switch is evaluated independently and its outcome collected into
a `ScanItemResult`; a failure on one switch becomes that item's error and the
scan moves on. Only a failure to list the switches aborts the whole run.
"""

from time import perf_counter
from uuid import uuid4

from vaultswitch.common.clock import Clock
from vaultswitch.common.logging import log_context, logger
from vaultswitch.common.metrics import (
    switch_scan_duration_seconds,
    switch_scans_total,
    switches_evaluated_total,
)
from vaultswitch.common.tracing import get_tracer
from vaultswitch.services.switch.evaluator import Classification, evaluate
from vaultswitch.services.switch.models import Switch
from vaultswitch.services.switch.notifier import FAILED, SENT, NotificationDispatcher
from vaultswitch.services.switch.schemas import ScanItemResult, ScanReport
from vaultswitch.services.switch.store import SwitchStore
from vaultswitch.services.switch.trigger import TriggerExecutor

SCAN_LOCK_NAME = "vaultswitch:scan"

ACTION_NONE = "none"
ACTION_SKIPPED = "skipped"
ACTION_WARNED = "warned"
ACTION_FINAL_WARNED = "final_warned"
ACTION_DEDUPLICATED = "deduplicated"
ACTION_NOTIFY_FAILED = "notify_failed"
ACTION_TRIGGERED = "triggered"
ACTION_FAILED = "failed"

_SENT_ACTION = {
    Classification.WARNING: ACTION_WARNED,
    Classification.FINAL_WARNING: ACTION_FINAL_WARNED,
}


class ScanOrchestrator:
    """Drives every eligible switch through evaluate → notify/trigger."""

    def __init__(
        self,
        store: SwitchStore,
        dispatcher: NotificationDispatcher,
        trigger: TriggerExecutor,
        clock: Clock,
        service_name: str = "switch",
    ) -> None:
        self.store = store
        self.dispatcher = dispatcher
        self.trigger = trigger
        self.clock = clock
        self.service_name = service_name

    def run_scan(self) -> ScanReport:
        """Evaluate all eligible switches once and return the aggregate report.

        Callers must not run two scans at once; see `common.locking`.
        """

        report = ScanReport(scan_id=str(uuid4()), started_at=self.clock.now())
        with log_context(scan_id=report.scan_id), get_tracer().start_as_current_span(
            "switch_scan", attributes={"scan.id": report.scan_id}
        ) as span:
            return self._run(report, span)

    def _run(self, report: ScanReport, span) -> ScanReport:
        start = perf_counter()
        try:
            try:
                switches = self.store.list_eligible()
            except Exception:
                switch_scans_total.labels(service=self.service_name, outcome="failed").inc()
                logger.exception("scan aborted: could not list eligible switches")
                raise
            logger.info("scan started eligible=%s", len(switches))

            for switch in switches:
                item = self._process(switch)
                report.results.append(item)
                report.checked += 1
                if item.action == ACTION_SKIPPED:
                    report.skipped += 1
                elif item.action == ACTION_WARNED:
                    report.warned += 1
                elif item.action == ACTION_FINAL_WARNED:
                    report.final_warned += 1
                elif item.action == ACTION_TRIGGERED:
                    report.triggered += 1

            report.finished_at = self.clock.now()
            switch_scans_total.labels(service=self.service_name, outcome="completed").inc()
            logger.info(
                "scan complete checked=%s warned=%s final_warned=%s triggered=%s skipped=%s errors=%s",
                report.checked,
                report.warned,
                report.final_warned,
                report.triggered,
                report.skipped,
                len(report.errors),
            )
            span.set_attributes(
                {
                    "scan.checked": report.checked,
                    "scan.triggered": report.triggered,
                    "scan.errors": len(report.errors),
                }
            )
            return report
        finally:
            switch_scan_duration_seconds.labels(service=self.service_name).observe(perf_counter() - start)

    def _process(self, switch: Switch) -> ScanItemResult:
        with log_context(switch_id=switch.id):
            try:
                with get_tracer().start_as_current_span("switch_evaluate", attributes={"switch.id": switch.id}):
                    return self._process_one(switch)
            except Exception as exc:
                logger.exception("switch processing failed switch_id=%s", switch.id)
                return ScanItemResult(
                    switch_id=switch.id,
                    action=ACTION_FAILED,
                    error=f"{type(exc).__name__}: {exc}",
                )

    def _process_one(self, listed: Switch) -> ScanItemResult:
        # The listing may be stale by now; a check-in or deactivation since then wins.
        switch = self.store.find_by_id(listed.id)
        if switch is None or not switch.is_active or switch.is_triggered:
            logger.info("switch no longer eligible; skipping switch_id=%s", listed.id)
            return ScanItemResult(switch_id=listed.id, action=ACTION_SKIPPED)

        assessment = evaluate(self.clock.now(), switch.last_check_in, switch.inactivity_period_days)
        if assessment is None:
            logger.info("switch never checked in; skipping switch_id=%s", switch.id)
            return ScanItemResult(switch_id=switch.id, action=ACTION_SKIPPED)

        classification = assessment.classification
        switches_evaluated_total.labels(service=self.service_name, classification=classification.value).inc()
        logger.info(
            "switch evaluated switch_id=%s days_since=%s period=%s progress=%.1f%% classification=%s",
            switch.id,
            assessment.days_since,
            assessment.inactivity_period_days,
            assessment.percent_elapsed,
            classification.value,
        )

        if classification == Classification.EXPIRED:
            result = self.trigger.execute(switch)
            return ScanItemResult(
                switch_id=switch.id,
                classification=classification.value,
                action=ACTION_TRIGGERED,
                error=result.error,
            )

        if classification in _SENT_ACTION:
            # Only the most severe stage is dispatched, so one pass never sends
            # both a warning and a final warning.
            dispatched = self.dispatcher.dispatch(switch, assessment)
            if dispatched.status == SENT:
                action = _SENT_ACTION[classification]
            elif dispatched.status == FAILED:
                action = ACTION_NOTIFY_FAILED
            else:
                action = ACTION_DEDUPLICATED
            return ScanItemResult(
                switch_id=switch.id,
                classification=classification.value,
                action=action,
                error=dispatched.error,
            )

        return ScanItemResult(switch_id=switch.id, classification=classification.value, action=ACTION_NONE)
