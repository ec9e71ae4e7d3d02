"""Owner warnings: recipients, dedup window and delivery failures."""

from vaultswitch.services.switch.evaluator import evaluate
from vaultswitch.services.switch.notifier import FAILED, SENT, SKIPPED


def _sent_records(service, switch_id, kind):
    return [
        record
        for record in service.ledger.list_for_switch(switch_id)
        if record.kind == kind and record.status == SENT
    ]


def test_warning_goes_to_owner(service, make_switch, channel):
    """Warnings are addressed to the owner, not the nominee."""

    switch = make_switch(days_ago=135, owner_email="alice@example.test")

    report = service.run_scan()

    assert report.warned == 1
    assert [to for to, _ in channel.sent] == ["alice@example.test"]
    _, message = channel.sent[0]
    assert "45 days" in message.text
    assert "Robin" in message.text
    assert "https://vault.example.test/checkin" in message.text
    assert len(_sent_records(service, switch.id, "warning")) == 1


def test_dedup_within_window(service, make_switch, clock, channel):
    """Two scans a day apart send one warning; a scan 8 days later may send another."""

    switch = make_switch(days_ago=135)

    first = service.run_scan()
    clock.advance(days=1)
    second = service.run_scan()

    assert first.warned == 1
    assert second.warned == 0
    assert second.results[0].action == "deduplicated"
    assert len(_sent_records(service, switch.id, "warning")) == 1

    clock.advance(days=7)
    third = service.run_scan()

    assert third.warned == 1
    assert len(_sent_records(service, switch.id, "warning")) == 2
    assert len(channel.sent) == 2


def test_final_warning_is_tracked_separately(service, make_switch, clock):
    """A recent warning does not suppress the first final warning."""

    switch = make_switch(days_ago=160)

    service.run_scan()
    clock.advance(days=2)
    report = service.run_scan()

    assert report.final_warned == 1
    assert len(_sent_records(service, switch.id, "warning")) == 1
    assert len(_sent_records(service, switch.id, "final_warning")) == 1


def test_failed_delivery_is_recorded_and_retried(service, make_switch, clock, channel):
    """A failed send leaves a `failed` row and does not count against the window."""

    switch = make_switch(days_ago=135)
    channel.fail = True

    report = service.run_scan()

    assert report.warned == 0
    assert report.results[0].action == "notify_failed"
    assert report.errors and "relay unavailable" in report.errors[0].error
    records = service.ledger.list_for_switch(switch.id)
    assert [(r.kind, r.status) for r in records] == [("warning", FAILED)]

    channel.fail = False
    clock.advance(days=1)
    retry = service.run_scan()

    assert retry.warned == 1
    assert len(_sent_records(service, switch.id, "warning")) == 1


def test_dispatch_result_reports_skip(service, make_switch, clock):
    """Direct dispatch returns SKIPPED when the window already holds a send."""

    switch = make_switch(days_ago=136)
    assessment = evaluate(clock.now(), switch.last_check_in, switch.inactivity_period_days)

    assert service.dispatcher.dispatch(switch, assessment).status == SENT
    assert service.dispatcher.dispatch(switch, assessment).status == SKIPPED


def test_test_notification_goes_to_nominee_and_bypasses_dedup(service, make_switch, channel):
    """Test messages are never deduplicated and fall back when the owner is unknown."""

    switch = make_switch(days_ago=1, owner_email=None, nominee_email="kim@example.test")

    first = service.send_test_notification(switch.id)
    second = service.send_test_notification(switch.id)

    assert first.status == SENT and second.status == SENT
    assert [to for to, _ in channel.sent] == ["kim@example.test", "kim@example.test"]
    assert "Vault Owner" in channel.sent[0][1].text
