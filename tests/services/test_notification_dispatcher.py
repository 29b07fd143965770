"""
Tests for notification fan-out: dispatcher, channel adapters and templates.

Delivery is best effort.  Nothing in here may raise into the transition
that produced the jobs.
"""

import time
from uuid import uuid4

import pytest
from sqlalchemy import select

from lifecycle_kernel.domain.notification import (
    DeliveryResult,
    NotificationChannel,
    NotificationJob,
    NotificationPriority,
)
from lifecycle_kernel.exceptions import TemplateRenderError
from lifecycle_kernel.models.notification import InAppNotification
from lifecycle_modules.procurement.models import KIND as PURCHASE_ORDER, POStatus
from lifecycle_services.channels import InAppChannel
from lifecycle_services.notification_dispatcher import NotificationDispatcher, dedupe_jobs
from lifecycle_services.templates import (
    NotificationTemplate,
    default_template_registry,
    interpolate,
)


def _job(
    recipient=None,
    channel=NotificationChannel.IN_APP,
    source_id=None,
    title="Approval needed",
) -> NotificationJob:
    return NotificationJob(
        recipient_id=recipient or uuid4(),
        channel=channel,
        source_entity=PURCHASE_ORDER,
        source_id=source_id or uuid4(),
        title=title,
        body="Please review",
    )


class ExplodingChannel:
    channel = NotificationChannel.SMS

    def send(self, job):
        raise ConnectionError("gateway refused")


class SlowChannel:
    channel = NotificationChannel.EMAIL

    def send(self, job):
        time.sleep(0.5)
        return DeliveryResult.ok(job)


@pytest.fixture
def make_dispatcher():
    created = []

    def _make(*adapters, **kwargs):
        d = NotificationDispatcher(channels=adapters, **kwargs)
        created.append(d)
        return d

    yield _make
    for d in created:
        d.shutdown(wait=True)


class TestDispatch:

    def test_delivers_each_job(self, dispatcher, channels):
        jobs = [_job(), _job(channel=NotificationChannel.EMAIL)]

        report = dispatcher.dispatch(jobs)

        assert report.attempted == 2
        assert report.delivered == 2
        assert channels[NotificationChannel.IN_APP].sent == [jobs[0]]
        assert channels[NotificationChannel.EMAIL].sent == [jobs[1]]

    def test_duplicates_dropped_first_wins(self, dispatcher, channels):
        recipient, source = uuid4(), uuid4()
        first = _job(recipient, source_id=source, title="first")
        second = _job(recipient, source_id=source, title="second")

        report = dispatcher.dispatch([first, second])

        assert report.duplicates_skipped == 1
        assert channels[NotificationChannel.IN_APP].sent == [first]

    def test_dedupe_key_ignores_channel(self):
        recipient, source = uuid4(), uuid4()
        unique, skipped = dedupe_jobs(
            [
                _job(recipient, source_id=source),
                _job(recipient, NotificationChannel.PUSH, source_id=source),
                _job(uuid4(), source_id=source),
            ]
        )
        assert len(unique) == 2
        assert skipped == 1

    def test_disabled_channel_skipped(self, channels, make_dispatcher):
        d = make_dispatcher(*channels.values(), enabled_channels=["in_app"])

        report = d.dispatch([_job(), _job(channel=NotificationChannel.SMS)])

        assert report.disabled_skipped == 1
        assert report.delivered == 1
        assert channels[NotificationChannel.SMS].sent == []

    def test_missing_adapter_is_failed_delivery(self, channels, make_dispatcher):
        d = make_dispatcher(channels[NotificationChannel.IN_APP])

        report = d.dispatch([_job(channel=NotificationChannel.PUSH)])

        (result,) = report.results
        assert not result.success
        assert "no adapter registered" in result.error

    def test_adapter_exception_is_failed_delivery(self, make_dispatcher, captured_logs):
        d = make_dispatcher(ExplodingChannel())

        report = d.dispatch([_job(channel=NotificationChannel.SMS)])

        assert report.failed == 1
        assert "gateway refused" in report.results[0].error
        assert any(r["message"] == "notification_dispatch_failed" for r in captured_logs())

    def test_slow_adapter_times_out(self, make_dispatcher):
        d = make_dispatcher(SlowChannel(), timeout_seconds=0.05)

        report = d.dispatch([_job(channel=NotificationChannel.EMAIL)])

        assert report.failed == 1
        assert "timed out" in report.results[0].error

    def test_deferred_returns_report(self, dispatcher, channels):
        future = dispatcher.dispatch_deferred([_job()])
        report = future.result(timeout=5)

        assert report.delivered == 1
        assert len(channels[NotificationChannel.IN_APP].sent) == 1


class TestDeliveryNeverFailsTransition:

    def test_failing_channel_after_submit(
        self, executor, factory, make_request, channels, store, session, captured_logs
    ):
        channels[NotificationChannel.IN_APP].fail = True
        po_id = factory.purchase_order(approver_id=uuid4())

        outcome = executor.execute(make_request(PURCHASE_ORDER, po_id, POStatus.PENDING_APPROVAL))

        assert outcome.applied
        assert store.load(session, PURCHASE_ORDER, po_id).status == "pending_approval"
        assert len(channels[NotificationChannel.IN_APP].sent) == 1
        assert any(r["message"] == "notification_dispatch_failed" for r in captured_logs())

    def test_no_recipient_no_job(self, executor, factory, make_request, sent_jobs):
        po_id = factory.purchase_order(approver_id=None)

        executor.execute(make_request(PURCHASE_ORDER, po_id, POStatus.PENDING_APPROVAL))

        assert sent_jobs() == []


class TestInAppChannel:

    def test_writes_inbox_row(self, session_factory, session, clock):
        job = NotificationJob(
            recipient_id=uuid4(),
            channel=NotificationChannel.IN_APP,
            source_entity=PURCHASE_ORDER,
            source_id=uuid4(),
            title="Approved: PO-1",
            body="Your request has been approved.",
            priority=NotificationPriority.HIGH,
            data={"template": "approval_approved"},
        )

        result = InAppChannel(session_factory, clock).send(job)

        row = session.execute(select(InAppNotification)).scalar_one()
        assert result.success
        assert result.external_id == str(row.id)
        assert row.recipient_id == job.recipient_id
        assert row.priority == "high"
        assert row.read is False
        assert row.data == {"template": "approval_approved"}
        assert row.created_at == clock.now_utc()


class TestTemplates:

    @pytest.fixture
    def templates(self):
        return default_template_registry()

    def test_interpolation(self, templates):
        title, body = templates.get("approval_requested").render(
            {"itemName": "PO-1", "requesterName": "Dana", "description": "Office chairs"}
        )
        assert title == "Approval needed: PO-1"
        assert body == "Dana is requesting your approval for 'PO-1'. Office chairs"

    def test_optional_variable_renders_empty(self, templates):
        _, body = templates.get("approval_requested").render(
            {"itemName": "PO-1", "requesterName": "Dana"}
        )
        assert body == "Dana is requesting your approval for 'PO-1'."

    def test_missing_required_variable(self, templates):
        with pytest.raises(TemplateRenderError) as exc_info:
            templates.get("approval_approved").render({"itemName": "PO-1"})
        assert exc_info.value.missing == ["approverName"]

    def test_unknown_template(self, templates):
        with pytest.raises(TemplateRenderError, match="unknown template"):
            templates.get("no_such_template")

    def test_template_channels(self, templates):
        assert templates.get("payroll_paid").channel is NotificationChannel.EMAIL
        assert templates.get("registration_checked_in").channel is NotificationChannel.PUSH
        assert templates.get("ticket_assigned").channel is NotificationChannel.IN_APP

    def test_interpolate_tolerates_spacing(self):
        assert interpolate("Hi {{ name }}!", {"name": "Sam"}) == "Hi Sam!"
        assert interpolate("Hi {{name}}!", {}) == "Hi !"

    def test_undeclared_placeholder_rejected(self):
        with pytest.raises(ValueError, match="ticketSubjekt"):
            NotificationTemplate(
                key="typo",
                title="Ticket: {{ticketSubjekt}}",
                body="{{note}}",
                required=("ticketSubject",),
                optional=("note",),
            )

    def test_default_templates_declare_every_placeholder(self, templates):
        for key in templates.keys():
            template = templates.get(key)
            assert template.placeholders() == set(template.required) | set(template.optional)
