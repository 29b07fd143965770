"""Shared helper turning a committed transition into templated jobs."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any
from uuid import UUID

from lifecycle_kernel.domain.lifecycle import TransitionContext
from lifecycle_kernel.domain.notification import NotificationJob
from lifecycle_services.templates import default_template_registry

_TEMPLATES = default_template_registry()


def template_jobs(
    context: TransitionContext,
    template_key: str,
    recipients: Iterable[UUID | None],
    variables: Mapping[str, Any],
) -> list[NotificationJob]:
    """One job per distinct, non-null recipient."""
    template = _TEMPLATES.get(template_key)
    title, body = template.render(variables)
    jobs: list[NotificationJob] = []
    seen: set[UUID] = set()
    for recipient in recipients:
        if recipient is None or recipient in seen:
            continue
        seen.add(recipient)
        jobs.append(
            NotificationJob(
                recipient_id=recipient,
                channel=template.channel,
                source_entity=context.rule.kind,
                source_id=context.after.entity_id,
                title=title,
                body=body,
                priority=template.priority,
                data={
                    "template": template_key,
                    "action": context.rule.action,
                    "status": context.after.status,
                    "audit_record_id": str(context.audit_record_id),
                },
            )
        )
    return jobs
