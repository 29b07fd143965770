"""
Notification templates with ``{{variable}}`` interpolation.

Templates carry a title and body, the channel they are delivered on, a
default priority and the variables they declare.  Rendering fails when a
required variable is missing; optional variables render as empty text.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from lifecycle_kernel.domain.notification import (
    NotificationChannel,
    NotificationPriority,
)
from lifecycle_kernel.exceptions import TemplateRenderError

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def interpolate(text: str, variables: Mapping[str, Any]) -> str:
    """Replace ``{{name}}`` placeholders; unknown names render empty."""

    def _sub(match: re.Match[str]) -> str:
        value = variables.get(match.group(1))
        return "" if value is None else str(value)

    return _PLACEHOLDER.sub(_sub, text)


@dataclass(frozen=True)
class NotificationTemplate:
    """
    A title/body pair with declared variables.

    Every placeholder in ``title`` and ``body`` must be declared in
    ``required`` or ``optional``; a template that uses an undeclared name
    is rejected when it is built.
    """

    key: str
    title: str
    body: str
    channel: NotificationChannel = NotificationChannel.IN_APP
    priority: NotificationPriority = NotificationPriority.NORMAL
    required: tuple[str, ...] = ()
    optional: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        undeclared = sorted(self.placeholders() - set(self.required) - set(self.optional))
        if undeclared:
            raise ValueError(
                f"Template '{self.key}' uses undeclared variable(s): {undeclared}"
            )

    def placeholders(self) -> set[str]:
        return set(_PLACEHOLDER.findall(self.title)) | set(_PLACEHOLDER.findall(self.body))

    def render(self, variables: Mapping[str, Any]) -> tuple[str, str]:
        missing = [
            name for name in self.required
            if variables.get(name) in (None, "")
        ]
        if missing:
            raise TemplateRenderError(self.key, missing)
        title = interpolate(self.title, variables)
        body = " ".join(interpolate(self.body, variables).split())
        return title, body


class TemplateRegistry:
    """Lookup of templates by key."""

    def __init__(self, templates: Iterable[NotificationTemplate] = ()):
        self._templates: dict[str, NotificationTemplate] = {}
        for template in templates:
            self.register(template)

    def register(self, template: NotificationTemplate) -> None:
        self._templates[template.key] = template

    def get(self, key: str) -> NotificationTemplate:
        try:
            return self._templates[key]
        except KeyError:
            raise TemplateRenderError(key, []) from None

    def keys(self) -> tuple[str, ...]:
        return tuple(self._templates)


DEFAULT_TEMPLATES: tuple[NotificationTemplate, ...] = (
    NotificationTemplate(
        key="approval_requested",
        title="Approval needed: {{itemName}}",
        body="{{requesterName}} is requesting your approval for '{{itemName}}'. {{description}}",
        priority=NotificationPriority.HIGH,
        required=("itemName", "requesterName"),
        optional=("description",),
    ),
    NotificationTemplate(
        key="approval_approved",
        title="Approved: {{itemName}}",
        body="Your request '{{itemName}}' has been approved by {{approverName}}.",
        required=("itemName", "approverName"),
    ),
    NotificationTemplate(
        key="approval_rejected",
        title="Rejected: {{itemName}}",
        body="Your request '{{itemName}}' has been rejected by {{approverName}}. Reason: {{reason}}",
        priority=NotificationPriority.HIGH,
        required=("itemName", "approverName"),
        optional=("reason",),
    ),
    NotificationTemplate(
        key="request_cancelled",
        title="Cancelled: {{itemName}}",
        body="The request '{{itemName}}' was cancelled.",
        priority=NotificationPriority.LOW,
        required=("itemName",),
    ),
    NotificationTemplate(
        key="payroll_paid",
        title="Payroll paid: {{itemName}}",
        body="Payroll run '{{itemName}}' has been processed. {{itemCount}} payments were released.",
        channel=NotificationChannel.EMAIL,
        required=("itemName", "itemCount"),
    ),
    NotificationTemplate(
        key="registration_cancelled",
        title="Registration cancelled: {{eventName}}",
        body="Your registration for '{{eventName}}' has been cancelled. {{reason}}",
        required=("eventName",),
        optional=("reason",),
    ),
    NotificationTemplate(
        key="registration_checked_in",
        title="Checked in: {{eventName}}",
        body="You are checked in to '{{eventName}}'. Enjoy the event!",
        channel=NotificationChannel.PUSH,
        priority=NotificationPriority.LOW,
        required=("eventName",),
    ),
    NotificationTemplate(
        key="ticket_assigned",
        title="Ticket assigned: {{ticketSubject}}",
        body="{{assignerName}} assigned you the ticket '{{ticketSubject}}'.",
        required=("ticketSubject", "assignerName"),
    ),
    NotificationTemplate(
        key="ticket_resolved",
        title="Ticket resolved: {{ticketSubject}}",
        body="Your ticket '{{ticketSubject}}' has been resolved. {{note}}",
        required=("ticketSubject",),
        optional=("note",),
    ),
)


def default_template_registry() -> TemplateRegistry:
    return TemplateRegistry(DEFAULT_TEMPLATES)
