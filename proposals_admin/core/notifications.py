"""
Proposal event notifications.

Participants are told about official proposals, answers and reassignments
through events. Delivery (email, push, the participant timeline) belongs to
the participant-facing platform; this service only emits the events as
structured log records that a log shipper can forward.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

logger = logging.getLogger(__name__)

PROPOSAL_EVENTS = frozenset(
    {
        "proposal_published",
        "proposal_answered",
        "proposal_update_category",
        "proposal_update_scope",
    }
)


def notify(
    event: str,
    *,
    entity_type: str,
    entity_id: str,
    actor: str,
    recipients: Iterable[str] | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    """
    Emit a proposal event to its recipients.

    Args:
        event: Event name, one of PROPOSAL_EVENTS
        entity_type: Resource type the event is about (e.g. "Proposal")
        entity_id: Id of that resource
        actor: Administrator who triggered the event
        recipients: Author or follower handles; an event without recipients is dropped
        details: Event payload (state, category name...)
    """
    if event not in PROPOSAL_EVENTS:
        raise ValueError(f"Unknown proposal event: {event}")

    affected = sorted(set(recipients or []))
    if not affected:
        logger.debug("notify:%s skipped, no recipients", event)
        return

    logger.info(
        "notify:%s",
        event,
        extra={
            "event": event,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "actor": actor,
            "recipients": affected,
            "details": details or {},
        },
    )
