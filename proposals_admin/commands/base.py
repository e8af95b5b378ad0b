"""
Command object base class.

A command performs one admin mutation and reports exactly one named
outcome through a ``Broadcast``. Expected business failures (an invalid
form, an unknown category...) are outcomes, not exceptions; exceptions are
left for unexpected failures and are translated by the API error handlers.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import IntegrityError

from proposals_admin.core.errors import ConflictError
from proposals_admin.core.observability import metrics

if TYPE_CHECKING:
    from proposals_admin.domain.context import AdminContext

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    """Every outcome a proposal command may broadcast."""

    OK = "ok"
    INVALID = "invalid"
    INVALID_CATEGORY = "invalid_category"
    INVALID_SCOPE = "invalid_scope"
    INVALID_PROPOSAL_IDS = "invalid_proposal_ids"
    UPDATE_PROPOSALS_CATEGORY = "update_proposals_category"
    UPDATE_PROPOSALS_SCOPE = "update_proposals_scope"


@dataclass(frozen=True)
class Broadcast:
    """Result of a command: the outcome and its optional payload."""

    event: Outcome
    payload: Any = None

    @property
    def ok(self) -> bool:
        return self.event == Outcome.OK


class Command:
    """Base class of every admin command.

    Subclasses implement ``perform`` and return ``self.broadcast(...)``.
    """

    def __init__(self, context: AdminContext) -> None:
        self.context = context

    @property
    def db(self):
        return self.context.db

    @property
    def command_name(self) -> str:
        return type(self).__name__

    def broadcast(self, event: Outcome, payload: Any = None) -> Broadcast:
        return Broadcast(event=event, payload=payload)

    async def call(self) -> Broadcast:
        """Run the command and record its outcome."""
        start = time.perf_counter()
        try:
            result = await self.perform()
        finally:
            metrics.command_duration_seconds.labels(command=self.command_name).observe(
                time.perf_counter() - start
            )

        metrics.command_outcomes_total.labels(
            command=self.command_name, outcome=result.event.value
        ).inc()
        logger.info(
            "Command %s broadcast %s",
            self.command_name,
            result.event.value,
            extra={
                "command": self.command_name,
                "outcome": result.event.value,
                "component_id": self.context.component.id,
            },
        )
        return result

    async def perform(self) -> Broadcast:
        raise NotImplementedError

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Commit the work done inside the block, or roll all of it back."""
        try:
            yield
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"{self.command_name} failed on integrity error: {e.orig}")
            raise ConflictError(
                "The change conflicts with existing data",
                details={"command": self.command_name},
            ) from e
        except Exception:
            await self.db.rollback()
            raise
