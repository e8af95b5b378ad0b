"""Bulk scope reassignment."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from sqlalchemy import select

from proposals_admin.commands.base import Broadcast, Command, Outcome
from proposals_admin.commands.update_proposal_category import component_proposals
from proposals_admin.core import traceability
from proposals_admin.core.notifications import notify
from proposals_admin.db.models import Proposal, Scope

if TYPE_CHECKING:
    from proposals_admin.domain.context import AdminContext

logger = logging.getLogger(__name__)


class UpdateProposalScope(Command):
    """
    Assigns a scope of the organization to a set of proposals.

    Same contract as ``UpdateProposalCategory`` with ``invalid_scope`` and
    ``update_proposals_scope``.
    """

    def __init__(
        self,
        scope_id: int | None,
        proposal_ids: Sequence[int] | None,
        context: AdminContext,
    ) -> None:
        super().__init__(context)
        self.scope_id = scope_id
        self.proposal_ids = list(proposal_ids or [])
        self.response: dict[str, Any] = {"subject_name": "", "successful": [], "errored": []}

    async def perform(self) -> Broadcast:
        scope = await self._find_scope()
        if scope is None:
            return self.broadcast(Outcome.INVALID_SCOPE)
        if not self.proposal_ids:
            return self.broadcast(Outcome.INVALID_PROPOSAL_IDS)

        self.response["subject_name"] = scope.name

        for proposal in await component_proposals(self.context, self.proposal_ids):
            if proposal.scope_id == scope.id:
                self.response["errored"].append(proposal.title)
                continue

            async with self.transaction():
                await traceability.apply_changes(
                    self.db,
                    proposal,
                    {"scope_id": scope.id},
                    whodunnit=self.context.user_id,
                )
            self._notify_authors(proposal, scope)
            self.response["successful"].append(proposal.title)

        logger.info(
            "Scope %s assigned to %d proposals (%d already had it)",
            scope.id,
            len(self.response["successful"]),
            len(self.response["errored"]),
        )
        return self.broadcast(Outcome.UPDATE_PROPOSALS_SCOPE, self.response)

    async def _find_scope(self) -> Scope | None:
        if self.scope_id is None:
            return None
        return await self.db.scalar(
            select(Scope).where(
                Scope.id == self.scope_id,
                Scope.organization_id == self.context.organization_id,
            )
        )

    def _notify_authors(self, proposal: Proposal, scope: Scope) -> None:
        recipients = proposal.authors
        if not recipients:
            return
        notify(
            "proposal_update_scope",
            entity_type="Proposal",
            entity_id=str(proposal.id),
            actor=self.context.user_id,
            recipients=recipients,
            details={"scope_id": scope.id, "scope_name": scope.name},
        )
