"""Command that publishes pending proposal answers."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from proposals_admin.commands.base import Broadcast, Command, Outcome
from proposals_admin.commands.update_proposal_category import component_proposals
from proposals_admin.core import traceability
from proposals_admin.core.notifications import notify
from proposals_admin.db.models import utcnow
from proposals_admin.domain.enums import ProposalAction

if TYPE_CHECKING:
    from proposals_admin.domain.context import AdminContext

logger = logging.getLogger(__name__)


class PublishAnswers(Command):
    """
    Publishes the answers of the selected proposals.

    Only answered proposals whose answer is not published yet are touched.
    Broadcasts ``ok`` with the ids of the published proposals, or
    ``invalid_proposal_ids`` when nothing was selected.
    """

    def __init__(self, proposal_ids: Sequence[int] | None, context: AdminContext) -> None:
        super().__init__(context)
        self.proposal_ids = list(proposal_ids or [])

    async def perform(self) -> Broadcast:
        if not self.proposal_ids:
            return self.broadcast(Outcome.INVALID_PROPOSAL_IDS)

        pending = [
            proposal
            for proposal in await component_proposals(self.context, self.proposal_ids)
            if proposal.answered and not proposal.published_state
        ]

        async with self.transaction():
            now = utcnow()
            for proposal in pending:
                await traceability.traceable_update(
                    self.db,
                    proposal,
                    {"state_published_at": now},
                    component=self.context.component,
                    user_id=self.context.user_id,
                    action=ProposalAction.PUBLISH_ANSWER.value,
                )

        for proposal in pending:
            notify(
                "proposal_answered",
                entity_type="Proposal",
                entity_id=str(proposal.id),
                actor=self.context.user_id,
                recipients=proposal.authors,
                details={"state": proposal.state},
            )

        published_ids = [proposal.id for proposal in pending]
        logger.info("Published answers of proposals %s", published_ids)
        return self.broadcast(Outcome.OK, published_ids)
