"""Command that answers a proposal."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from proposals_admin.commands.base import Broadcast, Command, Outcome
from proposals_admin.core import traceability
from proposals_admin.core.notifications import notify
from proposals_admin.db.models import utcnow
from proposals_admin.domain.enums import ProposalAction

if TYPE_CHECKING:
    from proposals_admin.db.models import Proposal
    from proposals_admin.domain.context import AdminContext
    from proposals_admin.forms.answer import ProposalAnswerForm

logger = logging.getLogger(__name__)


class AnswerProposal(Command):
    """
    Sets the answer state and text of a proposal.

    When the component publishes answers immediately the answer is published
    at once, otherwise it stays hidden until ``PublishAnswers`` runs.
    """

    def __init__(
        self, form: ProposalAnswerForm, proposal: Proposal, context: AdminContext
    ) -> None:
        super().__init__(context)
        self.form = form
        self.proposal = proposal

    async def perform(self) -> Broadcast:
        if not await self.form.validate_form(self.context):
            return self.broadcast(Outcome.INVALID)

        initial_state = self.proposal.state
        now = utcnow()
        attributes = {
            "state": self.form.state,
            "answer": self.form.answer,
            "answered_at": now,
        }
        publish = self.context.settings.publish_answers_immediately
        if publish and not self.proposal.published_state:
            attributes["state_published_at"] = now

        async with self.transaction():
            await traceability.traceable_update(
                self.db,
                self.proposal,
                attributes,
                component=self.context.component,
                user_id=self.context.user_id,
                action=ProposalAction.ANSWER.value,
            )

        if publish and initial_state != self.proposal.state:
            notify(
                "proposal_answered",
                entity_type="Proposal",
                entity_id=str(self.proposal.id),
                actor=self.context.user_id,
                recipients=self.proposal.authors,
                details={"state": self.proposal.state},
            )

        logger.info("Answered proposal %s with state %s", self.proposal.id, self.proposal.state)
        return self.broadcast(Outcome.OK, self.proposal)
