"""Command that adds a private note to a proposal."""

from __future__ import annotations

from typing import TYPE_CHECKING

from proposals_admin.commands.base import Broadcast, Command, Outcome
from proposals_admin.core import traceability
from proposals_admin.db.models import ProposalNote

if TYPE_CHECKING:
    from proposals_admin.db.models import Proposal
    from proposals_admin.domain.context import AdminContext
    from proposals_admin.forms.note import ProposalNoteForm


class CreateProposalNote(Command):
    def __init__(self, form: ProposalNoteForm, proposal: Proposal, context: AdminContext) -> None:
        super().__init__(context)
        self.form = form
        self.proposal = proposal

    async def perform(self) -> Broadcast:
        if not await self.form.validate_form(self.context):
            return self.broadcast(Outcome.INVALID)

        async with self.transaction():
            note = await traceability.traceable_create(
                self.db,
                ProposalNote,
                {
                    "proposal_id": self.proposal.id,
                    "author_id": self.context.user_id,
                    "body": self.form.body,
                },
                component=self.context.component,
                user_id=self.context.user_id,
            )

        return self.broadcast(Outcome.OK, note)
