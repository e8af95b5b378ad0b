"""Bulk category reassignment."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from sqlalchemy import select

from proposals_admin.commands.base import Broadcast, Command, Outcome
from proposals_admin.core import traceability
from proposals_admin.core.notifications import notify
from proposals_admin.db.models import Category, Proposal

if TYPE_CHECKING:
    from proposals_admin.domain.context import AdminContext

logger = logging.getLogger(__name__)


async def component_proposals(
    context: AdminContext, proposal_ids: Sequence[int]
) -> list[Proposal]:
    """Proposals of the context component among ``proposal_ids``, in id order."""
    result = await context.db.execute(
        select(Proposal)
        .where(Proposal.component_id == context.component.id, Proposal.id.in_(proposal_ids))
        .order_by(Proposal.id)
    )
    return list(result.scalars().all())


class UpdateProposalCategory(Command):
    """
    Assigns a category to a set of proposals.

    Broadcasts:
        invalid_category: the category does not exist in the component's space
        invalid_proposal_ids: no proposal was selected
        update_proposals_category: with ``{"subject_name", "successful", "errored"}``
            where ``errored`` lists the titles of proposals that already had
            the category
    """

    def __init__(
        self,
        category_id: int | None,
        proposal_ids: Sequence[int] | None,
        context: AdminContext,
    ) -> None:
        super().__init__(context)
        self.category_id = category_id
        self.proposal_ids = list(proposal_ids or [])
        self.response: dict[str, Any] = {"subject_name": "", "successful": [], "errored": []}

    async def perform(self) -> Broadcast:
        category = await self._find_category()
        if category is None:
            return self.broadcast(Outcome.INVALID_CATEGORY)
        if not self.proposal_ids:
            return self.broadcast(Outcome.INVALID_PROPOSAL_IDS)

        self.response["subject_name"] = category.name

        for proposal in await component_proposals(self.context, self.proposal_ids):
            if proposal.category_id == category.id:
                self.response["errored"].append(proposal.title)
                continue

            async with self.transaction():
                await traceability.apply_changes(
                    self.db,
                    proposal,
                    {"category_id": category.id},
                    whodunnit=self.context.user_id,
                )
            self._notify_authors(proposal, category)
            self.response["successful"].append(proposal.title)

        logger.info(
            "Category %s assigned to %d proposals (%d already had it)",
            category.id,
            len(self.response["successful"]),
            len(self.response["errored"]),
        )
        return self.broadcast(Outcome.UPDATE_PROPOSALS_CATEGORY, self.response)

    async def _find_category(self) -> Category | None:
        if self.category_id is None:
            return None
        return await self.db.scalar(
            select(Category).where(
                Category.id == self.category_id,
                Category.participatory_space_id == self.context.participatory_space_id,
            )
        )

    def _notify_authors(self, proposal: Proposal, category: Category) -> None:
        recipients = proposal.authors
        if not recipients:
            return
        notify(
            "proposal_update_category",
            entity_type="Proposal",
            entity_id=str(proposal.id),
            actor=self.context.user_id,
            recipients=recipients,
            details={"category_id": category.id, "category_name": category.name},
        )
