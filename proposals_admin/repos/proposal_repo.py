"""
Repository functions for proposals and their notes.

Writes go through the command objects; this module only reads.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import Select, String, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from proposals_admin.core.errors import NotFoundError
from proposals_admin.db.models import Component, Proposal, ProposalNote
from proposals_admin.domain.enums import SortColumn

logger = logging.getLogger(__name__)

PROPOSAL_NOT_FOUND = "Proposal not found"

# Filter value selecting proposals that have not been answered
NOT_ANSWERED = "not_answered"

_SORT_COLUMNS = {
    SortColumn.ID: Proposal.id,
    SortColumn.TITLE: Proposal.title,
    SortColumn.CREATED_AT: Proposal.created_at,
    SortColumn.PROPOSAL_VOTES_COUNT: Proposal.proposal_votes_count,
}


@dataclass(frozen=True)
class ProposalFilter:
    """Filters of the admin proposal index."""

    search: str | None = None
    state: str | None = None
    category_id: int | None = None
    scope_id: int | None = None
    sort: SortColumn = SortColumn.ID
    descending: bool = True


def _like_pattern(term: str) -> str:
    """Substring LIKE pattern matching ``term`` literally."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _collection(component: Component) -> Select:
    """Published proposals of the component."""
    return select(Proposal).where(
        Proposal.component_id == component.id, Proposal.published_at.is_not(None)
    )


def _apply_filter(stmt: Select, filters: ProposalFilter) -> Select:
    if filters.search:
        term = filters.search.strip()
        stmt = stmt.where(
            or_(
                Proposal.title.ilike(_like_pattern(term), escape="\\"),
                cast(Proposal.id, String) == term.lstrip("#"),
            )
        )
    if filters.state == NOT_ANSWERED:
        stmt = stmt.where(Proposal.state.is_(None))
    elif filters.state:
        stmt = stmt.where(Proposal.state == filters.state)
    if filters.category_id is not None:
        stmt = stmt.where(Proposal.category_id == filters.category_id)
    if filters.scope_id is not None:
        stmt = stmt.where(Proposal.scope_id == filters.scope_id)
    return stmt


async def list_proposals(
    db: AsyncSession,
    component: Component,
    *,
    filters: ProposalFilter | None = None,
    page: int = 1,
    per_page: int = 15,
) -> tuple[list[Proposal], int]:
    """List the component's published proposals.

    Args:
        db: Database session
        component: Component owning the proposals
        filters: Search, state, taxonomy filters and sort order
        page: 1-based page number
        per_page: Page size

    Returns:
        Tuple of (proposals of the page, total matching proposals)
    """
    filters = filters or ProposalFilter()
    stmt = _apply_filter(_collection(component), filters)

    total = await db.scalar(select(func.count()).select_from(stmt.order_by(None).subquery()))

    column = _SORT_COLUMNS[filters.sort]
    order = column.desc() if filters.descending else column.asc()
    stmt = stmt.order_by(order, Proposal.id.desc()).offset((page - 1) * per_page).limit(per_page)

    result = await db.execute(stmt)
    return list(result.scalars().unique().all()), total or 0


async def get_proposal(db: AsyncSession, component: Component, proposal_id: int) -> Proposal:
    """Get a published proposal of the component or raise NotFoundError."""
    proposal = await db.scalar(_collection(component).where(Proposal.id == proposal_id))
    if proposal is None:
        raise NotFoundError(
            PROPOSAL_NOT_FOUND,
            details={"proposal_id": proposal_id, "component_id": component.id},
        )
    return proposal


async def list_notes(db: AsyncSession, proposal: Proposal) -> list[ProposalNote]:
    """Private notes of a proposal, newest first."""
    result = await db.execute(
        select(ProposalNote)
        .where(ProposalNote.proposal_id == proposal.id)
        .order_by(ProposalNote.created_at.desc(), ProposalNote.id.desc())
    )
    return list(result.scalars().all())
