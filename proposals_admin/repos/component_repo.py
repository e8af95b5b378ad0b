"""
Repository functions for components and their taxonomy (categories, scopes).
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from proposals_admin.core.errors import NotFoundError
from proposals_admin.db.models import Category, Component, Scope

logger = logging.getLogger(__name__)

PROPOSALS_MANIFEST = "proposals"


async def get_proposals_component(db: AsyncSession, component_id: int) -> Component:
    """Get a proposals component or raise NotFoundError."""
    component = await db.scalar(
        select(Component).where(
            Component.id == component_id, Component.manifest_name == PROPOSALS_MANIFEST
        )
    )
    if component is None:
        raise NotFoundError("Component not found", details={"component_id": component_id})
    return component


async def list_categories(db: AsyncSession, component: Component) -> list[Category]:
    """Categories of the component's participatory space, parents first."""
    result = await db.execute(
        select(Category)
        .where(Category.participatory_space_id == component.participatory_space_id)
        .order_by(Category.parent_id.is_not(None), Category.name, Category.id)
    )
    return list(result.scalars().all())


async def list_scopes(db: AsyncSession, component: Component) -> list[Scope]:
    """Scopes of the component's organization."""
    result = await db.execute(
        select(Scope)
        .where(Scope.organization_id == component.organization_id)
        .order_by(Scope.name, Scope.id)
    )
    return list(result.scalars().all())
