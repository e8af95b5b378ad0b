"""Traceability helpers.

Every admin mutation of a versioned record leaves two traces:

1. A ``Version`` row holding the changeset (``{attribute: [old, new]}``) and
   the subject who made the change (``whodunnit``).
2. An ``ActionLog`` row for the admin log, linked to that version.

The helpers only add rows to the session; committing is up to the caller so
the traces share the transaction of the change they describe.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

from sqlalchemy import inspect, select
from sqlalchemy.ext.asyncio import AsyncSession

from proposals_admin.db.models import ActionLog, Base, Component, Version
from proposals_admin.db.validators import to_jsonable
from proposals_admin.domain.enums import ActionLogVisibility, VersionEvent

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)

# Bookkeeping columns never recorded in a changeset
IGNORED_ATTRIBUTES = frozenset({"id", "created_at", "updated_at"})


def snapshot_entity(
    entity: Any, *, include: Iterable[str] | None = None, exclude: Iterable[str] | None = None
) -> dict:
    """Snapshot an ORM entity into a JSON-serializable dict.

    By default, includes all mapped column attributes.

    Args:
        entity: SQLAlchemy ORM instance.
        include: Optional whitelist of field names.
        exclude: Optional blacklist of field names.

    Returns:
        Dict of field->value, JSON-serializable.
    """

    mapper = inspect(entity).mapper
    column_names = [attr.key for attr in mapper.column_attrs]

    if include is not None:
        include_set = set(include)
        column_names = [n for n in column_names if n in include_set]

    if exclude is not None:
        exclude_set = set(exclude)
        column_names = [n for n in column_names if n not in exclude_set]

    return {name: to_jsonable(getattr(entity, name)) for name in column_names}


def compute_changes(entity: Any, attributes: Mapping[str, Any]) -> dict[str, list[Any]]:
    """Build the changeset that assigning ``attributes`` to ``entity`` would produce.

    Attributes whose value does not change are left out.
    """
    changes: dict[str, list[Any]] = {}
    for name, new_value in attributes.items():
        if name in IGNORED_ATTRIBUTES:
            continue
        old = to_jsonable(getattr(entity, name, None))
        new = to_jsonable(new_value)
        if old != new:
            changes[name] = [old, new]
    return changes


def record_version(
    db: AsyncSession,
    entity: Any,
    *,
    event: VersionEvent,
    changes: Mapping[str, list[Any]],
    whodunnit: str | None,
) -> Version:
    """Add a version row for ``entity`` to the session (not flushed)."""
    version = Version(
        item_type=type(entity).__name__,
        item_id=entity.id,
        event=event.value,
        whodunnit=whodunnit or None,
        object_changes=dict(changes),
    )
    db.add(version)
    return version


async def log_action(
    db: AsyncSession,
    *,
    action: str,
    resource: Any,
    component: Component,
    user_id: str,
    version: Version | None = None,
    visibility: ActionLogVisibility = ActionLogVisibility.ADMIN_ONLY,
    extra: dict[str, Any] | None = None,
) -> ActionLog:
    """Add an admin action log entry for ``resource``.

    The version (if any) is flushed first so the entry can reference it.
    """
    if version is not None and version.id is None:
        await db.flush()

    resource_extra: dict[str, Any] = {}
    title = getattr(resource, "title", None)
    if title is not None:
        resource_extra["title"] = title

    entry = ActionLog(
        organization_id=component.organization_id,
        component_id=component.id,
        participatory_space_id=component.participatory_space_id,
        user_id=user_id,
        action=action,
        resource_type=type(resource).__name__,
        resource_id=resource.id,
        visibility=visibility.value,
        version_id=version.id if version is not None else None,
        extra={
            "component": {"manifest_name": component.manifest_name, "name": component.name},
            "resource": resource_extra,
            **(extra or {}),
        },
    )
    db.add(entry)
    logger.info(
        "Action logged",
        extra={
            "action": action,
            "resource_type": entry.resource_type,
            "resource_id": resource.id,
            "user_id": user_id,
        },
    )
    return entry


async def traceable_create(
    db: AsyncSession,
    model: type[ModelT],
    attributes: Mapping[str, Any],
    *,
    component: Component,
    user_id: str,
    action: str = "create",
    visibility: ActionLogVisibility = ActionLogVisibility.ADMIN_ONLY,
) -> ModelT:
    """Create a record and trace it with a ``create`` version and an action log entry."""
    resource = model(**attributes)
    db.add(resource)
    await db.flush()

    changes = {
        name: [None, to_jsonable(value)]
        for name, value in snapshot_entity(resource).items()
        if name not in IGNORED_ATTRIBUTES and value is not None
    }
    version = record_version(
        db, resource, event=VersionEvent.CREATE, changes=changes, whodunnit=user_id
    )
    await log_action(
        db,
        action=action,
        resource=resource,
        component=component,
        user_id=user_id,
        version=version,
        visibility=visibility,
    )
    return resource


async def apply_changes(
    db: AsyncSession,
    resource: Any,
    attributes: Mapping[str, Any],
    *,
    whodunnit: str | None,
) -> Version | None:
    """Assign ``attributes`` and record an ``update`` version when anything changed.

    Returns:
        The new version, or None when no attribute actually changed.
    """
    changes = compute_changes(resource, attributes)
    for name, value in attributes.items():
        setattr(resource, name, value)

    if not changes:
        return None

    return record_version(
        db, resource, event=VersionEvent.UPDATE, changes=changes, whodunnit=whodunnit
    )


async def traceable_update(
    db: AsyncSession,
    resource: ModelT,
    attributes: Mapping[str, Any],
    *,
    component: Component,
    user_id: str,
    action: str = "update",
    visibility: ActionLogVisibility = ActionLogVisibility.ADMIN_ONLY,
) -> ModelT:
    """Update a record and trace it with an ``update`` version and an action log entry."""
    version = await apply_changes(db, resource, attributes, whodunnit=user_id)
    await db.flush()
    await log_action(
        db,
        action=action,
        resource=resource,
        component=component,
        user_id=user_id,
        version=version,
        visibility=visibility,
    )
    return resource


async def list_versions(db: AsyncSession, resource: Any) -> list[Version]:
    """Versions of ``resource`` in creation order."""
    result = await db.execute(
        select(Version)
        .where(Version.item_type == type(resource).__name__, Version.item_id == resource.id)
        .order_by(Version.id)
    )
    return list(result.scalars().all())
