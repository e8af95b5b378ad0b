"""
SQLAlchemy 2.x ORM models for the Proposals Admin API.

Models use the Mapped[] type annotation syntax and mapped_column, and only
generic column types so the schema can be created on PostgreSQL and SQLite.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship, validates

from proposals_admin.db.validators import validate_coordinate, validate_json_payload
from proposals_admin.domain.enums import ActionLogVisibility
from proposals_admin.domain.settings import ComponentSettings

IMAGE_CONTENT_TYPES = frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"})


def utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class Organization(Base):
    """Tenant owning participatory spaces and scopes."""

    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    host: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, host={self.host})>"


class ParticipatorySpace(Base):
    """
    A participatory process or assembly.

    Categories belong to the space, so every component of the space shares
    the same category tree.
    """

    __tablename__ = "participatory_spaces"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    organization_id: Mapped[int] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    scopes_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    scope_id: Mapped[int | None] = mapped_column(
        ForeignKey("scopes.id", ondelete="SET NULL"), nullable=True
    )

    organization: Mapped[Organization] = relationship("Organization", lazy="joined")

    def __repr__(self) -> str:
        return f"<ParticipatorySpace(id={self.id}, slug={self.slug})>"


class Component(Base):
    """A proposals component inside a participatory space."""

    __tablename__ = "components"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    participatory_space_id: Mapped[int] = mapped_column(
        ForeignKey("participatory_spaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    manifest_name: Mapped[str] = mapped_column(String(64), nullable=False, default="proposals")
    name: Mapped[str] = mapped_column(Text, nullable=False)
    settings: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    participatory_space: Mapped[ParticipatorySpace] = relationship(
        "ParticipatorySpace", lazy="joined"
    )

    @property
    def organization_id(self) -> int:
        return self.participatory_space.organization_id

    @property
    def current_settings(self) -> ComponentSettings:
        return ComponentSettings.from_raw(self.settings)

    def __repr__(self) -> str:
        return f"<Component(id={self.id}, manifest={self.manifest_name})>"


class Category(Base):
    """Category of a participatory space; first level categories may have subcategories."""

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    participatory_space_id: Mapped[int] = mapped_column(
        ForeignKey("participatory_spaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    parent_id: Mapped[int | None] = mapped_column(
        ForeignKey("categories.id", ondelete="CASCADE"), nullable=True
    )

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name={self.name})>"


class Scope(Base):
    """Territorial or thematic scope of an organization."""

    __tablename__ = "scopes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    organization_id: Mapped[int] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    code: Mapped[str] = mapped_column(String(64), nullable=False)
    parent_id: Mapped[int | None] = mapped_column(
        ForeignKey("scopes.id", ondelete="CASCADE"), nullable=True
    )

    def __repr__(self) -> str:
        return f"<Scope(id={self.id}, code={self.code})>"


class Proposal(Base):
    """
    A citizen proposal.

    Official proposals are authored by the organization itself and are the
    only ones administrators may create or edit. The answer is hidden from
    participants until ``state_published_at`` is set.
    """

    __tablename__ = "proposals"
    __table_args__ = (
        CheckConstraint(
            "state IS NULL OR state IN ('accepted','rejected','evaluating','withdrawn')",
            name="chk_proposals_state",
        ),
        CheckConstraint("proposal_votes_count >= 0", name="chk_proposals_votes_count"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    component_id: Mapped[int] = mapped_column(
        ForeignKey("components.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    category_id: Mapped[int | None] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True
    )
    scope_id: Mapped[int | None] = mapped_column(
        ForeignKey("scopes.id", ondelete="SET NULL"), nullable=True, index=True
    )
    official: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_by: Mapped[str | None] = mapped_column(Text, nullable=True)
    state: Mapped[str | None] = mapped_column(String(32), nullable=True)
    answer: Mapped[str | None] = mapped_column(Text, nullable=True)
    answered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    state_published_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    proposal_votes_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    # Relationships
    component: Mapped[Component] = relationship("Component", lazy="joined")
    attachments: Mapped[list[Attachment]] = relationship(
        "Attachment",
        back_populates="proposal",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Attachment.weight, Attachment.id",
    )

    @validates("latitude", "longitude")
    def _validate_coordinates(self, key: str, value: float | None) -> float | None:
        return validate_coordinate(key, value)

    @property
    def published(self) -> bool:
        return self.published_at is not None

    @property
    def answered(self) -> bool:
        return self.answered_at is not None

    @property
    def published_state(self) -> bool:
        return self.state_published_at is not None

    @property
    def photos(self) -> list[Attachment]:
        return [attachment for attachment in self.attachments if attachment.photo]

    @property
    def documents(self) -> list[Attachment]:
        return [attachment for attachment in self.attachments if not attachment.photo]

    @property
    def authors(self) -> list[str]:
        """Notification recipients standing for the proposal authors."""
        if self.official:
            return [f"organization:{self.component.organization_id}"]
        return [self.created_by] if self.created_by else []

    def __repr__(self) -> str:
        return f"<Proposal(id={self.id}, state={self.state}, official={self.official})>"


class Attachment(Base):
    """File attached to a proposal. Image attachments are shown as the photo gallery."""

    __tablename__ = "attachments"
    __table_args__ = (CheckConstraint("file_size >= 0", name="chk_attachments_file_size"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    proposal_id: Mapped[int] = mapped_column(
        ForeignKey("proposals.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_key: Mapped[str] = mapped_column(Text, nullable=False)
    filename: Mapped[str] = mapped_column(Text, nullable=False)
    content_type: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    weight: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    proposal: Mapped[Proposal] = relationship("Proposal", back_populates="attachments")

    @property
    def photo(self) -> bool:
        return self.content_type in IMAGE_CONTENT_TYPES

    def __repr__(self) -> str:
        return f"<Attachment(id={self.id}, filename={self.filename})>"


class ProposalNote(Base):
    """Private note left by an administrator on a proposal."""

    __tablename__ = "proposal_notes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    proposal_id: Mapped[int] = mapped_column(
        ForeignKey("proposals.id", ondelete="CASCADE"), nullable=False, index=True
    )
    author_id: Mapped[str] = mapped_column(Text, nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    def __repr__(self) -> str:
        return f"<ProposalNote(id={self.id}, proposal_id={self.proposal_id})>"


class Version(Base):
    """
    Append-only change history of a versioned record.

    ``object_changes`` maps every changed attribute to ``[old, new]``.
    """

    __tablename__ = "versions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    item_type: Mapped[str] = mapped_column(String(64), nullable=False)
    item_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    event: Mapped[str] = mapped_column(String(32), nullable=False)
    whodunnit: Mapped[str | None] = mapped_column(Text, nullable=True)
    object_changes: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    @validates("object_changes")
    def _validate_json_payload(self, key: str, value: Any) -> Any:
        return validate_json_payload(key, value)

    @property
    def changeset(self) -> dict[str, Any]:
        return self.object_changes or {}

    def __repr__(self) -> str:
        return f"<Version(id={self.id}, item={self.item_type}#{self.item_id}, event={self.event})>"


class ActionLog(Base):
    """
    Admin action log entry.

    Every traceable admin action creates one entry, linked to the version
    the action produced (if any).
    """

    __tablename__ = "action_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    organization_id: Mapped[int] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    component_id: Mapped[int | None] = mapped_column(
        ForeignKey("components.id", ondelete="SET NULL"), nullable=True
    )
    participatory_space_id: Mapped[int | None] = mapped_column(
        ForeignKey("participatory_spaces.id", ondelete="SET NULL"), nullable=True
    )
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    action: Mapped[str] = mapped_column(String(64), nullable=False)
    resource_type: Mapped[str] = mapped_column(String(64), nullable=False)
    resource_id: Mapped[int] = mapped_column(Integer, nullable=False)
    visibility: Mapped[str] = mapped_column(
        String(32), nullable=False, default=ActionLogVisibility.ADMIN_ONLY.value
    )
    extra: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    version_id: Mapped[int | None] = mapped_column(
        ForeignKey("versions.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    version: Mapped[Version | None] = relationship("Version", lazy="selectin")

    @validates("extra")
    def _validate_json_payload(self, key: str, value: Any) -> Any:
        return validate_json_payload(key, value)

    def __repr__(self) -> str:
        return (
            f"<ActionLog(id={self.id}, action={self.action}, "
            f"resource={self.resource_type}#{self.resource_id})>"
        )
