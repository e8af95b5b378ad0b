from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from proposals_admin.domain.enums import SortColumn


class FlashMessages(BaseModel):
    """Flash messages of an action, keyed by kind (notice, alert, error)."""

    notice: str | None = None
    alert: str | None = None
    error: str | None = None


class AttachmentResponse(BaseModel):
    id: int
    title: str
    description: str | None = None
    filename: str
    content_type: str
    file_size: int
    weight: int
    photo: bool

    model_config = ConfigDict(from_attributes=True)


class ProposalResponse(BaseModel):
    id: int
    component_id: int
    title: str
    body: str
    address: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    category_id: int | None = None
    scope_id: int | None = None
    official: bool
    state: str | None = None
    answer: str | None = None
    answered_at: datetime | None = None
    state_published_at: datetime | None = None
    published_at: datetime | None = None
    proposal_votes_count: int
    created_at: datetime
    updated_at: datetime
    attachments: list[AttachmentResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class PresentedProposal(BaseModel):
    """Safe renderings of the proposal text."""

    id_and_title: str
    title: str
    body: str
    address: str


class VersionResponse(BaseModel):
    id: int
    index: int
    event: str
    whodunnit: str | None = None
    created_at: datetime
    changeset: dict[str, list[Any]]

    model_config = ConfigDict(from_attributes=True)


class ProposalNoteResponse(BaseModel):
    id: int
    proposal_id: int
    author_id: str
    body: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OptionResponse(BaseModel):
    id: int
    name: str
    parent_id: int | None = None

    model_config = ConfigDict(from_attributes=True)


class FormResponse(BaseModel):
    """A form to render, with its values, errors and select options."""

    values: dict[str, Any]
    errors: dict[str, list[str]] = Field(default_factory=dict)
    presented: dict[str, str] | None = None
    categories: list[OptionResponse] = Field(default_factory=list)
    scopes: list[OptionResponse] = Field(default_factory=list)


class ProposalListResponse(BaseModel):
    items: list[ProposalResponse]
    page: int
    per_page: int
    total: int


class ProposalShowResponse(BaseModel):
    proposal: ProposalResponse
    presented: PresentedProposal
    versions: list[VersionResponse]
    notes: list[ProposalNoteResponse]
    note_form: FormResponse
    answer_form: FormResponse


class ActionResponse(BaseModel):
    """
    Outcome of a mutating action.

    ``redirect_to`` is set when the client should navigate away; ``render``
    names the form to show again (with ``form``) when the action failed.
    """

    outcome: str
    flash: FlashMessages = Field(default_factory=FlashMessages)
    redirect_to: str | None = None
    render: str | None = None
    proposal: ProposalResponse | None = None
    form: FormResponse | None = None
    proposal_ids: list[int] | None = None
    data: dict[str, Any] | None = None


class BulkCategoryRequest(BaseModel):
    category_id: int | None = None
    proposal_ids: list[int] = Field(default_factory=list)


class BulkScopeRequest(BaseModel):
    scope_id: int | None = None
    proposal_ids: list[int] = Field(default_factory=list)


class PublishAnswersRequest(BaseModel):
    proposal_ids: list[int] = Field(default_factory=list)


class ProposalIndexParams(BaseModel):
    q: str | None = Field(default=None, max_length=200)
    state: str | None = None
    category_id: int | None = None
    scope_id: int | None = None
    sort: SortColumn = SortColumn.ID
    direction: str = Field(default="desc", pattern="^(asc|desc)$")
    page: int = Field(default=1, ge=1)
    per_page: int | None = Field(default=None, ge=1)
