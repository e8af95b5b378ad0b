"""
Admin endpoints for the proposals of a component.

Every mutating action runs a command and maps its outcome to flash messages,
a status code and either a redirect target or the form to render again.
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request, Response, status

from proposals_admin.api.schemas.proposal import (
    ActionResponse,
    BulkCategoryRequest,
    BulkScopeRequest,
    FlashMessages,
    FormResponse,
    OptionResponse,
    PresentedProposal,
    ProposalIndexParams,
    ProposalListResponse,
    ProposalNoteResponse,
    ProposalResponse,
    ProposalShowResponse,
    PublishAnswersRequest,
    VersionResponse,
)
from proposals_admin.commands import (
    AnswerProposal,
    Broadcast,
    CreateProposal,
    CreateProposalNote,
    Outcome,
    PublishAnswers,
    UpdateProposal,
    UpdateProposalCategory,
    UpdateProposalScope,
)
from proposals_admin.core.config import settings
from proposals_admin.core.dependencies import (
    AsyncDbSession,
    AttachmentStorageDep,
    GeocoderDep,
)
from proposals_admin.core.security import (
    PROPOSAL_ANSWER_CREATE,
    PROPOSAL_ANSWER_PUBLISH,
    PROPOSAL_CATEGORY_UPDATE,
    PROPOSAL_CREATE,
    PROPOSAL_NOTE_CREATE,
    PROPOSAL_READ,
    PROPOSAL_SCOPE_UPDATE,
    PROPOSAL_UPDATE,
    ensure_allowed,
    require_permission,
)
from proposals_admin.db.models import Component
from proposals_admin.domain.context import AdminContext
from proposals_admin.forms import ProposalAnswerForm, ProposalForm, ProposalNoteForm
from proposals_admin.messages import t, to_sentence
from proposals_admin.presenters.proposal import ProposalPresenter
from proposals_admin.repos.component_repo import (
    get_proposals_component,
    list_categories,
    list_scopes,
)
from proposals_admin.repos.proposal_repo import (
    ProposalFilter,
    get_proposal,
    list_notes,
)
from proposals_admin.repos.proposal_repo import list_proposals as list_component_proposals

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/components/{component_id}/manage/proposals", tags=["proposals"])

# Uploaded file contents are never echoed back in form responses
_FORM_DUMP_EXCLUDE = {"add_photos": True, "attachment": {"file": {"data"}}}


async def get_component(component_id: int, db: AsyncDbSession) -> Component:
    """Resolve the proposals component of the request path."""
    return await get_proposals_component(db, component_id)


ComponentDep = Annotated[Component, Depends(get_component)]


# =============================================================================
# Helpers
# =============================================================================


def _index_path(request: Request, component: Component) -> str:
    return request.url_for("list_proposals", component_id=component.id).path


def _show_path(request: Request, component: Component, proposal_id: int) -> str:
    return request.url_for(
        "show_proposal", component_id=component.id, proposal_id=proposal_id
    ).path


def _present(presenter: ProposalPresenter) -> PresentedProposal:
    return PresentedProposal(
        id_and_title=presenter.id_and_title(html_escape=True),
        title=presenter.title(html_escape=True),
        body=presenter.body(links=True),
        address=presenter.address(),
    )


async def _proposal_form_response(
    db: AsyncDbSession, component: Component, form: ProposalForm
) -> FormResponse:
    """Proposal form with its errors, its presented text and the select options."""
    form_presenter = ProposalPresenter(form)
    return FormResponse(
        values=form.model_dump(mode="json", exclude=_FORM_DUMP_EXCLUDE),
        errors=form.errors,
        presented={"title": form_presenter.title(html_escape=True), "body": form_presenter.body()},
        categories=[
            OptionResponse.model_validate(category)
            for category in await list_categories(db, component)
        ],
        scopes=[OptionResponse.model_validate(scope) for scope in await list_scopes(db, component)],
    )


def _bulk_flash(result: Broadcast, subject: str) -> FlashMessages:
    """Flash messages of a bulk category/scope update.

    Args:
        result: Outcome of UpdateProposalCategory or UpdateProposalScope
        subject: "category" or "scope"

    Returns:
        Error for a missing subject, alert for an empty selection, otherwise
        a notice for the updated proposals and an alert for the unchanged ones
    """
    prefix = f"proposals.update_{subject}"
    flash = FlashMessages()

    if result.event in (Outcome.INVALID_CATEGORY, Outcome.INVALID_SCOPE):
        flash.error = t(f"{prefix}.select_a_{subject}")
    elif result.event == Outcome.INVALID_PROPOSAL_IDS:
        flash.alert = t(f"{prefix}.select_a_proposal")
    else:
        response: dict[str, Any] = result.payload
        if response["successful"]:
            flash.notice = t(
                f"{prefix}.success",
                subject_name=response["subject_name"],
                proposals=to_sentence(response["successful"]),
            )
        if response["errored"]:
            flash.alert = t(
                f"{prefix}.invalid",
                subject_name=response["subject_name"],
                proposals=to_sentence(response["errored"]),
            )
    return flash


# =============================================================================
# Collection
# =============================================================================


@router.get("", response_model=ProposalListResponse)
async def list_proposals(
    component: ComponentDep,
    db: AsyncDbSession,
    params: Annotated[ProposalIndexParams, Query()],
    user: dict[str, Any] = Depends(require_permission(PROPOSAL_READ)),
):
    """
    List the published proposals of the component.

    Supports free-text search on title or id, state/category/scope filters,
    sorting and pagination. Requires `proposal:read` permission.
    """
    per_page = min(params.per_page or settings.default_per_page, settings.max_per_page)
    filters = ProposalFilter(
        search=params.q,
        state=params.state,
        category_id=params.category_id,
        scope_id=params.scope_id,
        sort=params.sort,
        descending=params.direction == "desc",
    )
    items, total = await list_component_proposals(
        db, component, filters=filters, page=params.page, per_page=per_page
    )
    return ProposalListResponse(
        items=[ProposalResponse.model_validate(item) for item in items],
        page=params.page,
        per_page=per_page,
        total=total,
    )


@router.get("/new", response_model=FormResponse)
async def new_proposal(
    component: ComponentDep,
    db: AsyncDbSession,
    user: dict[str, Any] = Depends(require_permission(PROPOSAL_CREATE)),
):
    """Blank official proposal form. Requires `proposal:create` permission."""
    ensure_allowed(PROPOSAL_CREATE, component.current_settings)
    return await _proposal_form_response(db, component, ProposalForm.blank())


@router.post("", response_model=ActionResponse, status_code=status.HTTP_201_CREATED)
async def create_proposal(
    form: ProposalForm,
    request: Request,
    response: Response,
    component: ComponentDep,
    db: AsyncDbSession,
    geocoder: GeocoderDep,
    storage: AttachmentStorageDep,
    user: dict[str, Any] = Depends(require_permission(PROPOSAL_CREATE)),
):
    """
    Create an official proposal.

    Returns 201 with a redirect to the index, or 422 with the form and its
    errors. Requires `proposal:create` permission.
    """
    ensure_allowed(PROPOSAL_CREATE, component.current_settings)
    context = AdminContext(
        db=db, component=component, user=user, geocoder=geocoder, storage=storage
    )

    result = await CreateProposal(form, context).call()
    if result.ok:
        return ActionResponse(
            outcome=result.event.value,
            flash=FlashMessages(notice=t("proposals.create.success")),
            redirect_to=_index_path(request, component),
            proposal=ProposalResponse.model_validate(result.payload),
        )

    response.status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    return ActionResponse(
        outcome=result.event.value,
        flash=FlashMessages(alert=t("proposals.create.invalid")),
        render="new",
        form=await _proposal_form_response(db, component, form),
    )


@router.post("/update_category", response_model=ActionResponse)
async def update_category(
    payload: BulkCategoryRequest,
    component: ComponentDep,
    db: AsyncDbSession,
    user: dict[str, Any] = Depends(require_permission(PROPOSAL_CATEGORY_UPDATE)),
):
    """Assign a category to the selected proposals.

    Requires `proposal_category:update` permission.
    """
    context = AdminContext(db=db, component=component, user=user)
    result = await UpdateProposalCategory(payload.category_id, payload.proposal_ids, context).call()
    return ActionResponse(
        outcome=result.event.value,
        flash=_bulk_flash(result, "category"),
        proposal_ids=payload.proposal_ids,
        data=result.payload,
    )


@router.post("/update_scope", response_model=ActionResponse)
async def update_scope(
    payload: BulkScopeRequest,
    component: ComponentDep,
    db: AsyncDbSession,
    user: dict[str, Any] = Depends(require_permission(PROPOSAL_SCOPE_UPDATE)),
):
    """Assign a scope to the selected proposals.

    Requires `proposal_scope:update` permission.
    """
    context = AdminContext(db=db, component=component, user=user)
    result = await UpdateProposalScope(payload.scope_id, payload.proposal_ids, context).call()
    return ActionResponse(
        outcome=result.event.value,
        flash=_bulk_flash(result, "scope"),
        proposal_ids=payload.proposal_ids,
        data=result.payload,
    )


@router.post("/publish_answers", response_model=ActionResponse)
async def publish_answers(
    payload: PublishAnswersRequest,
    component: ComponentDep,
    db: AsyncDbSession,
    user: dict[str, Any] = Depends(require_permission(PROPOSAL_ANSWER_PUBLISH)),
):
    """Publish the pending answers of the selected proposals.

    Requires `proposal_answer:publish` permission.
    """
    ensure_allowed(PROPOSAL_ANSWER_PUBLISH, component.current_settings)
    context = AdminContext(db=db, component=component, user=user)

    result = await PublishAnswers(payload.proposal_ids, context).call()
    if result.event == Outcome.INVALID_PROPOSAL_IDS:
        return ActionResponse(
            outcome=result.event.value,
            flash=FlashMessages(alert=t("proposals.publish_answers.select_a_proposal")),
            proposal_ids=payload.proposal_ids,
        )
    return ActionResponse(
        outcome=result.event.value,
        flash=FlashMessages(notice=t("proposals.publish_answers.success")),
        proposal_ids=result.payload,
    )


# =============================================================================
# Member
# =============================================================================


@router.get("/{proposal_id}", response_model=ProposalShowResponse)
async def show_proposal(
    proposal_id: int,
    component: ComponentDep,
    db: AsyncDbSession,
    user: dict[str, Any] = Depends(require_permission(PROPOSAL_READ)),
):
    """
    Show a proposal with its history, its private notes and the forms to
    answer it and add a note. Requires `proposal:read` permission.
    """
    proposal = await get_proposal(db, component, proposal_id)
    presenter = await ProposalPresenter.load(db, proposal)
    notes = await list_notes(db, proposal)

    return ProposalShowResponse(
        proposal=ProposalResponse.model_validate(proposal),
        presented=_present(presenter),
        versions=[VersionResponse.model_validate(version) for version in presenter.versions()],
        notes=[ProposalNoteResponse.model_validate(note) for note in notes],
        note_form=FormResponse(values=ProposalNoteForm().model_dump(mode="json")),
        answer_form=FormResponse(
            values=ProposalAnswerForm.from_model(proposal).model_dump(mode="json")
        ),
    )


@router.get("/{proposal_id}/edit", response_model=FormResponse)
async def edit_proposal(
    proposal_id: int,
    component: ComponentDep,
    db: AsyncDbSession,
    user: dict[str, Any] = Depends(require_permission(PROPOSAL_UPDATE)),
):
    """Form to edit an official proposal. Requires `proposal:update` permission."""
    proposal = await get_proposal(db, component, proposal_id)
    ensure_allowed(PROPOSAL_UPDATE, component.current_settings, proposal)
    return await _proposal_form_response(db, component, ProposalForm.from_model(proposal))


@router.api_route("/{proposal_id}", methods=["PUT", "PATCH"], response_model=ActionResponse)
async def update_proposal(
    proposal_id: int,
    form: ProposalForm,
    request: Request,
    response: Response,
    component: ComponentDep,
    db: AsyncDbSession,
    geocoder: GeocoderDep,
    storage: AttachmentStorageDep,
    user: dict[str, Any] = Depends(require_permission(PROPOSAL_UPDATE)),
):
    """
    Update an official proposal.

    Returns 200 with a redirect to the index, or 422 with the form and its
    errors. Requires `proposal:update` permission.
    """
    proposal = await get_proposal(db, component, proposal_id)
    ensure_allowed(PROPOSAL_UPDATE, component.current_settings, proposal)
    context = AdminContext(
        db=db, component=component, user=user, geocoder=geocoder, storage=storage
    )

    result = await UpdateProposal(form, proposal, context).call()
    if result.ok:
        return ActionResponse(
            outcome=result.event.value,
            flash=FlashMessages(notice=t("proposals.update.success")),
            redirect_to=_index_path(request, component),
            proposal=ProposalResponse.model_validate(result.payload),
        )

    response.status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    return ActionResponse(
        outcome=result.event.value,
        flash=FlashMessages(alert=t("proposals.update.error")),
        render="edit",
        form=await _proposal_form_response(db, component, form),
    )


@router.post("/{proposal_id}/answer", response_model=ActionResponse)
async def answer_proposal(
    proposal_id: int,
    form: ProposalAnswerForm,
    request: Request,
    response: Response,
    component: ComponentDep,
    db: AsyncDbSession,
    user: dict[str, Any] = Depends(require_permission(PROPOSAL_ANSWER_CREATE)),
):
    """Answer a proposal. Requires `proposal_answer:create` permission."""
    proposal = await get_proposal(db, component, proposal_id)
    ensure_allowed(PROPOSAL_ANSWER_CREATE, component.current_settings, proposal)
    context = AdminContext(db=db, component=component, user=user)

    result = await AnswerProposal(form, proposal, context).call()
    if result.ok:
        return ActionResponse(
            outcome=result.event.value,
            flash=FlashMessages(notice=t("proposal_answers.create.success")),
            redirect_to=_index_path(request, component),
            proposal=ProposalResponse.model_validate(result.payload),
        )

    response.status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    return ActionResponse(
        outcome=result.event.value,
        flash=FlashMessages(alert=t("proposal_answers.create.invalid")),
        render="show",
        form=FormResponse(values=form.model_dump(mode="json"), errors=form.errors),
    )


@router.post(
    "/{proposal_id}/notes", response_model=ActionResponse, status_code=status.HTTP_201_CREATED
)
async def create_proposal_note(
    proposal_id: int,
    form: ProposalNoteForm,
    request: Request,
    response: Response,
    component: ComponentDep,
    db: AsyncDbSession,
    user: dict[str, Any] = Depends(require_permission(PROPOSAL_NOTE_CREATE)),
):
    """Add a private note to a proposal. Requires `proposal_note:create` permission."""
    proposal = await get_proposal(db, component, proposal_id)
    context = AdminContext(db=db, component=component, user=user)

    result = await CreateProposalNote(form, proposal, context).call()
    if result.ok:
        return ActionResponse(
            outcome=result.event.value,
            flash=FlashMessages(notice=t("proposal_notes.create.success")),
            redirect_to=_show_path(request, component, proposal.id),
            data={
                "note": ProposalNoteResponse.model_validate(result.payload).model_dump(mode="json")
            },
        )

    response.status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    return ActionResponse(
        outcome=result.event.value,
        flash=FlashMessages(alert=t("proposal_notes.create.error")),
        render="show",
        form=FormResponse(values=form.model_dump(mode="json"), errors=form.errors),
    )
