"""Presenter for proposals (and proposal forms) in the admin API."""

from __future__ import annotations

import html
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from proposals_admin.core.traceability import list_versions
from proposals_admin.domain.enums import VersionEvent
from proposals_admin.presenters.html import auto_link, render_hashtags, sanitize_html, strip_tags

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from proposals_admin.db.models import Proposal, Version

# Attributes shown in the version diff of a proposal
DIFFABLE_ATTRIBUTES = (
    "title",
    "body",
    "category_id",
    "scope_id",
    "address",
    "latitude",
    "longitude",
    "state",
)


@dataclass(frozen=True)
class PresentedVersion:
    """A version as shown in the proposal history."""

    id: int
    index: int
    event: str
    whodunnit: str | None
    created_at: datetime
    changeset: dict[str, list[Any]]

    @property
    def diff(self) -> dict[str, list[Any]]:
        return {
            name: change
            for name, change in self.changeset.items()
            if name in DIFFABLE_ATTRIBUTES
        }


class ProposalPresenter:
    """
    Renders the user-provided text of a proposal safely.

    Works for any object exposing ``title`` and ``body`` (e.g. a
    ``ProposalForm`` being edited); ``id``, ``address`` and versions are used
    when available.
    """

    def __init__(self, proposal: Any, versions: list[Version] | None = None) -> None:
        self.proposal = proposal
        self._versions = versions or []

    @classmethod
    async def load(cls, db: AsyncSession, proposal: Proposal) -> ProposalPresenter:
        """Presenter with the proposal versions loaded."""
        return cls(proposal, await list_versions(db, proposal))

    def title(self, links: bool = False, html_escape: bool = False, extras: bool = True) -> str:
        text = self.proposal.title or ""
        if html_escape:
            text = html.escape(text)
        return render_hashtags(text, links=links, extras=extras)

    def id_and_title(self, links: bool = False, html_escape: bool = False) -> str:
        return f"#{self.proposal.id} - {self.title(links=links, html_escape=html_escape)}"

    def body(self, links: bool = False, extras: bool = True, strip_tags: bool = False) -> str:
        """Body of the proposal.

        Args:
            links: Render hashtags as links and auto-link bare URLs
            extras: Render extended (``_``-prefixed) hashtags
            strip_tags: Drop every tag instead of sanitizing the markup

        Returns:
            Safe HTML (or escaped text when ``strip_tags``)
        """
        text = self.proposal.body or ""
        text = _strip(text) if strip_tags else sanitize_html(text)
        text = render_hashtags(text, links=links, extras=extras)
        if links:
            text = auto_link(text)
        return text

    def address(self) -> str:
        return html.escape(getattr(self.proposal, "address", None) or "")

    def versions(self) -> list[PresentedVersion]:
        """
        History of the proposal.

        An answer state stays hidden while the answer is unpublished; the
        pending state change is shown on the version that publishes the
        answer. Update versions without a visible change are skipped.
        """
        presented: list[PresentedVersion] = []
        state_published = False
        pending_state_change: list[Any] | None = None

        for index, version in enumerate(self._versions, start=1):
            changeset = dict(version.changeset)

            if "state_published_at" in changeset:
                state_published = changeset["state_published_at"][-1] is not None

            if state_published:
                if pending_state_change is not None:
                    changeset.setdefault("state", pending_state_change)
                    pending_state_change = None
            elif "state" in changeset:
                pending_state_change = changeset.pop("state")

            item = PresentedVersion(
                id=version.id,
                index=index,
                event=version.event,
                whodunnit=version.whodunnit,
                created_at=version.created_at,
                changeset=changeset,
            )
            if item.event == VersionEvent.UPDATE.value and not item.diff:
                continue
            presented.append(item)

        return presented


def _strip(text: str) -> str:
    return strip_tags(sanitize_html(text))
