"""Private note form."""

from __future__ import annotations

from typing import TYPE_CHECKING

from proposals_admin.forms.base import Form

if TYPE_CHECKING:
    from proposals_admin.domain.context import AdminContext


class ProposalNoteForm(Form):
    body: str = ""

    async def run_validations(self, context: AdminContext) -> None:
        self.validate_presence("body")
