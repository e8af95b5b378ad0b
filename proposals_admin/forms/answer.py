"""Answer form for proposals."""

from __future__ import annotations

from typing import TYPE_CHECKING

from proposals_admin.db.models import Proposal
from proposals_admin.domain.enums import InternalAnswerState
from proposals_admin.forms.base import Form, is_blank

if TYPE_CHECKING:
    from proposals_admin.domain.context import AdminContext


class ProposalAnswerForm(Form):
    """An administrator's answer: a state and, for rejections, a mandatory explanation."""

    internal_state: InternalAnswerState | None = None
    answer: str | None = None

    @classmethod
    def from_model(cls, proposal: Proposal) -> ProposalAnswerForm:
        answerable = {state.value for state in InternalAnswerState}
        state = proposal.state if proposal.state in answerable else None
        return cls(internal_state=state, answer=proposal.answer)

    @property
    def state(self) -> str | None:
        return self.internal_state.value if self.internal_state is not None else None

    async def run_validations(self, context: AdminContext) -> None:
        self.validate_presence("internal_state")
        if self.internal_state == InternalAnswerState.REJECTED and is_blank(self.answer):
            self.add_error("answer", "can't be blank")
