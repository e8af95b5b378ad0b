"""Form objects validated against the admin request context."""

from proposals_admin.forms.answer import ProposalAnswerForm
from proposals_admin.forms.attachment import AttachmentForm, FilePayload
from proposals_admin.forms.base import Form
from proposals_admin.forms.note import ProposalNoteForm
from proposals_admin.forms.proposal import ProposalForm

__all__ = [
    "AttachmentForm",
    "FilePayload",
    "Form",
    "ProposalAnswerForm",
    "ProposalForm",
    "ProposalNoteForm",
]
