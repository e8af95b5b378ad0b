"""
Admin command objects.

Each command performs one mutation and broadcasts a single named outcome.
"""

from proposals_admin.commands.answer_proposal import AnswerProposal
from proposals_admin.commands.base import Broadcast, Command, Outcome
from proposals_admin.commands.create_proposal import CreateProposal
from proposals_admin.commands.create_proposal_note import CreateProposalNote
from proposals_admin.commands.publish_answers import PublishAnswers
from proposals_admin.commands.update_proposal import UpdateProposal
from proposals_admin.commands.update_proposal_category import UpdateProposalCategory
from proposals_admin.commands.update_proposal_scope import UpdateProposalScope

__all__ = [
    "AnswerProposal",
    "Broadcast",
    "Command",
    "CreateProposal",
    "CreateProposalNote",
    "Outcome",
    "PublishAnswers",
    "UpdateProposal",
    "UpdateProposalCategory",
    "UpdateProposalScope",
]
