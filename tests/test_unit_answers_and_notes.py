"""
Unit tests for answering proposals, publishing answers and private notes.
"""

from unittest.mock import patch

import pytest

from proposals_admin.commands import AnswerProposal, CreateProposalNote, Outcome, PublishAnswers
from proposals_admin.db.models import ActionLog, ProposalNote
from proposals_admin.forms import ProposalAnswerForm, ProposalNoteForm
from proposals_admin.presenters.proposal import ProposalPresenter
from tests.conftest import acount, acreate_proposal, alast, aset_component_settings


class TestAnswerProposal:
    @pytest.mark.anyio
    async def test_invalid_answer(self, admin_context, proposal):
        form = ProposalAnswerForm(internal_state="rejected", answer="")

        result = await AnswerProposal(form, proposal, admin_context).call()

        assert result.event == Outcome.INVALID
        assert proposal.state is None

    @pytest.mark.anyio
    async def test_publishes_the_answer_immediately(
        self, admin_context, async_db_session, proposal
    ):
        form = ProposalAnswerForm(internal_state="accepted", answer="Great idea.")

        with patch("proposals_admin.commands.answer_proposal.notify") as mock_notify:
            result = await AnswerProposal(form, proposal, admin_context).call()

        assert result.ok
        assert proposal.state == "accepted"
        assert proposal.answer == "Great idea."
        assert proposal.answered is True
        assert proposal.published_state is True
        mock_notify.assert_called_once()

        action_log = await alast(async_db_session, ActionLog)
        assert action_log.action == "answer"
        assert action_log.version.changeset["state"] == [None, "accepted"]

    @pytest.mark.anyio
    async def test_reanswering_keeps_the_publication_date(
        self, admin_context, async_db_session, proposal
    ):
        await AnswerProposal(
            ProposalAnswerForm(internal_state="evaluating"), proposal, admin_context
        ).call()
        published_at = proposal.state_published_at

        result = await AnswerProposal(
            ProposalAnswerForm(internal_state="accepted", answer="Approved."),
            proposal,
            admin_context,
        ).call()

        assert result.ok
        assert proposal.state == "accepted"
        assert proposal.state_published_at == published_at

        action_log = await alast(async_db_session, ActionLog)
        assert action_log.version.changeset["state"] == ["evaluating", "accepted"]
        assert "state_published_at" not in action_log.version.changeset

    @pytest.mark.anyio
    async def test_keeps_the_answer_hidden_until_published(
        self, admin_context, async_db_session, proposal
    ):
        await aset_component_settings(
            async_db_session, admin_context.component, publish_answers_immediately=False
        )
        form = ProposalAnswerForm(internal_state="rejected", answer="Out of budget.")

        with patch("proposals_admin.commands.answer_proposal.notify") as mock_notify:
            result = await AnswerProposal(form, proposal, admin_context).call()

        assert result.ok
        assert proposal.state == "rejected"
        assert proposal.answered is True
        assert proposal.published_state is False
        mock_notify.assert_not_called()

        presenter = await ProposalPresenter.load(async_db_session, proposal)
        assert presenter.versions() == []


class TestPublishAnswers:
    @pytest.mark.anyio
    async def test_no_proposals_selected(self, admin_context):
        result = await PublishAnswers([], admin_context).call()

        assert result.event == Outcome.INVALID_PROPOSAL_IDS

    @pytest.mark.anyio
    async def test_publishes_pending_answers_only(
        self, admin_context, async_db_session, component
    ):
        await aset_component_settings(
            async_db_session, component, publish_answers_immediately=False
        )
        answered = await acreate_proposal(async_db_session, component)
        unanswered = await acreate_proposal(async_db_session, component)
        await AnswerProposal(
            ProposalAnswerForm(internal_state="accepted"), answered, admin_context
        ).call()

        result = await PublishAnswers([answered.id, unanswered.id], admin_context).call()

        assert result.ok
        assert result.payload == [answered.id]
        assert answered.published_state is True
        assert unanswered.published_state is False

        action_log = await alast(async_db_session, ActionLog)
        assert action_log.action == "publish_answer"
        assert action_log.resource_id == answered.id

        presented = (await ProposalPresenter.load(async_db_session, answered)).versions()
        assert len(presented) == 1
        assert presented[0].diff == {"state": [None, "accepted"]}

    @pytest.mark.anyio
    async def test_already_published_answers_are_skipped(
        self, admin_context, async_db_session, proposal
    ):
        await AnswerProposal(
            ProposalAnswerForm(internal_state="evaluating"), proposal, admin_context
        ).call()

        result = await PublishAnswers([proposal.id], admin_context).call()

        assert result.ok
        assert result.payload == []


class TestCreateProposalNote:
    @pytest.mark.anyio
    async def test_invalid_note(self, admin_context, async_db_session, proposal):
        result = await CreateProposalNote(
            ProposalNoteForm(body=""), proposal, admin_context
        ).call()

        assert result.event == Outcome.INVALID
        assert await acount(async_db_session, ProposalNote) == 0

    @pytest.mark.anyio
    async def test_creates_a_note(self, admin_context, async_db_session, proposal):
        result = await CreateProposalNote(
            ProposalNoteForm(body="Call the neighbourhood association"), proposal, admin_context
        ).call()

        assert result.ok
        note = result.payload
        assert note.proposal_id == proposal.id
        assert note.author_id == "admin-123"
        assert note.body == "Call the neighbourhood association"

        action_log = await alast(async_db_session, ActionLog)
        assert action_log.resource_type == "ProposalNote"
        assert action_log.visibility == "admin-only"
