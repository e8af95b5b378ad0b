"""
Unit tests for ProposalPresenter.

Tests cover:
- Body rendering with links and stripped tags
- Sanitized body (allow-listed markup, unsafe URLs dropped)
- Hashtag rendering in title and body
- Version history hiding unpublished answer states
"""

from datetime import UTC, datetime
from types import SimpleNamespace

import pytest

from proposals_admin.core import traceability
from proposals_admin.db.models import Version
from proposals_admin.forms import ProposalForm
from proposals_admin.presenters.proposal import ProposalPresenter

URLS_CONTENT = (
    'Content with <a href="http://urls.net" onmouseover="alert(\'hello\')">URLs</a> '
    "of anchor type and text urls like https://decidim.org.\n"
    'And a malicous <a href="javascript:document.cookies">click me</a>\n'
)


def _proposal(**kwargs) -> SimpleNamespace:
    values = {"id": 7, "title": "A title", "body": "", "address": None}
    values.update(kwargs)
    return SimpleNamespace(**values)


def _version(version_id: int, event: str, changes: dict) -> Version:
    return Version(
        id=version_id,
        item_type="Proposal",
        item_id=7,
        event=event,
        whodunnit="admin-123",
        object_changes=changes,
        created_at=datetime(2024, 1, version_id, tzinfo=UTC),
    )


class TestBody:
    def test_converts_urls_to_links_and_strips_attributes_in_anchors(self):
        presenter = ProposalPresenter(_proposal(body=URLS_CONTENT))

        expected = (
            "Content with URLs of anchor type and text urls like "
            '<a href="https://decidim.org" target="_blank" rel="nofollow noopener">'
            "https://decidim.org</a>.\n"
            "And a malicous click me\n"
        )
        assert presenter.body(links=True, strip_tags=True) == expected

    def test_sanitized_body_keeps_safe_anchors_only(self):
        presenter = ProposalPresenter(_proposal(body=URLS_CONTENT))

        body = presenter.body()

        assert '<a href="http://urls.net">URLs</a>' in body
        assert "onmouseover" not in body
        assert "javascript:" not in body
        assert "<a>click me</a>" in body
        # Without links, bare URLs stay as text
        assert "https://decidim.org." in body
        assert 'target="_blank"' not in body

    def test_script_content_is_removed(self):
        presenter = ProposalPresenter(
            _proposal(body="<p>Hello</p><script>alert('x')</script><b>world</b>")
        )

        assert presenter.body() == "<p>Hello</p><b>world</b>"
        assert presenter.body(strip_tags=True) == "Helloworld"

    def test_stripped_body_escapes_text(self):
        presenter = ProposalPresenter(_proposal(body="<p>1 &lt; 2 &amp; more</p>"))

        assert presenter.body(strip_tags=True) == "1 &lt; 2 &amp; more"

    def test_links_inside_existing_anchors_are_not_linked_again(self):
        presenter = ProposalPresenter(
            _proposal(body='<a href="https://decidim.org">https://decidim.org</a>')
        )

        assert presenter.body(links=True) == (
            '<a href="https://decidim.org">https://decidim.org</a>'
        )

    def test_renders_hashtags(self):
        body = (
            "Join gid://decidim-app/Decidim::Hashtag/3/mobility"
            " and gid://decidim-app/Decidim::Hashtag/4/_extra"
        )
        presenter = ProposalPresenter(_proposal(body=body))

        assert presenter.body() == "Join #mobility and #extra"
        assert presenter.body(extras=False) == "Join #mobility and "
        assert (
            '<a href="/search?term=%23mobility" class="hashtag-mention">#mobility</a>'
            in presenter.body(links=True)
        )


class TestTitle:
    def test_title_escapes_html_when_asked(self):
        presenter = ProposalPresenter(_proposal(title="Parks <b>now</b>"))

        assert presenter.title() == "Parks <b>now</b>"
        assert presenter.title(html_escape=True) == "Parks &lt;b&gt;now&lt;/b&gt;"

    def test_title_renders_hashtags(self):
        presenter = ProposalPresenter(
            _proposal(title="More trees gid://decidim-app/Decidim::Hashtag/1/green")
        )

        assert presenter.title() == "More trees #green"

    def test_id_and_title(self):
        presenter = ProposalPresenter(_proposal(id=42, title="Bike lanes"))

        assert presenter.id_and_title() == "#42 - Bike lanes"

    def test_address_is_escaped(self):
        presenter = ProposalPresenter(_proposal(address="Main <st>"))

        assert presenter.address() == "Main &lt;st&gt;"
        assert ProposalPresenter(_proposal()).address() == ""

    def test_presents_a_form(self):
        form = ProposalForm(title="Plant trees in <i>parks</i>", body="<p>Green city</p>")
        presenter = ProposalPresenter(form)

        assert presenter.title(html_escape=True) == "Plant trees in &lt;i&gt;parks&lt;/i&gt;"
        assert presenter.body() == "<p>Green city</p>"


class TestVersions:
    def test_hides_state_of_an_unpublished_answer(self):
        versions = [
            _version(1, "create", {"title": [None, "A title"]}),
            _version(
                2,
                "update",
                {"state": [None, "accepted"], "answered_at": [None, "2024-01-02T00:00:00"]},
            ),
        ]
        presenter = ProposalPresenter(_proposal(), versions)

        presented = presenter.versions()

        assert [version.id for version in presented] == [1]
        assert all("state" not in version.changeset for version in presented)

    def test_shows_state_on_the_publishing_version(self):
        versions = [
            _version(1, "create", {"title": [None, "A title"]}),
            _version(2, "update", {"state": [None, "accepted"]}),
            _version(3, "update", {"state_published_at": [None, "2024-01-03T00:00:00"]}),
        ]
        presenter = ProposalPresenter(_proposal(), versions)

        presented = presenter.versions()

        assert [version.id for version in presented] == [1, 3]
        assert presented[1].index == 3
        assert presented[1].changeset["state"] == [None, "accepted"]
        assert presented[1].diff == {"state": [None, "accepted"]}
        # The stored version is left untouched
        assert versions[1].object_changes == {"state": [None, "accepted"]}

    def test_published_state_changes_show_directly(self):
        versions = [
            _version(1, "create", {"title": [None, "A title"]}),
            _version(
                2,
                "update",
                {
                    "state": [None, "rejected"],
                    "state_published_at": [None, "2024-01-02T00:00:00"],
                },
            ),
        ]

        presented = ProposalPresenter(_proposal(), versions).versions()

        assert [version.id for version in presented] == [1, 2]
        assert presented[1].diff == {"state": [None, "rejected"]}

    def test_skips_updates_without_visible_changes(self):
        versions = [
            _version(1, "create", {"title": [None, "A title"]}),
            _version(2, "update", {"answered_at": [None, "2024-01-02T00:00:00"]}),
            _version(3, "update", {"title": ["A title", "Another title"]}),
        ]

        presented = ProposalPresenter(_proposal(), versions).versions()

        assert [version.id for version in presented] == [1, 3]


@pytest.mark.anyio
async def test_load_reads_versions_from_the_database(admin_context, proposal):
    await traceability.traceable_update(
        admin_context.db,
        proposal,
        {"title": "Repair every sidewalk of the city"},
        component=admin_context.component,
        user_id=admin_context.user_id,
    )
    await admin_context.db.commit()

    presenter = await ProposalPresenter.load(admin_context.db, proposal)

    presented = presenter.versions()
    assert len(presented) == 1
    assert presented[0].event == "update"
    assert presented[0].diff["title"][1] == "Repair every sidewalk of the city"
