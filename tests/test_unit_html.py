"""
Unit tests for the HTML helpers used by the presenters.
"""

import pytest

from proposals_admin.presenters.html import (
    auto_link,
    render_hashtags,
    safe_url,
    sanitize_html,
    strip_tags,
)


class TestSafeUrl:
    @pytest.mark.parametrize(
        "url",
        [
            "https://decidim.org",
            "http://example.org/a?b=c",
            "mailto:info@example.org",
            "/local",
            "//cdn.example.org/x.png",
        ],
    )
    def test_allowed(self, url):
        assert safe_url(url) is True

    @pytest.mark.parametrize(
        "url",
        [
            "javascript:alert(1)",
            "JaVaScRiPt:alert(1)",
            "java\tscript:alert(1)",
            "data:text/html;base64,xx",
            "vbscript:x",
            "",
            None,
        ],
    )
    def test_rejected(self, url):
        assert safe_url(url) is False

    def test_entity_encoded_scheme_is_rejected(self):
        assert safe_url("&#106;avascript:alert(1)") is False


class TestSanitizeHtml:
    def test_keeps_allowed_markup(self):
        html = "<p>Hello <strong>world</strong></p><ul><li>one</li></ul>"
        assert sanitize_html(html) == html

    def test_drops_unknown_tags_but_keeps_their_text(self):
        assert sanitize_html("<div><span>text</span></div>") == "text"

    def test_drops_disallowed_attributes(self):
        assert (
            sanitize_html(
                '<p class="x" style="color:red">Hi</p>'
                '<img src="https://x.org/a.png" onerror="alert(1)">'
            )
            == '<p>Hi</p><img src="https://x.org/a.png">'
        )

    def test_drops_unsafe_image_source(self):
        assert sanitize_html('<img src="javascript:alert(1)" alt="x">') == '<img alt="x">'

    def test_drops_iframes_with_content(self):
        assert sanitize_html("a<iframe src='https://evil'>inner</iframe>b") == "ab"

    def test_closes_unclosed_tags(self):
        assert sanitize_html("<p><em>open") == "<p><em>open</em></p>"

    def test_ignores_stray_end_tags(self):
        assert sanitize_html("text</p>") == "text"

    def test_escapes_text(self):
        assert sanitize_html("1 < 2") == "1 &lt; 2"

    def test_empty(self):
        assert sanitize_html("") == ""
        assert sanitize_html(None) == ""


class TestStripTags:
    def test_removes_every_tag(self):
        assert strip_tags("<p>Hello <a href='x'>you</a></p>") == "Hello you"

    def test_removes_style_content(self):
        assert strip_tags("<style>p {}</style>Visible") == "Visible"

    def test_empty(self):
        assert strip_tags(None) == ""


class TestAutoLink:
    def test_links_bare_urls(self):
        assert auto_link("See https://decidim.org") == (
            'See <a href="https://decidim.org" target="_blank" rel="nofollow noopener">'
            "https://decidim.org</a>"
        )

    def test_keeps_trailing_punctuation_outside(self):
        result = auto_link("Visit https://decidim.org/path, now!")
        assert result.startswith('Visit <a href="https://decidim.org/path"')
        assert result.endswith("</a>, now!")

    def test_keeps_balanced_parentheses(self):
        result = auto_link("(https://en.wikipedia.org/wiki/Foo_(bar))")
        assert 'href="https://en.wikipedia.org/wiki/Foo_(bar)"' in result
        assert result.endswith("</a>)")

    def test_keeps_trailing_entity_inside_the_link(self):
        result = auto_link("see https://a.org/x&amp;")
        assert 'href="https://a.org/x&amp;"' in result
        assert result.endswith("https://a.org/x&amp;</a>")

    def test_strips_punctuation_after_a_trailing_entity(self):
        result = auto_link("see https://a.org/x&amp;.")
        assert 'href="https://a.org/x&amp;"' in result
        assert result.endswith("</a>.")

    def test_www_urls_get_a_scheme(self):
        assert 'href="http://www.decidim.org"' in auto_link("www.decidim.org")

    def test_does_not_link_inside_attributes(self):
        html = '<img src="https://x.org/a.png">'
        assert auto_link(html) == html


class TestRenderHashtags:
    def test_without_hashtags(self):
        assert render_hashtags("Plain text") == "Plain text"

    def test_hashtag_with_links(self):
        assert render_hashtags("gid://app/Decidim::Hashtag/9/parks", links=True) == (
            '<a href="/search?term=%23parks" class="hashtag-mention">#parks</a>'
        )
