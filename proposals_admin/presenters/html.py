"""
HTML helpers for rendering untrusted proposal text.

* ``strip_tags``: plain text (escaped) without any markup.
* ``sanitize_html``: markup restricted to an allow-list of tags/attributes.
* ``auto_link``: turns bare URLs into links, outside of existing anchors.
* ``render_hashtags``: replaces hashtag global ids with ``#name``.
"""

from __future__ import annotations

import html
import re
from html.parser import HTMLParser
from urllib.parse import urlsplit

ALLOWED_TAGS = frozenset(
    {
        "a",
        "b",
        "blockquote",
        "br",
        "code",
        "em",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "hr",
        "i",
        "img",
        "li",
        "ol",
        "p",
        "pre",
        "strong",
        "sub",
        "sup",
        "u",
        "ul",
    }
)

ALLOWED_ATTRIBUTES = {
    "a": frozenset({"href", "title", "target", "rel"}),
    "img": frozenset({"src", "alt", "title", "width", "height"}),
}

URL_ATTRIBUTES = frozenset({"href", "src"})
ALLOWED_SCHEMES = frozenset({"http", "https", "mailto"})

VOID_TAGS = frozenset({"br", "hr", "img"})

# Elements dropped together with everything inside them
DROPPED_CONTENT_TAGS = frozenset(
    {"script", "style", "iframe", "object", "embed", "noscript", "template", "textarea"}
)

_CONTROL_CHARS = re.compile(r"[\x00-\x20\x7f]+")

_URL = re.compile(r"(?:https?://|www\.)[^\s<>\"']+", re.IGNORECASE)
_TRAILING_PUNCTUATION = ".,;:!?'\""
_TAG_SPLIT = re.compile(r"(<[^>]*>)")
_TRAILING_ENTITY = re.compile(r"&#?\w+;$")

HASHTAG_GID = re.compile(
    r"gid://[\w-]+/Decidim::Hashtag/(?P<id>\d+)/?(?P<extra>_?)(?P<name>[^\W_][\w]*)?",
    re.UNICODE,
)


def safe_url(value: str | None) -> bool:
    """True when ``value`` is a relative URL or uses an allowed scheme."""
    if not value:
        return False
    normalized = _CONTROL_CHARS.sub("", html.unescape(value))
    if normalized.startswith("//"):
        return True
    scheme = urlsplit(normalized).scheme.lower()
    return scheme == "" or scheme in ALLOWED_SCHEMES


class _TextExtractor(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.parts: list[str] = []
        self._dropped_depth = 0

    def handle_starttag(self, tag: str, attrs) -> None:
        if tag in DROPPED_CONTENT_TAGS:
            self._dropped_depth += 1

    def handle_endtag(self, tag: str) -> None:
        if tag in DROPPED_CONTENT_TAGS and self._dropped_depth:
            self._dropped_depth -= 1

    def handle_data(self, data: str) -> None:
        if not self._dropped_depth:
            self.parts.append(data)


def strip_tags(text: str | None) -> str:
    """Remove every tag, keeping the (escaped) text content."""
    if not text:
        return ""
    parser = _TextExtractor()
    parser.feed(text)
    parser.close()
    return html.escape("".join(parser.parts), quote=False)


class _Sanitizer(HTMLParser):
    def __init__(self, tags: frozenset[str], attributes: dict[str, frozenset[str]]) -> None:
        super().__init__(convert_charrefs=True)
        self.tags = tags
        self.attributes = attributes
        self.parts: list[str] = []
        self.open_tags: list[str] = []
        self._dropped_depth = 0

    def _clean_attrs(self, tag: str, attrs: list[tuple[str, str | None]]) -> str:
        allowed = self.attributes.get(tag, frozenset())
        cleaned = []
        for name, value in attrs:
            if name not in allowed or name.startswith("on"):
                continue
            if name in URL_ATTRIBUTES and not safe_url(value):
                continue
            cleaned.append(f' {name}="{html.escape(value or "", quote=True)}"')
        return "".join(cleaned)

    def handle_starttag(self, tag: str, attrs) -> None:
        if tag in DROPPED_CONTENT_TAGS:
            self._dropped_depth += 1
            return
        if self._dropped_depth or tag not in self.tags:
            return
        self.parts.append(f"<{tag}{self._clean_attrs(tag, attrs)}>")
        if tag not in VOID_TAGS:
            self.open_tags.append(tag)

    def handle_startendtag(self, tag: str, attrs) -> None:
        if tag in VOID_TAGS:
            self.handle_starttag(tag, attrs)

    def handle_endtag(self, tag: str) -> None:
        if tag in DROPPED_CONTENT_TAGS:
            if self._dropped_depth:
                self._dropped_depth -= 1
            return
        if self._dropped_depth or tag not in self.open_tags:
            return
        while self.open_tags:
            open_tag = self.open_tags.pop()
            self.parts.append(f"</{open_tag}>")
            if open_tag == tag:
                break

    def handle_data(self, data: str) -> None:
        if not self._dropped_depth:
            self.parts.append(html.escape(data, quote=False))

    def result(self) -> str:
        self.close()
        closing = [f"</{tag}>" for tag in reversed(self.open_tags)]
        self.open_tags = []
        return "".join(self.parts + closing)


def sanitize_html(
    text: str | None,
    *,
    tags: frozenset[str] = ALLOWED_TAGS,
    attributes: dict[str, frozenset[str]] | None = None,
) -> str:
    """Keep allow-listed tags and attributes, drop unsafe URLs and event handlers.

    Text of removed tags is kept; script/style-like elements are removed with
    their content. Unclosed tags are closed at the end.
    """
    if not text:
        return ""
    parser = _Sanitizer(tags, ALLOWED_ATTRIBUTES if attributes is None else attributes)
    parser.feed(text)
    return parser.result()


def _split_trailing(url: str) -> tuple[str, str]:
    trailing = ""
    while url:
        last = url[-1]
        if last == ";" and _TRAILING_ENTITY.search(url):
            break
        if last in _TRAILING_PUNCTUATION:
            pass
        elif last == ")" and url.count("(") < url.count(")"):
            pass
        else:
            break
        trailing = last + trailing
        url = url[:-1]
    return url, trailing


def _link(match: re.Match) -> str:
    url, trailing = _split_trailing(match.group(0))
    if not url or url.lower() in ("http://", "https://", "www."):
        return match.group(0)
    href = url if "://" in url else f"http://{url}"
    return f'<a href="{href}" target="_blank" rel="nofollow noopener">{url}</a>{trailing}'


def auto_link(text: str | None) -> str:
    """Turn bare http(s) and www URLs into links.

    ``text`` is expected to be escaped/sanitized HTML; URLs inside existing
    anchors or inside tag attributes are left alone.
    """
    if not text:
        return ""

    output: list[str] = []
    anchor_depth = 0
    for segment in _TAG_SPLIT.split(text):
        if segment.startswith("<") and segment.endswith(">"):
            lowered = segment.lower()
            if re.match(r"<a[\s>]", lowered):
                anchor_depth += 1
            elif lowered.startswith("</a") and anchor_depth:
                anchor_depth -= 1
            output.append(segment)
        elif anchor_depth:
            output.append(segment)
        else:
            output.append(_URL.sub(_link, segment))
    return "".join(output)


def render_hashtags(text: str | None, *, links: bool = False, extras: bool = True) -> str:
    """Replace hashtag global ids by ``#name``.

    Names prefixed by ``_`` are extended hashtags, rendered only with
    ``extras``. With ``links`` each hashtag links to the search page.
    """
    if not text:
        return ""

    def _render(match: re.Match) -> str:
        name = match.group("name")
        if not name:
            return ""
        if match.group("extra") and not extras:
            return ""
        if links:
            return f'<a href="/search?term=%23{name}" class="hashtag-mention">#{name}</a>'
        return f"#{name}"

    return HASHTAG_GID.sub(_render, text)
