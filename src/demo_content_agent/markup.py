"""Allow-list sanitizer for generated post markup.

Block comment delimiters (``<!-- wp:paragraph -->``) are kept untouched;
tags outside the allow-list are unwrapped, dangerous ones are removed with
their contents, and attributes are filtered per tag.
"""

from __future__ import annotations

from bs4 import BeautifulSoup, Doctype
from bs4.element import Declaration, ProcessingInstruction, Tag

ALLOWED_TAGS = {
    "a", "abbr", "b", "blockquote", "br", "caption", "cite", "code", "col", "colgroup",
    "dd", "del", "details", "div", "dl", "dt", "em", "figcaption", "figure",
    "h1", "h2", "h3", "h4", "h5", "h6", "hr", "i", "img", "ins", "kbd", "li", "mark",
    "ol", "p", "pre", "q", "s", "section", "small", "span", "strong", "sub", "summary",
    "sup", "table", "tbody", "td", "tfoot", "th", "thead", "tr", "u", "ul",
}

DROPPED_TAGS = {
    "script", "style", "iframe", "object", "embed", "form", "input", "button",
    "select", "textarea", "head", "title", "meta", "link", "noscript", "template",
}

GLOBAL_ATTRIBUTES = {"class", "id", "title", "lang", "dir", "role"}

TAG_ATTRIBUTES = {
    "a": {"href", "target", "rel", "name"},
    "img": {"src", "alt", "width", "height", "loading"},
    "blockquote": {"cite"},
    "q": {"cite"},
    "ol": {"start", "reversed", "type"},
    "td": {"colspan", "rowspan", "headers"},
    "th": {"colspan", "rowspan", "scope", "headers"},
    "col": {"span"},
    "colgroup": {"span"},
    "details": {"open"},
    "del": {"datetime"},
    "ins": {"datetime"},
}

URL_ATTRIBUTES = {"href", "src", "cite"}
SAFE_SCHEMES = ("http:", "https:", "mailto:", "tel:")


def _is_safe_url(value: str) -> bool:
    compact = "".join(value.split()).lower()
    if ":" not in compact.split("/", 1)[0]:
        return True
    return compact.startswith(SAFE_SCHEMES)


def _clean_attributes(tag: Tag) -> None:
    allowed = GLOBAL_ATTRIBUTES | TAG_ATTRIBUTES.get(tag.name, set())
    for attr in list(tag.attrs):
        name = attr.lower()
        if name.startswith("aria-") or name.startswith("data-"):
            continue
        if name not in allowed:
            del tag.attrs[attr]
            continue
        if name in URL_ATTRIBUTES:
            value = tag.attrs[attr]
            if isinstance(value, list):
                value = " ".join(value)
            if not _is_safe_url(str(value)):
                del tag.attrs[attr]


def sanitize_post_markup(html: str) -> str:
    soup = BeautifulSoup(html or "", "html.parser")

    for node in soup.find_all(string=lambda s: isinstance(s, (Doctype, Declaration, ProcessingInstruction))):
        node.extract()

    for tag in soup.find_all(True):
        if tag.decomposed:
            continue
        if tag.name in DROPPED_TAGS:
            tag.decompose()
        elif tag.name not in ALLOWED_TAGS:
            tag.unwrap()
        else:
            _clean_attributes(tag)

    return soup.decode(formatter="minimal").strip()
