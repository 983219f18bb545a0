"""HTML to Markdown conversion.

The converter classifies every element once into a :class:`NodeKind` and then
dispatches on that kind.  It walks the children of the page's content
container depth-first and left-to-right:

- headings, paragraphs, lists, code blocks, blockquotes and images become
  their Markdown block form followed by a blank line;
- anchors, inline code and other inline elements are appended inline;
- a generic block element (``div``, ``section``, ``table`` …) is walked
  recursively when it contains block children, otherwise it becomes its
  trimmed text;
- bare text between elements keeps its spacing, with each whitespace run
  collapsed to a single space.

Anchor hrefs are written exactly as they appear in the markup; resolved
links are reported separately by :mod:`webscraper.scraper.links`.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Callable, Dict, List, Union

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PreformattedString, Tag


class NodeKind(Enum):
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    UNORDERED_LIST = "unordered_list"
    ORDERED_LIST = "ordered_list"
    PREFORMATTED = "preformatted"
    INLINE_CODE = "inline_code"
    BLOCKQUOTE = "blockquote"
    IMAGE = "image"
    ANCHOR = "anchor"
    GENERIC_BLOCK = "generic_block"
    GENERIC_INLINE = "generic_inline"
    IGNORED = "ignored"


BLOCK_TAGS = frozenset(
    {
        "address", "article", "aside", "blockquote", "canvas", "dd", "div",
        "dl", "dt", "fieldset", "figcaption", "figure", "footer", "form",
        "h1", "h2", "h3", "h4", "h5", "h6", "header", "hr", "li", "main",
        "nav", "noscript", "ol", "p", "pre", "section", "table", "tfoot",
        "ul", "video",
    }
)

# Elements whose text is never page content.
IGNORED_TAGS = frozenset({"head", "script", "style", "template"})

# Tried in order; the first match is the content container.
CONTENT_SELECTORS = ("main", "[role=main]", "article", ".content", "#content")

_HEADING_LEVELS = {f"h{level}": level for level in range(1, 7)}

_WHITESPACE = re.compile(r"\s+")

_SIMPLE_KINDS = {
    "p": NodeKind.PARAGRAPH,
    "ul": NodeKind.UNORDERED_LIST,
    "ol": NodeKind.ORDERED_LIST,
    "pre": NodeKind.PREFORMATTED,
    "blockquote": NodeKind.BLOCKQUOTE,
    "img": NodeKind.IMAGE,
    "a": NodeKind.ANCHOR,
}

# Kinds that make an enclosing generic block worth walking into.
_STRUCTURAL_KINDS = frozenset(
    {
        NodeKind.HEADING,
        NodeKind.PARAGRAPH,
        NodeKind.UNORDERED_LIST,
        NodeKind.ORDERED_LIST,
        NodeKind.PREFORMATTED,
        NodeKind.BLOCKQUOTE,
        NodeKind.IMAGE,
        NodeKind.GENERIC_BLOCK,
    }
)


# ---------------------------------------------------------------------------
# Classification and text helpers
# ---------------------------------------------------------------------------

def is_block_tag(name: str) -> bool:
    return name in BLOCK_TAGS


def classify(tag: Tag) -> NodeKind:
    """Map an element to the kind of Markdown it produces."""
    name = tag.name
    if name in _HEADING_LEVELS:
        return NodeKind.HEADING
    if name in _SIMPLE_KINDS:
        return _SIMPLE_KINDS[name]
    if name == "code":
        if tag.find_parent("pre") is None:
            return NodeKind.INLINE_CODE
        return NodeKind.GENERIC_INLINE
    if name in IGNORED_TAGS:
        return NodeKind.IGNORED
    if is_block_tag(name):
        return NodeKind.GENERIC_BLOCK
    return NodeKind.GENERIC_INLINE


def visible_text(node: Union[Tag, NavigableString]) -> str:
    """Concatenated text of *node*, skipping comments and script/style content."""
    if isinstance(node, NavigableString):
        return "" if isinstance(node, PreformattedString) else str(node)
    parts: List[str] = []
    for string in node.find_all(string=True):
        if isinstance(string, PreformattedString):
            continue
        if string.find_parent(list(IGNORED_TAGS)) is not None:
            continue
        parts.append(str(string))
    return "".join(parts)


def select_content_container(soup: BeautifulSoup) -> Tag:
    """Pick the element holding the page's main content."""
    for selector in CONTENT_SELECTORS:
        found = soup.select_one(selector)
        if found is not None:
            return found
    return soup.body or soup.html or soup


def _code_language(code: Tag) -> str:
    for cls in code.get("class") or []:
        if cls.startswith("language-"):
            return cls[len("language-"):]
    return ""


# ---------------------------------------------------------------------------
# Emitters, one per NodeKind
# ---------------------------------------------------------------------------

def _emit_heading(tag: Tag, out: List[str]) -> None:
    text = visible_text(tag).strip()
    if text:
        out.append("#" * _HEADING_LEVELS[tag.name] + " " + text + "\n\n")


def _emit_text_block(tag: Tag, out: List[str]) -> None:
    text = visible_text(tag).strip()
    if text:
        out.append(text + "\n\n")


def _list_items(tag: Tag) -> List[str]:
    items = (visible_text(li).strip() for li in tag.find_all("li", recursive=False))
    return [item for item in items if item]


def _emit_unordered_list(tag: Tag, out: List[str]) -> None:
    items = _list_items(tag)
    if not items:
        return
    out.extend(f"- {item}\n" for item in items)
    out.append("\n")


def _emit_ordered_list(tag: Tag, out: List[str]) -> None:
    # Numbering restarts at 1 whatever the ``start`` attribute says.
    items = _list_items(tag)
    if not items:
        return
    out.extend(f"{index}. {item}\n" for index, item in enumerate(items, start=1))
    out.append("\n")


def _emit_preformatted(tag: Tag, out: List[str]) -> None:
    code = tag.find("code")
    if code is None:
        language, text = "", visible_text(tag)
    else:
        language, text = _code_language(code), visible_text(code)
    out.append(f"```{language}\n{text}\n```\n\n")


def _emit_inline_code(tag: Tag, out: List[str]) -> None:
    out.append(f"`{visible_text(tag)}`")


def _emit_blockquote(tag: Tag, out: List[str]) -> None:
    text = visible_text(tag).strip()
    if not text:
        return
    out.extend(f"> {line}\n" for line in text.split("\n"))
    out.append("\n")


def _emit_image(tag: Tag, out: List[str]) -> None:
    alt = tag.get("alt") or ""
    src = tag.get("src") or ""
    out.append(f"![{alt}]({src})\n\n")


def _emit_anchor(tag: Tag, out: List[str]) -> None:
    href = tag.get("href") or ""
    out.append(f"[{visible_text(tag).strip()}]({href})")


def _emit_generic_block(tag: Tag, out: List[str]) -> None:
    if any(
        isinstance(child, Tag) and classify(child) in _STRUCTURAL_KINDS
        for child in tag.children
    ):
        _walk_children(tag, out)
    else:
        _emit_text_block(tag, out)


def _emit_generic_inline(tag: Tag, out: List[str]) -> None:
    out.append(visible_text(tag))


def _emit_nothing(tag: Tag, out: List[str]) -> None:
    return None


_EMITTERS: Dict[NodeKind, Callable[[Tag, List[str]], None]] = {
    NodeKind.HEADING: _emit_heading,
    NodeKind.PARAGRAPH: _emit_text_block,
    NodeKind.UNORDERED_LIST: _emit_unordered_list,
    NodeKind.ORDERED_LIST: _emit_ordered_list,
    NodeKind.PREFORMATTED: _emit_preformatted,
    NodeKind.INLINE_CODE: _emit_inline_code,
    NodeKind.BLOCKQUOTE: _emit_blockquote,
    NodeKind.IMAGE: _emit_image,
    NodeKind.ANCHOR: _emit_anchor,
    NodeKind.GENERIC_BLOCK: _emit_generic_block,
    NodeKind.GENERIC_INLINE: _emit_generic_inline,
    NodeKind.IGNORED: _emit_nothing,
}


def _walk_children(parent: Tag, out: List[str]) -> None:
    for child in parent.children:
        if isinstance(child, Tag):
            _EMITTERS[classify(child)](child, out)
        elif isinstance(child, NavigableString) and not isinstance(child, PreformattedString):
            if not child.strip():
                continue
            text = _WHITESPACE.sub(" ", str(child))
            # No leading space right after a block.
            if not out or out[-1].endswith("\n"):
                text = text.lstrip()
            out.append(text)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def convert_to_markdown(soup: BeautifulSoup) -> str:
    """Convert the main content of *soup* to Markdown.

    Falls back to the trimmed visible text of ``<body>`` when the structured
    conversion yields nothing.
    """
    out: List[str] = []
    _walk_children(select_content_container(soup), out)
    markdown = "".join(out)
    if not markdown.strip():
        markdown = visible_text(soup.body or soup).strip()
    return markdown


def html_to_markdown(html: str) -> str:
    """Parse *html* and convert it; convenience wrapper for callers holding a string."""
    return convert_to_markdown(BeautifulSoup(html, "html.parser"))
