"""Rendering of stored HTML documentation as plain text or markdown."""

import logging
import re
from enum import Enum

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import CData, Comment, Declaration, Doctype, ProcessingInstruction
from markdownify import ASTERISK, ATX, MarkdownConverter
from readability import Document

logger = logging.getLogger(__name__)

# Elements that never carry article content.
CHROME_TAGS = (
    "script",
    "style",
    "noscript",
    "template",
    "head",
    "nav",
    "header",
    "footer",
    "aside",
    "form",
    "iframe",
    "button",
    "svg",
    "canvas",
    "object",
    "embed",
)
SCRIPT_TAGS = frozenset({"script", "style", "noscript", "template"})
PROTECTED_TAGS = frozenset({"html", "body", "main", "article", "pre", "code"})

# id/class naming patterns used by readability to spot page chrome.
UNLIKELY_CANDIDATES = re.compile(
    r"combx|comment|community|disqus|extra|foot|header|menu|remark|rss|shoutbox|sidebar|"
    r"sponsor|ad-break|agegate|pagination|pager|popup|tweet|twitter|breadcrumb|navbar|skip-link",
    re.IGNORECASE,
)
MAYBE_CANDIDATE = re.compile(r"and|article|body|column|main|shadow|content", re.IGNORECASE)

# Link destinations that belong to page chrome rather than content.
CHROME_LINK = re.compile(r"^javascript:|[/?&](share|sharer|intent/tweet)\b|^#(top|main|content)?$", re.IGNORECASE)

# Link-heavy containers are only dropped when their id/class also names them
# as navigation; plain link lists are content (index pages, "See also").
LINK_CONTAINERS = ("div", "section", "ul", "ol", "table")
NAVIGATION_NAMES = re.compile(
    r"nav|menu|toc|breadcrumb|pager|pagination|share|social|sidebar|footer|masthead",
    re.IGNORECASE,
)
MIN_CONTAINER_LINKS = 5
MAX_LINK_DENSITY = 0.8

# Readability output keeping less than this share of the pruned page's text
# or list items is discarded in favour of the pruned page.
MIN_SUMMARY_SHARE = 0.5

BLOCK_TAGS = frozenset({"p", "br", "div", "h1", "h2", "h3", "h4", "h5", "h6", "li"})
CODE_TAGS = frozenset({"pre", "code"})
CODE_FENCE = "\n```\n"

SKIPPED_STRINGS = (Comment, Declaration, Doctype, ProcessingInstruction, CData)

TRAILING_SPACES = re.compile(r"[ \t]+$", re.MULTILINE)
EXCESS_NEWLINES = re.compile(r"\n{3,}")
LANGUAGE_CLASS = re.compile(r"^(?:language|lang)-(\S+)$")


class RenderFormat(str, Enum):
    """Output format of the renderer."""

    TEXT = "text"
    MARKDOWN = "md"


def _parse(markup: str | bytes) -> BeautifulSoup:
    """Parse markup with the lxml HTML parser.

    Args:
        markup: HTML as text or bytes.

    Returns:
        Parsed document.
    """
    return BeautifulSoup(markup, "lxml")


def _has_text(soup: BeautifulSoup) -> bool:
    """Check whether a document contains any visible text.

    Args:
        soup: Parsed document.

    Returns:
        True if some non-whitespace text remains.
    """
    return bool(soup.get_text(strip=True))


def _link_density(tag: Tag) -> float:
    """Fraction of the element's text that sits inside links."""
    text_length = len(tag.get_text(strip=True))
    if not text_length:
        return 0.0
    link_length = sum(len(link.get_text(strip=True)) for link in tag.find_all("a"))
    return link_length / text_length


def _signature(tag: Tag) -> str:
    """Join an element's classes and id for name matching.

    Args:
        tag: Element to describe.

    Returns:
        Space separated classes and id, possibly empty.
    """
    classes = tag.get("class") or []
    if isinstance(classes, str):
        classes = [classes]
    return " ".join([*classes, str(tag.get("id") or "")]).strip()


def _is_unlikely(tag: Tag) -> bool:
    """Check whether an element is named like page chrome.

    Args:
        tag: Element to check.

    Returns:
        True if the id/class looks like chrome and not like content.
    """
    if tag.name in PROTECTED_TAGS:
        return False
    signature = _signature(tag)
    if not signature:
        return False
    return bool(UNLIKELY_CANDIDATES.search(signature)) and not MAYBE_CANDIDATE.search(signature)


def _is_link_chrome(tag: Tag) -> bool:
    """Check whether a container is a navigational block of links.

    Args:
        tag: Container element.

    Returns:
        True if the container is link-heavy and named like navigation.
    """
    if not NAVIGATION_NAMES.search(_signature(tag)):
        return False
    return len(tag.find_all("a")) >= MIN_CONTAINER_LINKS and _link_density(tag) > MAX_LINK_DENSITY


def _drop_tags(soup: BeautifulSoup, names: tuple[str, ...] | frozenset[str]) -> None:
    """Remove every element with one of the given tag names.

    Args:
        soup: Parsed document, changed in place.
        names: Tag names to remove.
    """
    for tag in soup.find_all(list(names)):
        if not tag.decomposed:
            tag.decompose()


def prune_chrome(soup: BeautifulSoup) -> BeautifulSoup:
    """Remove navigation, scripts and other non-article elements in place.

    Args:
        soup: Parsed document.

    Returns:
        The same soup, for chaining.
    """
    _drop_tags(soup, CHROME_TAGS)

    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()

    for tag in soup.find_all(True):
        if not tag.decomposed and _is_unlikely(tag):
            tag.decompose()

    for link in soup.find_all("a", href=True):
        if not link.decomposed and CHROME_LINK.search(link["href"]):
            link.decompose()

    for container in soup.find_all(list(LINK_CONTAINERS)):
        if not container.decomposed and _is_link_chrome(container):
            container.decompose()

    return soup


def _keeps_content(pruned: BeautifulSoup, summary: BeautifulSoup) -> bool:
    """Check that readability kept most of the pruned page.

    readability-lxml drops link-heavy lists, which on documentation pages are
    usually content (index pages, "See also" sections).

    Args:
        pruned: Page after chrome pruning.
        summary: Readability output.

    Returns:
        True if the summary keeps enough text and list items.
    """
    pruned_text = len(pruned.get_text(strip=True))
    if len(summary.get_text(strip=True)) < pruned_text * MIN_SUMMARY_SHARE:
        return False
    pruned_items = len(pruned.find_all("li"))
    return len(summary.find_all("li")) >= pruned_items * MIN_SUMMARY_SHARE


def extract_main_content(raw_html: str | bytes) -> str:
    """Reduce a page to the fragment most likely to be its article.

    Chrome is pruned first, then readability picks the main content. When
    readability fails or throws away most of the page, the pruned page is
    returned.

    Args:
        raw_html: Full page markup.

    Returns:
        HTML fragment.
    """
    pruned = prune_chrome(_parse(raw_html))
    pruned_html = str(pruned)
    if not _has_text(pruned):
        return pruned_html

    try:
        summary = Document(pruned_html).summary(html_partial=True)
    except Exception as e:
        logger.debug("Readability could not extract main content: %s", e)
        return pruned_html

    if not _keeps_content(pruned, _parse(summary)):
        logger.debug("Readability dropped most of the page, using the pruned page")
        return pruned_html
    return summary


class TextWriter:
    """Walks an HTML tree and writes a plain text rendering."""

    def __init__(self) -> None:
        """Initialise an empty writer."""
        self._parts: list[str] = []
        self._pre_depth = 0

    def write(self, root: Tag) -> str:
        """Render a tree.

        Args:
            root: Root of the parsed document.

        Returns:
            Plain text.
        """
        # Iterative walk; (node, True) marks the departure from an element.
        stack: list[tuple[Tag | NavigableString, bool]] = [(root, False)]
        while stack:
            node, departing = stack.pop()
            if isinstance(node, NavigableString):
                self.visit_text(node)
            elif departing:
                self.depart_element(node)
            elif isinstance(node, Tag) and node.name not in SCRIPT_TAGS:
                self.visit_element(node)
                stack.append((node, True))
                stack.extend((child, False) for child in reversed(list(node.children)))
        return "".join(self._parts)

    def visit_text(self, node: NavigableString) -> None:
        """Write a text node, verbatim inside code blocks.

        Args:
            node: Text node.
        """
        if isinstance(node, SKIPPED_STRINGS):
            return
        if self._pre_depth:
            self._parts.append(str(node))
            return
        text = node.strip()
        if text:
            self._parts.append(text)
            self._parts.append(" ")

    def visit_element(self, node: Tag) -> None:
        """Open an element: break before blocks, fence code, bracket links.

        Args:
            node: Element node.
        """
        if node.name in BLOCK_TAGS:
            self._parts.append("\n")
        elif node.name in CODE_TAGS:
            if not self._pre_depth:
                self._parts.append(CODE_FENCE)
            self._pre_depth += 1
        elif node.name == "a" and node.get("href"):
            self._parts.append("[")

    def depart_element(self, node: Tag) -> None:
        """Close an element opened by visit_element.

        Args:
            node: Element node.
        """
        if node.name in CODE_TAGS:
            self._pre_depth -= 1
            if not self._pre_depth:
                self._parts.append(CODE_FENCE)
        elif node.name == "a" and node.get("href"):
            self._parts.append("]")


def _code_language(element: Tag) -> str | None:
    """Language of a ``pre`` block from ``data-language`` or a ``language-*`` class."""
    for candidate in (element, element.find("code")):
        if not isinstance(candidate, Tag):
            continue
        language = candidate.get("data-language")
        if language:
            return str(language)
        for css_class in candidate.get("class") or []:
            found = LANGUAGE_CLASS.match(css_class)
            if found:
                return found.group(1)
    return None


class ContentRenderer:
    """Converts raw documentation HTML to readable text or markdown."""

    def __init__(self, output_format: RenderFormat | str = RenderFormat.TEXT) -> None:
        """Initialise the renderer.

        Args:
            output_format: Text or markdown output.
        """
        self.format = RenderFormat(output_format)
        self._markdown = MarkdownConverter(
            heading_style=ATX,
            bullets="-",
            strong_em_symbol=ASTERISK,
            escape_underscores=False,
            escape_asterisks=False,
            code_language_callback=_code_language,
        )

    def render(self, raw_html: bytes | str) -> str:
        """Render a stored page.

        Malformed markup never raises; the worst case is an empty string.

        Args:
            raw_html: Page markup.

        Returns:
            Rendered content.
        """
        try:
            content: str | bytes = extract_main_content(raw_html)
        except Exception as e:
            logger.warning("Main content extraction failed, rendering raw HTML: %s", e)
            content = raw_html

        try:
            if self.format is RenderFormat.MARKDOWN:
                return self._render_markdown(content)
            return self._render_text(content)
        except Exception as e:
            logger.warning("Could not convert HTML to %s: %s", self.format.value, e)
            return ""

    def _render_text(self, content: str | bytes) -> str:
        """Render markup as plain text.

        Args:
            content: HTML fragment.

        Returns:
            Plain text.
        """
        return TextWriter().write(_parse(content))

    def _render_markdown(self, content: str | bytes) -> str:
        """Render markup as markdown with blank-line runs collapsed.

        Args:
            content: HTML fragment.

        Returns:
            Markdown without surrounding whitespace.
        """
        soup = _parse(content)
        _drop_tags(soup, SCRIPT_TAGS)
        markdown = self._markdown.convert_soup(soup)
        # markdownify ends hard line breaks with two spaces.
        markdown = TRAILING_SPACES.sub("", markdown)
        return EXCESS_NEWLINES.sub("\n\n", markdown).strip()
