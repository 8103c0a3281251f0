"""
Content Cleaner
===============

HTML to plain-text reduction for RSS entry bodies. Feeds deliver anything
from a bare sentence to a full article with embedded scripts; items are
stored as short readable snippets.
"""

import re
import html

from bs4 import BeautifulSoup, Comment

from pulsefeed.utils.logging import get_logger_for_component


class ContentCleaner:
    """Strips markup from feed content and trims it to a snippet."""

    # Elements removed together with their content
    DANGEROUS_ELEMENTS = {
        "script",
        "style",
        "iframe",
        "embed",
        "object",
        "form",
        "noscript",
        "canvas",
        "svg",
    }

    WHITESPACE_PATTERN = re.compile(r"\s+")
    TAG_PATTERN = re.compile(r"<[^>]+>")

    def __init__(self, max_length: int = 2000):
        self.max_length = max_length
        self.logger = get_logger_for_component("content_cleaner")
        self.parser = "html.parser"

    def clean(self, raw: str) -> str:
        """Return readable text from an HTML or plain-text fragment."""
        if not raw or not raw.strip():
            return ""

        if "<" not in raw:
            text = html.unescape(raw)
        else:
            text = self._extract_text(raw)

        text = self.WHITESPACE_PATTERN.sub(" ", text).strip()
        return self._truncate(text)

    def _extract_text(self, raw: str) -> str:
        try:
            soup = BeautifulSoup(raw, self.parser)

            for element in soup.find_all(self.DANGEROUS_ELEMENTS):
                element.decompose()

            for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
                comment.extract()

            return soup.get_text(separator=" ", strip=True)

        except Exception as e:
            self.logger.warning(f"HTML parsing failed, falling back to regex strip: {e}")
            return html.unescape(self.TAG_PATTERN.sub(" ", raw))

    def _truncate(self, text: str) -> str:
        """Cut at a word boundary when over the length limit."""
        if len(text) <= self.max_length:
            return text

        cut = text[: self.max_length]
        boundary = cut.rfind(" ")
        if boundary > self.max_length * 0.7:
            cut = cut[:boundary]
        return cut.rstrip() + "..."
