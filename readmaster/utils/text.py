# readmaster/utils/text.py
"""
Plain-text helpers for HTML fragments.

Block patterns (``<tag ...>...</tag>``) only ever run on the markup up to the
last closing tag, so openings with no close are never scanned to the end of
the document. Every pass stays linear in the input size.
"""

import html
import re
from typing import List, Optional, Pattern

AVERAGE_READING_WPM = 250

_SCRIPT_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_STYLE_RE = re.compile(r"<style\b[^<]*(?:(?!</style>)<[^<]*)*</style>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^<>]+>")
_WHITESPACE_RE = re.compile(r"\s+")


def cut_after_last(markup: str, closing: str) -> Optional[str]:
    """Markup through the last ``closing`` marker (case-insensitive), or None without one."""
    end = markup.lower().rfind(closing.lower())
    if end == -1:
        return None
    return markup[: end + len(closing)]


def remove_blocks(markup: str, pattern: Pattern, closing: str, replacement: str = "") -> str:
    region = cut_after_last(markup, closing)
    if region is None:
        return markup
    return pattern.sub(replacement, region) + markup[len(region):]


def find_blocks(markup: str, pattern: Pattern, closing: str) -> List[str]:
    """First group of every ``pattern`` match that has a closing marker after it."""
    region = cut_after_last(markup, closing)
    if region is None:
        return []
    return [m.group(1) for m in pattern.finditer(region)]


def decode_html_entities(text: str) -> str:
    # &nbsp; decodes to U+00A0, callers expect a plain space
    return html.unescape(text).replace("\xa0", " ")


def strip_html_tags(markup: str) -> str:
    """Turn an HTML fragment into a single line of plain text."""
    if not markup or not isinstance(markup, str):
        return ""

    text = remove_blocks(markup, _SCRIPT_RE, "</script>", " ")
    text = remove_blocks(text, _STYLE_RE, "</style>", " ")
    text = _TAG_RE.sub(" ", text)
    text = decode_html_entities(text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def count_words(text: str) -> int:
    if not text or not isinstance(text, str):
        return 0
    return len(strip_html_tags(text).split())


def calculate_reading_time(word_count: int, wpm: int = AVERAGE_READING_WPM) -> int:
    """Estimated reading time in whole minutes, rounded up."""
    if word_count <= 0 or wpm <= 0:
        return 0
    return -(-word_count // wpm)
