# readmaster/services/article_service.py
"""
Article extraction and URL import.

Extraction is regex-based and tolerant: it never raises on malformed HTML
and falls back field by field (meta tags, then document structure, then the
URL itself).
"""

import asyncio
import json
import re
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional
from urllib.parse import urlparse

import aiohttp
from dateutil import parser as date_parser
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from readmaster.config import settings
from readmaster.errors import ApiError, ErrorCodes
from readmaster.models import Book, User
from readmaster.utils.logger import logger
from readmaster.utils.text import (
    calculate_reading_time,
    count_words,
    decode_html_entities,
    find_blocks,
    remove_blocks,
    strip_html_tags,
)

USER_AGENT = "Mozilla/5.0 (compatible; ReadMaster/1.0; +https://readmaster.app/bot)"
ACCEPT_HEADER = "text/html,application/xhtml+xml,application/xml;q=0.9,text/plain;q=0.8,*/*;q=0.7"

HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml", "application/xml")
TEXT_CONTENT_TYPES = ("text/plain", "text/markdown")

TITLE_SEPARATORS = (" | ", " - ", " – ", " — ", " :: ", " » ")
UNKNOWN_SOURCE = "Unknown Source"
MIN_EXTRACTED_TEXT_LENGTH = 10
EXCERPT_LENGTH = 200

# None = unlimited
TIER_BOOK_LIMITS = {"FREE": 3, "PRO": None, "SCHOLAR": None}

_FLAGS = re.IGNORECASE | re.DOTALL

# Opening tags match [^<>]* so a tag never runs into the next one.
# Every (.*?)</tag> pattern is paired with its closing tag and only scanned
# up to the last occurrence of it (see utils.text.find_blocks).
_TITLE_RE = re.compile(r"<title[^<>]*>([^<]*)</title>", re.IGNORECASE)
_H1_RE = re.compile(r"<h1[^<>]*>(.*?)</h1>", _FLAGS)
_HTML_LANG_RE = re.compile(r"<html[^<>]*\blang=[\"']([a-z]{2})(?:-[a-z]{2})?[\"']", re.IGNORECASE)
_JSON_LD_RE = re.compile(r"<script[^<>]*type=[\"']application/ld\+json[\"'][^<>]*>(.*?)</script>", _FLAGS)

_CLEANUP_PATTERNS = (
    (re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE), "</script>"),
    (re.compile(r"<style\b[^<]*(?:(?!</style>)<[^<]*)*</style>", re.IGNORECASE), "</style>"),
    (re.compile(r"<noscript\b[^<]*(?:(?!</noscript>)<[^<]*)*</noscript>", re.IGNORECASE), "</noscript>"),
    (re.compile(r"<!--.*?-->", re.DOTALL), "-->"),
)

# priority order; within a selector the longest match wins
_CONTENT_SELECTORS = (
    (re.compile(r"<article[^<>]*>(.*?)</article>", _FLAGS), "</article>"),
    (re.compile(r"<main[^<>]*>(.*?)</main>", _FLAGS), "</main>"),
    (re.compile(
        r"<div[^<>]*class=[\"'][^\"']*(?:content|article|post|entry|story)[^\"']*[\"'][^<>]*>(.*?)</div>", _FLAGS
    ), "</div>"),
    (re.compile(r"<div[^<>]*id=[\"'](?:content|article|post|main)[^\"']*[\"'][^<>]*>(.*?)</div>", _FLAGS), "</div>"),
)

_BODY_RE = re.compile(r"<body[^<>]*>(.*?)</body>", _FLAGS)
_BOILERPLATE_PATTERNS = tuple(
    (re.compile(rf"<{tag}[^<>]*>.*?</{tag}>", _FLAGS), f"</{tag}>")
    for tag in ("header", "footer", "nav", "aside", "form")
)


class FetchError(Exception):
    pass


@dataclass
class ExtractedArticle:
    title: str
    content: str
    text_content: str
    excerpt: Optional[str]
    author: Optional[str]
    published_date: Optional[str]
    site_name: Optional[str]
    language: Optional[str]
    word_count: int
    estimated_read_time: int

    def to_dict(self):
        return asdict(self)


@dataclass
class FetchResult:
    content: str
    content_type: str
    url: str
    final_url: str
    status_code: int


def extract_meta_content(markup: str, name: str) -> Optional[str]:
    """Meta tag content by name or property, attributes in either order."""
    escaped = re.escape(name)
    for attr in ("name", "property"):
        patterns = (
            rf"<meta[^<>]*{attr}=[\"']{escaped}[\"'][^<>]*content=[\"']([^\"']*)[\"']",
            rf"<meta[^<>]*content=[\"']([^\"']*)[\"'][^<>]*{attr}=[\"']{escaped}[\"']",
        )
        for pattern in patterns:
            match = re.search(pattern, markup, re.IGNORECASE)
            if match and match.group(1):
                return decode_html_entities(match.group(1))
    return None


def extract_title(markup: str) -> Optional[str]:
    match = _TITLE_RE.search(markup)
    if match and match.group(1).strip():
        return decode_html_entities(match.group(1).strip())
    return None


def extract_first_heading(markup: str) -> Optional[str]:
    headings = find_blocks(markup, _H1_RE, "</h1>")
    if headings:
        return strip_html_tags(headings[0]) or None
    return None


def extract_html_lang(markup: str) -> Optional[str]:
    match = _HTML_LANG_RE.search(markup)
    return match.group(1).lower() if match else None


def _load_json_ld(markup: str) -> Optional[Dict]:
    blocks = find_blocks(markup, _JSON_LD_RE, "</script>")
    if not blocks:
        return None
    try:
        data = json.loads(blocks[0])
    except ValueError:
        return None
    if isinstance(data, list):
        data = data[0] if data else None
    return data if isinstance(data, dict) else None


def extract_json_ld_author(markup: str) -> Optional[str]:
    data = _load_json_ld(markup)
    if not data:
        return None

    author = data.get("author")
    if isinstance(author, str):
        return author or None
    if isinstance(author, list) and author and isinstance(author[0], dict):
        return author[0].get("name") or None
    if isinstance(author, dict):
        return author.get("name") or None
    return None


def extract_json_ld_date(markup: str) -> Optional[str]:
    data = _load_json_ld(markup)
    if not data:
        return None
    for key in ("datePublished", "dateCreated"):
        if isinstance(data.get(key), str):
            return data[key]
    return None


def extract_main_content(markup: str) -> str:
    cleaned = markup
    for pattern, closing in _CLEANUP_PATTERNS:
        cleaned = remove_blocks(cleaned, pattern, closing)

    for selector, closing in _CONTENT_SELECTORS:
        matches = find_blocks(cleaned, selector, closing)
        if matches:
            longest = max(matches, key=len)
            if longest:
                return longest

    bodies = find_blocks(cleaned, _BODY_RE, "</body>")
    if bodies and bodies[0]:
        content = bodies[0]
        for pattern, closing in _BOILERPLATE_PATTERNS:
            content = remove_blocks(content, pattern, closing)
        return content

    return cleaned


def get_domain_from_url(url: str) -> str:
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        return UNKNOWN_SOURCE
    if not hostname:
        return UNKNOWN_SOURCE
    return hostname[4:] if hostname.startswith("www.") else hostname


def normalize_published_date(value: Optional[str]) -> Optional[str]:
    """ISO 8601 when the value parses as a date, otherwise the raw value."""
    if not value:
        return None
    try:
        return date_parser.parse(value).isoformat()
    except (ValueError, OverflowError):
        return value


def clean_title(title: str, site_name: Optional[str]) -> str:
    if not site_name:
        return title
    for separator in TITLE_SEPARATORS:
        suffix = f"{separator}{site_name}"
        if title.endswith(suffix):
            return title[: -len(suffix)].strip()
    return title


def extract_article_from_html(markup: str, url: str) -> ExtractedArticle:
    markup = markup or ""
    domain = get_domain_from_url(url)

    title = (
        extract_meta_content(markup, "og:title")
        or extract_meta_content(markup, "twitter:title")
        or extract_title(markup)
        or extract_first_heading(markup)
        or domain
    )
    author = (
        extract_meta_content(markup, "author")
        or extract_meta_content(markup, "article:author")
        or extract_meta_content(markup, "twitter:creator")
        or extract_json_ld_author(markup)
    )
    excerpt = (
        extract_meta_content(markup, "og:description")
        or extract_meta_content(markup, "description")
        or extract_meta_content(markup, "twitter:description")
    )
    published_date = (
        extract_meta_content(markup, "article:published_time")
        or extract_meta_content(markup, "date")
        or extract_meta_content(markup, "datePublished")
        or extract_json_ld_date(markup)
    )
    site_name = extract_meta_content(markup, "og:site_name") or domain
    language = extract_html_lang(markup) or "en"

    content = extract_main_content(markup)
    text_content = strip_html_tags(content)
    word_count = count_words(text_content)

    return ExtractedArticle(
        title=clean_title(title, site_name),
        content=content,
        text_content=text_content,
        excerpt=excerpt,
        author=author,
        published_date=normalize_published_date(published_date),
        site_name=site_name,
        language=language,
        word_count=word_count,
        estimated_read_time=calculate_reading_time(word_count),
    )


def extract_plain_text(text: str, url: str, title: Optional[str] = None) -> ExtractedArticle:
    domain = get_domain_from_url(url)
    word_count = count_words(text)
    excerpt = text[:EXCERPT_LENGTH] + ("..." if len(text) > EXCERPT_LENGTH else "")
    return ExtractedArticle(
        title=title or domain,
        content=text,
        text_content=text,
        excerpt=excerpt,
        author=None,
        published_date=None,
        site_name=domain,
        language="en",
        word_count=word_count,
        estimated_read_time=calculate_reading_time(word_count),
    )


def _media_type(content_type: str) -> str:
    return (content_type or "").split(";")[0].strip().lower()


def is_html_content_type(content_type: str) -> bool:
    return _media_type(content_type) in HTML_CONTENT_TYPES


def is_text_content_type(content_type: str) -> bool:
    return _media_type(content_type) in TEXT_CONTENT_TYPES


def _megabytes(size: int) -> int:
    return round(size / 1024 / 1024)


async def fetch_url(url: str, timeout_seconds: Optional[int] = None, max_bytes: Optional[int] = None) -> FetchResult:
    """GET a URL following redirects, enforcing a timeout and a size limit."""
    timeout_seconds = timeout_seconds or settings.url_fetch_timeout_seconds
    max_bytes = max_bytes or settings.url_max_content_bytes
    headers = {
        "User-Agent": USER_AGENT,
        "Accept": ACCEPT_HEADER,
        "Accept-Language": "en-US,en;q=0.9",
    }

    try:
        async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout_seconds)) as session:
            async with session.get(url, headers=headers, allow_redirects=True) as response:
                if response.status >= 400:
                    raise FetchError(f"HTTP {response.status}: {response.reason}")

                if response.content_length is not None and response.content_length > max_bytes:
                    raise FetchError(
                        f"Content too large: {_megabytes(response.content_length)}MB "
                        f"exceeds {_megabytes(max_bytes)}MB limit"
                    )

                body = bytearray()
                async for chunk in response.content.iter_chunked(8192):
                    body.extend(chunk)
                    if len(body) > max_bytes:
                        raise FetchError(f"Content too large: exceeds {_megabytes(max_bytes)}MB limit")

                content_type = response.headers.get("Content-Type") or "text/html; charset=utf-8"
                encoding = response.charset or "utf-8"
                return FetchResult(
                    content=body.decode(encoding, errors="replace"),
                    content_type=content_type,
                    url=url,
                    final_url=str(response.url),
                    status_code=response.status,
                )
    except FetchError:
        raise
    except asyncio.TimeoutError:
        raise FetchError(f"Request timed out after {timeout_seconds}s")
    except aiohttp.ClientError as e:
        raise FetchError(str(e) or e.__class__.__name__)
    except LookupError:
        raise FetchError("Unsupported response encoding")


async def count_user_books(session: AsyncSession, user_id: str) -> int:
    result = await session.execute(
        select(func.count(Book.id)).where(Book.user_id == user_id, Book.deleted_at.is_(None))
    )
    return result.scalar_one()


def is_within_book_limit(book_count: int, tier: str) -> bool:
    limit = TIER_BOOK_LIMITS.get(tier, TIER_BOOK_LIMITS["FREE"])
    return limit is None or book_count < limit


async def import_book_from_url(
    session: AsyncSession,
    user_id: str,
    url: str,
    title: Optional[str] = None,
    author: Optional[str] = None,
    description: Optional[str] = None,
    genre: Optional[str] = None,
    tags: Optional[List[str]] = None,
    language: Optional[str] = None,
    is_public: bool = False,
):
    """Fetch, extract and store a URL as a book. Returns (book, extracted, fetch_result)."""
    user = await session.get(User, user_id)
    if user is None or user.deleted_at is not None:
        raise ApiError(ErrorCodes.NOT_FOUND, "User not found", 404)

    book_count = await count_user_books(session, user.id)
    if not is_within_book_limit(book_count, user.tier):
        limit = TIER_BOOK_LIMITS["FREE"]
        raise ApiError(
            ErrorCodes.FORBIDDEN,
            f"You have reached your book limit ({limit} books). Upgrade to Pro for unlimited books.",
            403,
        )

    try:
        fetched = await fetch_url(url)
    except FetchError as e:
        logger.warning(f" URL fetch failed: user={user.id} url={url} error={e}")
        raise ApiError(ErrorCodes.VALIDATION_ERROR, f"Failed to fetch URL: {e}", 400)

    if is_html_content_type(fetched.content_type):
        # CPU-bound on large pages; keep it off the event loop
        extracted = await run_in_threadpool(extract_article_from_html, fetched.content, fetched.final_url)
    elif is_text_content_type(fetched.content_type):
        extracted = await run_in_threadpool(extract_plain_text, fetched.content, fetched.final_url, title)
    else:
        raise ApiError(
            ErrorCodes.VALIDATION_ERROR,
            f"Unsupported content type: {fetched.content_type}. Only HTML and plain text are supported.",
            400,
        )

    if len(extracted.text_content.strip()) < MIN_EXTRACTED_TEXT_LENGTH:
        raise ApiError(
            ErrorCodes.VALIDATION_ERROR,
            "Could not extract meaningful content from the URL. The page may be empty, "
            "require JavaScript, or block automated access.",
            400,
        )

    book = Book(
        user_id=user.id,
        title=title or extracted.title or "Untitled",
        author=author if author is not None else extracted.author,
        description=description if description is not None else (extracted.excerpt or extracted.site_name),
        genre=genre,
        tags=tags or [],
        source="URL",
        source_url=fetched.final_url,
        file_type="HTML",
        word_count=extracted.word_count,
        estimated_read_time=extracted.estimated_read_time,
        language=language or extracted.language or "en",
        is_public=is_public,
        status="WANT_TO_READ",
    )
    session.add(book)
    await session.commit()

    logger.info(f" Book imported from URL: user={user.id} book={book.id} url={fetched.final_url} words={extracted.word_count}")
    return book, extracted, fetched
