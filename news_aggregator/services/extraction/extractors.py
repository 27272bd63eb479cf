import html as html_lib
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import trafilatura
from bs4 import BeautifulSoup

from news_aggregator.schemas.article_text import ArticleTextQuality

BACKOFF_BASE_MS = 250
RETRYABLE_STATUSES = frozenset({408, 425, 429, 500, 502, 503, 504})
NON_CONTENT_TAGS = ["script", "style", "noscript", "svg", "iframe"]
CONTENT_BLOCK_TAGS = ["article", "main", "p", "h1", "h2", "h3", "li", "blockquote"]
MAX_TITLE_LENGTH = 300

_SENTENCE_BREAK = re.compile(r"[.!?]+")


@dataclass(frozen=True)
class ExtractedText:
    title: str
    text: str


Extractor = Callable[[str, str], ExtractedText | None | Awaitable[ExtractedText | None]]


def normalize_whitespace(value: str) -> str:
    return " ".join(html_lib.unescape(value).split())


def extract_title(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    if soup.title is None:
        return ""
    return normalize_whitespace(soup.title.get_text(" "))[:MAX_TITLE_LENGTH]


def _strip_soup(html: str) -> BeautifulSoup:
    soup = BeautifulSoup(html, "html.parser")
    for node in soup.find_all(NON_CONTENT_TAGS):
        node.decompose()
    return soup


def count_words(text: str) -> int:
    return len(text.split())


def count_sentences(text: str) -> int:
    return sum(1 for part in _SENTENCE_BREAK.split(text) if part.strip())


def assess_quality(
    text: str,
    min_char_count: int,
    min_word_count: int,
    min_sentence_count: int,
) -> ArticleTextQuality:
    char_count = len(text)
    word_count = count_words(text)
    sentence_count = count_sentences(text)

    char_score = min(1.0, char_count / min_char_count)
    word_score = min(1.0, word_count / min_word_count)
    sentence_score = min(1.0, sentence_count / min_sentence_count)

    return ArticleTextQuality(
        char_count=char_count,
        word_count=word_count,
        sentence_count=sentence_count,
        score=round((char_score + word_score + sentence_score) / 3, 3),
    )


def is_retryable_status(status: int) -> bool:
    return status in RETRYABLE_STATUSES


def default_primary_extractor(url: str, html: str) -> ExtractedText | None:
    extracted = trafilatura.extract(html, url=url, include_comments=False, include_tables=False)
    text = normalize_whitespace(extracted or "")
    if not text:
        return None
    metadata = trafilatura.extract_metadata(html)
    title = getattr(metadata, "title", None) or ""
    return ExtractedText(title=normalize_whitespace(title) or extract_title(html), text=text)


def default_fallback_extractor(url: str, html: str) -> ExtractedText | None:
    soup = _strip_soup(html)
    chunks = [
        normalize_whitespace(node.get_text(" ", strip=True))
        for node in soup.find_all(CONTENT_BLOCK_TAGS)
        if node.find_parent(CONTENT_BLOCK_TAGS) is None
    ]
    chunks = [chunk for chunk in chunks if chunk]
    if chunks:
        text = normalize_whitespace(" ".join(chunks))
    else:
        root = soup.body or soup
        text = normalize_whitespace(root.get_text(" ", strip=True))

    if not text:
        return None
    return ExtractedText(title=extract_title(html), text=text)
