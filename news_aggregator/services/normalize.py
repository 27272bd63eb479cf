import logging
from collections.abc import Iterable
from urllib.parse import parse_qsl, quote_plus, urlencode, urlsplit

from news_aggregator.schemas.news import NormalizedFeedItem, RawFeedItem
from news_aggregator.utils.hashing import fnv1a32

logger = logging.getLogger(__name__)

TRACKING_PARAMS = frozenset({"fbclid", "gclid", "mc_cid", "mc_eid", "ref", "ref_src", "s"})
DEFAULT_PORTS = frozenset({("http", 80), ("https", 443)})


def is_tracking_param(key: str) -> bool:
    normalized = key.strip().lower()
    return normalized.startswith("utm_") or normalized in TRACKING_PARAMS


def _query_key_order(pair: tuple[str, str]) -> tuple[str, str]:
    # Case-insensitive first, lowercase before uppercase on ties.
    return pair[0].casefold(), pair[0].swapcase()


def _form_quote(value: str, safe: str = "", encoding: str | None = None, errors: str | None = None) -> str:
    # application/x-www-form-urlencoded: "*" stays literal, "~" is escaped.
    return quote_plus(value, safe="*", encoding=encoding, errors=errors).replace("~", "%7E")


def canonicalize_url(raw: str) -> str | None:
    try:
        parsed = urlsplit(raw.strip())
        port = parsed.port
    except (AttributeError, ValueError):
        return None

    scheme = parsed.scheme.lower()
    host = (parsed.hostname or "").lower()
    if scheme not in {"http", "https"} or not host:
        return None

    if ":" in host:
        host = f"[{host}]"
    if (scheme, port) in DEFAULT_PORTS:
        port = None
    netloc = f"{host}:{port}" if port is not None else host
    path = parsed.path.rstrip("/") or "/"
    retained = sorted(
        ((key, value) for key, value in parse_qsl(parsed.query, keep_blank_values=True) if not is_tracking_param(key)),
        key=_query_key_order,
    )
    query = urlencode(retained, quote_via=_form_quote)
    return f"{scheme}://{netloc}{path}{'?' + query if query else ''}"


def url_hash(canonical_url: str) -> str:
    return fnv1a32(canonical_url)


def normalize_item(item: RawFeedItem, canonical_url: str) -> NormalizedFeedItem:
    return NormalizedFeedItem(
        source_id=item.source_id,
        url=item.url,
        canonical_url=canonical_url,
        url_hash=url_hash(canonical_url),
        title=item.title,
        published_at=item.published_at,
        summary=item.summary or None,
    )


def normalize_and_dedup(items: Iterable[RawFeedItem]) -> list[NormalizedFeedItem]:
    seen: set[str] = set()
    normalized: list[NormalizedFeedItem] = []
    for item in items:
        canonical_url = canonicalize_url(item.url)
        if canonical_url is None:
            logger.warning("Skipping feed item with invalid url source=%s url=%r", item.source_id, item.url)
            continue
        if canonical_url in seen:
            continue
        seen.add(canonical_url)
        normalized.append(normalize_item(item, canonical_url))
    return normalized
