from collections.abc import Iterable, Set

from news_aggregator.sources.catalog import DOMAIN_ALIASES, STARTER_FEED_URLS
from news_aggregator.utils.network import parse_domain, to_base_domain, url_hostname


def collect_domains(feed_urls: Iterable[str] = STARTER_FEED_URLS, extra: Iterable[str] = ()) -> frozenset[str]:
    domains: set[str] = set()
    for url in feed_urls:
        host = url_hostname(url)
        domains.add(host)
        domains.add(to_base_domain(host))
        domains.update(alias.lower() for alias in DOMAIN_ALIASES.get(host, ()))
    domains.update(item.strip().lower() for item in extra if item.strip())
    return frozenset(domains)


_STARTER_SOURCE_DOMAIN_SET = collect_domains()

STARTER_SOURCE_DOMAINS: tuple[str, ...] = tuple(sorted(_STARTER_SOURCE_DOMAIN_SET))


def get_starter_source_domain_allowlist() -> frozenset[str]:
    return _STARTER_SOURCE_DOMAIN_SET


def is_source_domain_allowed(url_or_domain: str, allowlist: Set[str] | None = None) -> bool:
    allowed = _STARTER_SOURCE_DOMAIN_SET if allowlist is None else allowlist
    hostname = parse_domain(url_or_domain)
    if not hostname:
        return False
    return hostname in allowed or to_base_domain(hostname) in allowed
