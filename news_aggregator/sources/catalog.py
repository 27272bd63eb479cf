from news_aggregator.schemas.news import FeedSource

STARTER_FEED_SOURCES: tuple[FeedSource, ...] = (
    FeedSource(id="fox-latest", name="Fox News", rss_url="https://moxie.foxnews.com/google-publisher/latest.xml"),
    FeedSource(
        id="washtimes-politics",
        name="Washington Times",
        rss_url="https://www.washingtontimes.com/rss/headlines/news/politics/",
    ),
    FeedSource(id="federalist", name="The Federalist", rss_url="https://thefederalist.com/feed/"),
    FeedSource(id="guardian-us", name="The Guardian US", rss_url="https://www.theguardian.com/us-news/rss"),
    FeedSource(id="huffpost-us", name="HuffPost", rss_url="https://www.huffpost.com/section/us-news/feed"),
    FeedSource(id="washpost-politics", name="Washington Post", rss_url="https://feeds.washingtonpost.com/rss/politics"),
    FeedSource(id="bbc-general", name="BBC News", rss_url="https://feeds.bbci.co.uk/news/rss.xml"),
    FeedSource(
        id="bbc-us-canada",
        name="BBC US & Canada",
        rss_url="https://feeds.bbci.co.uk/news/world/us_and_canada/rss.xml",
    ),
    FeedSource(id="yahoo-world", name="Yahoo News World", rss_url="https://news.yahoo.com/rss/world"),
)

STARTER_FEED_URLS: tuple[str, ...] = tuple(source.rss_url for source in STARTER_FEED_SOURCES)

# Feed hosts mapped to the publication domains their articles link to.
DOMAIN_ALIASES: dict[str, tuple[str, ...]] = {
    "moxie.foxnews.com": ("foxnews.com", "www.foxnews.com"),
    "www.washingtontimes.com": ("washingtontimes.com",),
    "thefederalist.com": ("www.thefederalist.com",),
    "www.theguardian.com": ("theguardian.com",),
    "www.huffpost.com": ("huffpost.com", "chaski.huffpost.com"),
    "feeds.washingtonpost.com": ("washingtonpost.com", "www.washingtonpost.com"),
    "feeds.bbci.co.uk": ("bbc.com", "www.bbc.com", "bbc.co.uk", "www.bbc.co.uk"),
    "news.yahoo.com": ("yahoo.com", "www.yahoo.com"),
}
