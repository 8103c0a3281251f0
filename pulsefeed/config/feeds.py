"""
Feed Catalogue
==============

Default RSS sources per vertical and the per-ticker feed templates used for
on-demand stock news.
"""

from dataclasses import dataclass
from typing import Dict, Tuple

from ..database.models import Vertical


@dataclass(frozen=True)
class FeedSource:
    """A named RSS feed."""

    name: str
    url: str


@dataclass(frozen=True)
class TickerFeedTemplate:
    """RSS feed whose URL is built from a stock symbol."""

    name: str
    template: str
    suffix: str = ""

    def url_for(self, ticker: str) -> str:
        return f"{self.template}{ticker}{self.suffix}"


RSS_FEEDS: Dict[Vertical, Tuple[FeedSource, ...]] = {
    Vertical.CRYPTO: (
        FeedSource("CoinDesk", "https://www.coindesk.com/arc/outboundfeeds/rss/"),
        FeedSource("Cointelegraph", "https://cointelegraph.com/rss"),
        FeedSource("Decrypt", "https://decrypt.co/feed"),
        FeedSource("CryptoSlate", "https://cryptoslate.com/feed/"),
        FeedSource("Bitcoin Magazine", "https://bitcoinmagazine.com/.rss/full/"),
        FeedSource("The Block", "https://www.theblock.co/rss.xml"),
        FeedSource("Bitcoin.com", "https://news.bitcoin.com/feed/"),
        FeedSource("CryptoNews", "https://cryptonews.com/news/feed/"),
        FeedSource("NewsBTC", "https://www.newsbtc.com/feed/"),
        FeedSource("CoinJournal", "https://coinjournal.net/feed/"),
        FeedSource("CryptoDaily", "https://cryptodaily.co.uk/feed"),
        FeedSource("Crypto Briefing", "https://cryptobriefing.com/feed/"),
    ),
    Vertical.STOCKS: (
        FeedSource("MarketWatch", "https://www.marketwatch.com/rss/topstories"),
        FeedSource("Bloomberg Markets", "https://feeds.bloomberg.com/markets/news.rss"),
        FeedSource("Financial Times", "https://www.ft.com/companies?format=rss"),
        FeedSource("CNBC Markets", "https://www.cnbc.com/id/10000664/device/rss/rss.html"),
        FeedSource("Wall Street Journal", "https://feeds.a.dj.com/rss/RSSMarketsMain.xml"),
        FeedSource("Investor Business Daily", "https://www.investors.com/feed/"),
        FeedSource("Business Insider Markets", "https://markets.businessinsider.com/rss/news"),
        FeedSource("TradingView News", "https://www.tradingview.com/feed/"),
        FeedSource("CNBC Top News", "https://www.cnbc.com/id/100003114/device/rss/rss.html"),
        # Title-only feeds kept for coverage
        FeedSource("Yahoo Finance", "https://finance.yahoo.com/news/rssindex"),
        FeedSource("Seeking Alpha", "https://seekingalpha.com/feed.xml"),
        FeedSource("Benzinga", "https://www.benzinga.com/feed"),
    ),
    Vertical.SPORTS: (
        FeedSource("ESPN", "https://www.espn.com/espn/rss/news"),
        FeedSource("Bleacher Report", "https://bleacherreport.com/articles/feed"),
        FeedSource("CBS Sports", "https://www.cbssports.com/rss/headlines"),
        FeedSource("Yahoo Sports", "https://sports.yahoo.com/rss/"),
        FeedSource("Action Network", "https://www.actionnetwork.com/news/rss"),
        FeedSource("Covers", "https://www.covers.com/rss/news"),
        FeedSource("Sports Betting Dime", "https://www.sportsbettingdime.com/news/feed/"),
        FeedSource("The Lines", "https://www.thelines.com/feed/"),
        FeedSource("Sports Handle", "https://sportshandle.com/feed/"),
        FeedSource("Oddschecker", "https://www.oddschecker.com/us/insight/rss.xml"),
        FeedSource("Pickswise", "https://www.pickswise.com/feed/"),
        FeedSource("BettingPros", "https://www.bettingpros.com/feed/"),
    ),
}


TICKER_FEEDS: Tuple[TickerFeedTemplate, ...] = (
    TickerFeedTemplate("Yahoo Finance", "https://finance.yahoo.com/rss/headline?s="),
    TickerFeedTemplate("MarketWatch", "https://www.marketwatch.com/rss/stock/"),
    TickerFeedTemplate("Seeking Alpha", "https://seekingalpha.com/api/sa/combined/", ".xml"),
)
