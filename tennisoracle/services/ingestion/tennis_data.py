"""Reference data ingestion.

Scrapes rankings, the tournament calendar and the daily match list, and pulls
news from newsapi.org. Parsing is done by module-level functions over raw
HTML / JSON so they can be exercised without the network; the service class
only fetches and stores.
"""

import re
from datetime import datetime, time, timedelta, timezone
from typing import Any

import httpx
import structlog
from bs4 import BeautifulSoup

from tennisoracle.config import Settings, get_settings
from tennisoracle.services.storage import TennisStorage

logger = structlog.get_logger(__name__)

GRAND_SLAM_NAMES = ("grand slam", "wimbledon", "french open", "roland garros", "us open", "australian open")

STOPWORDS = {
    "the", "and", "for", "are", "but", "not", "you", "all", "can", "had", "her",
    "was", "one", "our", "out", "day", "get", "has", "him", "his", "how", "man",
    "new", "now", "old", "see", "two", "way", "who", "boy", "did", "its", "let",
    "put", "say", "she", "too", "use", "with", "from", "that", "this", "after",
}

DATE_PATTERN = re.compile(r"(\d{4})[.\-/](\d{1,2})[.\-/](\d{1,2})")
TIME_PATTERN = re.compile(r"(\d{1,2}):(\d{2})")


# ----------------------------------------------------------------------
# Text classification
# ----------------------------------------------------------------------


def infer_tournament_category(name: str) -> str:
    lowered = name.lower()
    if any(slam in lowered for slam in GRAND_SLAM_NAMES):
        return "grand_slam"
    if "masters" in lowered:
        return "masters_1000"
    if "500" in lowered:
        return "atp_500"
    return "atp_250"


def is_coaching_change(text: str, keywords: list[str]) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in keywords)


def analyze_sentiment(text: str, positive: list[str], negative: list[str]) -> str:
    """Keyword-count sentiment: positive, negative or neutral."""
    lowered = text.lower()
    positive_count = sum(1 for word in positive if word in lowered)
    negative_count = sum(1 for word in negative if word in lowered)
    if positive_count > negative_count:
        return "positive"
    if negative_count > positive_count:
        return "negative"
    return "neutral"


def calculate_relevance_score(text: str, keywords: list[str]) -> float:
    """Share of tennis keywords present in the text, capped at 1.0."""
    if not keywords:
        return 0.0
    lowered = text.lower()
    hits = sum(1 for word in keywords if word in lowered)
    return min(hits / len(keywords), 1.0)


def extract_keywords(text: str, limit: int = 10) -> list[str]:
    words = [w for w in text.lower().split() if len(w) > 3 and w not in STOPWORDS]
    return words[:limit]


def find_player_mention(text: str, players: list[Any]) -> int | None:
    """Id of the first player whose last name appears in the text."""
    lowered = text.lower()
    for player in players:
        last_name = player.name.split()[-1].lower()
        if last_name and re.search(rf"\b{re.escape(last_name)}\b", lowered):
            return player.id
    return None


# ----------------------------------------------------------------------
# HTML parsing
# ----------------------------------------------------------------------


def _text(parent, selector: str) -> str:
    element = parent.select_one(selector)
    return element.get_text(strip=True) if element else ""


def parse_rankings(html: str) -> list[dict[str, Any]]:
    """Player rows from the ATP singles rankings page."""
    soup = BeautifulSoup(html, "html.parser")
    players = []
    for cell in soup.select(".player-cell"):
        name_el = cell.select_one(".player-name")
        rank_el = cell.select_one(".rank-cell")
        country_el = cell.select_one(".country-item")
        name = name_el.get_text(strip=True) if name_el else ""
        rank_text = rank_el.get_text(strip=True) if rank_el else ""
        ranking = int(re.sub(r"\D", "", rank_text)) if re.search(r"\d", rank_text) else None
        if not name or not ranking:
            continue
        nationality = country_el.get("data-country", "") if country_el else ""
        players.append(
            {"name": name, "ranking": ranking, "nationality": nationality.upper() or None}
        )
    return players


def parse_date_range(text: str) -> tuple[datetime, datetime] | None:
    """Start and end dates from text like "2026.10.19 - 2026.10.25"."""
    found = DATE_PATTERN.findall(text)
    if not found:
        return None
    dates = [datetime(int(y), int(m), int(d), tzinfo=timezone.utc) for y, m, d in found]
    start = dates[0]
    end = dates[1] if len(dates) > 1 else start + timedelta(days=7)
    return start, end


def parse_tournaments(html: str) -> list[dict[str, Any]]:
    soup = BeautifulSoup(html, "html.parser")
    tournaments = []
    for item in soup.select(".tournament-item"):
        fields = {
            key: _text(item, f".tournament-{key}")
            for key in ("name", "location", "surface", "dates")
        }
        if not fields["name"] or not fields["location"]:
            continue
        dates = parse_date_range(fields["dates"])
        if dates is None:
            logger.debug("tournament_dates_unparsed", name=fields["name"], dates=fields["dates"])
            continue
        tournaments.append(
            {
                "name": fields["name"],
                "location": fields["location"],
                "surface": fields["surface"].lower() or "hard",
                "category": infer_tournament_category(fields["name"]),
                "start_date": dates[0],
                "end_date": dates[1],
            }
        )
    return tournaments


def parse_match_time(text: str, day: datetime) -> datetime | None:
    found = TIME_PATTERN.search(text)
    if not found:
        return None
    hour, minute = int(found.group(1)), int(found.group(2))
    if hour > 23 or minute > 59:
        return None
    return datetime.combine(day.date(), time(hour, minute), tzinfo=timezone.utc)


def parse_matches(html: str, day: datetime) -> list[dict[str, Any]]:
    soup = BeautifulSoup(html, "html.parser")
    matches = []
    for item in soup.select(".match-item"):
        texts = {
            key: _text(item, f".{key}")
            for key in ("player1", "player2", "match-time", "surface")
        }
        if not texts["player1"] or not texts["player2"]:
            continue
        matches.append(
            {
                "player1_name": texts["player1"],
                "player2_name": texts["player2"],
                "scheduled_time": parse_match_time(texts["match-time"], day),
                "surface": texts["surface"].lower() or "hard",
            }
        )
    return matches


# ----------------------------------------------------------------------
# Service
# ----------------------------------------------------------------------


class TennisDataService:
    """
    Fetches and stores players, tournaments, matches and news.

    Args:
        storage: TennisStorage to write into
        http_client: Optional preconfigured httpx client (tests)
        settings: Optional settings override
    """

    def __init__(
        self,
        storage: TennisStorage,
        http_client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
    ):
        self.storage = storage
        self.settings = settings or get_settings()
        config = self.settings.load_defaults_config()
        self.sync_config = config.get("sync", {})
        self.news_config = config.get("news", {})
        self._http_client = http_client

    async def __aenter__(self) -> "TennisDataService":
        await self._get_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(30.0),
                headers={"User-Agent": self.settings.scraper_user_agent},
                follow_redirects=True,
            )
        return self._http_client

    async def close(self) -> None:
        if self._http_client is not None and not self._http_client.is_closed:
            await self._http_client.aclose()
        self._http_client = None

    async def _fetch_html(self, url: str) -> str:
        client = await self._get_client()
        response = await client.get(url)
        response.raise_for_status()
        return response.text

    async def sync_players(self) -> dict[str, int]:
        """Upsert the top of the singles rankings, matched by name."""
        html = await self._fetch_html(self.sync_config["atp_rankings_url"])
        rows = parse_rankings(html)[: self.sync_config.get("player_limit", 100)]
        stats = {"fetched": len(rows), "created": 0, "updated": 0, "errors": 0}
        for row in rows:
            try:
                _, created = await self.storage.upsert_player(row)
            except Exception as e:
                stats["errors"] += 1
                logger.error("player_sync_failed", name=row["name"], error=str(e))
                continue
            stats["created" if created else "updated"] += 1
        logger.info("players_synced", **stats)
        return stats

    async def sync_tournaments(self) -> dict[str, int]:
        html = await self._fetch_html(self.sync_config["atp_tournaments_url"])
        rows = parse_tournaments(html)
        stats = {"fetched": len(rows), "created": 0, "skipped": 0, "errors": 0}
        for row in rows:
            if await self.storage.get_tournament_by_name(row["name"]):
                stats["skipped"] += 1
                continue
            try:
                await self.storage.create_tournament(**row)
                stats["created"] += 1
            except Exception as e:
                stats["errors"] += 1
                logger.error("tournament_sync_failed", name=row["name"], error=str(e))
        logger.info("tournaments_synced", **stats)
        return stats

    async def sync_matches(self, tournament_id: int | None = None) -> dict[str, int]:
        """Create scheduled matches for listed pairs whose players are both known."""
        html = await self._fetch_html(self.sync_config["matches_url"])
        rows = parse_matches(html, datetime.now(timezone.utc))
        stats = {"fetched": len(rows), "created": 0, "unknown_players": 0, "errors": 0}
        for row in rows:
            player1 = await self.storage.get_player_by_name(row["player1_name"])
            player2 = await self.storage.get_player_by_name(row["player2_name"])
            if player1 is None or player2 is None:
                stats["unknown_players"] += 1
                continue
            try:
                await self.storage.create_match(
                    tournament_id=tournament_id,
                    player1_id=player1.id,
                    player2_id=player2.id,
                    scheduled_time=row["scheduled_time"],
                    status="scheduled",
                    surface=row["surface"],
                    round="First Round",
                )
                stats["created"] += 1
            except Exception as e:
                stats["errors"] += 1
                logger.error(
                    "match_sync_failed",
                    player1=row["player1_name"],
                    player2=row["player2_name"],
                    error=str(e),
                )
        logger.info("matches_synced", tournament_id=tournament_id, **stats)
        return stats

    async def sync_news(self) -> dict[str, int]:
        """General tennis news plus a separate injury query."""
        if not self.settings.news_api_key:
            logger.warning("news_sync_skipped", reason="news_api_key not configured")
            return {"fetched": 0, "created": 0, "duplicates": 0}

        players = await self.storage.list_players()
        stats = {"fetched": 0, "created": 0, "duplicates": 0}
        for query, page_size, injury in (
            (self.sync_config["news_query"], self.sync_config.get("news_page_size", 50), False),
            (self.sync_config["injury_query"], self.sync_config.get("injury_page_size", 20), True),
        ):
            articles = await self._fetch_articles(query, page_size)
            stats["fetched"] += len(articles)
            for article in articles:
                fields = self.build_news_fields(article, players, injury)
                if fields is None:
                    continue
                if fields["url"] and await self.storage.get_news_article_by_url(fields["url"]):
                    stats["duplicates"] += 1
                    continue
                await self.storage.create_news_article(**fields)
                stats["created"] += 1
        logger.info("news_synced", **stats)
        return stats

    async def _fetch_articles(self, query: str, page_size: int) -> list[dict[str, Any]]:
        client = await self._get_client()
        response = await client.get(
            self.sync_config["news_api_url"],
            params={
                "q": query,
                "language": "en",
                "sortBy": "publishedAt",
                "pageSize": page_size,
                "apiKey": self.settings.news_api_key,
            },
        )
        response.raise_for_status()
        return response.json().get("articles", [])

    def build_news_fields(
        self, article: dict[str, Any], players: list[Any], injury: bool
    ) -> dict[str, Any] | None:
        """Map a newsapi article to NewsArticle columns. None when it has no title or date."""
        title = article.get("title")
        published = article.get("publishedAt")
        if not title or not published:
            return None
        description = article.get("description") or ""
        text = f"{title} {description}"
        news = self.news_config
        return {
            "title": title,
            "content": description or article.get("content"),
            "source": (article.get("source") or {}).get("name") or "unknown",
            "url": article.get("url"),
            "published_at": datetime.fromisoformat(published.replace("Z", "+00:00")),
            "player_id": find_player_mention(text, players),
            "is_injury_related": injury,
            "is_coaching_change": is_coaching_change(text, news.get("coaching_keywords", [])),
            "sentiment": analyze_sentiment(
                text, news.get("positive_keywords", []), news.get("negative_keywords", [])
            ),
            "relevance_score": calculate_relevance_score(text, news.get("tennis_keywords", [])),
            "keywords": extract_keywords(text, news.get("max_keywords", 10)),
        }
