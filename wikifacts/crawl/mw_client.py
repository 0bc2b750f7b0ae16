from __future__ import annotations

import logging
import random
import time
from typing import Any, Dict, List, Optional

import requests
import requests_cache

from configs.settings import HTTP_CACHE_EXPIRE, HTTP_CACHE_PATH, USER_AGENT, WIKI_API
from wikifacts.errors import MediaWikiError

logger = logging.getLogger(__name__)


def cached_session(cache_path: str = HTTP_CACHE_PATH, expire_after: int = HTTP_CACHE_EXPIRE) -> requests.Session:
    # Cache all HTTP GETs. Makes re-runs fast and avoids hammering the wiki.
    return requests_cache.CachedSession(cache_path, backend="sqlite", expire_after=expire_after)


class MediaWikiClient:
    def __init__(
        self,
        api_url: str = WIKI_API,
        user_agent: str = USER_AGENT,
        min_delay: float = 0.1,
        max_delay: float = 0.3,
        session: Optional[requests.Session] = None,
    ):
        self.api_url = api_url
        self.session = session if session is not None else cached_session()

        self.session.headers.update({"User-Agent": user_agent, "Accept": "application/json"})
        self.min_delay = min_delay
        self.max_delay = max_delay

    def _sleep_polite(self) -> None:
        if self.max_delay > 0:
            time.sleep(random.uniform(self.min_delay, self.max_delay))

    def get_json(self, params: Dict[str, Any], retries: int = 5, timeout: int = 30) -> Dict[str, Any]:
        params = dict(params)
        params.setdefault("format", "json")
        params.setdefault("formatversion", "2")

        last_exc: Optional[Exception] = None
        for attempt in range(1, retries + 1):
            try:
                self._sleep_polite()
                r = self.session.get(self.api_url, params=params, timeout=timeout)
                r.raise_for_status()
                data = r.json()
                if isinstance(data, dict) and "error" in data:
                    # API-level errors are not transient
                    raise MediaWikiError(f"MediaWiki API error: {data['error']}")
                return data
            except MediaWikiError:
                raise
            except (requests.RequestException, ValueError) as e:
                last_exc = e
                logger.debug("attempt %d/%d failed: %s", attempt, retries, e)
                time.sleep(min(8, 0.7 * attempt))

        raise MediaWikiError(f"MediaWiki API request failed after {retries} retries: {params}") from last_exc

    def fetch_latest_revision(self, title: str) -> Dict[str, Any]:
        """Page metadata + categories + latest wikitext (redirects followed)."""
        return self.get_json({
            "action": "query",
            "titles": title,
            "redirects": 1,
            "prop": "revisions|categories",
            "cllimit": "max",
            "rvslots": "main",
            "rvprop": "ids|timestamp|content",
        })

    def parse_links(self, wikitext: str) -> List[Dict[str, Any]]:
        """Let the wiki expand arbitrary wikitext and return the resulting links."""
        data = self.get_json({
            "action": "parse",
            "contentmodel": "wikitext",
            "text": wikitext,
            "prop": "links",
        })
        return (data.get("parse") or {}).get("links") or []

    def page_links(self, page: str) -> List[Dict[str, Any]]:
        """Links on a rendered wiki page (templates and transclusions expanded)."""
        data = self.get_json({
            "action": "parse",
            "page": page,
            "prop": "links",
        })
        return (data.get("parse") or {}).get("links") or []
