"""
Tavily Search Scraper

Runs a free-text web search restricted to job-board domains and returns
unstructured hits for the normalizer. Social media domains are always
excluded.
"""

import logging
from typing import List, Optional, Sequence

import httpx

from app.config import get_settings
from app.errors import UpstreamError
from app.services.scrapers.base import BaseScraper, RawResult

logger = logging.getLogger(__name__)

JOB_BOARD_DOMAINS = [
    "linkedin.com",
    "indeed.com",
    "glassdoor.com",
    "monster.com",
    "careerbuilder.com",
    "dice.com",
    "ziprecruiter.com",
    "simplyhired.com",
    "angel.co",
    "stackoverflow.com",
    "github.com",
    "remoteok.io",
    "weworkremotely.com",
]

EXCLUDED_DOMAINS = [
    "facebook.com",
    "twitter.com",
    "instagram.com",
    "youtube.com",
    "pinterest.com",
    "tiktok.com",
]


class TavilyScraper(BaseScraper):
    source = "tavily"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_results: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.api_key = settings.tavily_api_key if api_key is None else api_key
        self.base_url = (base_url or settings.tavily_base_url).rstrip("/")
        self.timeout = timeout or settings.tavily_timeout
        self.max_results = max_results or settings.tavily_max_results
        self._transport = transport

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def build_payload(
        self,
        query: str,
        domains: Optional[Sequence[str]] = None,
        max_results: Optional[int] = None,
    ) -> dict:
        return {
            "query": query,
            "search_depth": "advanced",
            "include_answer": False,
            "include_raw_content": True,
            "max_results": max_results or self.max_results,
            "include_domains": list(domains) if domains else JOB_BOARD_DOMAINS,
            "exclude_domains": EXCLUDED_DOMAINS,
        }

    async def search(
        self,
        query: str,
        domains: Optional[Sequence[str]] = None,
        max_results: Optional[int] = None,
    ) -> List[RawResult]:
        self.ensure_configured()
        payload = self.build_payload(query, domains, max_results)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self.base_url}/search",
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Tavily API error {e.response.status_code} for query {query!r}")
            raise UpstreamError(
                "Tavily search failed",
                detail=f"HTTP {e.response.status_code}: {e.response.text[:500]}",
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Tavily request failed for query {query!r}: {e}")
            raise UpstreamError("Tavily search failed", detail=str(e)) from e
        except ValueError as e:
            logger.error(f"Tavily returned a non-JSON body for query {query!r}")
            raise UpstreamError("Tavily search failed", detail=f"Invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise UpstreamError("Tavily search failed", detail="Response body is not a JSON object")

        results = [self._parse_result(item) for item in data.get("results", [])]
        logger.info(f"Tavily returned {len(results)} results for query {query!r}")
        return results

    def _parse_result(self, item: dict) -> RawResult:
        metadata = dict(item.get("metadata") or {})
        if item.get("published_date"):
            metadata.setdefault("published_date", item["published_date"])

        return RawResult(
            title=item.get("title") or "",
            url=item.get("url") or "",
            content=item.get("content") or "",
            raw_content=item.get("raw_content"),
            score=item.get("score"),
            metadata=metadata,
        )
