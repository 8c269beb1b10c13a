"""
Bright Data LinkedIn Scraper

Unlike the search providers, Bright Data returns structured job records,
so parsing happens here and the result is already a ListingCreate.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from app.config import get_settings
from app.errors import UpstreamError
from app.schemas import ListingCreate
from app.services.normalizer import clean_description, parse_published_date
from app.services.scrapers.base import BaseScraper

logger = logging.getLogger(__name__)

JOB_TYPE_MAP = {
    "full-time": "full_time",
    "part-time": "part_time",
    "contract": "contract",
    "temporary": "temporary",
    "internship": "internship",
    "volunteer": "volunteer",
    "freelance": "freelance",
    "permanent": "permanent",
}


class BrightDataScraper(BaseScraper):
    source = "linkedin"

    def __init__(
        self,
        api_url: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        customer_id: Optional[str] = None,
        zone: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.api_url = (api_url or settings.bright_data_api_url).rstrip("/")
        self.username = settings.bright_data_username if username is None else username
        self.password = settings.bright_data_password if password is None else password
        self.customer_id = settings.bright_data_customer_id if customer_id is None else customer_id
        self.zone = zone or settings.bright_data_zone
        self.timeout = timeout or settings.bright_data_timeout
        self.description_max_length = settings.description_max_length
        self._transport = transport

    @property
    def display_name(self) -> str:
        return "Bright Data"

    def is_configured(self) -> bool:
        return bool(self.username and self.password and self.customer_id)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            auth=(self.username, self.password),
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        self.ensure_configured()
        try:
            async with self._client() as client:
                response = await client.request(method, f"{self.api_url}{path}", **kwargs)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Bright Data API error {e.response.status_code} on {path}")
            raise UpstreamError(
                "Bright Data request failed",
                detail=f"HTTP {e.response.status_code}: {e.response.text[:500]}",
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Bright Data request failed on {path}: {e}")
            raise UpstreamError("Bright Data request failed", detail=str(e)) from e
        except ValueError as e:
            logger.error(f"Bright Data returned a non-JSON body on {path}")
            raise UpstreamError("Bright Data request failed", detail=f"Invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise UpstreamError("Bright Data request failed", detail="Response body is not a JSON object")
        return data

    async def search_jobs(
        self,
        query: str,
        location: Optional[str] = None,
        country: str = "us",
        page: int = 1,
        limit: int = 10,
        filters: Optional[Dict[str, Any]] = None,
        board_id: Optional[str] = None,
    ) -> List[ListingCreate]:
        payload = {
            "customer": self.customer_id,
            "zone": self.zone,
            "entity": "search",
            "query": query,
            "location": location or "",
            "country": country,
            "page": page,
            "limit": min(limit, 50),
            "filters": filters or {},
        }
        data = await self._request("POST", "/scraper/linkedin/search", json=payload)

        jobs = []
        for result in data.get("results", []):
            job = self._parse_job(result, board_id)
            if job:
                jobs.append(job)
        return jobs

    async def get_job_details(self, job_id: str, board_id: Optional[str] = None) -> Optional[ListingCreate]:
        data = await self._request(
            "GET",
            f"/scraper/linkedin/job/{job_id}",
            params={"customer": self.customer_id},
        )
        return self._parse_job(data, board_id)

    def _parse_job(self, data: dict, board_id: Optional[str] = None) -> Optional[ListingCreate]:
        try:
            url = data.get("url")
            external_id = data.get("job_id")
            if not url or not external_id:
                logger.warning(f"Skipping Bright Data job without id/url: {external_id}")
                return None

            salary = data.get("salary") or {}
            company = data.get("company") or {}
            job_types = map_job_types(data.get("job_type") or [])

            return ListingCreate(
                external_id=str(external_id),
                board_id=board_id,
                title=data.get("title") or "No title",
                description=clean_description(data.get("description"), self.description_max_length),
                company_name=company.get("name") or "Unknown Company",
                company_website=company.get("website") or company.get("url"),
                location=format_location(data.get("location")),
                is_remote="remote" in format_location(data.get("location")).lower(),
                job_type=job_types[0] if job_types else None,
                experience_level=data.get("seniority_level"),
                salary_min=_int_or_none(salary.get("min")),
                salary_max=_int_or_none(salary.get("max")),
                salary_currency=salary.get("currency", "USD") if salary else None,
                salary_period=salary.get("period", "year") if salary else None,
                salary_is_estimate=bool(salary.get("is_estimate", True)) if salary else False,
                categories=list(data.get("industries") or []),
                apply_url=data.get("apply_url") or url,
                listing_url=url,
                source=self.source,
                posted_at=parse_published_date(data.get("posted_at")),
                expires_at=parse_published_date(data.get("expires_at")),
                raw_data=data,
            )
        except Exception as e:
            logger.warning(f"Error parsing Bright Data job: {e}")
            return None


def format_location(location) -> str:
    """Location may be a plain string or a {city, state, country} record."""
    if isinstance(location, str) and location.strip():
        return location.strip()
    if isinstance(location, dict):
        parts = [location.get(key) for key in ("city", "state", "country")]
        parts = [part for part in parts if part]
        if parts:
            return ", ".join(parts)
    return "Remote"


def map_job_types(job_types) -> List[str]:
    if isinstance(job_types, str):
        job_types = [job_types]
    mapped = []
    for job_type in job_types:
        normalized = str(job_type).strip().lower()
        value = JOB_TYPE_MAP.get(normalized, normalized)
        if value and value not in mapped:
            mapped.append(value)
    return mapped


def _int_or_none(value) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None
