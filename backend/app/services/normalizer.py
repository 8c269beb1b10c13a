"""
Listing Normalizer - Heuristics for turning search results into listings

Search providers return loosely structured results (title, url, content,
optional metadata). This module extracts structured listing fields from
them with simple string heuristics:

    - company:  "<role> at <Company>" → "<Company>: <role>" → URL host
    - location: criteria → trailing " - <Place>" in title → body text
    - remote:   criteria flag → remote keywords in title/body
    - skills:   criteria skills ∪ known technology names in title/body
    - salary:   "min - max" range, or single value with a ±10% band

All functions are pure; `normalize_result` assembles a ListingCreate.
"""

import hashlib
import html
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional
from urllib.parse import urlparse

from app.schemas import ListingCreate

DEFAULT_CURRENCY = "USD"
UNKNOWN_COMPANY = "Unknown Company"
UNKNOWN_LOCATION = "Location not specified"

REMOTE_KEYWORDS = ("remote", "work from home", "wfh", "virtual", "telecommute")

SKILL_VOCABULARY = [
    "JavaScript", "Python", "Java", "C#", "PHP", "C++", "TypeScript", "Ruby",
    "Swift", "Kotlin", "React", "Angular", "Vue.js", "Node.js", "Django",
    "Spring", "Laravel", "Ruby on Rails", "AWS", "Azure", "Google Cloud",
    "Docker", "Kubernetes", "Terraform", "SQL", "MongoDB", "PostgreSQL",
    "MySQL", "Redis", "Elasticsearch", "Git", "CI/CD", "DevOps", "Agile",
    "Scrum",
]

CURRENCY_SYMBOLS = {"£": "GBP", "€": "EUR", "₹": "INR"}

_TITLE_LOCATION_RE = re.compile(r"[A-Z][a-z]+,?\s+[A-Z]{2}\b|Remote|Worldwide|Anywhere")
_BODY_LOCATION_RE = re.compile(
    r"\b(Remote|Worldwide|Anywhere|[A-Z][a-z]+(?:[\s-][A-Z][a-z]+)*,\s*[A-Z]{2})\b"
)
_TLD_RE = re.compile(r"\.(com|org|net|io|co|co\.[a-z]{2})$")
_TITLE_SUFFIX_RE = re.compile(r"\s+[-|]\s+")
_TAG_RE = re.compile(r"<[^>]+>")
_WHITESPACE_RE = re.compile(r"\s+")
_SALARY_RANGE_RE = re.compile(r"[$£€₹]?\s*(\d[\d,]*)\s*(?:[-–—]|to)\s*[$£€₹]?\s*(\d[\d,]*)", re.IGNORECASE)
_SALARY_SINGLE_RE = re.compile(r"[$£€₹]?\s*(\d[\d,]*)")


@dataclass
class SalaryInfo:
    min: int
    max: int
    currency: str = DEFAULT_CURRENCY
    is_estimate: bool = False


def _values(items: Optional[Iterable[str]]) -> List[str]:
    return [str(item).strip() for item in (items or []) if item and str(item).strip()]


def build_search_query(criteria) -> str:
    """Join the populated criteria fields into one free-text query."""
    parts = []
    parts.extend(_values(getattr(criteria, "keywords", None)))
    parts.extend(_values(getattr(criteria, "job_titles", None)))
    parts.extend(_values(getattr(criteria, "companies", None)))
    parts.extend(_values(getattr(criteria, "locations", None)))

    job_type = getattr(criteria, "job_type", None)
    if job_type:
        parts.append(f"{job_type} job")

    experience_level = getattr(criteria, "experience_level", None)
    if experience_level:
        parts.append(f"{experience_level} level")

    if getattr(criteria, "is_remote", None):
        parts.append("remote")

    return " ".join(parts)


def extract_source(url: str) -> str:
    host = (urlparse(url).hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    return host or "unknown"


def extract_company_name(title: str, url: str) -> str:
    title = title or ""

    if " at " in title:
        company = _TITLE_SUFFIX_RE.split(title.split(" at ", 1)[1])[0].strip()
        if company:
            return company

    if ": " in title:
        company = title.split(": ", 1)[0].strip()
        if company:
            return company

    host = extract_source(url)
    if host != "unknown":
        name = _TLD_RE.sub("", host).split(".")[-1]
        if name:
            return name[0].upper() + name[1:]

    return UNKNOWN_COMPANY


def extract_location(title: str, content: str, criteria_location: Optional[str] = None) -> str:
    if criteria_location:
        return criteria_location

    if " - " in (title or ""):
        segment = title.rsplit(" - ", 1)[1].strip()
        if _TITLE_LOCATION_RE.search(segment):
            return segment

    match = _BODY_LOCATION_RE.search(content or "")
    if match:
        return match.group(1)

    return UNKNOWN_LOCATION


def detect_remote(title: str, content: str, criteria_remote: Optional[bool] = None) -> bool:
    if criteria_remote is not None:
        return bool(criteria_remote)

    text = f"{title or ''} {content or ''}".lower()
    return any(keyword in text for keyword in REMOTE_KEYWORDS)


def extract_skills(title: str, content: str, criteria_skills: Optional[Iterable[str]] = None) -> List[str]:
    """Criteria skills plus vocabulary terms found in the text, de-duplicated case-insensitively."""
    text = f"{title or ''} {content or ''}"
    found = _values(criteria_skills)

    for skill in SKILL_VOCABULARY:
        pattern = r"(?<![A-Za-z0-9])" + re.escape(skill) + r"(?![A-Za-z0-9+#])"
        if re.search(pattern, text, re.IGNORECASE):
            found.append(skill)

    seen = set()
    skills = []
    for skill in found:
        key = skill.lower()
        if key not in seen:
            seen.add(key)
            skills.append(skill)
    return skills


def _to_int(value: str) -> Optional[int]:
    digits = value.replace(",", "")
    return int(digits) if digits else None


def parse_salary(text: Optional[str]) -> Optional[SalaryInfo]:
    """
    Parse a salary string.

    "$80,000 - $120,000"  → 80000..120000
    "$80,000 to $120,000" → same; en and em dashes also separate a range
    "$100,000"            → 90000..110000 (estimate)
    """
    if not text:
        return None
    text = str(text)

    currency = DEFAULT_CURRENCY
    for symbol, code in CURRENCY_SYMBOLS.items():
        if symbol in text:
            currency = code
            break

    match = _SALARY_RANGE_RE.search(text)
    if match:
        low, high = _to_int(match.group(1)), _to_int(match.group(2))
        if low is not None and high is not None:
            return SalaryInfo(min=low, max=high, currency=currency)

    match = _SALARY_SINGLE_RE.search(text)
    if match:
        value = _to_int(match.group(1))
        if value is not None:
            return SalaryInfo(
                min=int(round(value * 0.9)),
                max=int(round(value * 1.1)),
                currency=currency,
                is_estimate=True,
            )

    return None


def clean_description(text: Optional[str], max_length: int = 10000) -> str:
    text = _TAG_RE.sub(" ", text or "")
    text = _WHITESPACE_RE.sub(" ", html.unescape(text)).strip()
    if len(text) > max_length:
        text = text[:max_length] + "..."
    return text.strip()


def parse_published_date(value) -> Optional[datetime]:
    """ISO-8601 provider date → naive UTC datetime, or None."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def url_external_id(url: str) -> str:
    """Stable external id for providers that only give us a URL."""
    return hashlib.sha256(url.encode()).hexdigest()


def normalize_result(
    result,
    criteria=None,
    board_id: Optional[str] = None,
    max_length: int = 10000,
) -> ListingCreate:
    """
    Build a ListingCreate from one raw search result.

    Raises:
        ValueError: if the result carries no URL
    """
    url = (result.url or "").strip()
    if not url:
        raise ValueError("Search result has no URL")

    title = (result.title or "").strip() or "Untitled"
    content = result.content or ""
    metadata = result.metadata or {}

    criteria_locations = _values(getattr(criteria, "locations", None))
    salary = parse_salary(metadata.get("salary")) if metadata.get("salary") else None

    return ListingCreate(
        external_id=url_external_id(url),
        board_id=board_id,
        title=title,
        description=clean_description(result.raw_content or content, max_length),
        company_name=extract_company_name(title, url),
        location=extract_location(title, content, criteria_locations[0] if criteria_locations else None),
        is_remote=detect_remote(title, content, getattr(criteria, "is_remote", None)),
        job_type=getattr(criteria, "job_type", None),
        experience_level=getattr(criteria, "experience_level", None),
        salary_min=salary.min if salary else None,
        salary_max=salary.max if salary else None,
        salary_currency=salary.currency if salary else None,
        salary_is_estimate=salary.is_estimate if salary else False,
        skills=extract_skills(title, content, getattr(criteria, "skills_included", None)),
        apply_url=url,
        listing_url=url,
        source=extract_source(url),
        posted_at=parse_published_date(metadata.get("published_date")),
        raw_data=result.to_dict(),
    )
