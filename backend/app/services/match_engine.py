"""
Match Engine - AI-assisted scoring of a listing against a profile

The engine formats a listing, a candidate profile and (optionally) the
search criteria into a prompt, asks the generative-text provider for a
fixed JSON schema, and turns the reply into a MatchResult.

Scoring Flow:
    1. build_match_prompt()      listing + profile + criteria → prompt
    2. AIClient.generate()       prompt → raw reply text
    3. extract_json_object()     first balanced {...} in the reply
    4. MatchResult.from_analysis()  JSON → typed result

Reply Schema:
    overall_score, skills_match{matching_skills, missing_skills, score},
    experience_match{...score}, education_match{...score},
    company_culture_fit{...score}, strengths[], weaknesses[],
    recommendations[]

By default the reply is trusted as returned. With strict validation on,
scores must be numeric and are clamped to 0-100, and list fields are
coerced to lists of strings.

Batch scoring is sequential; a failure for one listing is logged and
skipped, and the surviving results are sorted by overall score.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

from app.config import get_settings
from app.database import utcnow
from app.errors import ParseError
from app.middleware.metrics import record_match_scored
from app.services.ai_client import AIClient
from app.services.cache import AnalysisCache, criteria_hash, profile_hash

logger = logging.getLogger(__name__)

MATCH_PROMPT = """Analyze the match between the following job listing and candidate profile.

Listing Details:
- Title: {title}
- Company: {company}
- Location: {location}
- Job Type: {job_type}
- Experience Level: {experience_level}
- Skills: {listing_skills}
- Description: {description}

Candidate Profile:
- Name: {name}
- Title: {candidate_title}
- Experience:
{experience}
- Education:
{education}
- Skills: {candidate_skills}

Search Criteria (if applicable):
- Keywords: {keywords}
- Locations: {locations}
- Job Type: {criteria_job_type}
- Experience Level: {criteria_experience_level}

Provide a detailed analysis including:
1. Overall match score (0-100)
2. Skills match (list matching and missing skills)
3. Experience match
4. Education match
5. Company culture fit
6. Key strengths for this role
7. Potential weaknesses or gaps
8. Recommendations for improving the application

Format your response as a JSON object with the following structure:
{{
    "overall_score": 85,
    "skills_match": {{
        "matching_skills": ["skill1", "skill2"],
        "missing_skills": ["skill3", "skill4"],
        "score": 80
    }},
    "experience_match": {{
        "years_experience_match": true,
        "industry_experience_match": true,
        "score": 90
    }},
    "education_match": {{
        "degree_required": "Bachelor's",
        "degree_matched": true,
        "score": 95
    }},
    "company_culture_fit": {{
        "values_alignment": "high",
        "work_style_match": "moderate",
        "score": 85
    }},
    "strengths": ["strength1", "strength2"],
    "weaknesses": ["weakness1", "weakness2"],
    "recommendations": ["recommendation1", "recommendation2"]
}}

Provide only the JSON response, without any additional text or explanations."""

COVER_LETTER_PROMPT = """Write a {tone} cover letter based on the following job listing and my profile.

Listing:
- Title: {title}
- Company: {company}
- Description: {description}

My Profile:
- Name: {name}
- Title: {candidate_title}
- Experience:
{experience}
- Education:
{education}
- Skills: {candidate_skills}

Instructions:
{instructions}

Generate only the content of the cover letter, without any additional explanations or notes."""

TONE_INSTRUCTIONS = {
    "professional": "Use a professional and confident tone.",
    "enthusiastic": "Use an enthusiastic and energetic tone that shows genuine excitement for the role.",
    "friendly": "Use a warm and friendly tone while remaining professional.",
    "formal": "Use a formal and traditional business tone.",
}

LENGTH_INSTRUCTIONS = {
    "short": "Keep the cover letter concise, around 200-250 words.",
    "medium": "Write a cover letter of moderate length, around 300-400 words.",
    "long": "Write a detailed cover letter, around 500-600 words.",
}

SUB_SCORES = {
    "skills_score": "skills_match",
    "experience_score": "experience_match",
    "education_score": "education_match",
    "company_fit_score": "company_culture_fit",
}


# ==================== Prompt Formatting ====================

def format_list(items: Optional[Sequence[Any]], empty: str = "Not specified") -> str:
    values = [str(item) for item in (items or []) if item]
    return ", ".join(values) if values else empty


def format_skills(skills: Optional[Sequence[Any]]) -> str:
    return format_list(skills, empty="No skills provided")


def _period(entry: dict) -> str:
    end = "Present" if entry.get("current") else (entry.get("end_date") or "Present")
    return f"({entry.get('start_date') or 'Unknown'} - {end})"


def format_experience(experience: Optional[List[dict]]) -> str:
    if not experience:
        return "No experience provided"

    lines = []
    for entry in experience:
        line = f"- {entry.get('title', '')} at {entry.get('company', '')} {_period(entry)}"
        if entry.get("description"):
            line += f": {entry['description']}"
        lines.append(line)
    return "\n".join(lines)


def format_education(education: Optional[List[dict]]) -> str:
    if not education:
        return "No education provided"

    lines = []
    for entry in education:
        degree = entry.get("degree", "")
        if entry.get("field_of_study"):
            degree += f" in {entry['field_of_study']}"
        lines.append(f"- {degree} at {entry.get('institution', '')} {_period(entry)}")
    return "\n".join(lines)


def build_match_prompt(listing, profile, criteria=None) -> str:
    return MATCH_PROMPT.format(
        title=listing.title,
        company=listing.company_name,
        location=listing.location,
        job_type=listing.job_type or "Not specified",
        experience_level=listing.experience_level or "Not specified",
        listing_skills=format_skills(listing.skills),
        description=listing.description or "",
        name=profile.name,
        candidate_title=profile.title or "Not specified",
        experience=format_experience(profile.experience),
        education=format_education(profile.education),
        candidate_skills=format_skills(profile.skills),
        keywords=format_list(getattr(criteria, "keywords", None)),
        locations=format_list(getattr(criteria, "locations", None)),
        criteria_job_type=getattr(criteria, "job_type", None) or "Not specified",
        criteria_experience_level=getattr(criteria, "experience_level", None) or "Not specified",
    )


def build_cover_letter_prompt(
    listing,
    profile,
    tone: str = "professional",
    length: str = "medium",
    highlight_skills: Optional[Sequence[str]] = None,
    include_salary_expectations: bool = False,
    custom_instructions: Optional[str] = None,
) -> str:
    instructions = [
        TONE_INSTRUCTIONS.get(tone, TONE_INSTRUCTIONS["professional"]),
        LENGTH_INSTRUCTIONS.get(length, LENGTH_INSTRUCTIONS["medium"]),
    ]
    if highlight_skills:
        instructions.append(f"Highlight these skills where relevant: {format_list(highlight_skills)}.")
    else:
        instructions.append("Highlight the most relevant skills from my profile that match the listing.")
    if include_salary_expectations:
        instructions.append("Include salary expectations based on my experience and the listing's requirements.")
    else:
        instructions.append("Do not mention salary expectations.")
    instructions.append("Focus on how my skills and experience align with the listing requirements.")
    instructions.append("Use a professional business letter format.")
    instructions.append("Do not include any placeholders; generate complete content.")
    if custom_instructions:
        instructions.append(custom_instructions.strip())

    return COVER_LETTER_PROMPT.format(
        tone=tone,
        title=listing.title,
        company=listing.company_name,
        description=listing.description or "",
        name=profile.name,
        candidate_title=profile.title or "Not specified",
        experience=format_experience(profile.experience),
        education=format_education(profile.education),
        candidate_skills=format_skills(profile.skills),
        instructions="\n".join(f"- {line}" for line in instructions),
    )


# ==================== Reply Parsing ====================

def extract_json_object(text: str) -> str:
    """
    Return the first balanced {...} substring of `text`.

    Braces inside JSON string literals are ignored.

    Raises:
        ParseError: no opening brace, or the object never closes
    """
    start = text.find("{") if text else -1
    if start == -1:
        raise ParseError("Invalid response format from AI provider", detail="No JSON object in response")

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start:index + 1]

    raise ParseError("Invalid response format from AI provider", detail="Unbalanced JSON object in response")


def parse_analysis(text: str) -> Dict[str, Any]:
    raw = extract_json_object(text)
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ParseError("Failed to parse AI response", detail=str(e)) from e
    if not isinstance(data, dict):
        raise ParseError("Failed to parse AI response", detail="Top-level JSON value is not an object")
    return data


def _clamp_score(value: Any, field_name: str, required: bool = False) -> Optional[int]:
    if value is None and not required:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ParseError("AI response failed validation", detail=f"{field_name} is not a number: {value!r}")
    return int(round(min(100.0, max(0.0, float(value)))))


def _string_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value if item is not None]
    return [str(value)]


def _as_list(value: Any) -> List[Any]:
    """List column value; items stay as returned, a bare value is wrapped."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _as_score(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


@dataclass
class MatchResult:
    overall_score: Any
    skills_score: Any = None
    experience_score: Any = None
    education_score: Any = None
    company_fit_score: Any = None
    matching_skills: Any = field(default_factory=list)
    missing_skills: Any = field(default_factory=list)
    strengths: Any = field(default_factory=list)
    weaknesses: Any = field(default_factory=list)
    recommendations: Any = field(default_factory=list)
    analysis: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_analysis(cls, data: Dict[str, Any], strict: bool = False) -> "MatchResult":
        """Build a result from the parsed reply; strict mode validates and clamps."""
        sections = {
            attr: data.get(key) if isinstance(data.get(key), dict) else {}
            for attr, key in SUB_SCORES.items()
        }
        skills = sections["skills_score"]

        if not strict:
            return cls(
                overall_score=data.get("overall_score"),
                matching_skills=skills.get("matching_skills", []),
                missing_skills=skills.get("missing_skills", []),
                strengths=data.get("strengths", []),
                weaknesses=data.get("weaknesses", []),
                recommendations=data.get("recommendations", []),
                analysis=data,
                **{attr: section.get("score") for attr, section in sections.items()},
            )

        return cls(
            overall_score=_clamp_score(data.get("overall_score"), "overall_score", required=True),
            matching_skills=_string_list(skills.get("matching_skills")),
            missing_skills=_string_list(skills.get("missing_skills")),
            strengths=_string_list(data.get("strengths")),
            weaknesses=_string_list(data.get("weaknesses")),
            recommendations=_string_list(data.get("recommendations")),
            analysis=data,
            **{
                attr: _clamp_score(section.get("score"), f"{SUB_SCORES[attr]}.score")
                for attr, section in sections.items()
            },
        )

    @property
    def sort_key(self) -> float:
        try:
            return float(self.overall_score)
        except (TypeError, ValueError):
            return 0.0

    def to_match_fields(self) -> Dict[str, Any]:
        """
        Column values for a Match row.

        Values the columns cannot hold are shaped even in trusting mode:
        non-list fields are wrapped (None becomes []) and non-numeric
        scores are dropped, a missing overall score being stored as 0.
        """
        overall = _as_score(self.overall_score)
        return {
            "overall_score": overall if overall is not None else 0,
            "skills_score": _as_score(self.skills_score),
            "experience_score": _as_score(self.experience_score),
            "education_score": _as_score(self.education_score),
            "company_fit_score": _as_score(self.company_fit_score),
            "matching_skills": _as_list(self.matching_skills),
            "missing_skills": _as_list(self.missing_skills),
            "strengths": _as_list(self.strengths),
            "weaknesses": _as_list(self.weaknesses),
            "improvement_suggestions": "\n".join(str(item) for item in _as_list(self.recommendations) if item) or None,
            "last_analyzed_at": utcnow(),
        }


# ==================== Pre-filtering ====================

def prefilter_listings(listings: Sequence, criteria, now=None) -> List:
    """
    Drop listings that clearly cannot satisfy the criteria.

    Unknown listing values (no job type, no salary) never exclude a listing.
    """
    if criteria is None:
        return list(listings)

    now = now or utcnow()
    locations = [loc.lower() for loc in (getattr(criteria, "locations", None) or []) if loc]
    job_type = (getattr(criteria, "job_type", None) or "").lower()
    experience_level = (getattr(criteria, "experience_level", None) or "").lower()
    min_salary = getattr(criteria, "min_salary", None)
    wants_remote = getattr(criteria, "is_remote", None)
    excluded = {skill.lower() for skill in (getattr(criteria, "skills_excluded", None) or [])}
    days_posted = getattr(criteria, "days_posted", None)

    kept = []
    for listing in listings:
        location = (listing.location or "").lower()
        if locations and not any(
            loc in location or (loc == "remote" and listing.is_remote) for loc in locations
        ):
            continue
        if job_type and listing.job_type and job_type not in listing.job_type.lower():
            continue
        if experience_level and listing.experience_level and experience_level not in listing.experience_level.lower():
            continue
        if min_salary and (listing.salary_min or listing.salary_max):
            if max(listing.salary_min or 0, listing.salary_max or 0) < min_salary:
                continue
        if wants_remote and not listing.is_remote:
            continue
        if excluded and excluded & {skill.lower() for skill in (listing.skills or [])}:
            continue
        if days_posted and listing.posted_at and listing.posted_at < now - timedelta(days=days_posted):
            continue
        kept.append(listing)
    return kept


# ==================== Engine ====================

class MatchEngine:
    """
    Scores listings for a profile through the generative-text provider.

    Args:
        ai_client: Provider wrapper exposing `generate(prompt)`
        cache: Optional analysis cache; misses and Redis errors fall through
        strict: Validate and clamp replies (defaults to settings)
    """

    def __init__(
        self,
        ai_client: AIClient,
        cache: Optional[AnalysisCache] = None,
        strict: Optional[bool] = None,
    ):
        self.ai_client = ai_client
        self.cache = cache
        self.strict = get_settings().strict_match_validation if strict is None else strict

    async def analyze(self, listing, profile, criteria=None) -> Dict[str, Any]:
        """Raw parsed analysis for one listing, served from cache when possible."""
        key = f"{profile_hash(profile)}:{criteria_hash(criteria)}"
        if self.cache and listing.id:
            cached = await self.cache.get_analysis(listing.id, key)
            if cached is not None:
                return cached

        reply = await self.ai_client.generate(build_match_prompt(listing, profile, criteria))
        data = parse_analysis(reply)

        if self.cache and listing.id:
            await self.cache.set_analysis(listing.id, key, data)
        return data

    async def score(self, listing, profile, criteria=None) -> MatchResult:
        data = await self.analyze(listing, profile, criteria)
        return MatchResult.from_analysis(data, strict=self.strict)

    async def score_batch(
        self,
        listings: Sequence,
        profile,
        criteria=None,
    ) -> List[Tuple[Any, MatchResult]]:
        """Score listings one at a time; failures are logged and skipped."""
        scored = []
        for listing in listings:
            try:
                result = await self.score(listing, profile, criteria)
            except Exception as e:
                logger.error(f"Error matching listing {listing.id} to profile {profile.id}: {e}")
                record_match_scored(False)
                continue
            record_match_scored(True)
            scored.append((listing, result))

        scored.sort(key=lambda item: item[1].sort_key, reverse=True)
        return scored

    async def generate_cover_letter(self, listing, profile, **options) -> str:
        key = profile_hash(profile)
        if self.cache and listing.id:
            cached = await self.cache.get_cover_letter(listing.id, key, options)
            if cached:
                return cached

        prompt = build_cover_letter_prompt(listing, profile, **options)
        letter = (await self.ai_client.generate(prompt, temperature=0.7)).strip()

        if self.cache and listing.id:
            await self.cache.set_cover_letter(listing.id, key, options, letter)
        return letter
