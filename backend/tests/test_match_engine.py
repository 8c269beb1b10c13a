"""
Tests for the Match Engine

Tests cover:
- JSON extraction from free-form AI replies
- Trusting vs strict result building
- Pre-filtering listings against criteria
- Sequential batch scoring with per-listing failures
- Cache use for analyses and cover letters
- AI client failure modes
"""

import json
import pytest
from datetime import datetime, timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from openai import OpenAIError

from app.errors import ConfigurationError, ParseError, UpstreamError
from app.services.ai_client import AIClient
from app.services.match_engine import (
    MatchEngine,
    MatchResult,
    build_cover_letter_prompt,
    build_match_prompt,
    extract_json_object,
    parse_analysis,
    prefilter_listings,
)

ANALYSIS = {
    "overall_score": 82,
    "skills_match": {"matching_skills": ["Python"], "missing_skills": ["Go"], "score": 75},
    "experience_match": {"score": 90},
    "education_match": {"score": 70},
    "company_culture_fit": {"score": 80},
    "strengths": ["APIs"],
    "weaknesses": ["No Go"],
    "recommendations": ["Learn Go", "Mention APIs"],
}


def listing_stub(listing_id="l-1", **overrides):
    data = {
        "id": listing_id,
        "title": "Python Developer",
        "company_name": "Acme",
        "location": "Austin, TX",
        "job_type": "full_time",
        "experience_level": "senior",
        "skills": ["Python"],
        "description": "Build APIs",
        "is_remote": False,
        "salary_min": None,
        "salary_max": None,
        "posted_at": None,
    }
    data.update(overrides)
    return SimpleNamespace(**data)


def profile_stub():
    return SimpleNamespace(
        id="p-1",
        name="Ada",
        title="Engineer",
        summary="",
        skills=["Python"],
        experience=[{"title": "Engineer", "company": "Initech", "start_date": "2019-01-01", "current": True}],
        education=[],
    )


class TestExtractJsonObject:
    """Test balanced-brace JSON extraction."""

    def test_strips_surrounding_text(self):
        text = 'Here you go:\n```json\n{"overall_score": 80}\n```\nThanks!'
        assert extract_json_object(text) == '{"overall_score": 80}'

    def test_takes_first_object_only(self):
        assert extract_json_object('{"a": {"b": 1}} {"c": 2}') == '{"a": {"b": 1}}'

    def test_ignores_braces_inside_strings(self):
        text = '{"note": "use } carefully", "n": 1}'
        assert json.loads(extract_json_object(text)) == {"note": "use } carefully", "n": 1}

    def test_no_brace_raises(self):
        with pytest.raises(ParseError):
            extract_json_object("I cannot help with that.")

    def test_unbalanced_raises(self):
        with pytest.raises(ParseError):
            extract_json_object('{"overall_score": 80')

    def test_parse_analysis_rejects_invalid_json(self):
        with pytest.raises(ParseError):
            parse_analysis("{overall_score: eighty}")


class TestMatchResult:
    """Test result building in both validation modes."""

    def test_trusting_mode_keeps_values_as_returned(self):
        result = MatchResult.from_analysis({**ANALYSIS, "overall_score": 140})

        assert result.overall_score == 140
        assert result.skills_score == 75
        assert result.matching_skills == ["Python"]

    def test_strict_mode_clamps_scores(self):
        data = {**ANALYSIS, "overall_score": 140, "experience_match": {"score": -5}}
        result = MatchResult.from_analysis(data, strict=True)

        assert result.overall_score == 100
        assert result.experience_score == 0

    def test_strict_mode_rejects_non_numeric_score(self):
        with pytest.raises(ParseError):
            MatchResult.from_analysis({**ANALYSIS, "overall_score": "high"}, strict=True)

    def test_strict_mode_requires_overall_score(self):
        data = {key: value for key, value in ANALYSIS.items() if key != "overall_score"}
        with pytest.raises(ParseError):
            MatchResult.from_analysis(data, strict=True)

    def test_match_fields(self):
        fields = MatchResult.from_analysis(ANALYSIS).to_match_fields()

        assert fields["overall_score"] == 82
        assert fields["company_fit_score"] == 80
        assert fields["improvement_suggestions"] == "Learn Go\nMention APIs"
        assert fields["last_analyzed_at"] is not None

    def test_missing_overall_score_stored_as_zero(self):
        fields = MatchResult.from_analysis({}).to_match_fields()
        assert fields["overall_score"] == 0

    def test_loose_reply_shaped_for_columns(self):
        reply = {
            "overall_score": "high",
            "strengths": None,
            "weaknesses": "No Go",
            "skills_match": {"matching_skills": "Python", "score": "n/a"},
            "recommendations": "Learn Go",
        }
        fields = MatchResult.from_analysis(reply).to_match_fields()

        assert fields["overall_score"] == 0
        assert fields["skills_score"] is None
        assert fields["strengths"] == []
        assert fields["weaknesses"] == ["No Go"]
        assert fields["matching_skills"] == ["Python"]
        assert fields["missing_skills"] == []
        assert fields["improvement_suggestions"] == "Learn Go"


class TestPrompts:
    def test_match_prompt_contains_listing_and_profile(self):
        prompt = build_match_prompt(listing_stub(), profile_stub())

        assert "Python Developer" in prompt
        assert "Ada" in prompt
        assert '"overall_score": 85' in prompt

    def test_cover_letter_prompt_options(self):
        prompt = build_cover_letter_prompt(
            listing_stub(),
            profile_stub(),
            tone="formal",
            length="short",
            highlight_skills=["Python"],
        )

        assert "formal" in prompt
        assert "200-250 words" in prompt
        assert "Python" in prompt


class TestPrefilter:
    """Test criteria pre-filtering."""

    def criteria(self, **overrides):
        data = {
            "locations": [],
            "job_type": None,
            "experience_level": None,
            "min_salary": None,
            "is_remote": None,
            "skills_excluded": [],
            "days_posted": None,
        }
        data.update(overrides)
        return SimpleNamespace(**data)

    def test_no_criteria_keeps_everything(self):
        listings = [listing_stub("a"), listing_stub("b")]
        assert prefilter_listings(listings, None) == listings

    def test_location(self):
        austin, berlin = listing_stub("a"), listing_stub("b", location="Berlin, Germany")
        assert prefilter_listings([austin, berlin], self.criteria(locations=["Austin"])) == [austin]

    def test_remote_location_matches_remote_listing(self):
        remote = listing_stub("a", location="Anywhere", is_remote=True)
        assert prefilter_listings([remote], self.criteria(locations=["Remote"])) == [remote]

    def test_unknown_job_type_is_kept(self):
        unknown = listing_stub("a", job_type=None)
        contract = listing_stub("b", job_type="contract")
        assert prefilter_listings([unknown, contract], self.criteria(job_type="full_time")) == [unknown]

    def test_salary_below_minimum(self):
        low = listing_stub("a", salary_min=50000, salary_max=60000)
        unknown = listing_stub("b")
        assert prefilter_listings([low, unknown], self.criteria(min_salary=90000)) == [unknown]

    def test_remote_required(self):
        onsite, remote = listing_stub("a"), listing_stub("b", is_remote=True)
        assert prefilter_listings([onsite, remote], self.criteria(is_remote=True)) == [remote]

    def test_excluded_skills(self):
        php = listing_stub("a", skills=["PHP"])
        python = listing_stub("b")
        assert prefilter_listings([php, python], self.criteria(skills_excluded=["php"])) == [python]

    def test_days_posted(self):
        now = datetime(2024, 3, 10)
        old = listing_stub("a", posted_at=now - timedelta(days=10))
        fresh = listing_stub("b", posted_at=now - timedelta(days=1))
        assert prefilter_listings([old, fresh], self.criteria(days_posted=7), now=now) == [fresh]


class TestMatchEngine:
    """Test scoring through a stubbed AI client."""

    @pytest.fixture
    def ai_client(self):
        client = MagicMock()
        client.generate = AsyncMock(return_value=json.dumps(ANALYSIS))
        return client

    @pytest.mark.asyncio
    async def test_score(self, ai_client):
        result = await MatchEngine(ai_client, strict=False).score(listing_stub(), profile_stub())

        assert result.overall_score == 82
        assert result.analysis == ANALYSIS
        ai_client.generate.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_batch_skips_failures_and_sorts_descending(self, ai_client):
        ai_client.generate.side_effect = [
            json.dumps({"overall_score": 40}),
            "no json here",
            json.dumps({"overall_score": 90}),
            UpstreamError("AI request failed"),
            json.dumps({"overall_score": 65}),
        ]
        listings = [listing_stub(f"l-{i}") for i in range(5)]

        scored = await MatchEngine(ai_client, strict=False).score_batch(listings, profile_stub())

        assert [listing.id for listing, _ in scored] == ["l-2", "l-4", "l-0"]
        assert [result.overall_score for _, result in scored] == [90, 65, 40]

    @pytest.mark.asyncio
    async def test_cached_analysis_skips_ai_call(self, ai_client, fake_cache):
        fake_cache.get_analysis.return_value = {"overall_score": 77}

        result = await MatchEngine(ai_client, cache=fake_cache, strict=False).score(listing_stub(), profile_stub())

        assert result.overall_score == 77
        ai_client.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_analysis_written_to_cache(self, ai_client, fake_cache):
        await MatchEngine(ai_client, cache=fake_cache, strict=False).score(listing_stub(), profile_stub())

        fake_cache.set_analysis.assert_awaited_once()
        assert fake_cache.set_analysis.call_args[0][0] == "l-1"

    @pytest.mark.asyncio
    async def test_cached_analysis_is_per_criteria(self, ai_client, fake_cache):
        stored = {}

        async def remember(listing_id, key, data):
            stored[(listing_id, key)] = data
            return True

        fake_cache.get_analysis.side_effect = lambda listing_id, key: stored.get((listing_id, key))
        fake_cache.set_analysis.side_effect = remember
        python = SimpleNamespace(keywords=["python"], locations=["Austin"], job_type=None, experience_level=None)
        remote = SimpleNamespace(keywords=["python"], locations=["Remote"], job_type=None, experience_level=None)
        engine = MatchEngine(ai_client, cache=fake_cache, strict=False)

        await engine.score(listing_stub(), profile_stub(), python)
        await engine.score(listing_stub(), profile_stub(), remote)
        await engine.score(listing_stub(), profile_stub(), python)

        assert ai_client.generate.await_count == 2
        assert len(stored) == 2

    @pytest.mark.asyncio
    async def test_cover_letter(self, ai_client, fake_cache):
        ai_client.generate.return_value = "  Dear Hiring Manager,\n...  "

        letter = await MatchEngine(ai_client, cache=fake_cache).generate_cover_letter(
            listing_stub(), profile_stub(), tone="friendly"
        )

        assert letter == "Dear Hiring Manager,\n..."
        assert ai_client.generate.call_args.kwargs["temperature"] == 0.7
        fake_cache.set_cover_letter.assert_awaited_once()


def completion(content="{}", finish_reason="stop", refusal=None, choices=True):
    message = MagicMock()
    message.content = content
    message.refusal = refusal
    choice = MagicMock()
    choice.message = message
    choice.finish_reason = finish_reason
    response = MagicMock()
    response.choices = [choice] if choices else []
    return response


class TestAIClient:
    """Test provider failure mapping."""

    def client_returning(self, response=None, error=None):
        openai_client = MagicMock()
        openai_client.chat.completions.create = AsyncMock(return_value=response, side_effect=error)
        return AIClient(openai_client=openai_client, model="test-model")

    @pytest.mark.asyncio
    async def test_returns_content(self):
        client = self.client_returning(completion('{"overall_score": 1}'))
        assert await client.generate("prompt") == '{"overall_score": 1}'

    @pytest.mark.asyncio
    async def test_no_choices(self):
        with pytest.raises(UpstreamError):
            await self.client_returning(completion(choices=False)).generate("prompt")

    @pytest.mark.asyncio
    async def test_content_filter(self):
        with pytest.raises(UpstreamError, match="safety"):
            await self.client_returning(completion(finish_reason="content_filter")).generate("prompt")

    @pytest.mark.asyncio
    async def test_refusal(self):
        with pytest.raises(UpstreamError, match="safety"):
            await self.client_returning(completion(content=None, refusal="I can't")).generate("prompt")

    @pytest.mark.asyncio
    async def test_empty_content(self):
        with pytest.raises(UpstreamError, match="No content"):
            await self.client_returning(completion(content="   ")).generate("prompt")

    @pytest.mark.asyncio
    async def test_sdk_error(self):
        with pytest.raises(UpstreamError):
            await self.client_returning(error=OpenAIError("connection reset")).generate("prompt")

    def test_missing_key(self, monkeypatch):
        from app.services import ai_client as module

        monkeypatch.setattr(module, "get_settings", lambda: MagicMock(openai_api_key="", openai_model="m", ai_temperature=0.1, ai_max_tokens=10))
        with pytest.raises(ConfigurationError):
            AIClient()
