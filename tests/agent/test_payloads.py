"""Tests for structured payload shapes and the JSON artifact registry."""

from __future__ import annotations

import pytest

from flow_pipeline.agent.payloads import (
    KB_FILENAMES,
    POSTS_PER_PLAN,
    KBFile,
    QAResult,
    QASummary,
    validate_payload,
)
from flow_pipeline.core.errors import InvalidArtifactError
from flow_pipeline.models.artifact import ArtifactType


def _posts(count: int = POSTS_PER_PLAN) -> list[dict]:
    return [
        {"day": day, "channel": "instagram", "format": "reel", "hook": "h", "caption": "c"}
        for day in range(1, count + 1)
    ]


class TestValidatePayload:
    def test_content_plan_normalised(self):
        data = validate_payload(
            ArtifactType.CONTENT_PLAN_JSON,
            {"strategy_overview": "Grow", "posts": _posts()},
        )
        assert len(data["posts"]) == POSTS_PER_PLAN
        # Defaults are filled in
        assert data["posts"][0]["hashtags"] == []
        assert data["posts"][0]["cta"] == ""

    @pytest.mark.parametrize("count", [29, 31])
    def test_content_plan_needs_exactly_thirty_posts(self, count):
        with pytest.raises(InvalidArtifactError):
            validate_payload(
                ArtifactType.CONTENT_PLAN_JSON,
                {"strategy_overview": "Grow", "posts": _posts(count)},
            )

    def test_research_pack_requires_overview(self):
        with pytest.raises(InvalidArtifactError, match="company_overview"):
            validate_payload(ArtifactType.RESEARCH_FOUNDATION_PACK_JSON, {"competitors": []})

    def test_research_pack_keeps_extra_sections(self):
        data = validate_payload(
            ArtifactType.RESEARCH_FOUNDATION_PACK_JSON,
            {"company_overview": "Bakery", "swot": {"strengths": ["bread"]}},
        )
        assert data["swot"] == {"strengths": ["bread"]}
        assert data["campaign_foundations"]["claims_rules"]["allowed"] == []

    def test_onboarding_report_cannot_be_empty(self):
        with pytest.raises(InvalidArtifactError):
            validate_payload(ArtifactType.ONBOARDING_REPORT_JSON, {})

    def test_presentation_needs_slides(self):
        with pytest.raises(InvalidArtifactError):
            validate_payload(
                ArtifactType.PRESENTATION_CONTENT_JSON,
                {"client_name": "Acme", "deck_title": "Deck", "slides": []},
            )

    def test_unregistered_type_untouched(self):
        payload = {"anything": True}
        assert validate_payload("custom_json", payload) is payload


class TestKBFile:
    def test_standard_filenames_are_valid(self):
        for filename in KB_FILENAMES:
            KBFile(filename=filename, title="t", format="md", content="c")

    @pytest.mark.parametrize("filename", ["../etc/passwd.md", "notes.pdf", "a b.md"])
    def test_unsafe_filenames_rejected(self, filename):
        with pytest.raises(ValueError):
            KBFile(filename=filename, title="t", format="md", content="c")


def test_qa_summary_counts_statuses():
    results = [
        QAResult(post_day=1, overall_status="approved"),
        QAResult(post_day=2, overall_status="approved"),
        QAResult(post_day=3, overall_status="minor_edits"),
        QAResult(post_day=4, overall_status="needs_revision"),
    ]

    summary = QASummary.from_results(results)

    assert summary.total == 4
    assert summary.approved == 2
    assert summary.minor_edits == 1
    assert summary.needs_revision == 1
