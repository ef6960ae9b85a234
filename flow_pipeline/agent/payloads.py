"""Structured payload shapes, one per JSON artifact type and agent output.

The ``content_json`` column is a tagged union keyed by ``Artifact.type``:
PAYLOAD_MODELS registers the shape for every JSON artifact type the stages
produce. Agent outputs are validated against their model as soon as the
generation backend returns, before anything is persisted.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, RootModel, ValidationError, field_validator

from flow_pipeline.core.errors import InvalidArtifactError
from flow_pipeline.models.artifact import ArtifactType

POSTS_PER_PLAN = 30

DEFAULT_CHANNELS: tuple[str, ...] = ("instagram", "linkedin")

KB_FILENAMES: tuple[str, ...] = (
    "01-company-overview.md",
    "02-icp-and-segments.md",
    "03-offer-and-positioning.md",
    "04-messaging-and-voice.md",
    "05-content-pillars.md",
    "06-competitors.md",
    "07-faq-and-objections.md",
    "08-visual-brand-guidelines.md",
)


# ------------------------------------------------------------------ #
# Onboarding
# ------------------------------------------------------------------ #


class OnboardingReport(RootModel[dict[str, Any]]):
    """Free-form onboarding questionnaire answers; must not be empty."""

    @field_validator("root")
    @classmethod
    def _not_empty(cls, value: dict[str, Any]) -> dict[str, Any]:
        if not value:
            raise ValueError("onboarding report is empty")
        return value


# ------------------------------------------------------------------ #
# Research
# ------------------------------------------------------------------ #


class ClaimsRules(BaseModel):
    allowed: list[str] = Field(default_factory=list)
    not_allowed: list[str] = Field(default_factory=list)
    needs_proof: list[str] = Field(default_factory=list)


class CampaignFoundations(BaseModel):
    model_config = ConfigDict(extra="allow")

    positioning_statement: str = ""
    brand_voice: str = ""
    messaging_pillars: list[Any] = Field(default_factory=list)
    claims_rules: ClaimsRules = Field(default_factory=ClaimsRules)
    content_themes: list[Any] = Field(default_factory=list)


class ResearchFoundationPack(BaseModel):
    model_config = ConfigDict(extra="allow")

    company_overview: str = Field(min_length=1)
    target_audience: list[Any] = Field(default_factory=list)
    market_insights: list[Any] = Field(default_factory=list)
    competitors: list[Any] = Field(default_factory=list)
    campaign_foundations: CampaignFoundations = Field(default_factory=CampaignFoundations)


class ResearchAgentOutput(BaseModel):
    research_foundation_pack_json: ResearchFoundationPack
    research_foundation_pack_markdown: str = Field(min_length=1)


# ------------------------------------------------------------------ #
# Knowledge base
# ------------------------------------------------------------------ #


class KBFile(BaseModel):
    filename: str = Field(pattern=r"^[\w.\-]+\.(md|txt)$")
    title: str = Field(min_length=1)
    format: Literal["md", "txt"]
    content: str = Field(min_length=1)


class KBFileBundle(BaseModel):
    files: list[KBFile] = Field(min_length=1)


# ------------------------------------------------------------------ #
# Content plan
# ------------------------------------------------------------------ #


class ContentPost(BaseModel):
    model_config = ConfigDict(extra="allow")

    day: int = Field(ge=1, le=POSTS_PER_PLAN)
    channel: str
    format: str
    pillar: str = ""
    hook: str
    caption: str
    visual_brief: str = ""
    cta: str = ""
    hashtags: list[str] = Field(default_factory=list)
    growth_tactic: str = ""


class ContentPlan(BaseModel):
    strategy_overview: str | dict[str, Any]
    posts: list[ContentPost] = Field(min_length=POSTS_PER_PLAN, max_length=POSTS_PER_PLAN)


class ContentPlannerOutput(ContentPlan):
    calendar_markdown: str = Field(min_length=1)


# ------------------------------------------------------------------ #
# Presentation
# ------------------------------------------------------------------ #


class Slide(BaseModel):
    layout: Literal["cover", "content", "closing"] = "content"
    title: str = Field(min_length=1)
    subtitle: str = ""
    bullets: list[str] = Field(default_factory=list)
    speaker_notes: str = ""


class PresentationContent(BaseModel):
    client_name: str
    deck_title: str = Field(min_length=1)
    slides: list[Slide] = Field(min_length=1)


# ------------------------------------------------------------------ #
# QA
# ------------------------------------------------------------------ #

QAStatus = Literal["approved", "minor_edits", "needs_revision"]


class QAResult(BaseModel):
    post_day: int = Field(ge=1)
    overall_status: QAStatus
    brand_voice_score: int | None = Field(default=None, ge=0, le=10)
    issues: list[str] = Field(default_factory=list)
    suggested_caption: str | None = None


class QAAgentOutput(BaseModel):
    results: list[QAResult] = Field(min_length=1)


class QASummary(BaseModel):
    total: int
    approved: int
    minor_edits: int
    needs_revision: int

    @classmethod
    def from_results(cls, results: list[QAResult]) -> QASummary:
        return cls(
            total=len(results),
            approved=sum(1 for r in results if r.overall_status == "approved"),
            minor_edits=sum(1 for r in results if r.overall_status == "minor_edits"),
            needs_revision=sum(1 for r in results if r.overall_status == "needs_revision"),
        )


class QAReport(BaseModel):
    results: list[QAResult]
    summary: QASummary


# ------------------------------------------------------------------ #
# Registry
# ------------------------------------------------------------------ #

PAYLOAD_MODELS: dict[str, type[BaseModel]] = {
    ArtifactType.ONBOARDING_REPORT_JSON: OnboardingReport,
    ArtifactType.RESEARCH_FOUNDATION_PACK_JSON: ResearchFoundationPack,
    ArtifactType.CONTENT_PLAN_JSON: ContentPlan,
    ArtifactType.PRESENTATION_CONTENT_JSON: PresentationContent,
    ArtifactType.QA_RESULTS_JSON: QAReport,
}


def validate_payload(artifact_type: str, data: Any) -> Any:
    """Validate ``content_json`` for a registered type and return it normalised.

    Unregistered types pass through untouched.

    Raises:
        InvalidArtifactError: if the payload does not match the registered shape
    """
    model = PAYLOAD_MODELS.get(artifact_type)
    if model is None:
        return data
    try:
        return model.model_validate(data).model_dump(mode="json")
    except ValidationError as exc:
        raise InvalidArtifactError(
            f"Invalid {artifact_type} payload: {exc.error_count()} error(s): "
            + "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or '<root>'} {err['msg']}"
                for err in exc.errors()[:5]
            )
        ) from exc
