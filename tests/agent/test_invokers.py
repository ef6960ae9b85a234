"""Tests for the agent invokers, run against FakeLLMClient."""

from __future__ import annotations

import json

import pytest

from flow_pipeline.agent.invokers import (
    AgentContext,
    ContentPlannerInvoker,
    KBBuilderInvoker,
    PresentationInvoker,
    QAInvoker,
    ResearchInvoker,
)
from flow_pipeline.agent.llm import GenerationTimeoutError, LLMUnavailableError, MalformedOutputError
from flow_pipeline.agent.payloads import KB_FILENAMES, POSTS_PER_PLAN
from flow_pipeline.core.errors import InvalidArtifactError
from flow_pipeline.testing.fake_llm import FakeLLMClient

ONBOARDING = {"company_name": "Acme Bakery", "goals": ["footfall"]}


@pytest.fixture
def context() -> AgentContext:
    return AgentContext(client_name="Acme Bakery", language="en")


async def _research_pack(context: AgentContext) -> dict:
    result = await ResearchInvoker(FakeLLMClient(), timeout=1.0).invoke(ONBOARDING, context)
    return result.output.research_foundation_pack_json.model_dump(mode="json")


async def _content_plan(context: AgentContext) -> dict:
    pack = await _research_pack(context)
    result = await ContentPlannerInvoker(FakeLLMClient(), timeout=1.0).invoke(pack, context)
    return result.output.model_dump(mode="json")


class TestResearchInvoker:
    async def test_returns_pack_and_markdown(self, context):
        llm = FakeLLMClient()
        result = await ResearchInvoker(llm, timeout=1.0).invoke(ONBOARDING, context)

        pack = result.output.research_foundation_pack_json
        assert "Acme Bakery" in pack.company_overview
        assert result.markdown.startswith("# Research foundation pack")
        assert result.tokens_in > 0
        assert result.tokens_out > 0
        assert result.model == llm.default_model

        call = llm.calls[0]
        assert call["schema_name"] == "research_foundation_pack"
        assert json.loads(call["prompt"])["onboarding_report"] == ONBOARDING
        assert call["timeout"] == 1.0

    async def test_free_text_report_accepted(self, context):
        llm = FakeLLMClient()
        await ResearchInvoker(llm, timeout=1.0).invoke("We bake bread in Porto.", context)
        assert json.loads(llm.calls[0]["prompt"])["onboarding_report"] == "We bake bread in Porto."

    async def test_empty_report_rejected_before_generation(self, context):
        llm = FakeLLMClient()
        with pytest.raises(InvalidArtifactError):
            await ResearchInvoker(llm, timeout=1.0).invoke({}, context)
        assert llm.calls == []

    async def test_search_grounding_only_on_grounded_agents(self, context):
        llm = FakeLLMClient()
        await ResearchInvoker(llm, timeout=1.0, enable_search=True).invoke(ONBOARDING, context)
        pack = await _research_pack(context)
        await KBBuilderInvoker(llm, timeout=1.0, enable_search=True).invoke(pack, context)

        assert llm.calls[0]["enable_search"] is True
        assert llm.calls[1]["enable_search"] is False


class TestLanguageDirective:
    @pytest.mark.parametrize(
        "language, expected",
        [("en", "UK English"), ("pt", "pt-PT"), ("fr", "pt-PT")],
    )
    async def test_directive_follows_project_language(self, language, expected):
        llm = FakeLLMClient()
        context = AgentContext(client_name="Acme", language=language)

        await ResearchInvoker(llm, timeout=1.0).invoke(ONBOARDING, context)

        assert expected in llm.calls[0]["system_instruction"]


class TestFailures:
    async def test_timeout(self, context):
        llm = FakeLLMClient(delay=1.0)
        with pytest.raises(GenerationTimeoutError):
            await ResearchInvoker(llm, timeout=0.01).invoke(ONBOARDING, context)

    async def test_backend_error_propagates(self, context):
        llm = FakeLLMClient(fail_with=LLMUnavailableError("backend down"))
        with pytest.raises(LLMUnavailableError, match="backend down"):
            await ResearchInvoker(llm, timeout=1.0).invoke(ONBOARDING, context)

    async def test_output_not_matching_schema(self, context):
        llm = FakeLLMClient(overrides={"research_foundation_pack": {"unexpected": True}})
        with pytest.raises(MalformedOutputError, match="research_foundation_pack"):
            await ResearchInvoker(llm, timeout=1.0).invoke(ONBOARDING, context)


class TestKBBuilderInvoker:
    async def test_one_file_per_kb_section(self, context):
        pack = await _research_pack(context)
        llm = FakeLLMClient()

        result = await KBBuilderInvoker(llm, timeout=1.0).invoke(pack, context)

        assert [f.filename for f in result.output.files] == list(KB_FILENAMES)
        assert json.loads(llm.calls[0]["prompt"])["files_to_generate"] == list(KB_FILENAMES)

    async def test_empty_pack_rejected(self, context):
        with pytest.raises(InvalidArtifactError):
            await KBBuilderInvoker(FakeLLMClient(), timeout=1.0).invoke({}, context)


class TestPresentationInvoker:
    async def test_kb_files_are_passed_as_context(self, context):
        pack = await _research_pack(context)
        context.kb_files = [{"title": "01-company-overview.md", "content": "# Overview"}]
        llm = FakeLLMClient()

        result = await PresentationInvoker(llm, timeout=1.0).invoke(pack, context)

        assert result.output.slides[0].layout == "cover"
        assert json.loads(llm.calls[0]["prompt"])["knowledge_base"] == context.kb_files

    async def test_no_kb_section_without_kb_files(self, context):
        pack = await _research_pack(context)
        llm = FakeLLMClient()

        await PresentationInvoker(llm, timeout=1.0).invoke(pack, context)

        assert "knowledge_base" not in json.loads(llm.calls[0]["prompt"])


class TestContentPlannerInvoker:
    async def test_thirty_posts_on_active_channels(self):
        context = AgentContext(client_name="Acme", language="en", channels=["instagram", "tiktok"])
        pack = await _research_pack(context)
        llm = FakeLLMClient()

        result = await ContentPlannerInvoker(llm, timeout=1.0).invoke(pack, context)

        posts = result.output.posts
        assert sorted(p.day for p in posts) == list(range(1, POSTS_PER_PLAN + 1))
        assert {p.channel for p in posts} == {"instagram", "tiktok"}
        assert result.markdown == result.output.calendar_markdown
        assert json.loads(llm.calls[0]["prompt"])["active_channels"] == ["instagram", "tiktok"]

    async def test_inactive_channel_rejected(self, context):
        pack = await _research_pack(context)
        plan = await _content_plan(context)
        plan["posts"][0]["channel"] = "tiktok"
        llm = FakeLLMClient(overrides={"content_plan": plan})

        with pytest.raises(MalformedOutputError, match="tiktok"):
            await ContentPlannerInvoker(llm, timeout=1.0).invoke(pack, context)

    async def test_duplicate_day_rejected(self, context):
        pack = await _research_pack(context)
        plan = await _content_plan(context)
        plan["posts"][1]["day"] = 1
        llm = FakeLLMClient(overrides={"content_plan": plan})

        with pytest.raises(MalformedOutputError, match="one post per day"):
            await ContentPlannerInvoker(llm, timeout=1.0).invoke(pack, context)


class TestQAInvoker:
    async def test_one_result_per_post(self, context):
        plan = await _content_plan(context)
        context.strategy_context = {"brand_voice": "Warm"}
        llm = FakeLLMClient()

        result = await QAInvoker(llm, timeout=1.0).invoke(plan, context)

        assert len(result.output.results) == POSTS_PER_PLAN
        prompt = json.loads(llm.calls[0]["prompt"])
        assert prompt["strategy_context"] == {"brand_voice": "Warm"}
        assert len(prompt["posts"]) == POSTS_PER_PLAN

    async def test_result_count_must_match_posts(self, context):
        plan = await _content_plan(context)
        llm = FakeLLMClient(
            overrides={"qa_results": {"results": [{"post_day": 1, "overall_status": "approved"}]}}
        )

        with pytest.raises(MalformedOutputError, match="1 results for 30 posts"):
            await QAInvoker(llm, timeout=1.0).invoke(plan, context)

    async def test_every_post_reviewed_once(self, context):
        plan = await _content_plan(context)
        results = [
            {"post_day": 1, "overall_status": "approved"} for _ in range(POSTS_PER_PLAN)
        ]
        llm = FakeLLMClient(overrides={"qa_results": {"results": results}})

        with pytest.raises(MalformedOutputError):
            await QAInvoker(llm, timeout=1.0).invoke(plan, context)

    async def test_plan_without_posts_rejected(self, context):
        with pytest.raises(InvalidArtifactError):
            await QAInvoker(FakeLLMClient(), timeout=1.0).invoke({"posts": []}, context)
