"""Content planner: research pack (+ KB files) -> 30-day content calendar."""

from __future__ import annotations

from typing import Any

from flow_pipeline.agent.invokers.base import AgentContext, BaseAgentInvoker
from flow_pipeline.agent.llm import MalformedOutputError
from flow_pipeline.agent.payloads import POSTS_PER_PLAN, ContentPlannerOutput
from flow_pipeline.agent.prompts import CONTENT_PLANNER_INSTRUCTION
from flow_pipeline.core.errors import InvalidArtifactError
from flow_pipeline.models.job import AgentType


class ContentPlannerInvoker(BaseAgentInvoker):
    agent_type = AgentType.CONTENT_PLANNER
    schema_name = "content_plan"
    output_model = ContentPlannerOutput
    instruction = CONTENT_PLANNER_INSTRUCTION
    temperature = 0.7
    grounded = True

    def build_prompt(self, input_payload: Any, context: AgentContext) -> dict[str, Any]:
        if not isinstance(input_payload, dict) or not input_payload:
            raise InvalidArtifactError("Research foundation pack is empty")
        prompt: dict[str, Any] = {
            "client_name": context.client_name,
            "active_channels": context.channels,
            "days": POSTS_PER_PLAN,
            "research_foundation_pack": input_payload,
        }
        if context.kb_files:
            prompt["knowledge_base"] = context.kb_files
        return prompt

    def check_output(
        self, output: ContentPlannerOutput, input_payload: Any, context: AgentContext
    ) -> None:
        days = sorted(post.day for post in output.posts)
        if days != list(range(1, POSTS_PER_PLAN + 1)):
            raise MalformedOutputError("Content plan must have exactly one post per day 1-30")

        allowed = {channel.lower() for channel in context.channels}
        unknown = sorted({p.channel for p in output.posts if p.channel.lower() not in allowed})
        if unknown:
            raise MalformedOutputError(
                f"Content plan uses inactive channels: {', '.join(unknown)}"
            )

    def render_markdown(self, output: ContentPlannerOutput) -> str:
        return output.calendar_markdown
