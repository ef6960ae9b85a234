"""Research agent: onboarding report -> research foundation pack."""

from __future__ import annotations

from typing import Any

from flow_pipeline.agent.invokers.base import AgentContext, BaseAgentInvoker
from flow_pipeline.agent.payloads import ResearchAgentOutput
from flow_pipeline.agent.prompts import RESEARCH_INSTRUCTION
from flow_pipeline.core.errors import InvalidArtifactError
from flow_pipeline.models.job import AgentType


class ResearchInvoker(BaseAgentInvoker):
    agent_type = AgentType.RESEARCH
    schema_name = "research_foundation_pack"
    output_model = ResearchAgentOutput
    instruction = RESEARCH_INSTRUCTION
    grounded = True

    def build_prompt(self, input_payload: Any, context: AgentContext) -> dict[str, Any]:
        # Structured answers (json) or the free-text report (markdown)
        if not input_payload:
            raise InvalidArtifactError("Onboarding report is empty")
        return {
            "client_name": context.client_name,
            "onboarding_report": input_payload,
        }

    def render_markdown(self, output: ResearchAgentOutput) -> str:
        return output.research_foundation_pack_markdown
