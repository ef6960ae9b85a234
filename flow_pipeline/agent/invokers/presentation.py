"""Presentation agent: research pack (+ KB files) -> slide copy.

The invoker only writes the copy; turning it into a .pptx is done by
flow_pipeline.rendering.deck once the output has been validated.
"""

from __future__ import annotations

from typing import Any

from flow_pipeline.agent.invokers.base import AgentContext, BaseAgentInvoker
from flow_pipeline.agent.payloads import PresentationContent
from flow_pipeline.agent.prompts import PRESENTATION_INSTRUCTION
from flow_pipeline.core.errors import InvalidArtifactError
from flow_pipeline.models.job import AgentType


class PresentationInvoker(BaseAgentInvoker):
    agent_type = AgentType.PRESENTATION
    schema_name = "presentation_content"
    output_model = PresentationContent
    instruction = PRESENTATION_INSTRUCTION
    temperature = 0.4

    def build_prompt(self, input_payload: Any, context: AgentContext) -> dict[str, Any]:
        if not isinstance(input_payload, dict) or not input_payload:
            raise InvalidArtifactError("Research foundation pack is empty")
        prompt: dict[str, Any] = {
            "client_name": context.client_name,
            "research_foundation_pack": input_payload,
        }
        if context.kb_files:
            prompt["knowledge_base"] = context.kb_files
        return prompt
