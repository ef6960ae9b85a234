"""Knowledge base packager: research pack -> one markdown file per KB section."""

from __future__ import annotations

from typing import Any

from flow_pipeline.agent.invokers.base import AgentContext, BaseAgentInvoker
from flow_pipeline.agent.payloads import KB_FILENAMES, KBFileBundle
from flow_pipeline.agent.prompts import KB_BUILDER_INSTRUCTION
from flow_pipeline.core.errors import InvalidArtifactError
from flow_pipeline.models.job import AgentType


class KBBuilderInvoker(BaseAgentInvoker):
    agent_type = AgentType.KB_PACKAGER
    schema_name = "kb_file_bundle"
    output_model = KBFileBundle
    instruction = KB_BUILDER_INSTRUCTION

    def build_prompt(self, input_payload: Any, context: AgentContext) -> dict[str, Any]:
        if not isinstance(input_payload, dict) or not input_payload:
            raise InvalidArtifactError("Research foundation pack is empty")
        return {
            "client_name": context.client_name,
            "research_foundation_pack": input_payload,
            "files_to_generate": list(KB_FILENAMES),
        }
