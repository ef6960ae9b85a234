"""QA agent: content plan + strategy context -> one review per post."""

from __future__ import annotations

from typing import Any

from flow_pipeline.agent.invokers.base import AgentContext, BaseAgentInvoker
from flow_pipeline.agent.llm import MalformedOutputError
from flow_pipeline.agent.payloads import QAAgentOutput
from flow_pipeline.agent.prompts import QA_INSTRUCTION
from flow_pipeline.core.errors import InvalidArtifactError
from flow_pipeline.models.job import AgentType


def _posts_of(input_payload: Any) -> list[Any]:
    if isinstance(input_payload, dict):
        posts = input_payload.get("posts")
        if isinstance(posts, list) and posts:
            return posts
    raise InvalidArtifactError("Content plan has no posts to review")


class QAInvoker(BaseAgentInvoker):
    agent_type = AgentType.QA
    schema_name = "qa_results"
    output_model = QAAgentOutput
    instruction = QA_INSTRUCTION
    temperature = 0.1

    def build_prompt(self, input_payload: Any, context: AgentContext) -> dict[str, Any]:
        return {
            "strategy_context": context.strategy_context,
            "posts": _posts_of(input_payload),
        }

    def check_output(
        self, output: QAAgentOutput, input_payload: Any, context: AgentContext
    ) -> None:
        posts = _posts_of(input_payload)
        if len(output.results) != len(posts):
            raise MalformedOutputError(
                f"QA returned {len(output.results)} results for {len(posts)} posts"
            )
        expected_days = sorted(p.get("day") for p in posts if isinstance(p, dict))
        reviewed_days = sorted(r.post_day for r in output.results)
        if expected_days and reviewed_days != expected_days:
            raise MalformedOutputError("QA results do not reference every post exactly once")
