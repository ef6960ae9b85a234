"""Agent invokers, one per pipeline stage."""

from flow_pipeline.agent.invokers.base import AgentContext, AgentResult, BaseAgentInvoker
from flow_pipeline.agent.invokers.content_planner import ContentPlannerInvoker
from flow_pipeline.agent.invokers.kb_builder import KBBuilderInvoker
from flow_pipeline.agent.invokers.presentation import PresentationInvoker
from flow_pipeline.agent.invokers.qa import QAInvoker
from flow_pipeline.agent.invokers.research import ResearchInvoker

__all__ = [
    "AgentContext",
    "AgentResult",
    "BaseAgentInvoker",
    "ContentPlannerInvoker",
    "KBBuilderInvoker",
    "PresentationInvoker",
    "QAInvoker",
    "ResearchInvoker",
]
