"""Stage registry: what each pipeline stage consumes and produces.

| Stage           | Input                          | Auxiliary                      | Success        |
|-----------------|--------------------------------|--------------------------------|----------------|
| research        | onboarding report (json or md) | -                              | done           |
| kb_packager     | research pack json             | -                              | needs_approval |
| presentation    | research pack json             | kb files (optional)            | done           |
| content_planner | research pack json             | kb files (optional)            | done           |
| qa              | content plan json              | research pack json (required)  | done           |
"""

from __future__ import annotations

from dataclasses import dataclass

from flow_pipeline.agent.invokers import (
    BaseAgentInvoker,
    ContentPlannerInvoker,
    KBBuilderInvoker,
    PresentationInvoker,
    QAInvoker,
    ResearchInvoker,
)
from flow_pipeline.models.artifact import ArtifactType
from flow_pipeline.models.job import AgentType, JobStatus


@dataclass(frozen=True)
class StageSpec:
    agent_type: AgentType
    label: str
    invoker_cls: type[BaseAgentInvoker]
    input_types: tuple[ArtifactType, ...]
    output_types: tuple[ArtifactType, ...]
    required_aux: tuple[ArtifactType, ...] = ()
    optional_aux: tuple[ArtifactType, ...] = ()
    success_status: JobStatus = JobStatus.DONE


# Message shown when no artifact of the type exists yet
MISSING_ARTIFACT_HINTS: dict[ArtifactType, str] = {
    ArtifactType.ONBOARDING_REPORT_JSON: "Upload an onboarding report first.",
    ArtifactType.ONBOARDING_REPORT: "Upload an onboarding report first.",
    ArtifactType.RESEARCH_FOUNDATION_PACK_JSON: "Run the Research agent first.",
    ArtifactType.CONTENT_PLAN_JSON: "Run the Content Planner first.",
    ArtifactType.KB_FILE: "Run the KB Builder first.",
}


STAGES: dict[AgentType, StageSpec] = {
    AgentType.RESEARCH: StageSpec(
        agent_type=AgentType.RESEARCH,
        label="Research",
        invoker_cls=ResearchInvoker,
        input_types=(ArtifactType.ONBOARDING_REPORT_JSON, ArtifactType.ONBOARDING_REPORT),
        output_types=(
            ArtifactType.RESEARCH_FOUNDATION_PACK_JSON,
            ArtifactType.RESEARCH_FOUNDATION_PACK_MD,
        ),
    ),
    AgentType.KB_PACKAGER: StageSpec(
        agent_type=AgentType.KB_PACKAGER,
        label="KB Builder",
        invoker_cls=KBBuilderInvoker,
        input_types=(ArtifactType.RESEARCH_FOUNDATION_PACK_JSON,),
        output_types=(ArtifactType.KB_FILE,),
        success_status=JobStatus.NEEDS_APPROVAL,
    ),
    AgentType.PRESENTATION: StageSpec(
        agent_type=AgentType.PRESENTATION,
        label="Presentation",
        invoker_cls=PresentationInvoker,
        input_types=(ArtifactType.RESEARCH_FOUNDATION_PACK_JSON,),
        output_types=(ArtifactType.PRESENTATION_CONTENT_JSON, ArtifactType.PRESENTATION),
        optional_aux=(ArtifactType.KB_FILE,),
    ),
    AgentType.CONTENT_PLANNER: StageSpec(
        agent_type=AgentType.CONTENT_PLANNER,
        label="Content Planner",
        invoker_cls=ContentPlannerInvoker,
        input_types=(ArtifactType.RESEARCH_FOUNDATION_PACK_JSON,),
        output_types=(ArtifactType.CONTENT_PLAN_JSON, ArtifactType.CONTENT_PLAN_MD),
        optional_aux=(ArtifactType.KB_FILE,),
    ),
    AgentType.QA: StageSpec(
        agent_type=AgentType.QA,
        label="QA",
        invoker_cls=QAInvoker,
        input_types=(ArtifactType.CONTENT_PLAN_JSON,),
        output_types=(ArtifactType.QA_RESULTS_JSON,),
        required_aux=(ArtifactType.RESEARCH_FOUNDATION_PACK_JSON,),
    ),
}


def get_stage(agent_type: AgentType | str) -> StageSpec:
    """Look up a stage; raises ValueError for an unknown agent type."""
    return STAGES[AgentType(agent_type)]
