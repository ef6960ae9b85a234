"""Base classes for agent invokers.

An invoker is the pure part of a pipeline stage: it turns one input payload
(plus fixed side context) into one validated output by making exactly one
call to the generation backend. It never touches the database; loading
inputs and persisting outputs is the orchestrator's job.
"""

from __future__ import annotations

import json
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar

import structlog
from pydantic import BaseModel, ValidationError

from flow_pipeline.agent.llm import LLMClient, MalformedOutputError
from flow_pipeline.agent.payloads import DEFAULT_CHANNELS
from flow_pipeline.agent.prompts import language_directive
from flow_pipeline.models.job import AgentType

log = structlog.get_logger(__name__)


@dataclass
class AgentContext:
    """Side context an agent needs beyond its input artifact."""

    client_name: str
    language: str = "pt"
    channels: list[str] = field(default_factory=lambda: list(DEFAULT_CHANNELS))
    kb_files: list[dict[str, str]] = field(default_factory=list)
    strategy_context: dict[str, Any] = field(default_factory=dict)


@dataclass
class AgentResult:
    """Validated agent output plus usage accounting."""

    output: BaseModel
    tokens_in: int
    tokens_out: int
    model: str
    duration_ms: int
    markdown: str | None = None


class BaseAgentInvoker(ABC):
    """Abstract base class for all agent invokers.

    Subclasses declare their output model and schema name, build the prompt,
    and optionally add cross-field checks (check_output) or a markdown
    rendering (render_markdown).
    """

    agent_type: ClassVar[AgentType]
    schema_name: ClassVar[str]
    output_model: ClassVar[type[BaseModel]]
    instruction: ClassVar[str]
    temperature: ClassVar[float] = 0.2
    grounded: ClassVar[bool] = False

    def __init__(
        self,
        llm_client: LLMClient,
        *,
        timeout: float,
        enable_search: bool = False,
    ) -> None:
        self._llm = llm_client
        self._timeout = timeout
        self._enable_search = enable_search and self.grounded

    @abstractmethod
    def build_prompt(self, input_payload: Any, context: AgentContext) -> dict[str, Any]:
        """Return the JSON document sent as the user prompt."""

    def system_instruction(self, context: AgentContext) -> str:
        return f"{language_directive(context.language)}\n\n{self.instruction}"

    def check_output(self, output: Any, input_payload: Any, context: AgentContext) -> None:
        """Cross-field rules the schema alone cannot express."""

    def render_markdown(self, output: Any) -> str | None:
        return None

    async def invoke(self, input_payload: Any, context: AgentContext) -> AgentResult:
        """Run the agent once.

        Raises:
            GenerationTimeoutError: The backend exceeded the agent timeout
            MalformedOutputError: The answer did not match the output model
            LLMError: Any other backend failure
        """
        started = time.monotonic()
        prompt = json.dumps(
            self.build_prompt(input_payload, context), ensure_ascii=False, indent=2
        )
        generation = await self._llm.generate_json(
            system_instruction=self.system_instruction(context),
            prompt=prompt,
            schema_name=self.schema_name,
            json_schema=self.output_model.model_json_schema(),
            timeout=self._timeout,
            temperature=self.temperature,
            enable_search=self._enable_search,
        )

        try:
            output = self.output_model.model_validate(generation.data)
        except ValidationError as exc:
            raise MalformedOutputError(
                f"{self.schema_name} output failed validation: "
                + "; ".join(
                    f"{'.'.join(str(p) for p in err['loc']) or '<root>'} {err['msg']}"
                    for err in exc.errors()[:5]
                )
            ) from exc

        self.check_output(output, input_payload, context)

        duration_ms = int((time.monotonic() - started) * 1000)
        log.info(
            "agent.invoked",
            agent_type=self.agent_type.value,
            tokens_in=generation.tokens_in,
            tokens_out=generation.tokens_out,
            duration_ms=duration_ms,
        )
        return AgentResult(
            output=output,
            markdown=self.render_markdown(output),
            tokens_in=generation.tokens_in,
            tokens_out=generation.tokens_out,
            model=generation.model,
            duration_ms=duration_ms,
        )
