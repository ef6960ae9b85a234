"""Client-side helpers: job poller, project cache and pipeline client."""

from flow_pipeline.client.cache import ProjectCache, ProjectSnapshot
from flow_pipeline.client.pipeline import PipelineClient
from flow_pipeline.client.poller import JobPoller, PollOutcome, PollState

__all__ = [
    "JobPoller",
    "PipelineClient",
    "PollOutcome",
    "PollState",
    "ProjectCache",
    "ProjectSnapshot",
]
