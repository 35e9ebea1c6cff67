"""Release pipeline: run context, stages and entry points."""

from relbuild.pipeline.context import VARIANTS, PipelineContext, Tools
from relbuild.pipeline.errors import Stage, StageFailed
from relbuild.pipeline.gate import PublishDecision, decide_publish

__all__ = [
    "PipelineContext",
    "PublishDecision",
    "Stage",
    "StageFailed",
    "Tools",
    "VARIANTS",
    "decide_publish",
]
