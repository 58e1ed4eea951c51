"""Pipeline planning and execution."""
from .executor import PipelineExecutor
from .planner import PipelinePlanner, shape_for
from .structures import (
    ExecutorState,
    PipelineContext,
    PipelineResult,
    PipelineShape,
    StageResult,
    StageSpec,
    StageSpecs,
    StageStatus,
)
from .ui import console, print_status_panel, truncate_lines

__all__ = [
    "PipelineExecutor", "PipelinePlanner", "shape_for",
    "ExecutorState", "PipelineContext", "PipelineResult", "PipelineShape",
    "StageResult", "StageSpec", "StageSpecs", "StageStatus",
    "console", "print_status_panel", "truncate_lines",
]
