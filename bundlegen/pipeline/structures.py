"""Data contracts for pipeline execution."""
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from bundlegen.errors import GenerateError, PlanningError


class PipelineShape(Enum):
    """Which stages a generate run needs, decided from the project layout."""
    CONFIG_ONLY = "config_only"
    CONFIG_AND_HOOKS = "config_and_hooks"
    CONFIG_AND_HOOKS_WITH_WEBHOOKS = "config_and_hooks_with_webhooks"
    CONFIG_AND_HOOKS_WITH_WEBHOOKS_AND_OPERATIONS = "config_and_hooks_with_webhooks_and_operations"

    @property
    def has_dependents(self) -> bool:
        return self is not PipelineShape.CONFIG_ONLY


class ExecutorState(Enum):
    """Progress of one pipeline invocation."""
    PLANNED = "planned"
    BUNDLING_PRIMARY = "bundling_primary"
    RUNNING_PROCESS = "running_process"
    BUNDLING_DEPENDENTS = "bundling_dependents"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class StageStatus(Enum):
    """Status of a single stage."""
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class StageSpec:
    """One bundling unit: entry points in, one file or directory out."""
    name: str
    entry_points: tuple[str, ...]
    out_file: str | None = None
    out_dir: str | None = None
    ignore_paths: tuple[str, ...] = ()

    def __post_init__(self):
        if (self.out_file is None) == (self.out_dir is None):
            raise ValueError(f"{self.name}: exactly one of out_file or out_dir is required")

    @property
    def output(self) -> str:
        return self.out_file if self.out_file is not None else self.out_dir


@dataclass(frozen=True)
class StageSpecs:
    """All stages of a run. Optional stages are ``None`` when their sources are absent."""
    config: StageSpec
    hooks: StageSpec | None = None
    webhooks: StageSpec | None = None
    operations: StageSpec | None = None

    def dependents_for(self, shape: PipelineShape) -> list[StageSpec]:
        """Stages to run after the config runner, in fixed report order.

        Raises:
            PlanningError: the shape needs a stage that was not planned
        """
        if shape is PipelineShape.CONFIG_ONLY:
            return []

        if self.hooks is None:
            raise PlanningError(f"{shape.value} requires a hooks stage")
        stages = [self.hooks]

        if shape is PipelineShape.CONFIG_AND_HOOKS_WITH_WEBHOOKS:
            if self.webhooks is None:
                raise PlanningError(f"{shape.value} requires a webhooks stage")
            stages.append(self.webhooks)
        elif shape is PipelineShape.CONFIG_AND_HOOKS_WITH_WEBHOOKS_AND_OPERATIONS:
            # webhooks are optional here: the operations directory alone selects this shape
            if self.webhooks is not None:
                stages.append(self.webhooks)
            if self.operations is None:
                raise PlanningError(f"{shape.value} requires an operations stage")
            stages.append(self.operations)
        return stages


@dataclass
class StageResult:
    """Outcome of one stage in a run."""
    name: str
    status: StageStatus = StageStatus.PENDING
    elapsed: float = 0.0
    error: str = ""

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d['status'] = self.status.value
        return d


@dataclass
class PipelineResult:
    """The single result of a pipeline invocation.

    ``error`` is the reported failure; ``errors`` keeps every failure in fixed
    stage order when several dependent stages failed together.
    """
    shape: PipelineShape | None = None
    error: GenerateError | None = None
    errors: tuple[GenerateError, ...] = ()
    stages: list[StageResult] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def stage(self) -> str | None:
        """Name of the stage that caused the failure, if any."""
        return getattr(self.error, "stage", None)

    @property
    def exit_code(self) -> int | None:
        """Exit code of the config runner when it caused the failure."""
        return getattr(self.error, "exit_code", None)

    def raise_for_status(self) -> None:
        if self.error is not None:
            raise self.error

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "success": self.success,
            "shape": self.shape.value if self.shape is not None else None,
            "stage": self.stage,
            "exit_code": self.exit_code,
            "error": str(self.error) if self.error is not None else None,
            "error_code": self.error.error_code if self.error is not None else None,
            "errors": [str(e) for e in self.errors],
            "stages": [s.to_dict() for s in self.stages],
            "elapsed": self.elapsed,
        }


@dataclass
class PipelineContext:
    """Per-run settings that flow through the pipeline."""
    project_dir: Path
    config: dict[str, Any]
    offline: bool = False
    disable_cache: bool = False
    quiet: bool = False
    binary_path: str = ""
