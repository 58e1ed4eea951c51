"""Decide which stages a generate run needs.

The decision only depends on three read-only existence checks made at call
time: the server hooks entry point, the webhooks directory and the operations
directory. The config entry point must exist before anything is planned.
"""

from pathlib import Path
from typing import Any

from bundlegen import files
from bundlegen.config_runtime import DEFAULTS
from bundlegen.errors import NotFoundError
from bundlegen.utils.constants import (
    CONFIG_BUNDLER,
    OPERATIONS_BUNDLER,
    SERVER_BUNDLER,
    WEBHOOKS_BUNDLER,
)
from bundlegen.utils.logging import logger

from .structures import PipelineShape, StageSpec, StageSpecs


def shape_for(hooks_present: bool, webhooks_present: bool, operations_present: bool) -> PipelineShape:
    """Map the three presence flags to a pipeline shape.

    Webhooks and operations only count when the hooks entry point exists.
    Operations select the widest shape on their own, with or without webhooks.
    """
    if not hooks_present:
        return PipelineShape.CONFIG_ONLY
    if operations_present:
        return PipelineShape.CONFIG_AND_HOOKS_WITH_WEBHOOKS_AND_OPERATIONS
    if webhooks_present:
        return PipelineShape.CONFIG_AND_HOOKS_WITH_WEBHOOKS
    return PipelineShape.CONFIG_AND_HOOKS


class PipelinePlanner:
    """Inspect a project directory and describe the stages to run."""

    def __init__(self, config: dict[str, Any] | None = None):
        self.config = config if config is not None else DEFAULTS
        self.entrypoints = self.config["entrypoints"]
        self.paths = self.config["paths"]

    def _presence(self, work_dir: Path) -> tuple[Path | None, bool, bool]:
        try:
            hooks_path = files.code_file_path(work_dir, self.entrypoints["server"])
        except NotFoundError:
            hooks_path = None
        webhooks_present = files.directory_exists(work_dir / self.entrypoints["webhooks_dir"])
        operations_present = files.directory_exists(work_dir / self.entrypoints["operations_dir"])
        return hooks_path, webhooks_present, operations_present

    def validate(self, work_dir: str | Path) -> Path:
        """Return the config entry point path.

        Raises:
            NotFoundError: the config entry point does not exist
        """
        return files.code_file_path(Path(work_dir), self.entrypoints["config"])

    def plan(self, work_dir: str | Path) -> PipelineShape:
        """Compute the pipeline shape for ``work_dir``.

        Raises:
            NotFoundError: the config entry point does not exist
        """
        work_dir = Path(work_dir)
        self.validate(work_dir)
        hooks_path, webhooks_present, operations_present = self._presence(work_dir)
        shape = shape_for(hooks_path is not None, webhooks_present, operations_present)
        if hooks_path is None:
            logger.info(
                f"hooks entry point not found, skipping: {self.entrypoints['server']}"
            )
        logger.debug(f"Planned pipeline shape {shape.value} for {work_dir}")
        return shape

    def build_stages(self, work_dir: str | Path, shape: PipelineShape) -> StageSpecs:
        """Describe every stage ``shape`` needs.

        Raises:
            NotFoundError: an entry point vanished since planning
            PlanningError: webhook or operation entry points could not be listed
        """
        work_dir = Path(work_dir)
        config_entry = self.validate(work_dir)
        config_stage = StageSpec(
            name=CONFIG_BUNDLER,
            entry_points=(config_entry.name,),
            out_file=self.paths["config_out_file"],
            ignore_paths=tuple(self.config["bundle"]["ignore_paths"]),
        )
        if not shape.has_dependents:
            return StageSpecs(config=config_stage)

        hooks_entry = files.code_file_path(work_dir, self.entrypoints["server"])
        hooks_stage = StageSpec(
            name=SERVER_BUNDLER,
            entry_points=(hooks_entry.name,),
            out_file=str(work_dir / self.paths["server_out_file"]),
        )

        webhooks_stage = None
        webhooks_dir = work_dir / self.entrypoints["webhooks_dir"]
        if shape is not PipelineShape.CONFIG_AND_HOOKS and files.directory_exists(webhooks_dir):
            webhooks_stage = StageSpec(
                name=WEBHOOKS_BUNDLER,
                entry_points=tuple(files.get_webhooks(work_dir, self.entrypoints["webhooks_dir"])),
                out_dir=self.paths["webhooks_out_dir"],
            )

        operations_stage = None
        if shape is PipelineShape.CONFIG_AND_HOOKS_WITH_WEBHOOKS_AND_OPERATIONS:
            operations_stage = StageSpec(
                name=OPERATIONS_BUNDLER,
                entry_points=tuple(
                    files.get_operation_paths(work_dir, self.entrypoints["operations_dir"])
                ),
                out_dir=self.paths["operations_out_dir"],
            )

        return StageSpecs(
            config=config_stage,
            hooks=hooks_stage,
            webhooks=webhooks_stage,
            operations=operations_stage,
        )
