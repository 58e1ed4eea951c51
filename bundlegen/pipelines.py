"""Generate pipeline entry point.

Resolves the project directory, loads runtime configuration, plans the stages
and hands them to the PipelineExecutor. Planning failures are returned as a
failed PipelineResult so callers always receive exactly one result.
"""

import shutil
import sys
import time
from pathlib import Path

from bundlegen.config_runtime import load_runtime_config
from bundlegen.errors import PlanningError
from bundlegen.events import ConsoleLogger, PipelineObserver
from bundlegen.files import find_project_dir
from bundlegen.pipeline import PipelineContext, PipelineExecutor, PipelinePlanner, PipelineResult
from bundlegen.utils.logging import logger


def resolve_binary_path() -> str:
    """Absolute path of the running bundlegen executable, for callbacks from the config runner."""
    argv0 = sys.argv[0] if sys.argv else ""
    found = shutil.which(argv0) if argv0 else None
    if found:
        return str(Path(found).resolve())
    if argv0 and Path(argv0).exists():
        return str(Path(argv0).resolve())
    return shutil.which("bundlegen") or ""


async def run_generate(
    directory: str | Path = ".",
    offline: bool = False,
    disable_cache: bool = False,
    quiet: bool = False,
    observer: PipelineObserver | None = None,
    executor_factory=PipelineExecutor,
) -> PipelineResult:
    """
    Run the generate pipeline for the project found at ``directory``.

    Args:
        directory: Project directory, or a directory holding a .bundlegen/ project
        offline: Tell the config runner not to load resources from the network
        disable_cache: Disable the introspection cache of the config runner
        quiet: Minimal console output
        observer: Receives stage and process events (default: ConsoleLogger)
        executor_factory: Builds the executor from the run context

    Returns:
        The PipelineResult of the run
    """
    start_time = time.time()
    if observer is None:
        observer = ConsoleLogger(quiet=quiet)

    try:
        # Config entry-point name as configured for the given directory
        config_entry = load_runtime_config(directory)["entrypoints"]["config"]
        project_dir = find_project_dir(directory, config_entry)
        config = load_runtime_config(project_dir)
        planner = PipelinePlanner(config)
        shape = planner.plan(project_dir)
        stages = planner.build_stages(project_dir, shape)
    except PlanningError as e:
        logger.error(f"Could not plan pipeline: {e}")
        observer.on_log(f"[ERROR] {e}", is_error=True)
        return PipelineResult(error=e, errors=(e,), elapsed=time.time() - start_time)

    observer.on_log(f"[INFO] Project directory: {project_dir}")
    observer.on_log(f"[INFO] Pipeline shape: {shape.value}")

    context = PipelineContext(
        project_dir=project_dir,
        config=config,
        offline=offline,
        disable_cache=disable_cache,
        quiet=quiet,
        binary_path=resolve_binary_path(),
    )
    executor = executor_factory(context, observer=observer)
    result = await executor.execute(shape, stages)
    result.elapsed = time.time() - start_time
    return result
