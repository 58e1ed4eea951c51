"""Pipeline execution for ``bundlegen generate``.

Stage order:
  1. config-bundler bundles the config entry point (sequential)
  2. config-runner executes the bundled config with node (sequential,
     started from the config bundler's post-bundle callback)
  3. server, webhooks and operations bundlers (parallel, asyncio.gather)

The config runner is acquired as an async context manager around the whole
run, so it is stopped exactly once on every exit path. Nothing is retried.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable

from bundlegen.bundler import Bundler, BundlerConfig
from bundlegen.errors import AggregateError, BundleError, GenerateError, ProcessFailure
from bundlegen.events import NullObserver, PipelineObserver
from bundlegen.scriptrunner import ScriptRunner, ScriptRunnerConfig
from bundlegen.utils.constants import (
    CONFIG_BUNDLER,
    CONFIG_RUNNER,
    ENV_BINARY_PATH,
    ENV_DIR_ABS,
    ENV_ENABLE_INTROSPECTION_CACHE,
    ENV_ENABLE_INTROSPECTION_OFFLINE,
    ENV_THROW_ON_OPERATION_LOADING_ERROR,
)
from bundlegen.utils.logging import get_subprocess_env, logger

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

BundlerFactory = Callable[[BundlerConfig], Bundler]
RunnerFactory = Callable[[ScriptRunnerConfig], ScriptRunner]


def _env_bool(value: bool) -> str:
    return "true" if value else "false"


class PipelineExecutor:
    """Sequence the stages of one generate run and supervise the config runner."""

    def __init__(
        self,
        context: PipelineContext,
        observer: PipelineObserver | None = None,
        bundler_factory: BundlerFactory = Bundler,
        runner_factory: RunnerFactory = ScriptRunner,
    ):
        self.context = context
        self.observer = observer if observer is not None else NullObserver()
        self.bundler_factory = bundler_factory
        self.runner_factory = runner_factory
        self.state = ExecutorState.PLANNED
        self._stage_results: dict[str, StageResult] = {}

    def runner_env(self) -> dict[str, str]:
        """Environment for the config runner: production mode plus CLI propagation values."""
        ctx = self.context
        env = get_subprocess_env()
        env.update(
            {
                "NODE_ENV": "production",
                ENV_THROW_ON_OPERATION_LOADING_ERROR: "true",
                ENV_ENABLE_INTROSPECTION_CACHE: _env_bool(not ctx.disable_cache),
                ENV_ENABLE_INTROSPECTION_OFFLINE: _env_bool(ctx.offline),
                ENV_DIR_ABS: str(ctx.project_dir),
                ENV_BINARY_PATH: ctx.binary_path,
            }
        )
        return env

    def runner_config(self, config_stage: StageSpec) -> ScriptRunnerConfig:
        cfg = self.context.config
        return ScriptRunnerConfig(
            name=CONFIG_RUNNER,
            executable=cfg["runtime"]["node"],
            script_args=(config_stage.output,),
            abs_working_dir=self.context.project_dir,
            script_env=self.runner_env(),
            stop_grace=float(cfg["timeouts"]["stop_grace"]),
        )

    def bundler_config(
        self,
        spec: StageSpec,
        on_after_bundle: Callable[[], Awaitable[None]] | None = None,
    ) -> BundlerConfig:
        cfg = self.context.config
        bundle_cfg = cfg["bundle"]
        return BundlerConfig(
            name=spec.name,
            entry_points=spec.entry_points,
            abs_working_dir=self.context.project_dir,
            out_file=spec.out_file,
            out_dir=spec.out_dir,
            ignore_paths=spec.ignore_paths,
            on_after_bundle=on_after_bundle,
            executable=cfg["runtime"]["esbuild"],
            platform=bundle_cfg["platform"],
            format=bundle_cfg["format"],
            target=bundle_cfg["target"],
            sourcemap=bundle_cfg["sourcemap"],
        )

    async def execute(self, shape: PipelineShape, stages: StageSpecs) -> PipelineResult:
        """Run the pipeline once and return its single result.

        Pipeline failures are reported in the result, never raised. The config
        runner has been stopped by the time this returns or raises.
        """
        start_time = time.time()
        self.state = ExecutorState.PLANNED
        self._stage_results = {}
        result = PipelineResult(shape=shape)
        dependents: list[StageSpec] = []

        try:
            dependents = stages.dependents_for(shape)
            async with self.runner_factory(self.runner_config(stages.config)) as runner:

                async def after_config_bundle() -> None:
                    await self._run_config(runner, dependents)

                self.state = ExecutorState.BUNDLING_PRIMARY
                await self._bundle_stage(stages.config, then=after_config_bundle)
        except AggregateError as e:
            result.error = e.primary
            result.errors = e.errors
        except GenerateError as e:
            result.error = e
            result.errors = (e,)
        except BaseException:
            self.state = ExecutorState.FAILED
            raise

        for spec in dependents:
            if spec.name not in self._stage_results:
                self._stage_results[spec.name] = StageResult(name=spec.name, status=StageStatus.SKIPPED)

        self.state = ExecutorState.SUCCEEDED if result.success else ExecutorState.FAILED
        result.stages = list(self._stage_results.values())
        result.elapsed = time.time() - start_time
        if result.success:
            logger.debug(f"Pipeline {shape.value} succeeded in {result.elapsed:.1f}s")
        else:
            logger.error(f"Pipeline failed in {result.stage or 'planning'}: {result.error}")
        return result

    async def _run_config(self, runner: ScriptRunner, dependents: list[StageSpec]) -> None:
        self.state = ExecutorState.RUNNING_PROCESS
        self.observer.on_process_start(runner.name)
        started = time.time()

        # Any completion of the future means the process is gone; the cause does not matter
        await runner.run()

        exit_code = 0 if runner.successful() else runner.exit_code()
        self.observer.on_process_exit(runner.name, exit_code, time.time() - started)
        if not runner.successful():
            raise ProcessFailure(exit_code, stage=runner.name)

        if dependents:
            self.state = ExecutorState.BUNDLING_DEPENDENTS
            await self._bundle_dependents(dependents)

        logger.bind(bundlerName=CONFIG_BUNDLER).debug("Config built!")

    async def _bundle_dependents(self, dependents: list[StageSpec]) -> None:
        """Bundle independent stages concurrently and wait for all of them.

        Raises:
            AggregateError: one or more stages failed; failures are kept in the
                order of ``dependents``, not in completion order
        """
        self.observer.on_log(f"[SYNC] Bundling {len(dependents)} stage(s) in parallel...")
        outcomes = await asyncio.gather(
            *(self._bundle_stage(spec) for spec in dependents),
            return_exceptions=True,
        )

        errors: list[GenerateError] = []
        for spec, outcome in zip(dependents, outcomes):
            if isinstance(outcome, GenerateError):
                errors.append(outcome)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                logger.bind(bundlerName=spec.name).debug(f"{spec.name} bundled!")

        if errors:
            for extra in errors[1:]:
                logger.error(f"Additional stage failure: {extra}")
            raise AggregateError(errors)

    async def _bundle_stage(
        self,
        spec: StageSpec,
        then: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        stage = StageResult(name=spec.name, status=StageStatus.RUNNING)
        self._stage_results[spec.name] = stage
        self.observer.on_stage_start(spec.name)
        started = time.time()

        async def on_after_bundle() -> None:
            stage.status = StageStatus.SUCCESS
            stage.elapsed = time.time() - started
            self.observer.on_stage_complete(spec.name, stage.elapsed)
            if then is not None:
                await then()

        bundler = self.bundler_factory(self.bundler_config(spec, on_after_bundle))
        try:
            await bundler.bundle()
        except BundleError as e:
            # errors from the chained step belong to later stages
            if stage.status is StageStatus.RUNNING:
                stage.status = StageStatus.FAILED
                stage.elapsed = time.time() - started
                stage.error = str(e)
                self.observer.on_stage_failed(spec.name, str(e))
            raise
