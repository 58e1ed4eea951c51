"""Pytest configuration and fixtures."""
import asyncio
import copy
from pathlib import Path

import pytest

from bundlegen.config_runtime import DEFAULTS
from bundlegen.errors import BundleError, ProcessStopError
from bundlegen.pipeline import PipelineContext, PipelineExecutor, StageSpec, StageSpecs
from bundlegen.scriptrunner import ScriptRunner


class FakeRunner(ScriptRunner):
    """ScriptRunner that never spawns anything; exits with a preset code."""

    def __init__(self, config, harness):
        super().__init__(config)
        self.harness = harness
        self.run_calls = 0
        self.stop_calls = 0

    def run(self):
        self.run_calls += 1
        self.harness.events.append("run")
        done = asyncio.get_running_loop().create_future()
        self._exit_code = self.harness.exit_code
        done.set_result(None)
        return done

    async def stop(self):
        self.stop_calls += 1
        self.harness.events.append("stop")
        if self.harness.stop_error:
            raise ProcessStopError(self.harness.stop_error)


class FakeBundler:
    """Bundler that records calls and fails for configured stage names."""

    def __init__(self, config, harness):
        self.config = config
        self.harness = harness

    async def bundle(self):
        name = self.config.name
        self.harness.events.append(f"bundle:{name}")
        self.harness.bundled.append(self.config.out_file or self.config.out_dir)
        await asyncio.sleep(self.harness.delays.get(name, 0))
        if name in self.harness.fail:
            raise BundleError(name, self.harness.fail[name])
        if self.config.on_after_bundle is not None:
            await self.config.on_after_bundle()


class Harness:
    """Wires fake collaborators into a PipelineExecutor and records what happened."""

    def __init__(self, project_dir: Path):
        self.project_dir = project_dir
        self.events: list[str] = []
        self.bundled: list[str] = []
        self.fail: dict[str, str] = {}
        self.delays: dict[str, float] = {}
        self.exit_code = 0
        self.stop_error: str | None = None
        self.runners: list[FakeRunner] = []

    def bundler_factory(self, config):
        return FakeBundler(config, self)

    def runner_factory(self, config):
        runner = FakeRunner(config, self)
        self.runners.append(runner)
        return runner

    def executor(self, observer=None, **context_kwargs) -> PipelineExecutor:
        context = PipelineContext(
            project_dir=self.project_dir,
            config=copy.deepcopy(DEFAULTS),
            **context_kwargs,
        )
        return PipelineExecutor(
            context,
            observer=observer,
            bundler_factory=self.bundler_factory,
            runner_factory=self.runner_factory,
        )

    @property
    def bundle_calls(self) -> list[str]:
        return [e.split(":", 1)[1] for e in self.events if e.startswith("bundle:")]

    @property
    def run_calls(self) -> int:
        return sum(r.run_calls for r in self.runners)

    @property
    def stop_calls(self) -> int:
        return sum(r.stop_calls for r in self.runners)


@pytest.fixture
def harness(tmp_path):
    """Fake bundlers and runner recording into one event list."""
    return Harness(tmp_path)


def make_stages(hooks=True, webhooks=True, operations=True) -> StageSpecs:
    return StageSpecs(
        config=StageSpec(
            name="config-bundler",
            entry_points=("bundlegen.config.ts",),
            out_file="generated/bundle/config.js",
            ignore_paths=("generated", "node_modules"),
        ),
        hooks=StageSpec(
            name="server-bundler",
            entry_points=("bundlegen.server.ts",),
            out_file="generated/bundle/server.js",
        ) if hooks else None,
        webhooks=StageSpec(
            name="webhooks-bundler",
            entry_points=("webhooks/github.ts",),
            out_dir="generated/bundle/webhooks",
        ) if webhooks else None,
        operations=StageSpec(
            name="operations-bundler",
            entry_points=("operations/users/get.ts",),
            out_dir="generated/bundle/operations",
        ) if operations else None,
    )


@pytest.fixture
def stages():
    """Factory for StageSpecs with optional stages switched on or off."""
    return make_stages


@pytest.fixture
def make_project(tmp_path):
    """Create a project layout under tmp_path and return its directory."""

    def _make(config=True, hooks=False, webhooks=(), operations=(), webhooks_dir=None, operations_dir=None):
        if config:
            (tmp_path / "bundlegen.config.ts").write_text("export default {};\n")
        if hooks:
            (tmp_path / "bundlegen.server.ts").write_text("export default {};\n")
        if webhooks or webhooks_dir:
            (tmp_path / "webhooks").mkdir(exist_ok=True)
        for name in webhooks:
            (tmp_path / "webhooks" / name).write_text("export default () => {};\n")
        if operations or operations_dir:
            (tmp_path / "operations").mkdir(exist_ok=True)
        for name in operations:
            path = tmp_path / "operations" / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("export default {};\n")
        return tmp_path

    return _make
