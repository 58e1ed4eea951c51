"""Tests for ScriptRunner against real child processes."""

import asyncio
import sys
import time

import pytest

from bundlegen.scriptrunner import RunnerState, ScriptRunner, ScriptRunnerConfig
from bundlegen.utils.logging import logger


def python_runner(code, tmp_path, **kwargs):
    config = ScriptRunnerConfig(
        name="config-runner",
        executable=sys.executable,
        script_args=("-c", code),
        abs_working_dir=tmp_path,
        **kwargs,
    )
    return ScriptRunner(config)


def test_successful_run(tmp_path):
    runner = python_runner("print('hello {world}')", tmp_path)

    async def main():
        async with runner:
            await runner.run()
            return runner.successful(), runner.exit_code()

    assert asyncio.run(main()) == (True, 0)
    assert runner.state is RunnerState.STOPPED


def test_failed_run_reports_exit_code(tmp_path):
    runner = python_runner("import sys; sys.stderr.write('bad config\\n'); sys.exit(3)", tmp_path)

    async def main():
        async with runner:
            await runner.run()
            return runner.successful(), runner.exit_code()

    assert asyncio.run(main()) == (False, 3)


def test_exit_code_before_run(tmp_path):
    runner = python_runner("pass", tmp_path)

    assert runner.exit_code() == -1
    assert not runner.successful()
    assert runner.state is RunnerState.NOT_STARTED


def test_run_returns_same_future(tmp_path):
    runner = python_runner("pass", tmp_path)

    async def main():
        async with runner:
            first = runner.run()
            second = runner.run()
            await first
            return first is second

    assert asyncio.run(main())


def test_stop_before_run_is_noop(tmp_path):
    runner = python_runner("pass", tmp_path)

    async def main():
        await runner.stop()
        await runner.stop()
        done = runner.run()
        return done.done()

    # a stopped runner never starts its child
    assert asyncio.run(main())
    assert runner.state is RunnerState.STOPPED
    assert runner.exit_code() == -1


def test_stop_terminates_long_running_child(tmp_path):
    runner = python_runner("import time; time.sleep(60)", tmp_path, stop_grace=2.0)

    async def main():
        done = runner.run()
        await asyncio.sleep(0.3)
        started = time.time()
        await runner.stop()
        await runner.stop()
        return done.done(), time.time() - started

    resolved, elapsed = asyncio.run(main())

    assert resolved
    assert elapsed < 10
    assert runner.state is RunnerState.STOPPED
    assert not runner.successful()


def test_missing_executable_resolves_with_start_failure(tmp_path):
    config = ScriptRunnerConfig(
        name="config-runner",
        executable=str(tmp_path / "does-not-exist"),
        abs_working_dir=tmp_path,
    )
    runner = ScriptRunner(config)

    async def main():
        async with runner:
            await asyncio.wait_for(runner.run(), timeout=10)
            return runner.exit_code()

    assert asyncio.run(main()) == -1
    assert not runner.successful()


def test_script_env_reaches_child(tmp_path):
    out = tmp_path / "env.txt"
    code = (
        "import os, pathlib; "
        f"pathlib.Path({str(out)!r}).write_text("
        "os.environ['NODE_ENV'] + ':' + os.getcwd())"
    )
    runner = python_runner(code, tmp_path, script_env={"NODE_ENV": "production"})

    async def main():
        async with runner:
            await runner.run()
            return runner.successful()

    assert asyncio.run(main())
    node_env, cwd = out.read_text().split(":", 1)
    assert node_env == "production"
    assert cwd == str(tmp_path.resolve()) or cwd == str(tmp_path)


def test_build_env_without_inheritance(tmp_path, monkeypatch):
    monkeypatch.setenv("BUNDLEGEN_TEST_PARENT", "1")
    inherited = python_runner("pass", tmp_path, script_env={"A": "b"})
    isolated = python_runner("pass", tmp_path, script_env={"A": "b"}, inherit_env=False)

    assert inherited.build_env()["BUNDLEGEN_TEST_PARENT"] == "1"
    assert isolated.build_env() == {"A": "b"}


@pytest.fixture
def captured_logs():
    """Collect log messages emitted while the test runs."""
    messages = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="INFO")
    yield messages
    logger.remove(handler_id)


def test_line_longer_than_stream_limit(tmp_path, captured_logs):
    runner = python_runner("print('x' * 100_000); print('done')", tmp_path)

    async def main():
        async with runner:
            await asyncio.wait_for(runner.run(), timeout=10)
            return runner.successful()

    assert asyncio.run(main())
    assert "x" * 100_000 in captured_logs
    assert "done" in captured_logs


def test_output_without_trailing_newline(tmp_path, captured_logs):
    code = "import sys; sys.stdout.write('first\\nlast'); sys.stderr.write('warn')"
    runner = python_runner(code, tmp_path)

    async def main():
        async with runner:
            await asyncio.wait_for(runner.run(), timeout=10)
            return runner.exit_code()

    assert asyncio.run(main()) == 0
    assert {"first", "last", "warn"} <= set(captured_logs)


def test_large_output_drains_both_pipes(tmp_path, captured_logs):
    code = (
        "import sys\n"
        "for i in range(2000):\n"
        "    sys.stdout.write('out %d ' % i + 'o' * 200 + '\\n')\n"
        "    sys.stderr.write('err %d ' % i + 'e' * 200 + '\\n')\n"
    )
    runner = python_runner(code, tmp_path)

    async def main():
        async with runner:
            await asyncio.wait_for(runner.run(), timeout=20)
            return runner.successful()

    assert asyncio.run(main())
    assert sum(1 for m in captured_logs if m.startswith("out ")) == 2000
    assert sum(1 for m in captured_logs if m.startswith("err ")) == 2000


def test_supervisor_failure_still_resolves_completion(tmp_path):
    runner = python_runner("pass", tmp_path)

    async def broken_supervise():
        raise RuntimeError("supervisor bug")

    runner._supervise = broken_supervise

    async def main():
        async with runner:
            await asyncio.wait_for(runner.run(), timeout=10)
            return runner.exit_code()

    assert asyncio.run(main()) == -1
    assert not runner.successful()
