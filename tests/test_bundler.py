"""Tests for the esbuild Bundler wrapper."""

import asyncio
import stat
import sys

import pytest

from bundlegen.bundler import Bundler, BundlerConfig
from bundlegen.errors import BundleError

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="uses a shell script as esbuild")


def fake_esbuild(tmp_path, body):
    script = tmp_path / "esbuild"
    script.write_text("#!/bin/sh\n" + body + "\n")
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(script)


def make_config(tmp_path, **kwargs):
    defaults = dict(
        name="webhooks-bundler",
        entry_points=("webhooks/github.ts", "webhooks/stripe.ts"),
        abs_working_dir=tmp_path,
        out_dir="generated/bundle/webhooks",
    )
    defaults.update(kwargs)
    return BundlerConfig(**defaults)


def test_config_requires_exactly_one_output(tmp_path):
    with pytest.raises(ValueError):
        BundlerConfig(name="x", entry_points=(), abs_working_dir=tmp_path)
    with pytest.raises(ValueError):
        BundlerConfig(
            name="x",
            entry_points=(),
            abs_working_dir=tmp_path,
            out_file="a.js",
            out_dir="out",
        )


def test_build_command_out_dir(tmp_path):
    cmd = Bundler(make_config(tmp_path)).build_command()

    assert cmd == [
        "esbuild",
        "webhooks/github.ts",
        "webhooks/stripe.ts",
        "--bundle",
        "--platform=node",
        "--format=cjs",
        "--target=node16",
        "--packages=external",
        "--log-level=error",
        "--sourcemap",
        "--outdir=generated/bundle/webhooks",
    ]


def test_build_command_out_file_without_sourcemap(tmp_path):
    config = make_config(
        tmp_path,
        name="config-bundler",
        entry_points=("bundlegen.config.ts",),
        out_dir=None,
        out_file="generated/bundle/config.js",
        sourcemap=False,
        target="node18",
    )

    cmd = Bundler(config).build_command()

    assert "--sourcemap" not in cmd
    assert "--target=node18" in cmd
    assert cmd[-1] == "--outfile=generated/bundle/config.js"


def test_ignored_entry_points_are_dropped(tmp_path):
    config = make_config(
        tmp_path,
        entry_points=(
            "operations/get.ts",
            "operations/node_modules/dep/index.ts",
            "generated/bundle/config.js",
        ),
        ignore_paths=("generated", "node_modules"),
    )

    assert Bundler(config).entry_points() == ["operations/get.ts"]


def test_missing_executable_is_bundle_error(tmp_path):
    config = make_config(tmp_path, executable=str(tmp_path / "no-esbuild"))

    with pytest.raises(BundleError) as excinfo:
        asyncio.run(Bundler(config).bundle())
    assert excinfo.value.stage == "webhooks-bundler"


@posix_only
def test_non_zero_exit_is_bundle_error_with_stderr(tmp_path):
    exe = fake_esbuild(tmp_path, "echo 'Could not resolve \"zod\"' >&2\nexit 1")
    called = []

    async def after():
        called.append(True)

    config = make_config(tmp_path, executable=exe, on_after_bundle=after)

    with pytest.raises(BundleError) as excinfo:
        asyncio.run(Bundler(config).bundle())
    assert 'Could not resolve "zod"' in str(excinfo.value)
    assert called == []


@posix_only
def test_long_stderr_is_kept_verbatim(tmp_path):
    exe = fake_esbuild(tmp_path, "for i in $(seq 1 50); do echo \"error $i\" >&2; done\nexit 1")
    config = make_config(tmp_path, executable=exe)

    with pytest.raises(BundleError) as excinfo:
        asyncio.run(Bundler(config).bundle())
    lines = excinfo.value.message.splitlines()
    assert lines == [f"error {i}" for i in range(1, 51)]


@posix_only
def test_silent_failure_reports_exit_code(tmp_path):
    exe = fake_esbuild(tmp_path, "exit 7")
    config = make_config(tmp_path, executable=exe)

    with pytest.raises(BundleError, match="exit code 7"):
        asyncio.run(Bundler(config).bundle())


@posix_only
def test_success_runs_after_bundle_callback(tmp_path):
    exe = fake_esbuild(tmp_path, 'echo "$@" > args.txt\nexit 0')
    called = []

    async def after():
        called.append(True)

    config = make_config(tmp_path, executable=exe, on_after_bundle=after)
    asyncio.run(Bundler(config).bundle())

    assert called == [True]
    args = (tmp_path / "args.txt").read_text()
    assert "webhooks/github.ts" in args
    assert "--outdir=generated/bundle/webhooks" in args


@posix_only
def test_callback_errors_propagate_unchanged(tmp_path):
    exe = fake_esbuild(tmp_path, "exit 0")

    async def after():
        raise KeyError("from callback")

    config = make_config(tmp_path, executable=exe, on_after_bundle=after)

    with pytest.raises(KeyError):
        asyncio.run(Bundler(config).bundle())


def test_no_entry_points_skips_esbuild_but_runs_callback(tmp_path):
    called = []

    async def after():
        called.append(True)

    # the executable does not exist, so running it would fail
    config = make_config(
        tmp_path,
        entry_points=(),
        executable=str(tmp_path / "no-esbuild"),
        on_after_bundle=after,
    )
    asyncio.run(Bundler(config).bundle())

    assert called == [True]
