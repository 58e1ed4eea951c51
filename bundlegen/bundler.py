"""esbuild-backed bundler.

Each Bundler turns a fixed set of entry points into either one output file or
an output directory. The transform itself belongs to esbuild; this module only
builds the command line, runs it and reports failures as BundleError.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from bundlegen.errors import BundleError
from bundlegen.utils.logging import logger


@dataclass(frozen=True)
class BundlerConfig:
    """Configuration for one bundling unit."""

    name: str
    entry_points: tuple[str, ...]
    abs_working_dir: Path
    out_file: str | None = None
    out_dir: str | None = None
    ignore_paths: tuple[str, ...] = ()
    on_after_bundle: Callable[[], Awaitable[None]] | None = None
    executable: str = "esbuild"
    platform: str = "node"
    format: str = "cjs"
    target: str = "node16"
    sourcemap: bool = True

    def __post_init__(self):
        if (self.out_file is None) == (self.out_dir is None):
            raise ValueError(f"{self.name}: exactly one of out_file or out_dir is required")


class Bundler:
    """Run esbuild for one stage and chain an optional post-bundle callback."""

    def __init__(self, config: BundlerConfig):
        self.config = config
        self._log = logger.bind(bundlerName=config.name)

    @property
    def name(self) -> str:
        return self.config.name

    def _is_ignored(self, entry_point: str) -> bool:
        parts = PurePosixPath(entry_point).parts
        return any(ignored in parts for ignored in self.config.ignore_paths)

    def entry_points(self) -> list[str]:
        """Entry points to bundle, without any lying under an ignored path."""
        kept = []
        for entry in self.config.entry_points:
            if self._is_ignored(entry):
                self._log.debug(f"Skipping ignored entry point {entry}")
                continue
            kept.append(entry)
        return kept

    def build_command(self) -> list[str]:
        cfg = self.config
        cmd = [
            cfg.executable,
            *self.entry_points(),
            "--bundle",
            f"--platform={cfg.platform}",
            f"--format={cfg.format}",
            f"--target={cfg.target}",
            "--packages=external",
            "--log-level=error",
        ]
        if cfg.sourcemap:
            cmd.append("--sourcemap")
        if cfg.out_file is not None:
            cmd.append(f"--outfile={cfg.out_file}")
        else:
            cmd.append(f"--outdir={cfg.out_dir}")
        return cmd

    async def bundle(self) -> None:
        """Bundle the entry points, then run ``on_after_bundle``.

        Errors raised by the callback propagate unchanged so a chained step can
        report its own failure.

        Raises:
            BundleError: esbuild could not be run or exited non-zero
        """
        entry_points = self.entry_points()
        if not entry_points:
            # an empty webhooks or operations directory is not an error
            self._log.debug("No entry points, nothing to bundle")
        else:
            await self._run_esbuild(len(entry_points))

        if self.config.on_after_bundle is not None:
            await self.config.on_after_bundle()

    async def _run_esbuild(self, entry_count: int) -> None:
        cmd = self.build_command()
        start_time = time.time()
        self._log.debug(f"Bundling {entry_count} entry point(s)")

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(self.config.abs_working_dir),
            )
            _stdout, stderr_data = await process.communicate()
        except OSError as e:
            raise BundleError(self.name, f"could not run {self.config.executable}: {e}") from e

        if process.returncode != 0:
            stderr = stderr_data.decode("utf-8", errors="replace").strip()
            detail = stderr or f"exit code {process.returncode}"
            raise BundleError(self.name, detail)

        self._log.debug(f"Bundled in {time.time() - start_time:.1f}s")
