"""Event system for pipeline observers.

Decouples pipeline execution from presentation logic.
Observers must handle their own exceptions.
"""

import sys
from typing import Protocol


class PipelineObserver(Protocol):
    """Observer interface for pipeline events."""

    def on_stage_start(self, name: str) -> None:
        """Called when a bundling stage begins."""
        ...

    def on_stage_complete(self, name: str, elapsed: float) -> None:
        """Called when a bundling stage succeeds."""
        ...

    def on_stage_failed(self, name: str, error: str) -> None:
        """Called when a bundling stage fails."""
        ...

    def on_process_start(self, name: str) -> None:
        """Called when the supervised process is launched."""
        ...

    def on_process_exit(self, name: str, exit_code: int, elapsed: float) -> None:
        """Called once the supervised process has exited."""
        ...

    def on_log(self, message: str, is_error: bool = False) -> None:
        """Called for generic log messages."""
        ...


class ConsoleLogger:
    """ASCII-safe console logger (Windows CP1252 compatible).

    This is the default observer.
    """

    def __init__(self, quiet: bool = False):
        self.quiet = quiet

    def on_stage_start(self, name: str) -> None:
        if not self.quiet:
            print(f"[START] {name}...", flush=True)

    def on_stage_complete(self, name: str, elapsed: float) -> None:
        if not self.quiet:
            print(f"[OK] {name} completed in {elapsed:.1f}s", flush=True)

    def on_stage_failed(self, name: str, error: str) -> None:
        # Errors print even in quiet mode
        print(f"[FAILED] {name}", file=sys.stderr, flush=True)
        if error:
            display_err = error.strip()[:200]
            if len(error) > 200:
                display_err += "..."
            print(f"  Error: {display_err}", file=sys.stderr, flush=True)

    def on_process_start(self, name: str) -> None:
        if not self.quiet:
            print(f"[RUN] {name}...", flush=True)

    def on_process_exit(self, name: str, exit_code: int, elapsed: float) -> None:
        if exit_code != 0:
            print(f"[FAILED] {name} exited with code {exit_code}", file=sys.stderr, flush=True)
        elif not self.quiet:
            print(f"[OK] {name} finished in {elapsed:.1f}s", flush=True)

    def on_log(self, message: str, is_error: bool = False) -> None:
        if not self.quiet or is_error:
            msg = str(message) if message is not None else ""
            print(msg, file=sys.stderr if is_error else sys.stdout, flush=True)


class NullObserver:
    """Observer that ignores every event."""

    def on_stage_start(self, name: str) -> None:
        pass

    def on_stage_complete(self, name: str, elapsed: float) -> None:
        pass

    def on_stage_failed(self, name: str, error: str) -> None:
        pass

    def on_process_start(self, name: str) -> None:
        pass

    def on_process_exit(self, name: str, exit_code: int, elapsed: float) -> None:
        pass

    def on_log(self, message: str, is_error: bool = False) -> None:
        pass
