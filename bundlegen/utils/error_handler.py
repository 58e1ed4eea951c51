"""Centralized error handler for bundlegen commands."""

import traceback
from collections.abc import Callable
from datetime import datetime
from functools import wraps
from pathlib import Path
from typing import Any

import click

from bundlegen.utils.logging import logger

from .constants import ERROR_LOG_FILE


def handle_exceptions(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator that logs unexpected command failures and turns them into ClickExceptions.

    ``click.exceptions.Exit`` and other click control-flow exceptions pass
    through untouched so commands can still choose their exit code.

    The traceback is appended to ``generated/bundlegen-error.log`` under the
    command's ``directory`` argument, or under the working directory for
    commands without one.
    """

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        """Inner wrapper that implements the try-except logic."""
        try:
            return func(*args, **kwargs)
        except (click.exceptions.Exit, click.ClickException, click.Abort):
            raise
        except Exception as e:
            error_log_path = Path(kwargs.get("directory") or ".") / ERROR_LOG_FILE
            error_log_path.parent.mkdir(parents=True, exist_ok=True)

            error_type = type(e).__name__
            error_msg = str(e)
            tb = traceback.format_exc()

            logger.opt(exception=True).error(
                "Command '{cmd}' failed: {err}",
                cmd=func.__name__,
                err=error_msg,
            )

            with open(error_log_path, "a", encoding="utf-8") as f:
                f.write("\n" + "=" * 80 + "\n")
                f.write(f"[{datetime.now().isoformat()}] Error in command: {func.__name__}\n")
                f.write("=" * 80 + "\n")
                f.write(f"{error_type}: {error_msg}\n\n")
                f.write(tb)
                f.write("=" * 80 + "\n\n")

            user_message = (
                f"{error_type}: {error_msg}\n\n"
                f"Full traceback logged to: {error_log_path}"
            )

            raise click.ClickException(user_message) from e

    return wrapper
