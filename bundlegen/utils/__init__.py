"""bundlegen utilities package."""

from .error_handler import handle_exceptions
from .exit_codes import ExitCodes
from .logging import get_request_id, get_subprocess_env, logger

__all__ = [
    "handle_exceptions",
    "ExitCodes",
    "logger",
    "get_request_id",
    "get_subprocess_env",
]
