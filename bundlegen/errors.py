"""Error taxonomy for the generate pipeline."""

from collections.abc import Sequence


class GenerateError(Exception):
    """Base class for pipeline failures."""

    error_code = "GENERATE_ERROR"


class PlanningError(GenerateError):
    """Raised when the pipeline cannot be planned."""

    error_code = "PLANNING_ERROR"


class NotFoundError(PlanningError):
    """Raised when a required entry point or directory does not exist."""

    error_code = "NOT_FOUND"

    def __init__(self, path: str, what: str = "entry point"):
        self.path = path
        self.what = what
        super().__init__(f"{what} not found: {path}")


class BundleError(GenerateError):
    """Raised when a bundler fails to produce its output."""

    error_code = "BUNDLE_ERROR"

    def __init__(self, stage: str, message: str):
        self.stage = stage
        self.message = message
        super().__init__(f"{stage}: {message}")


class ProcessFailure(GenerateError):
    """Raised when the config runner exits unsuccessfully."""

    error_code = "PROCESS_FAILURE"

    def __init__(self, exit_code: int, stage: str = "config-runner"):
        self.exit_code = exit_code
        self.stage = stage
        super().__init__(
            f"configuration could not be generated. Process exit with code {exit_code}"
        )


class ProcessStopError(GenerateError):
    """Raised when a supervised process could not be stopped."""

    error_code = "PROCESS_STOP_ERROR"


class AggregateError(GenerateError):
    """Several concurrent stages failed.

    ``errors`` keeps the failures in the fixed stage order; ``primary`` is the
    one reported to the caller.
    """

    error_code = "AGGREGATE_ERROR"

    def __init__(self, errors: Sequence[GenerateError]):
        if not errors:
            raise ValueError("AggregateError needs at least one error")
        self.errors = tuple(errors)
        extra = len(self.errors) - 1
        message = str(self.primary)
        if extra:
            message += f" (+{extra} more failed)"
        super().__init__(message)

    @property
    def primary(self) -> GenerateError:
        return self.errors[0]
