"""Centralized exit codes for the bundlegen CLI."""

from bundlegen.errors import GenerateError, PlanningError, ProcessFailure


class ExitCodes:
    """Standard exit codes for bundlegen CLI commands."""

    SUCCESS = 0

    BUNDLE_FAILED = 1
    PROCESS_FAILED = 2
    PLANNING_FAILED = 3

    @classmethod
    def get_description(cls, code: int) -> str:
        """Get human-readable description for an exit code."""
        descriptions = {
            cls.SUCCESS: "Success - all bundles generated",
            cls.BUNDLE_FAILED: "A bundler failed to build its entry points",
            cls.PROCESS_FAILED: "The config runner exited unsuccessfully",
            cls.PLANNING_FAILED: "Required entry point or project directory missing",
        }
        return descriptions.get(code, f"Unknown exit code: {code}")

    @classmethod
    def for_error(cls, error: GenerateError | None) -> int:
        """Map a pipeline error to the exit code the CLI should return."""
        if error is None:
            return cls.SUCCESS
        if isinstance(error, PlanningError):
            return cls.PLANNING_FAILED
        if isinstance(error, ProcessFailure):
            return cls.PROCESS_FAILED
        return cls.BUNDLE_FAILED
