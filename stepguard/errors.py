from stepguard.models import Step


class StepGuardError(Exception):
    """Base exception class for stepguard errors."""


class ExternalCommandFailed(StepGuardError):
    """Raised when a step's external command exits with a non-zero code."""

    def __init__(self, step: Step, exit_code: int, index: int, diagnostic: str = "") -> None:
        self.step = step
        self.exit_code = exit_code
        self.index = index
        self.diagnostic = diagnostic
        msg = f"Step {index + 1} '{step.name}' failed with exit code {exit_code}"
        if diagnostic:
            msg += f": {diagnostic}"
        super().__init__(msg)


class MissingDependencyError(StepGuardError):
    """Raised when a command the plan requires is not available."""

    exit_code = 1

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(f"Missing required commands: {', '.join(missing)}")
