from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

DEFAULT_SUCCESS_MESSAGE = "Installation completed successfully"


class StepStatus(Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class Step:
    name: str
    command: str = ""
    action: Callable[[], int] | None = None
    env: dict = field(default_factory=dict)
    working_directory: str = ""
    on_success: str = ""
    status: StepStatus = StepStatus.PENDING
    output: str = ""
    exit_code: int | None = None


@dataclass
class Plan:
    name: str
    steps: list[Step] = field(default_factory=list)
    env: dict = field(default_factory=dict)
    requires: list[str] = field(default_factory=list)
    cleanup: list[str] = field(default_factory=list)
    success_message: str = DEFAULT_SUCCESS_MESSAGE
    diagnostics: dict[int, str] = field(default_factory=dict)


@dataclass
class StepResult:
    exit_code: int
    stdout: str
    stderr: str


@dataclass
class RunReport:
    """Terminal state of a run: all steps succeeded, or one failed."""

    steps: list[Step]
    exit_code: int = 0
    failed_index: int | None = None

    @property
    def succeeded(self) -> bool:
        return self.failed_index is None

    @property
    def failed_step(self) -> Step | None:
        if self.failed_index is None:
            return None
        return self.steps[self.failed_index]
