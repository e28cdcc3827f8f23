import logging
from dataclasses import replace
from typing import Callable

from stepguard.config import RunnerConfig
from stepguard.diagnostics import DiagnosticTable
from stepguard.engine import normalize_exit_code
from stepguard.errors import ExternalCommandFailed, MissingDependencyError
from stepguard.models import Plan, RunReport, Step, StepResult, StepStatus

logger = logging.getLogger(__name__)


class RunCallback:
    """Interface for observing a run step by step."""

    def before_step(self, index: int, step: Step) -> None:
        pass

    def after_step(self, index: int, step: Step, result: StepResult) -> None:
        pass


class GuardedRunner:
    """Runs a plan's steps in order and stops at the first failure.

    A failing step's exit code is looked up in the diagnostic table, the
    explanation is written out, and ExternalCommandFailed is raised with the
    same code. Steps after it are marked skipped and never run. Cleanup
    commands and engine teardown happen whether the run succeeds or not.
    """

    def __init__(
        self,
        plan: Plan,
        engine,
        config: RunnerConfig | None = None,
        callbacks: list[RunCallback] | None = None,
        out: Callable[[str], None] = print,
    ) -> None:
        self.plan = plan
        self.engine = engine
        self.config = config or RunnerConfig()
        self.callbacks: list[RunCallback] = callbacks or []
        self.out = out
        self.diagnostics = DiagnosticTable().with_overrides(plan.diagnostics)
        self._ready = False

    @property
    def steps(self) -> list[Step]:
        return self.plan.steps

    def preflight(self) -> None:
        missing = [name for name in self.plan.requires if not self.engine.has_command(name)]
        for name in missing:
            self.out(f"Error: {name} could not be found")
        if missing:
            raise MissingDependencyError(missing)

    def run(self) -> RunReport:
        try:
            self.engine.setup()
            self._ready = True
            self.preflight()
            for index, step in enumerate(self.steps):
                self._run_one(index, step)
            self.out(self.plan.success_message)
            return RunReport(steps=self.steps)
        finally:
            self._cleanup()

    def _run_one(self, index: int, step: Step) -> None:
        self.out(f"{step.name}...")
        step.status = StepStatus.RUNNING
        for callback in self.callbacks:
            callback.before_step(index, step)

        result = self._execute(step)
        step.exit_code = result.exit_code
        step.output = result.stdout + result.stderr
        self._echo_output(result)

        if result.exit_code == 0:
            step.status = StepStatus.COMPLETED
        else:
            step.status = StepStatus.FAILED
            for later in self.steps[index + 1:]:
                later.status = StepStatus.SKIPPED

        for callback in self.callbacks:
            callback.after_step(index, step, result)

        if result.exit_code != 0:
            diagnostic = self.diagnostics.describe(result.exit_code)
            logger.info("Step failed", extra={"step": step.name, "exit_code": result.exit_code})
            self.out(f"Step {index + 1} failed: {step.name}")
            self.out(diagnostic)
            raise ExternalCommandFailed(step, result.exit_code, index, diagnostic)

        if step.on_success:
            self.out(step.on_success)

    def _execute(self, step: Step) -> StepResult:
        if step.action is not None:
            return StepResult(exit_code=normalize_exit_code(step.action()), stdout="", stderr="")
        env = {**self.plan.env, **step.env, **self.config.env}
        return self.engine.run_step(replace(step, env=env))

    def _echo_output(self, result: StepResult) -> None:
        for text in (result.stdout, result.stderr):
            if text:
                for line in text.rstrip().split("\n"):
                    self.out(f"  {line}")

    def _cleanup(self) -> None:
        if self._ready:
            for command in self.plan.cleanup:
                result = self.engine.run_command(command, env={**self.plan.env, **self.config.env})
                if result.exit_code != 0:
                    logger.warning("Cleanup command failed (exit code %d): %s", result.exit_code, command)
        self.engine.cleanup()
        self._ready = False


def run_plan(plan: Plan, engine, config: RunnerConfig | None = None, **kwargs) -> RunReport:
    return GuardedRunner(plan, engine, config=config, **kwargs).run()


def report_from_error(plan: Plan, error: ExternalCommandFailed) -> RunReport:
    return RunReport(steps=plan.steps, exit_code=error.exit_code, failed_index=error.index)
