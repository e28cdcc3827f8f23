from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import Header, Footer, Static, RichLog, ListView, ListItem, Label
from textual.reactive import reactive
from textual import work

from stepguard.config import RunnerConfig
from stepguard.errors import ExternalCommandFailed, MissingDependencyError
from stepguard.models import Plan, Step, StepResult, StepStatus
from stepguard.runner import GuardedRunner, RunCallback, report_from_error


class StepListItem(ListItem):
    """A single step in the step list sidebar."""

    def __init__(self, step: Step, index: int) -> None:
        super().__init__()
        self.step = step
        self.step_index = index

    def compose(self) -> ComposeResult:
        yield Label(self._render_label())

    def _render_label(self) -> str:
        icon = self._status_icon()
        return f"{icon} {self.step_index + 1}. {self.step.name}"

    def _status_icon(self) -> str:
        icons = {
            StepStatus.PENDING: "  ",
            StepStatus.RUNNING: "[yellow]~[/yellow]",
            StepStatus.COMPLETED: "[green]✓[/green]",
            StepStatus.FAILED: "[red]✗[/red]",
            StepStatus.SKIPPED: "[dim]⊘[/dim]",
        }
        return icons.get(self.step.status, " ")

    def refresh_label(self) -> None:
        self.query_one(Label).update(self._render_label())


class StepDetailPanel(Static):
    """Shows details about the currently selected step."""

    def update_step(self, step: Step) -> None:
        env_str = ", ".join(f"{k}={v}" for k, v in list(step.env.items())[:5])
        if len(step.env) > 5:
            env_str += f", ... (+{len(step.env) - 5} more)"

        if step.action is not None:
            cmd_display = f"[dim]Python callable: {getattr(step.action, '__name__', repr(step.action))}[/dim]"
        else:
            cmd_lines = step.command.split("\n")
            if len(cmd_lines) > 5:
                cmd_display = "\n".join(cmd_lines[:5]) + f"\n... (+{len(cmd_lines) - 5} more lines)"
            else:
                cmd_display = step.command

        exit_code = "-" if step.exit_code is None else str(step.exit_code)
        text = (
            f"[bold]{step.name}[/bold]\n"
            f"Command:\n{cmd_display}\n"
            f"Env: {env_str}\n"
            f"Working dir: {step.working_directory or '(default)'}\n"
            f"Status: {step.status.value}  Exit code: {exit_code}"
        )
        self.update(text)


class _AppCallback(RunCallback):
    def __init__(self, app: "StepGuardApp") -> None:
        self.app = app

    def before_step(self, index: int, step: Step) -> None:
        self.app.call_from_thread(self.app._on_step_start, index)

    def after_step(self, index: int, step: Step, result: StepResult) -> None:
        self.app.call_from_thread(self.app._on_step_end, index)


class StepGuardApp(App):
    """stepguard — guarded step runner."""

    CSS = """
    #step-list {
        width: 50;
        border: solid $primary;
        padding: 0 1;
    }
    #right-pane {
        width: 1fr;
    }
    #step-detail {
        height: 9;
        border: solid $accent;
        padding: 1;
    }
    #output-log {
        height: 1fr;
        border: solid $success;
    }
    """

    BINDINGS = [
        ("q", "quit_app", "Quit"),
    ]

    current_step_index = reactive(0)
    running = reactive(False)

    def __init__(self, plan: Plan, engine, config: RunnerConfig | None = None):
        super().__init__()
        self.plan = plan
        self.engine = engine
        self.config = config or RunnerConfig()
        self.title = f"stepguard — {plan.name}"
        self.report = None
        self._result_code = 0

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal():
            yield ListView(
                *[StepListItem(step, i) for i, step in enumerate(self.plan.steps)],
                id="step-list",
            )
            with Vertical(id="right-pane"):
                yield StepDetailPanel(id="step-detail")
                yield RichLog(highlight=True, markup=False, auto_scroll=True, id="output-log")
        yield Footer()

    def on_mount(self) -> None:
        self._log(f"Plan: {self.plan.name}")
        self._log(f"Steps: {len(self.plan.steps)}")
        self._log("")
        self.running = True
        self._run_plan()

    @work(thread=True)
    def _run_plan(self) -> None:
        runner = GuardedRunner(
            self.plan,
            self.engine,
            config=self.config,
            callbacks=[_AppCallback(self)],
            out=lambda line: self.call_from_thread(self._log, line),
        )
        try:
            self.report = runner.run()
            self.call_from_thread(self._on_finished, 0)
        except ExternalCommandFailed as e:
            self.report = report_from_error(self.plan, e)
            self.call_from_thread(self._on_finished, e.exit_code)
        except MissingDependencyError as e:
            self.call_from_thread(self._on_finished, e.exit_code)

    def _on_step_start(self, index: int) -> None:
        self.current_step_index = index
        self._refresh_step(index)
        self._select_step(index)
        self._update_detail_panel()

    def _on_step_end(self, index: int) -> None:
        for i in range(index, len(self.plan.steps)):
            self._refresh_step(i)
        self._update_detail_panel()

    def _on_finished(self, code: int) -> None:
        self.running = False
        self._result_code = code
        if code == 0:
            self._log("\n━━━ All steps complete! ━━━")
        elif self.report is not None and self.report.failed_step is not None:
            failed = self.report.failed_step
            self._log(f"\n━━━ Stopped at step {self.report.failed_index + 1}: {failed.name} (exit code {code}) ━━━")
        else:
            self._log(f"\n━━━ Stopped (exit code {code}) ━━━")
        self._log("Press Q to quit.")

    def _current_step(self) -> Step | None:
        if 0 <= self.current_step_index < len(self.plan.steps):
            return self.plan.steps[self.current_step_index]
        return None

    def watch_current_step_index(self, index: int) -> None:
        self._update_detail_panel()

    def _update_detail_panel(self) -> None:
        step = self._current_step()
        if step:
            self.query_one(StepDetailPanel).update_step(step)

    def _log(self, message: str) -> None:
        self.query_one("#output-log", RichLog).write(message)

    def _refresh_step(self, index: int) -> None:
        items = self.query_one("#step-list", ListView).children
        if 0 <= index < len(items):
            items[index].refresh_label()

    def _select_step(self, index: int) -> None:
        self.query_one("#step-list", ListView).index = index

    def on_list_view_highlighted(self, event: ListView.Highlighted) -> None:
        if event.item and isinstance(event.item, StepListItem):
            self.query_one(StepDetailPanel).update_step(event.item.step)

    def action_quit_app(self) -> None:
        if self.running:
            self.notify("Steps are still running", severity="warning")
            return
        self.exit(return_code=self._result_code)
