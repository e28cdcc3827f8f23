import logging
import os
import posixpath
import shlex
import shutil
import subprocess

import docker
from docker.errors import DockerException, ImageNotFound, NotFound
from stepguard.models import Step, StepResult

logger = logging.getLogger(__name__)

SHELL = ["bash", "--noprofile", "--norc", "-eu", "-o", "pipefail", "-c"]
COMMAND_NOT_EXECUTABLE = 126
COMMAND_NOT_FOUND = 127
CONTAINER_WORKSPACE = "/workspace"


def normalize_exit_code(code: int | None) -> int:
    """Fold a raw child status into 0-255. Out-of-range codes stay failures."""
    if code is None:
        return 1
    if code < 0:
        return min(128 + -code, 255)
    return min(code, 255)


class LocalEngine:
    """Runs step commands on this machine."""

    def __init__(self, workdir: str = ".", capture: bool = True):
        self.workdir = os.path.abspath(workdir)
        self.capture = capture

    def setup(self) -> None:
        if not os.path.isdir(self.workdir):
            raise ValueError(f"Working directory does not exist: {self.workdir}")

    def _cwd(self, step: Step) -> str:
        if not step.working_directory:
            return self.workdir
        return os.path.join(self.workdir, step.working_directory)

    def run_step(self, step: Step) -> StepResult:
        env = {**os.environ, **step.env}
        logger.debug("Running command", extra={"step": step.name, "command": step.command})
        try:
            proc = subprocess.run(
                [*SHELL, step.command],
                cwd=self._cwd(step),
                env=env,
                capture_output=self.capture,
                text=self.capture,
                errors="replace" if self.capture else None,
            )
        except FileNotFoundError as e:
            return StepResult(exit_code=COMMAND_NOT_FOUND, stdout="", stderr=str(e))
        except OSError as e:
            return StepResult(exit_code=COMMAND_NOT_EXECUTABLE, stdout="", stderr=str(e))

        return StepResult(
            exit_code=normalize_exit_code(proc.returncode),
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
        )

    def run_command(self, command: str, env: dict | None = None) -> StepResult:
        return self.run_step(Step(name=command, command=command, env=env or {}))

    def has_command(self, name: str) -> bool:
        return shutil.which(name) is not None

    def cleanup(self) -> None:
        pass


class ContainerEngine:
    """Runs step commands inside a throwaway docker container."""

    def __init__(self, image: str, workdir: str = ".", env: dict | None = None):
        self.image = image
        self.workdir = os.path.abspath(workdir)
        self.env = env or {}
        try:
            self.client = docker.from_env()
            self.client.ping()
        except DockerException:
            print("Error: Can't connect to Docker. Is the Docker daemon running?")
            raise SystemExit(1)
        self.container = None
        self._container_name = f"stepguard-{os.getpid()}"

    def setup(self) -> None:
        try:
            self.client.images.get(self.image)
        except ImageNotFound:
            logger.info("Pulling image %s", self.image)
            self.client.images.pull(self.image)

        # Remove stale container with same name
        try:
            old = self.client.containers.get(self._container_name)
            old.remove(force=True)
        except NotFound:
            pass

        self.container = self.client.containers.run(
            image=self.image,
            command="sleep infinity",
            volumes={
                self.workdir: {"bind": CONTAINER_WORKSPACE, "mode": "rw"},
            },
            working_dir=CONTAINER_WORKSPACE,
            environment={
                "DEBIAN_FRONTEND": "noninteractive",
                **self.env,
            },
            name=self._container_name,
            detach=True,
        )

    def _cwd(self, step: Step) -> str:
        if not step.working_directory:
            return CONTAINER_WORKSPACE
        return posixpath.join(CONTAINER_WORKSPACE, step.working_directory)

    def run_step(self, step: Step) -> StepResult:
        if self.container is None:
            raise RuntimeError("Engine not set up. Call setup() first.")

        logger.debug("Running command in container", extra={"step": step.name, "command": step.command})
        cmd = [*SHELL, step.command]
        result = self.container.exec_run(
            cmd,
            environment={**self.env, **step.env},
            workdir=self._cwd(step),
            demux=True,
        )

        stdout = result.output[0].decode("utf-8", errors="replace") if result.output[0] else ""
        stderr = result.output[1].decode("utf-8", errors="replace") if result.output[1] else ""

        return StepResult(
            exit_code=normalize_exit_code(result.exit_code),
            stdout=stdout,
            stderr=stderr,
        )

    def run_command(self, command: str, env: dict | None = None) -> StepResult:
        return self.run_step(Step(name=command, command=command, env=env or {}))

    def has_command(self, name: str) -> bool:
        if self.container is None:
            raise RuntimeError("Engine not set up. Call setup() first.")
        result = self.container.exec_run(
            ["sh", "-c", f"command -v {shlex.quote(name)}"],
            demux=True,
        )
        return result.exit_code == 0

    def cleanup(self) -> None:
        if self.container is not None:
            try:
                self.container.stop(timeout=3)
            except DockerException as e:
                logger.warning("Failed to stop container %s: %s", self._container_name, e)
            try:
                self.container.remove(force=True)
            except DockerException as e:
                logger.warning("Failed to remove container %s: %s", self._container_name, e)
            self.container = None


def create_engine(image: str | None = None, workdir: str = ".", env: dict | None = None, capture: bool = True):
    if image:
        return ContainerEngine(image=image, workdir=workdir, env=env)
    return LocalEngine(workdir=workdir, capture=capture)
