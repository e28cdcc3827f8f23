from dataclasses import dataclass, field

from stepguard.models import DEFAULT_SUCCESS_MESSAGE


@dataclass
class RunnerConfig:
    """Settings for a single run, fixed at construction time."""

    version: str = "latest"
    url: str = ""
    output: str = "/tmp/stepguard-download.deb"
    workdir: str = "."
    image: str | None = None
    success_message: str = DEFAULT_SUCCESS_MESSAGE
    env: dict = field(default_factory=dict)
    verbose: bool = False

    @property
    def resolved_url(self) -> str:
        return self.url.replace("{version}", self.version)
