import shlex

from stepguard.config import RunnerConfig
from stepguard.models import Plan, Step


def package_install_plan(config: RunnerConfig) -> Plan:
    """Update apt, install curl, download a .deb and install it with dpkg."""
    url = config.resolved_url
    if not url:
        raise ValueError("A download URL is required")
    output = config.output

    return Plan(
        name=f"Install {url.rsplit('/', 1)[-1] or url}",
        requires=["apt-get", "dpkg"],
        env={"DEBIAN_FRONTEND": "noninteractive"},
        success_message=config.success_message,
        steps=[
            Step(name="Updating package list", command="apt-get update"),
            Step(name="Installing curl", command="apt-get install -y curl"),
            Step(
                name=f"Downloading file from {url}",
                command=f"curl -o {shlex.quote(output)} -fsSL {shlex.quote(url)}",
                on_success=f"File downloaded successfully to {output}",
            ),
            Step(name="Installing downloaded file", command=f"dpkg -i {shlex.quote(output)}"),
        ],
    )
