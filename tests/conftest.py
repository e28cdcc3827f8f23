import os

import pytest
from stepguard.models import StepResult

FIXTURES = os.path.join(os.path.dirname(__file__), "fixtures")


class FakeEngine:
    """Engine double that records calls and returns scripted exit codes."""

    def __init__(self, codes=None, commands=()):
        self.codes = dict(codes or {})
        self.commands = set(commands)
        self.ran = []
        self.cleanup_commands = []
        self.set_up = False
        self.cleaned_up = False

    def setup(self):
        self.set_up = True

    def run_step(self, step):
        self.ran.append(step)
        return StepResult(exit_code=self.codes.get(step.name, 0), stdout="", stderr="")

    def run_command(self, command, env=None):
        self.cleanup_commands.append(command)
        return StepResult(exit_code=self.codes.get(command, 0), stdout="", stderr="")

    def has_command(self, name):
        return name in self.commands

    def cleanup(self):
        self.cleaned_up = True


@pytest.fixture
def fixtures_dir():
    return FIXTURES


@pytest.fixture
def make_engine():
    return FakeEngine
