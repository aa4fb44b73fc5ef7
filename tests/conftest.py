"""Shared fixtures: a scripted launcher so client tests need no docker engine."""

import os
import sys

import pytest

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from docker_workflow.client import DockerClient  # noqa: E402
from docker_workflow.config import DockerClientConfig  # noqa: E402
from docker_workflow.launcher import CommandExecutor, Launcher, LaunchResult  # noqa: E402

CONTAINER_ID = 'c73619a9e285200119c6b2b0dd79cd05a467a2c73d02a732d43ec5aaafed5c1a'
IMAGE_ID = 'sha256:8dbd9e392a964056420e5d58ca5cc376ef18e2de93b5cc90e868a1bbc8318c1c'


class FakeLauncher(Launcher):
    """Answers docker commands from a table keyed by subcommand.

    A value is either a LaunchResult or a callable taking the full argv.
    Every call is recorded in ``calls`` as (argv, env, cwd).
    """

    def __init__(self, responses=None):
        self.responses = {'-v': LaunchResult(0, 'Docker version 24.0.7, build afdd53b\n')}
        self.responses.update(responses or {})
        self.calls = []

    def launch(self, command, env=None, cwd=None, timeout=None):
        self.calls.append((list(command), dict(env or {}), cwd))
        key = command[1] if len(command) > 1 else command[0]
        response = self.responses.get(key)
        if response is None:
            return LaunchResult(1, '', f"unexpected command {command}")
        if callable(response):
            return response(command)
        return response

    def commands(self, subcommand):
        return [argv for argv, _, _ in self.calls if len(argv) > 1 and argv[1] == subcommand]


@pytest.fixture
def launcher():
    return FakeLauncher()


@pytest.fixture
def config(tmp_path):
    return DockerClientConfig(
        cgroup_path=str(tmp_path / 'cgroup'),
        mountinfo_path=str(tmp_path / 'mountinfo'),
    )


@pytest.fixture
def client(launcher, config):
    return DockerClient(CommandExecutor(launcher), config)
