"""End-to-end run/inspect/stop against a real engine.

Skipped unless ``docker version`` works. Point it at a remote engine with
DOCKER_HOST_FOR_TEST (and DOCKER_HOST_KEY_DIR_FOR_TEST for TLS).
"""

import os
import shutil
import subprocess

import pytest

from docker_workflow.client import DockerClient
from docker_workflow.config import DockerClientConfig
from docker_workflow.errors import EngineInvocationFailed

IMAGE = 'busybox:latest'


def launch_env():
    env = {}
    host = os.environ.get('DOCKER_HOST_FOR_TEST')
    key_dir = os.environ.get('DOCKER_HOST_KEY_DIR_FOR_TEST')
    if host:
        env['DOCKER_HOST'] = host
    if key_dir:
        env['DOCKER_TLS_VERIFY'] = '1'
        env['DOCKER_CERT_PATH'] = key_dir
    return env


def docker_available():
    if shutil.which('docker') is None:
        return False
    env = dict(os.environ)
    env.update(launch_env())
    try:
        result = subprocess.run(['docker', 'version'], capture_output=True, text=True, env=env, timeout=30)
    except (OSError, subprocess.TimeoutExpired):
        return False
    return result.returncode == 0


pytestmark = [
    pytest.mark.docker,
    pytest.mark.skipif(not docker_available(), reason="needs a working docker engine"),
]


@pytest.fixture
def docker_client():
    return DockerClient(config=DockerClientConfig.from_environment(dotenv=False))


@pytest.fixture
def image(docker_client):
    env = dict(os.environ)
    env.update(launch_env())
    subprocess.run(['docker', 'pull', IMAGE], capture_output=True, env=env, check=True)
    return IMAGE


def test_run(docker_client, image):
    env = launch_env()
    container_id = docker_client.run(env, image, 'cat', caller_id=docker_client.who_am_i())
    try:
        assert len(container_id) == 64
        record = docker_client.get_container_record(env, container_id)
        assert record.image_id == docker_client.inspect(env, image, '.Id')
        assert len(record.container_name) > 0
        assert len(record.host) > 0
        assert record.created > 1000000000000
        assert docker_client.get_volumes(env, container_id) == []
        assert 'cat' in docker_client.list_processes(env, container_id)

        # stop also removes the container
        assert docker_client.inspect(env, container_id, '.Name') is not None
    finally:
        docker_client.stop(env, container_id)
    assert docker_client.inspect(env, container_id, '.Name') is None

    # stopping twice is harmless
    docker_client.stop(env, container_id)


def test_version(docker_client):
    assert docker_client.version(launch_env()) is not None


def test_run_missing_image(docker_client):
    with pytest.raises(EngineInvocationFailed):
        docker_client.run(launch_env(), 'docker-workflow-test/no-such-image:never')
