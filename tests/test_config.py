import os

import pytest

from docker_workflow.config import DockerClientConfig
from docker_workflow.errors import ConfigurationError


def test_defaults(monkeypatch):
    for name in ('DOCKER_WORKFLOW_EXECUTABLE', 'DOCKER_WORKFLOW_CGROUP_PATH', 'DOCKER_WORKFLOW_STOP_TIMEOUT',
                 'DOCKER_WORKFLOW_COMMAND_TIMEOUT', 'DOCKER_WORKFLOW_LABEL_PREFIX',
                 'DOCKER_HOST', 'DOCKER_TLS_VERIFY', 'DOCKER_CERT_PATH'):
        monkeypatch.delenv(name, raising=False)
    config = DockerClientConfig.from_environment(dotenv=False)
    assert config.docker_executable == 'docker'
    assert config.cgroup_path == '/proc/self/cgroup'
    assert config.stop_timeout == 1
    assert config.command_timeout is None
    assert config.parent_label == 'docker_workflow.parent'
    assert config.engine_environment() == {}


def test_from_environment(monkeypatch):
    monkeypatch.setenv('DOCKER_WORKFLOW_EXECUTABLE', '/usr/local/bin/podman')
    monkeypatch.setenv('DOCKER_WORKFLOW_STOP_TIMEOUT', '5')
    monkeypatch.setenv('DOCKER_WORKFLOW_COMMAND_TIMEOUT', '600')
    monkeypatch.setenv('DOCKER_WORKFLOW_LABEL_PREFIX', 'ci')
    monkeypatch.setenv('DOCKER_HOST', 'tcp://192.168.99.100:2376')
    monkeypatch.setenv('DOCKER_TLS_VERIFY', '1')
    monkeypatch.setenv('DOCKER_CERT_PATH', '/home/ci/.docker/machine/certs')
    config = DockerClientConfig.from_environment(dotenv=False)
    assert config.docker_executable == '/usr/local/bin/podman'
    assert config.stop_timeout == 5
    assert config.command_timeout == 600.0
    assert config.parent_label == 'ci.parent'
    assert config.engine_environment() == {
        'DOCKER_HOST': 'tcp://192.168.99.100:2376',
        'DOCKER_TLS_VERIFY': '1',
        'DOCKER_CERT_PATH': '/home/ci/.docker/machine/certs',
    }


def test_dotenv_file_is_read(monkeypatch, tmp_path):
    monkeypatch.delenv('DOCKER_WORKFLOW_STOP_TIMEOUT', raising=False)
    (tmp_path / '.env').write_text("DOCKER_WORKFLOW_STOP_TIMEOUT=7\n")
    monkeypatch.chdir(tmp_path)
    try:
        config = DockerClientConfig.from_environment()
        assert config.stop_timeout == 7
    finally:
        os.environ.pop("DOCKER_WORKFLOW_STOP_TIMEOUT", None)


def test_launch_env_overrides_configured_endpoint():
    config = DockerClientConfig(docker_host='tcp://a:2376')
    base = {'DOCKER_HOST': 'tcp://b:2376'}
    assert config.engine_environment(base) == {'DOCKER_HOST': 'tcp://b:2376'}
    assert base == {'DOCKER_HOST': 'tcp://b:2376'}


@pytest.mark.parametrize("name", ['DOCKER_WORKFLOW_STOP_TIMEOUT', 'DOCKER_WORKFLOW_COMMAND_TIMEOUT'])
def test_bad_numbers_raise_configuration_error(monkeypatch, name):
    monkeypatch.setenv(name, 'soon')
    with pytest.raises(ConfigurationError) as excinfo:
        DockerClientConfig.from_environment(dotenv=False)
    assert name in str(excinfo.value)
