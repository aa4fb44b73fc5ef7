"""Client settings read from the process environment (and a .env file)."""

import os
from dataclasses import dataclass
from typing import Dict, Optional

from dotenv import find_dotenv, load_dotenv

from .errors import ConfigurationError

# Variables the engine CLI itself reads to find a remote/TLS endpoint
ENGINE_ENV_VARS = ('DOCKER_HOST', 'DOCKER_TLS_VERIFY', 'DOCKER_CERT_PATH')


def _number(name, default, kind):
    value = os.environ.get(name)
    if value is None or value.strip() == '':
        return default
    try:
        return kind(value)
    except ValueError:
        raise ConfigurationError(f"{name}={value!r} is not a valid {kind.__name__}") from None


@dataclass
class DockerClientConfig:
    """Configuration class for docker-workflow settings"""
    docker_executable: str = 'docker'
    cgroup_path: str = '/proc/self/cgroup'
    mountinfo_path: str = '/proc/self/mountinfo'
    stop_timeout: int = 1
    command_timeout: Optional[float] = None
    label_prefix: str = 'docker_workflow'
    docker_host: Optional[str] = None
    tls_verify: Optional[str] = None
    cert_path: Optional[str] = None

    @classmethod
    def from_environment(cls, dotenv=True):
        """Create configuration from environment variables"""
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True))
        return cls(
            docker_executable=os.environ.get('DOCKER_WORKFLOW_EXECUTABLE', 'docker'),
            cgroup_path=os.environ.get('DOCKER_WORKFLOW_CGROUP_PATH', '/proc/self/cgroup'),
            mountinfo_path=os.environ.get('DOCKER_WORKFLOW_MOUNTINFO_PATH', '/proc/self/mountinfo'),
            stop_timeout=_number('DOCKER_WORKFLOW_STOP_TIMEOUT', 1, int),
            command_timeout=_number('DOCKER_WORKFLOW_COMMAND_TIMEOUT', None, float),
            label_prefix=os.environ.get('DOCKER_WORKFLOW_LABEL_PREFIX', 'docker_workflow'),
            docker_host=os.environ.get('DOCKER_HOST'),
            tls_verify=os.environ.get('DOCKER_TLS_VERIFY'),
            cert_path=os.environ.get('DOCKER_CERT_PATH'),
        )

    @property
    def parent_label(self):
        return f"{self.label_prefix}.parent"

    def engine_environment(self, base: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """Return a copy of ``base`` with the engine endpoint variables filled in.

        Values already present in ``base`` win over the configured ones, so a
        caller can point a single launch at another endpoint.
        """
        env = {}
        for name, value in zip(ENGINE_ENV_VARS, (self.docker_host, self.tls_verify, self.cert_path)):
            if value:
                env[name] = value
        env.update(base or {})
        return env
