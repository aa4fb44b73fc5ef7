"""Run, inspect and stop docker containers from build steps."""

from .cgroups import CGROUP_MATCHER_PATTERN, who_am_i
from .client import DockerClient, Volume
from .config import DockerClientConfig
from .errors import (
    CommandFailed,
    CommandTimedOut,
    ConfigurationError,
    DockerClientError,
    EngineInvocationFailed,
    MalformedOutput,
    RecordIncomplete,
)
from .launcher import CommandExecutor, Launcher, LaunchResult, LocalLauncher
from .records import ContainerRecord, build_container_record
from .version import EngineVersion, parse_version_number

__version__ = '0.1.0'
