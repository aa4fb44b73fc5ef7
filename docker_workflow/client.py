"""Drive the docker command line to run, inspect and stop build containers."""

import logging
import re
import shlex
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

from .cgroups import CGROUP_MATCHER_PATTERN, who_am_i
from .config import DockerClientConfig
from .errors import CommandFailed, CommandTimedOut, EngineInvocationFailed, MalformedOutput, RecordIncomplete
from .launcher import CommandExecutor, LaunchResult
from .records import ContainerRecord, build_container_record
from .version import EngineVersion, parse_version_number, supports

logger = logging.getLogger(__name__)

CONTAINER_ID = re.compile(r'[0-9a-f]{64}')
NOT_FOUND = re.compile(r'no such (?:object|container|image)', re.IGNORECASE)
# e.g. 2015-03-04T10:11:12.123456789Z or 2015-03-04T10:11:12.123+01:00
CREATED = re.compile(
    r'^(\d{4}-\d{2}-\d{2})[T ](\d{2}:\d{2}:\d{2})(?:\.(\d+))?\s?(Z|[+-]\d{2}:?\d{2})?(?:\s+UTC)?$'
)
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

MOUNTS_TEMPLATE = '{{range .Mounts}}{{.Source}}\t{{.Destination}}\n{{end}}'
# pre-1.8 engines: map of container path -> host path
VOLUMES_TEMPLATE = '{{range $dest, $src := .Volumes}}{{$src}}\t{{$dest}}\n{{end}}'


@dataclass(frozen=True)
class Volume:
    source: str
    destination: str


def parse_created(text: Optional[str]) -> Optional[int]:
    """Epoch milliseconds from an engine ``.Created`` timestamp, None if unreadable"""
    if not text:
        return None
    match = CREATED.match(text.strip())
    if not match:
        return None
    date, time_of_day, fraction, zone = match.groups()
    stamp = datetime.strptime(f"{date}T{time_of_day}", '%Y-%m-%dT%H:%M:%S')
    stamp = stamp.replace(microsecond=int((fraction or '0')[:6].ljust(6, '0')))
    if zone in (None, 'Z'):
        tz = timezone.utc
    else:
        digits = zone[1:].replace(':', '')
        offset = timedelta(hours=int(digits[:2]), minutes=int(digits[2:]))
        tz = timezone(offset if zone[0] == '+' else -offset)
    return (stamp.replace(tzinfo=tz) - EPOCH) // timedelta(milliseconds=1)


def _is_not_found(result: LaunchResult) -> bool:
    return result.status != 0 and bool(NOT_FOUND.search(result.err or ''))


class DockerClient:
    """Runs docker commands on behalf of a build.

    Every method takes the launch environment of the build step; the endpoint
    variables from the configuration (DOCKER_HOST, DOCKER_TLS_VERIFY,
    DOCKER_CERT_PATH) are added to a copy of it, never to the caller's mapping.
    """

    CGROUP_MATCHER_PATTERN = CGROUP_MATCHER_PATTERN
    parse_version_number = staticmethod(parse_version_number)

    def __init__(self, executor: Optional[CommandExecutor] = None, config: Optional[DockerClientConfig] = None):
        self.config = config or DockerClientConfig.from_environment()
        self.executor = executor or CommandExecutor(timeout=self.config.command_timeout)
        self._version = None
        self._version_checked = False

    def _env(self, launch_env):
        return self.config.engine_environment(launch_env)

    def _launch(self, launch_env, args, masked=()):
        return self.executor.launch(self.config.docker_executable, args, self._env(launch_env), masked=masked)

    def _execute(self, launch_env, args, masked=()):
        return self.executor.execute(self.config.docker_executable, args, self._env(launch_env), masked=masked)

    def version(self, launch_env: Optional[Dict[str, str]] = None) -> Optional[EngineVersion]:
        """Engine version from ``docker -v``; asked once per client."""
        if not self._version_checked:
            result = self._launch(launch_env, ['-v'])
            self._version = parse_version_number(result.out) if result.status == 0 else None
            self._version_checked = True
            if self._version is None:
                logger.warning("Could not determine the docker version, assuming an old engine")
            else:
                logger.debug("Docker version %s", self._version)
        return self._version

    def supports(self, launch_env: Optional[Dict[str, str]], capability: str) -> bool:
        return supports(self.version(launch_env), capability)

    def run(self, launch_env: Optional[Dict[str, str]], image: str, *command: str,
            args=None, workdir: Optional[str] = None, entrypoint: Optional[str] = None,
            volumes: Optional[Dict[str, str]] = None, volumes_from: Iterable[str] = (),
            container_env: Optional[Dict[str, str]] = None, user: Optional[str] = None,
            caller_id: Optional[str] = None) -> str:
        """Start a detached container and return its 64 character id.

        ``args`` are extra ``docker run`` options, either a list or a single
        string split the way a shell would. ``volumes`` maps host paths to
        container paths. ``caller_id`` is recorded as a label so the calling
        container can find the children it started.
        """
        argv = ['run', '-t', '-d']
        if user:
            argv += ['-u', user]
        if args:
            argv += shlex.split(args) if isinstance(args, str) else list(args)
        if workdir:
            argv += ['-w', workdir]
        if entrypoint is not None:
            argv += ['--entrypoint', entrypoint]
        for host_path, container_path in (volumes or {}).items():
            argv += ['-v', f"{host_path}:{container_path}:rw,z"]
        for container in volumes_from:
            argv += ['--volumes-from', container]
        masked = []
        for name, value in (container_env or {}).items():
            argv.append('-e')
            masked.append(len(argv))
            argv.append(f"{name}={value}")
        if caller_id:
            if self.supports(launch_env, 'labels'):
                argv += ['--label', f"{self.config.parent_label}={caller_id}"]
            else:
                logger.debug("Engine too old for labels, not tagging container with parent %s", caller_id)
        argv.append(image)
        argv += list(command)

        try:
            out = self._execute(launch_env, argv, masked)
        except CommandTimedOut:
            raise
        except CommandFailed as e:
            raise EngineInvocationFailed(e.command, e.exit_code, e.stderr,
                                         message=f"Failed to run image '{image}'. Error: {e.stderr.strip()}") from e

        container_id = out.strip()
        if not CONTAINER_ID.fullmatch(container_id):
            raise MalformedOutput(f"docker run printed {container_id!r} instead of a container id")
        return container_id

    def inspect(self, launch_env: Optional[Dict[str, str]], object_id: str, field_path: str) -> Optional[str]:
        """One field of a container or image, or None if the object doesn't exist.

        ``field_path`` is either a bare path like ``.Config.Hostname`` or a
        complete Go template.
        """
        template = field_path if '{{' in field_path else f"{{{{{field_path}}}}}"
        result = self._launch(launch_env, ['inspect', '-f', template, object_id])
        if _is_not_found(result):
            return None
        if result.status != 0:
            raise CommandFailed([self.config.docker_executable, 'inspect', '-f', template, object_id],
                                result.status, result.err)
        return result.out.strip()

    def inspect_required_field(self, launch_env: Optional[Dict[str, str]], object_id: str, field_path: str) -> str:
        value = self.inspect(launch_env, object_id, field_path)
        if not value:
            raise RecordIncomplete(f"Cannot retrieve {field_path} from 'docker inspect {object_id}'")
        return value

    def get_created_date(self, launch_env: Optional[Dict[str, str]], object_id: str) -> Optional[int]:
        created = self.inspect(launch_env, object_id, '.Created')
        millis = parse_created(created)
        if created and millis is None:
            logger.warning("Unrecognised creation time %r for %s", created, object_id)
        return millis

    def stop(self, launch_env: Optional[Dict[str, str]], container_id: str):
        """Stop and remove a container. One that is already stopped or gone is fine."""
        argv = ['stop']
        if self.supports(launch_env, 'stop_time'):
            argv.append(f"--time={self.config.stop_timeout}")
        argv.append(container_id)
        result = self._launch(launch_env, argv)
        if result.status != 0 and not _is_not_found(result):
            raise EngineInvocationFailed([self.config.docker_executable] + argv, result.status, result.err,
                                         message=f"Failed to kill container '{container_id}'. Error: {result.err.strip()}")
        self.rm(launch_env, container_id)

    def rm(self, launch_env: Optional[Dict[str, str]], container_id: str):
        argv = ['rm', '-f', '--volumes', container_id]
        result = self._launch(launch_env, argv)
        if result.status != 0 and not _is_not_found(result):
            raise EngineInvocationFailed([self.config.docker_executable] + argv, result.status, result.err,
                                         message=f"Failed to rm container '{container_id}'. Error: {result.err.strip()}")

    def get_mounts(self, launch_env: Optional[Dict[str, str]], container_id: str) -> List[Volume]:
        """Mounts of a container, in the order the engine reports them"""
        if self.supports(launch_env, 'mounts'):
            output = self.inspect(launch_env, container_id, MOUNTS_TEMPLATE)
        else:
            try:
                output = self.inspect(launch_env, container_id, VOLUMES_TEMPLATE)
            except CommandTimedOut:
                raise
            except CommandFailed:
                # an unparsable banner may still belong to an engine without .Volumes
                if self.version(launch_env) is not None:
                    raise
                output = self.inspect(launch_env, container_id, MOUNTS_TEMPLATE)
        mounts = []
        for line in (output or '').splitlines():
            if not line.strip():
                continue
            source, _, destination = line.partition('\t')
            mounts.append(Volume(source.strip(), destination.strip()))
        return mounts

    def get_volumes(self, launch_env: Optional[Dict[str, str]], container_id: str) -> List[str]:
        """Container-side paths of the container's mounts; empty when it has none"""
        return [mount.destination for mount in self.get_mounts(launch_env, container_id)]

    def get_container_record(self, launch_env: Optional[Dict[str, str]], container_id: str) -> ContainerRecord:
        host = self.inspect_required_field(launch_env, container_id, '.Config.Hostname')
        container_name = self.inspect_required_field(launch_env, container_id, '.Name')
        image_id = self.inspect_required_field(launch_env, container_id, '.Image')
        created = self.get_created_date(launch_env, container_id)
        return build_container_record(container_id, image_id, container_name, host, created)

    def list_processes(self, launch_env: Optional[Dict[str, str]], container_id: str) -> List[str]:
        """Command names of the processes running in a container"""
        out = self._execute(launch_env, ['top', container_id, '-eo', 'pid,comm'])
        processes = []
        for line in out.splitlines()[1:]:
            parts = line.split(None, 1)
            if len(parts) == 2:
                processes.append(parts[1].strip())
        return processes

    def get_container_ids_by_label(self, launch_env: Optional[Dict[str, str]], label: str) -> List[str]:
        """Full ids of all containers, running or not, carrying ``label`` (``key`` or ``key=value``)"""
        out = self._execute(launch_env, ['ps', '-a', '-q', '--no-trunc', '--filter', f"label={label}"])
        return [line.strip() for line in out.splitlines() if line.strip()]

    def get_children(self, launch_env: Optional[Dict[str, str]], caller_id: str) -> List[str]:
        """Containers started by ``run(..., caller_id=caller_id)``"""
        return self.get_container_ids_by_label(launch_env, f"{self.config.parent_label}={caller_id}")

    def who_am_i(self) -> Optional[str]:
        """Id of the container this process runs in, None outside containers"""
        return who_am_i(self.config.cgroup_path, self.config.mountinfo_path)

    def current_user(self) -> str:
        """``uid:gid`` of the user running the build, for ``run(user=...)``; empty where ``id`` is unavailable"""
        try:
            uid = self.executor.execute('id', ['-u'])
            gid = self.executor.execute('id', ['-g'])
        except (CommandFailed, OSError) as e:
            logger.debug("Cannot determine the current user: %s", e)
            return ''
        return f"{uid.strip()}:{gid.strip()}"
