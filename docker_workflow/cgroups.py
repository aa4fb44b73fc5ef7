"""Find the id of the container the current process runs in.

Every process lists its control groups in ``/proc/self/cgroup``, one
``hierarchy-id:controllers:path`` line per hierarchy. Inside a container the
path ends with the container id, in one of several shapes depending on the
engine version, the cgroup driver and the orchestrator::

    2:cpu:/docker/<id>
    4:cpuset:/system.slice/docker-<id>.scope
    10:cpu,cpuacct:/docker/<parent-id>/docker/<id>
    11:freezer:/kubepods/besteffort/pod<uuid>/<id>

Nested paths name every enclosing container; the last id is ours. On a pure
cgroup v2 host the file only says ``0::/``, so ``/proc/self/mountinfo`` is
checked next for the engine's per-container hostname/hosts bind mounts.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

# The greedy path prefix backtracks to the final segment, so the last group is
# always the innermost id
CGROUP_MATCHER_PATTERN = (
    r'^\d+:[\w,=.-]*:(?:/[^/\n]*)*/'
    r'(?:(?:docker|crio|cri-containerd|libpod)-)?([0-9a-f]{64})(?:\.scope)?$'
)
CGROUP_MATCHER = re.compile(CGROUP_MATCHER_PATTERN)

MOUNTINFO_MATCHER_PATTERN = (
    r'/(?:overlay-)?containers/([0-9a-f]{64})(?:/userdata)?/(?:hostname|hosts|resolv\.conf)\s'
)
MOUNTINFO_MATCHER = re.compile(MOUNTINFO_MATCHER_PATTERN)


@dataclass
class CgroupLine:
    hierarchy_id: int
    controllers: str
    path: str


def parse_cgroup_line(line: str) -> Optional[CgroupLine]:
    """Split a ``/proc/<pid>/cgroup`` line, or return None if it isn't one"""
    parts = line.strip().split(':', 2)
    if len(parts) != 3 or not parts[0].isdigit():
        return None
    return CgroupLine(int(parts[0]), parts[1], parts[2])


def find_container_id(lines: Iterable[str]) -> Optional[str]:
    """Return the innermost container id named by the first matching cgroup line"""
    for raw in lines:
        line = raw.strip()
        cgroup = parse_cgroup_line(line)
        if cgroup is None:
            continue
        match = CGROUP_MATCHER.match(line)
        if match:
            logger.debug("Container id %s from hierarchy %s (%s)",
                         match.group(match.lastindex), cgroup.hierarchy_id, cgroup.controllers)
            return match.group(match.lastindex)
    return None


def find_container_id_in_mountinfo(lines: Iterable[str]) -> Optional[str]:
    """Return the container id behind the engine's hostname/hosts bind mounts"""
    for line in lines:
        match = MOUNTINFO_MATCHER.search(line + '\n')
        if match:
            logger.debug("Container id %s from mountinfo", match.group(1))
            return match.group(1)
    return None


# Tried in order, first hit wins
IDENTITY_RULES = (
    ('cgroup', find_container_id),
    ('mountinfo', find_container_id_in_mountinfo),
)


def _read_lines(path):
    try:
        with open(path, 'r', encoding='utf-8', errors='surrogateescape') as f:
            return f.read().splitlines()
    except OSError as e:
        logger.debug("Cannot read %s: %s", path, e)
        return []


def who_am_i(cgroup_path: str = '/proc/self/cgroup',
             mountinfo_path: str = '/proc/self/mountinfo') -> Optional[str]:
    """Container id of the current process, or None when not running in a container"""
    sources = {'cgroup': cgroup_path, 'mountinfo': mountinfo_path}
    for name, rule in IDENTITY_RULES:
        container_id = rule(_read_lines(sources[name]))
        if container_id:
            return container_id
    return None
