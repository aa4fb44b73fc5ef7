"""Running engine commands as child processes."""

import logging
import os
import subprocess
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .errors import CommandFailed, CommandTimedOut

logger = logging.getLogger(__name__)

MASK = '******'


@dataclass
class LaunchResult:
    """Exit status and captured output of one child process"""
    status: int
    out: str = ''
    err: str = ''


class Launcher:
    """Spawns a process and waits for it.

    The build automation host supplies its own implementation when commands
    have to run somewhere other than the local machine.
    """

    def launch(self, command: List[str], env: Optional[Dict[str, str]] = None,
               cwd: Optional[str] = None, timeout: Optional[float] = None) -> LaunchResult:
        raise NotImplementedError


class LocalLauncher(Launcher):
    """Launch processes on this machine with subprocess"""

    def launch(self, command, env=None, cwd=None, timeout=None):
        child_env = dict(os.environ)
        child_env.update(env or {})

        process = subprocess.Popen(
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            stdin=subprocess.DEVNULL,
            env=child_env,
            cwd=cwd,
            text=True,
            encoding='utf-8',
            errors='replace',
        )
        try:
            # communicate() reads both pipes while waiting, so big outputs can't block the child
            out, err = process.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            process.kill()
            out, err = process.communicate()
            raise CommandTimedOut(command, timeout, err)
        except BaseException:
            process.kill()
            process.wait()
            raise
        return LaunchResult(process.returncode, out, err)


def mask_command(command: Sequence[str], masked: Sequence[int] = ()) -> List[str]:
    """Copy of ``command`` with the values at ``masked`` positions hidden"""
    return [MASK if i in masked else arg for i, arg in enumerate(command)]


class CommandExecutor:
    """Runs engine commands through a Launcher and turns failures into exceptions"""

    def __init__(self, launcher: Optional[Launcher] = None, timeout: Optional[float] = None):
        self.launcher = launcher or LocalLauncher()
        self.timeout = timeout

    def launch(self, command: str, args: Sequence[str], launch_env: Optional[Dict[str, str]] = None,
               cwd: Optional[str] = None, masked: Sequence[int] = ()) -> LaunchResult:
        """Run ``command args...`` and return its LaunchResult whatever the exit status.

        ``masked`` holds indexes into ``args`` whose values must not be logged.
        """
        full = [command] + list(args)
        shown = mask_command(full, [i + 1 for i in masked])
        logger.info("$ %s", ' '.join(shown))
        try:
            result = self.launcher.launch(full, env=dict(launch_env or {}), cwd=cwd, timeout=self.timeout)
        except CommandTimedOut as e:
            raise CommandTimedOut(shown, e.timeout, e.stderr) from None
        if result.status != 0:
            logger.debug("Exit code %s from %s: %s", result.status, command, result.err.strip())
        return result

    def execute(self, command: str, args: Sequence[str], launch_env: Optional[Dict[str, str]] = None,
                cwd: Optional[str] = None, masked: Sequence[int] = ()) -> str:
        """Run the command and return its stdout without trailing whitespace"""
        result = self.launch(command, args, launch_env, cwd, masked)
        if result.status != 0:
            full = [command] + list(args)
            raise CommandFailed(mask_command(full, [i + 1 for i in masked]), result.status, result.err)
        return result.out.rstrip()
