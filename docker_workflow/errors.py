"""Exceptions raised by the docker-workflow client."""

from typing import List, Optional


class DockerClientError(Exception):
    """Base exception for docker-workflow operations"""
    pass


class CommandFailed(DockerClientError):
    """An engine command exited with a non-zero status"""

    def __init__(self, command: List[str], exit_code: Optional[int], stderr: str = '', message: Optional[str] = None):
        self.command = list(command)
        self.exit_code = exit_code
        self.stderr = stderr or ''
        if message is None:
            message = f"Command '{' '.join(self.command)}' failed with exit code {exit_code}"
            if self.stderr.strip():
                message += f": {self.stderr.strip()}"
        super().__init__(message)


class CommandTimedOut(CommandFailed):
    """The engine command did not finish in time and was killed"""

    def __init__(self, command: List[str], timeout: float, stderr: str = ''):
        self.timeout = timeout
        super().__init__(command, None, stderr,
                         message=f"Command '{' '.join(command)}' timed out after {timeout} seconds")


class EngineInvocationFailed(CommandFailed):
    """The engine rejected a run/stop/rm request"""
    pass


class MalformedOutput(DockerClientError):
    """The engine printed something that cannot be a valid answer"""
    pass


class RecordIncomplete(DockerClientError):
    """A container record field could not be obtained"""
    pass


class ConfigurationError(DockerClientError):
    """A DOCKER_WORKFLOW_* setting has an unusable value"""
    pass
