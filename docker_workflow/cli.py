#!/usr/bin/env python3
"""docker-workflow command line: the client's operations one at a time."""

import json
import logging
import sys

from .client import DockerClient
from .errors import DockerClientError


class DockerWorkflowCli:
    """Maps command names to DockerClient calls; each command returns an exit code"""

    def __init__(self, client=None):
        self._client = client
        # endpoint variables are added by the client from its configuration
        self.launch_env = {}

    @property
    def client(self):
        # built on first use so that help works whatever the configuration says
        if self._client is None:
            self._client = DockerClient()
        return self._client

    def version(self, args):
        """Print the engine version: docker-workflow version"""
        version = self.client.version(self.launch_env)
        if version is None:
            print("Could not determine the docker version", file=sys.stderr)
            return 1
        print(version)
        return 0

    def whoami(self, args):
        """Print the id of the container we run in: docker-workflow whoami"""
        container_id = self.client.who_am_i()
        if container_id is None:
            print("Not running inside a container", file=sys.stderr)
            return 1
        print(container_id)
        return 0

    def run(self, args):
        """Start a container: docker-workflow run <image> [command...]"""
        if len(args) < 1:
            print("Usage: docker-workflow run <image> [command...]", file=sys.stderr)
            return 1
        container_id = self.client.run(self.launch_env, args[0], *args[1:], caller_id=self.client.who_am_i())
        print(container_id)
        return 0

    def inspect(self, args):
        """Print one inspect field: docker-workflow inspect <id> <field>"""
        if len(args) < 2:
            print("Usage: docker-workflow inspect <id> <field>", file=sys.stderr)
            return 1
        value = self.client.inspect(self.launch_env, args[0], args[1])
        if value is None:
            print(f"No such object: {args[0]}", file=sys.stderr)
            return 1
        print(value)
        return 0

    def stop(self, args):
        """Stop and remove a container: docker-workflow stop <id>"""
        if len(args) < 1:
            print("Usage: docker-workflow stop <id>", file=sys.stderr)
            return 1
        self.client.stop(self.launch_env, args[0])
        return 0

    def volumes(self, args):
        """List a container's mount paths: docker-workflow volumes <id>"""
        if len(args) < 1:
            print("Usage: docker-workflow volumes <id>", file=sys.stderr)
            return 1
        for path in self.client.get_volumes(self.launch_env, args[0]):
            print(path)
        return 0

    def record(self, args):
        """Print a container's fingerprint record as JSON: docker-workflow record <id>"""
        if len(args) < 1:
            print("Usage: docker-workflow record <id>", file=sys.stderr)
            return 1
        record = self.client.get_container_record(self.launch_env, args[0])
        print(json.dumps(record.to_dict(), indent=2))
        return 0

    def help(self, args):
        """Display help message"""
        print("""docker-workflow - run build containers through the docker CLI

Usage: docker-workflow [-v|--verbose] <command> [args...]

Commands:
  version                 Print the docker engine version
  whoami                  Print the id of the container we are running in
  run <image> [cmd...]    Start a detached container and print its id
  inspect <id> <field>    Print one field of docker inspect
  stop <id>               Stop and remove a container
  volumes <id>            List the container's mount paths
  record <id>             Print the container's fingerprint record as JSON
  help                    Display this message""")
        return 0


def main(argv=None, client=None):
    """Main entry point"""
    argv = list(sys.argv[1:] if argv is None else argv)

    verbose = bool(argv) and argv[0] in ('-v', '--verbose')
    if verbose:
        argv = argv[1:]
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING,
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    cli = DockerWorkflowCli(client)
    if not argv:
        return cli.help([])

    command, args = argv[0], argv[1:]
    command_map = {
        'version': cli.version,
        'whoami': cli.whoami,
        'run': cli.run,
        'inspect': cli.inspect,
        'stop': cli.stop,
        'volumes': cli.volumes,
        'record': cli.record,
        'help': cli.help,
    }

    if command not in command_map:
        print(f"Unknown command: {command}", file=sys.stderr)
        cli.help([])
        return 1
    try:
        return command_map[command](args)
    except KeyboardInterrupt:
        print("\nOperation cancelled by user", file=sys.stderr)
        return 130
    except DockerClientError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
