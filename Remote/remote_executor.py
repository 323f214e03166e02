import logging
import subprocess
from typing import Callable, List, NamedTuple

from Remote.utilities.ssh_tools import SshToolPair

logger = logging.getLogger(__name__)


class CommandResult(NamedTuple):
    exit_status: int
    stdout: str
    stderr: str


class RemoteExecutor:
    """Run commands and copy files on one ``user@host`` endpoint.

    SSH itself is delegated to the external tool pair; keys, agents and
    known_hosts come from that tooling's own configuration.
    """

    def __init__(
        self,
        endpoint: str,
        tools: SshToolPair,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ):
        # ssh, scp, plink and pscp would all parse a leading dash as an option
        if not endpoint or endpoint.startswith("-"):
            raise ValueError(f"Invalid SSH endpoint {endpoint!r}: expected user@host")
        self.endpoint = endpoint
        self.tools = tools
        self.runner = runner

    def run(self, command: str) -> CommandResult:
        argv = [self.tools.shell, *self.tools.shell_args, self.endpoint, command]
        return self._invoke(argv)

    def copy(self, local_path: str, remote_dir: str) -> CommandResult:
        destination = f"{self.endpoint}:{remote_dir.rstrip('/')}/"
        argv = [self.tools.copy, *self.tools.copy_args, local_path, destination]
        return self._invoke(argv)

    def _invoke(self, argv: List[str]) -> CommandResult:
        logger.debug("Executing: %s", argv)
        completed = self.runner(argv, capture_output=True, text=True, check=False)

        stdout_data = completed.stdout or ""
        stderr_data = completed.stderr or ""
        exit_status = completed.returncode

        if exit_status != 0 and not stderr_data:
            stderr_data = f"Command exited with status {exit_status}"

        return CommandResult(exit_status, stdout_data, stderr_data)
