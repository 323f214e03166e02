import logging
import os
import posixpath
import re
import subprocess
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from Remote.errors import (
    RemoteCommandError,
    RemoteSetupFailedError,
    SshToolsUnavailableError,
    TargetExistsError,
)
from Remote.remote_executor import RemoteExecutor
from Remote.tool_base import RemoteTool
from Remote.utilities.remote_commands import (
    TARGET_EXISTS_EXIT_CODE,
    Cleanup,
    EnsureStagingDirectory,
    EnsureTargetDirectory,
    ExtractArchive,
    MarkScriptsExecutable,
    RemoteScript,
)
from Remote.utilities.ssh_tools import PUTTY, SshToolPair, discover_tool_pair

logger = logging.getLogger(__name__)

ENDPOINT_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+$")
STAGING_ROOT = "/tmp"


@dataclass(frozen=True)
class RemoteTarget:
    ssh_endpoint: str
    target_dir: str


class RemoteTomcatInstallTool(RemoteTool):
    """Deploy a verified Tomcat archive into a directory on a remote host."""

    config_path = ("install", "tomcat")

    def __init__(
        self,
        tools: Optional[SshToolPair] = None,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        make_scripts_executable: bool = True,
    ) -> None:
        super().__init__(
            name="remote_tomcat_install",
            description="Copy a Tomcat archive to a remote host and extract it into the target directory",
            parameters={
                "ssh_endpoint": {"type": "str", "description": "Remote login as user@host"},
                "target_dir": {"type": "str", "description": "Absolute Tomcat directory on the remote host"},
                "artifact": {"type": "str", "description": "Local path of the verified archive"},
                "force": {"type": "bool", "description": "Replace an existing target directory"},
                "force_alternate_tool": {"type": "bool", "description": "Use plink/pscp instead of ssh/scp"},
            },
        )
        self.tools = tools
        self.runner = runner
        self.make_scripts_executable = make_scripts_executable

    def install(
        self,
        ssh_endpoint: str,
        target_dir: str,
        artifact: "str | os.PathLike",
        force: bool = False,
        force_alternate_tool: bool = False,
    ) -> None:
        """
        Install ``artifact`` into ``target_dir`` on ``ssh_endpoint``.

        Raises:
            TargetExistsError: target exists and ``force`` is not set
            RemoteSetupFailedError: staging/target preparation failed
            RemoteCommandError: copy or extraction failed
        """
        if not ENDPOINT_PATTERN.match(ssh_endpoint):
            logger.warning("SSH endpoint %r does not look like user@host", ssh_endpoint)

        local_path = os.fspath(artifact)
        executor = RemoteExecutor(ssh_endpoint, self._select_tools(force_alternate_tool), self.runner)
        staging_dir = posixpath.join(STAGING_ROOT, uuid.uuid4().hex)

        # the setup script creates the staging directory before checking the
        # target, so cleanup is owed even when setup is refused
        try:
            self._prepare(executor, staging_dir, target_dir, force)
            self._deploy(executor, local_path, staging_dir, target_dir)
        finally:
            self._cleanup(executor, staging_dir)

        logger.info("Tomcat extracted to %s:%s", ssh_endpoint, target_dir)

    def run(
        self,
        ssh_endpoint: str,
        target_dir: str,
        artifact: "str | os.PathLike",
        force: bool = False,
        force_alternate_tool: bool = False,
    ) -> Dict[str, Any]:
        command = f"Install {os.fspath(artifact)} -> {ssh_endpoint}:{target_dir}"
        logs: List[str] = [f"Installing into {target_dir} on {ssh_endpoint} (force={force})"]
        try:
            self.install(ssh_endpoint, target_dir, artifact, force, force_alternate_tool)
        except TargetExistsError as exc:
            logs.append(str(exc))
            return self._failure(command, "Target directory already exists", logs)
        except (RemoteSetupFailedError, RemoteCommandError, SshToolsUnavailableError, OSError, ValueError) as exc:
            logger.error("Install on %s failed: %s", ssh_endpoint, exc)
            logs.append(f"Exception: {exc}")
            return self._failure(command, str(exc), logs)

        return self._success(
            command,
            f"Tomcat extracted to {target_dir}",
            logs,
            tomcat_home=target_dir,
        )

    # ------------------------------------------------------------------
    # Install phases
    # ------------------------------------------------------------------
    def _prepare(self, executor: RemoteExecutor, staging_dir: str, target_dir: str, force: bool) -> None:
        script = RemoteScript([
            EnsureStagingDirectory(staging_dir),
            EnsureTargetDirectory(target_dir, force=force),
        ])
        result = executor.run(script.render())
        if result.exit_status == TARGET_EXISTS_EXIT_CODE:
            raise TargetExistsError(
                f"Target directory {target_dir} already exists on {executor.endpoint}; "
                "set force to replace it"
            )
        if result.exit_status != 0:
            raise RemoteSetupFailedError(
                f"Preparing {target_dir} on {executor.endpoint} failed "
                f"(exit {result.exit_status}): {result.stderr.strip()}"
            )

    def _deploy(self, executor: RemoteExecutor, local_path: str, staging_dir: str, target_dir: str) -> None:
        result = executor.copy(local_path, staging_dir)
        if result.exit_status != 0:
            raise RemoteCommandError(
                f"Copying {local_path} to {executor.endpoint}:{staging_dir} failed: {result.stderr.strip()}"
            )

        remote_archive = posixpath.join(staging_dir, os.path.basename(local_path))
        steps = [ExtractArchive(remote_archive, target_dir, strip_components=1)]
        if self.make_scripts_executable:
            steps.append(MarkScriptsExecutable(target_dir))
        result = executor.run(RemoteScript(steps).render())
        if result.exit_status != 0:
            raise RemoteCommandError(
                f"Extracting {remote_archive} into {target_dir} on {executor.endpoint} failed: "
                f"{result.stderr.strip()}"
            )

    def _cleanup(self, executor: RemoteExecutor, staging_dir: str) -> None:
        try:
            result = executor.run(Cleanup(staging_dir).render())
        except OSError as exc:
            logger.warning("Could not launch cleanup of %s on %s: %s", staging_dir, executor.endpoint, exc)
            return
        if result.exit_status != 0:
            logger.warning(
                "Removing staging directory %s on %s failed: %s",
                staging_dir,
                executor.endpoint,
                result.stderr.strip(),
            )

    def _select_tools(self, force_alternate_tool: bool) -> SshToolPair:
        if force_alternate_tool:
            if self.tools is not None and self.tools.name == PUTTY.name:
                return self.tools
            return discover_tool_pair(force_alternate=True)
        if self.tools is None:
            self.tools = discover_tool_pair()
        return self.tools
