"""Tests for tool pair discovery, the executor and remote command rendering."""

import subprocess

import pytest

from Remote.errors import SshToolsUnavailableError
from Remote.remote_executor import RemoteExecutor
from Remote.utilities.remote_commands import (
    Cleanup,
    EnsureStagingDirectory,
    EnsureTargetDirectory,
    ExtractArchive,
    MarkScriptsExecutable,
    RemoteScript,
)
from Remote.utilities.ssh_tools import OPENSSH, discover_tool_pair


def fake_which(available):
    return lambda name: f"/usr/bin/{name}" if name in available else None


def test_openssh_preferred():
    pair = discover_tool_pair(which=fake_which({"ssh", "scp", "plink", "pscp"}))

    assert pair.name == "openssh"
    assert (pair.shell, pair.copy) == ("/usr/bin/ssh", "/usr/bin/scp")


def test_falls_back_when_preferred_pair_incomplete():
    pair = discover_tool_pair(which=fake_which({"ssh", "plink", "pscp"}))

    assert pair.name == "putty"
    assert pair.shell == "/usr/bin/plink"


def test_forced_alternate_ignores_openssh():
    assert discover_tool_pair(force_alternate=True, which=fake_which({"ssh", "scp", "plink", "pscp"})).name == "putty"


def test_no_tools_available():
    with pytest.raises(SshToolsUnavailableError, match="ssh/scp"):
        discover_tool_pair(which=fake_which(set()))
    with pytest.raises(SshToolsUnavailableError, match="plink/pscp"):
        discover_tool_pair(force_alternate=True, which=fake_which({"ssh", "scp"}))


def test_executor_builds_argv_and_fills_stderr():
    calls = []

    def runner(argv, capture_output, text, check):
        calls.append(argv)
        return subprocess.CompletedProcess(argv, 3, "out", "")

    executor = RemoteExecutor("deploy@web1", OPENSSH, runner)
    result = executor.run("uname")
    executor.copy("/tmp/a.tar.gz", "/tmp/stage/")

    assert calls[0] == ["ssh", "-o", "BatchMode=yes", "deploy@web1", "uname"]
    assert calls[1] == ["scp", "-q", "-o", "BatchMode=yes", "/tmp/a.tar.gz", "deploy@web1:/tmp/stage/"]
    assert result.exit_status == 3
    assert result.stdout == "out"
    assert result.stderr == "Command exited with status 3"


def test_setup_script_rendering():
    script = RemoteScript([EnsureStagingDirectory("/tmp/abc"), EnsureTargetDirectory("/opt/tomcat")])

    assert script.render() == (
        "mkdir -p /tmp/abc && if [ -e /opt/tomcat ]; then exit 10; fi && mkdir -p /opt/tomcat"
    )


def test_hostile_paths_are_quoted():
    rendered = Cleanup("/tmp/x; rm -rf /").render()

    assert rendered == "rm -rf '/tmp/x; rm -rf /'"


def test_extract_and_permissions_rendering():
    assert ExtractArchive("/tmp/s/apache-tomcat-9.0.70.zip", "/opt/tomcat").render() == (
        "tar -xf /tmp/s/apache-tomcat-9.0.70.zip -C /opt/tomcat --strip-components=1"
    )
    assert MarkScriptsExecutable("/opt/tomcat/").render() == (
        "if [ -d /opt/tomcat/bin ]; then find /opt/tomcat/bin -name '*.sh' -exec chmod +x {} +; fi"
    )
