"""Tests for the resolve-then-install workflow and its command line."""

import copy
import hashlib
import json
import logging
import subprocess

import pytest

from Remote import run_remote_workflow
from Remote.errors import SshToolsUnavailableError
from Remote.run_remote_workflow import RemoteWorkflowRunner, select_servers
from Remote.utilities.config_loader import DEFAULT_SETTINGS
from Remote.utilities.ssh_tools import OPENSSH

URL = "http://example/apache-tomcat-9.0.70.tar.gz"
BODY = b"tomcat"


class ExitCodeRunner:
    def __init__(self, setup_exit=0):
        self.setup_exit = setup_exit
        self.calls = []

    def __call__(self, argv, capture_output=True, text=True, check=False):
        self.calls.append(list(argv))
        code = self.setup_exit if argv[-1].startswith("mkdir -p /tmp/") else 0
        return subprocess.CompletedProcess(argv, code, "", "")


@pytest.fixture
def settings(tmp_path, checksums_dir):
    digest = hashlib.sha256(BODY).hexdigest()
    (checksums_dir / "apache-tomcat-9.0.70.tar.gz.sha256").write_text(digest)
    cfg = copy.deepcopy(DEFAULT_SETTINGS)
    cfg["artifacts"]["checksums_dir"] = str(checksums_dir)
    cfg["artifacts"]["download_dir"] = str(tmp_path / "downloads")
    return cfg


SERVERS = [
    {"name": "web1", "host": "10.0.0.1", "username": "tomcat"},
    {"name": "web2", "host": "10.0.0.2", "username": "tomcat", "target_dir": "/srv/tomcat", "force": True},
]


def test_provision_installs_on_every_server(settings, fake_http):
    fake_http({URL: BODY})
    runner = ExitCodeRunner()
    workflow = RemoteWorkflowRunner(settings, versions={"9.0.70": [URL]}, tools=OPENSSH, runner=runner)

    summary = workflow.provision("9.0.70", SERVERS)

    assert summary["resolve_tomcat"]["status"] == "Success"
    assert [r["install_tomcat"]["status"] for r in summary["servers"]] == ["Success", "Success"]
    setups = [call[-1] for call in runner.calls if call[-1].startswith("mkdir -p /tmp/")]
    assert "tomcat@10.0.0.1" in runner.calls[0]
    assert "exit 10" in setups[0] and "/opt/tomcat" in setups[0]
    assert "rm -rf /srv/tomcat" in setups[1]


def test_failed_resolution_skips_install(settings, fake_http):
    fake_http({})
    runner = ExitCodeRunner()
    workflow = RemoteWorkflowRunner(settings, versions={"9.0.70": [URL]}, tools=OPENSSH, runner=runner)

    summary = workflow.provision("9.0.70", SERVERS)

    assert summary["resolve_tomcat"]["status"] == "Failed"
    assert summary["servers"] == []
    assert runner.calls == []


def test_existing_target_reported_per_server(settings, fake_http):
    fake_http({URL: BODY})
    workflow = RemoteWorkflowRunner(
        settings, versions={"9.0.70": [URL]}, tools=OPENSSH, runner=ExitCodeRunner(setup_exit=10)
    )

    summary = workflow.provision("9.0.70", SERVERS[:1])

    result = summary["servers"][0]["install_tomcat"]
    assert result["status"] == "Failed"
    assert result["details"] == "Target directory already exists"


def test_select_servers_by_name_or_host():
    assert select_servers(SERVERS, [""]) == SERVERS
    assert select_servers(SERVERS, ["web2"]) == SERVERS[1:]
    assert select_servers(SERVERS, [" 10.0.0.1 "]) == SERVERS[:1]


@pytest.fixture
def isolated_loggers():
    yield
    for name in ("Remote", "Tools"):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        logger.setLevel(logging.NOTSET)


def test_main_end_to_end(tmp_path, settings, fake_http, monkeypatch, capsys, isolated_loggers):
    fake_http({URL: BODY})
    versions_file = tmp_path / "versions.json"
    versions_file.write_text(json.dumps({"9.0.70": [URL]}))
    settings["artifacts"]["versions_file"] = str(versions_file)
    settings["logging"]["path"] = str(tmp_path / "logs" / "provision.log")
    settings_file = tmp_path / "settings.yaml"
    settings_file.write_text(json.dumps(settings))
    servers_file = tmp_path / "servers.ini"
    servers_file.write_text("[web1]\nhost = 10.0.0.1\nusername = tomcat\n")

    discoveries = []
    monkeypatch.setattr(
        run_remote_workflow,
        "discover_tool_pair",
        lambda force_alternate=False: discoveries.append(force_alternate) or OPENSSH,
    )
    real_runner = run_remote_workflow.RemoteWorkflowRunner
    built = []
    monkeypatch.setattr(
        run_remote_workflow,
        "RemoteWorkflowRunner",
        lambda cfg, tools=None: built.append(tools) or real_runner(cfg, tools=tools, runner=ExitCodeRunner()),
    )

    code = run_remote_workflow.main([
        "--settings", str(settings_file),
        "--servers", str(servers_file),
        "--version", "9.0.70",
    ])

    out = capsys.readouterr().out
    assert code == 0
    assert "=== Results for web1 ===" in out
    assert " - install_tomcat: Success" in out
    assert (tmp_path / "logs" / "provision.log").exists()
    assert discoveries == [False]
    assert built == [OPENSSH]


def write_cli_files(tmp_path, settings):
    versions_file = tmp_path / "versions.json"
    versions_file.write_text(json.dumps({"9.0.70": [URL]}))
    settings["artifacts"]["versions_file"] = str(versions_file)
    settings["logging"]["path"] = str(tmp_path / "logs" / "provision.log")
    settings_file = tmp_path / "settings.yaml"
    settings_file.write_text(json.dumps(settings))
    servers_file = tmp_path / "servers.ini"
    servers_file.write_text("[web1]\nhost = 10.0.0.1\nusername = tomcat\n")
    return ["--settings", str(settings_file), "--servers", str(servers_file), "--version", "9.0.70"]


def test_main_stops_when_no_ssh_tools(tmp_path, settings, fake_http, monkeypatch, capsys, isolated_loggers):
    http = fake_http({URL: BODY})
    settings["install"]["tomcat"]["alternate_tools"] = "yes"
    argv = write_cli_files(tmp_path, settings)
    requested = []

    def missing_tools(force_alternate=False):
        requested.append(force_alternate)
        raise SshToolsUnavailableError("Neither plink/pscp found on PATH")

    monkeypatch.setattr(run_remote_workflow, "discover_tool_pair", missing_tools)

    code = run_remote_workflow.main(argv)

    assert code == 1
    assert requested == [True]
    assert "plink/pscp" in capsys.readouterr().out
    assert http.requested == []


@pytest.mark.parametrize("value", ["no", "false", "0"])
def test_quoted_false_force_keeps_existing_target(settings, fake_http, value):
    fake_http({URL: BODY})
    settings["install"]["tomcat"]["force"] = value
    runner = ExitCodeRunner()
    workflow = RemoteWorkflowRunner(settings, versions={"9.0.70": [URL]}, tools=OPENSSH, runner=runner)

    workflow.provision("9.0.70", SERVERS[:1])

    setup = next(call[-1] for call in runner.calls if call[-1].startswith("mkdir -p /tmp/"))
    assert "exit 10" in setup
    assert "rm -rf /opt/tomcat" not in setup


def test_unparseable_install_flag_is_rejected(settings):
    settings["install"]["tomcat"]["make_scripts_executable"] = "sometimes"

    with pytest.raises(ValueError, match="make_scripts_executable"):
        RemoteWorkflowRunner(settings, versions={"9.0.70": [URL]}, tools=OPENSSH, runner=ExitCodeRunner())
