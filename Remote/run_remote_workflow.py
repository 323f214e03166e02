import argparse
import logging
import subprocess
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from Remote.errors import SshToolsUnavailableError
from Remote.install.remote_tomcat_install import RemoteTarget, RemoteTomcatInstallTool
from Remote.utilities.config_loader import (
    DEFAULT_SETTINGS,
    load_server_ini,
    load_settings,
    load_version_table,
    parse_bool,
)
from Remote.utilities.logging_setup import configure_logging
from Remote.utilities.ssh_tools import SshToolPair, discover_tool_pair
from Tools.artifacts.checksum_verify import ChecksumVerifier
from Tools.artifacts.tomcat_download import Artifact, TomcatDownloadTool

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = "Remote/config/settings.yaml"
DEFAULT_SERVERS_PATH = "Remote/config/servers.ini"


class RemoteWorkflowRunner:
    """Resolve one Tomcat version and install it on each server in turn."""

    def __init__(
        self,
        settings: Dict[str, Any],
        versions: Optional[Dict[str, List[str]]] = None,
        tools: Optional[SshToolPair] = None,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ):
        self.settings = settings
        artifact_cfg = settings.get("artifacts", {})
        if versions is None:
            versions = load_version_table(artifact_cfg.get("versions_file", DEFAULT_SETTINGS["artifacts"]["versions_file"]))

        self.checksum_tool = ChecksumVerifier(artifact_cfg.get("checksums_dir", "checksums"))
        self.download_tool = TomcatDownloadTool(
            versions,
            verifier=self.checksum_tool,
            download_dir=artifact_cfg.get("download_dir", "downloads"),
            timeout=float(artifact_cfg.get("timeout", 60)),
            fetch_checksum_algorithm=artifact_cfg.get("fetch_checksum_algorithm") or None,
        )
        self.tomcat_install_tool = RemoteTomcatInstallTool(tools=tools, runner=runner)
        self.install_cfg = self.tomcat_install_tool.get_config(settings)
        self.tomcat_install_tool.make_scripts_executable = parse_bool(
            self.install_cfg.get("make_scripts_executable", True), "install.tomcat.make_scripts_executable"
        )
        self.default_force = parse_bool(self.install_cfg.get("force", False), "install.tomcat.force")
        self.default_alternate_tools = parse_bool(
            self.install_cfg.get("alternate_tools", False), "install.tomcat.alternate_tools"
        )

    def resolve_artifact(self, version: str) -> Dict[str, Any]:
        return self.download_tool.run(version)

    def run_for_server(
        self,
        server: Dict[str, Any],
        artifact: Artifact,
        force: Optional[bool] = None,
        alternate_tools: Optional[bool] = None,
    ) -> Dict[str, Any]:
        results: Dict[str, Any] = {"server": server.get("name", server.get("host"))}

        target = RemoteTarget(
            ssh_endpoint=f"{server['username']}@{server['host']}",
            target_dir=server.get("target_dir") or self.install_cfg.get("target_dir"),
        )
        if not target.target_dir:
            results["install_tomcat"] = {
                "status": "Failed",
                "details": "No target_dir configured for server or install.tomcat",
            }
            return results

        if force is None:
            force = server.get("force", self.default_force)
        if alternate_tools is None:
            alternate_tools = self.default_alternate_tools

        results["install_tomcat"] = self.tomcat_install_tool.run(
            ssh_endpoint=target.ssh_endpoint,
            target_dir=target.target_dir,
            artifact=artifact,
            force=parse_bool(force, f"force for {results['server']}"),
            force_alternate_tool=parse_bool(alternate_tools, "install.tomcat.alternate_tools"),
        )
        return results

    def provision(
        self,
        version: str,
        servers: Iterable[Dict[str, Any]],
        force: Optional[bool] = None,
        alternate_tools: Optional[bool] = None,
    ) -> Dict[str, Any]:
        summary: Dict[str, Any] = {"resolve_tomcat": self.resolve_artifact(version), "servers": []}
        if summary["resolve_tomcat"].get("status") != "Success":
            return summary

        artifact = summary["resolve_tomcat"]["artifact"]
        for server in servers:
            logger.info("Installing %s on %s", artifact.name, server.get("name", server.get("host")))
            summary["servers"].append(
                self.run_for_server(server, artifact, force=force, alternate_tools=alternate_tools)
            )
        return summary


def select_servers(servers: List[Dict[str, Any]], targets: Sequence[str]) -> List[Dict[str, Any]]:
    wanted = {target.strip().lower() for target in targets if target.strip()}
    if not wanted:
        return servers
    return [
        server for server in servers
        if str(server.get("name", "")).lower() in wanted or str(server.get("host", "")).lower() in wanted
    ]


def print_results(summary: Dict[str, Any]) -> None:
    resolve_result = summary["resolve_tomcat"]
    print(f"=== Resolve: {resolve_result.get('status')} ===")
    print(f"   details: {resolve_result.get('details')}")
    print()

    for result in summary["servers"]:
        print(f"=== Results for {result['server']} ===")
        for key, value in result.items():
            if key == "server":
                continue
            if isinstance(value, dict):
                status = value.get("status", "n/a")
                details = value.get("details")
                print(f" - {key}: {status}")
                if details:
                    print(f"   details: {details}")
            else:
                print(f" - {key}: {value}")
        print()


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Download, verify and install Apache Tomcat on remote servers")
    parser.add_argument(
        "--settings",
        default=DEFAULT_SETTINGS_PATH,
        help="Path to YAML settings file",
    )
    parser.add_argument(
        "--servers",
        default=DEFAULT_SERVERS_PATH,
        help="Path to server inventory INI file",
    )
    parser.add_argument("--version", required=True, help="Tomcat version listed in the version table")
    parser.add_argument(
        "--targets",
        default="",
        help="Comma-separated subset of server names/hosts (default: all)",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        default=None,
        help="Replace existing target directories",
    )
    parser.add_argument(
        "--alternate-tools",
        action="store_true",
        default=None,
        help="Use plink/pscp instead of ssh/scp",
    )
    args = parser.parse_args(argv)

    settings = load_settings(args.settings)
    log_cfg = settings.get("logging", {})
    configure_logging(log_cfg.get("path", "logs/tomcat_provision.log"), log_cfg.get("level", "INFO"))

    servers = select_servers(load_server_ini(args.servers), args.targets.split(","))
    if not servers:
        print("No matching servers in the inventory.")
        return 1

    alternate_tools = args.alternate_tools
    if alternate_tools is None:
        alternate_tools = parse_bool(
            settings.get("install", {}).get("tomcat", {}).get("alternate_tools", False),
            "install.tomcat.alternate_tools",
        )
    try:
        tools = discover_tool_pair(force_alternate=alternate_tools)
    except SshToolsUnavailableError as exc:
        logger.error("%s", exc)
        print(exc)
        return 1

    runner = RemoteWorkflowRunner(settings, tools=tools)
    summary = runner.provision(args.version, servers, force=args.force, alternate_tools=args.alternate_tools)
    print_results(summary)

    failed = summary["resolve_tomcat"].get("status") != "Success" or any(
        result.get("install_tomcat", {}).get("status") != "Success" for result in summary["servers"]
    )
    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
