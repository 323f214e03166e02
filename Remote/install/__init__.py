"""Installation tools for remote Tomcat provisioning."""

from .remote_tomcat_install import RemoteTarget, RemoteTomcatInstallTool

__all__ = [
	"RemoteTarget",
	"RemoteTomcatInstallTool",
]
