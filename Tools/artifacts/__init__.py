"""Local artifact tools: version resolution, download and checksum verification."""

from .checksum_verify import ChecksumRecord, ChecksumVerifier
from .tomcat_download import Artifact, TomcatDownloadTool

__all__ = [
	"Artifact",
	"ChecksumRecord",
	"ChecksumVerifier",
	"TomcatDownloadTool",
]
