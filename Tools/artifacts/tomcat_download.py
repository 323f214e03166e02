"""Resolve a Tomcat version to a verified local archive."""

from __future__ import annotations

import logging
import os
import posixpath
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import unquote, urlparse

import requests

from Remote.errors import (
    ChecksumMismatchError,
    ResolutionFailedError,
    UnknownVersionError,
)
from Tools.artifacts.checksum_verify import ChecksumVerifier
from Tools.tool_base import Tool

logger = logging.getLogger(__name__)

DEFAULT_DOWNLOAD_DIR = "downloads"
DEFAULT_TIMEOUT = 60
CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class Artifact:
    version: str
    url: str
    path: Path

    @property
    def name(self) -> str:
        return self.path.name

    def __fspath__(self) -> str:
        return str(self.path)


def artifact_filename(url: str) -> str:
    """Final path segment of ``url``, e.g. ``apache-tomcat-9.0.70.tar.gz``."""
    name = posixpath.basename(unquote(urlparse(url).path))
    if not name:
        raise ValueError(f"Cannot derive an artifact file name from URL: {url}")
    return name


class TomcatDownloadTool(Tool):
    """Download the first reachable candidate for a version and verify it."""

    def __init__(
        self,
        versions: Mapping[str, List[str]],
        verifier: Optional[ChecksumVerifier] = None,
        download_dir: str | os.PathLike = DEFAULT_DOWNLOAD_DIR,
        timeout: float = DEFAULT_TIMEOUT,
        fetch_checksum_algorithm: Optional[str] = None,
    ) -> None:
        super().__init__(
            name="download_tomcat",
            description="Download and checksum-verify an Apache Tomcat archive",
            parameters={
                "version": {"type": "str", "description": "Tomcat version listed in the version table"},
            },
        )
        self.versions = versions
        self.verifier = verifier or ChecksumVerifier()
        self.download_dir = Path(download_dir)
        self.timeout = timeout
        self.fetch_checksum_algorithm = fetch_checksum_algorithm

    def resolve(self, version: str) -> Artifact:
        """
        Download and verify the archive for ``version``.

        Candidates are tried in order; a transport failure moves on to the next
        one. A checksum mismatch stops immediately.

        Raises:
            UnknownVersionError: version is not in the table
            ChecksumMismatchError: the downloaded archive failed verification
            ResolutionFailedError: no candidate could be downloaded
        """
        candidates = self.versions.get(version)
        if not candidates:
            raise UnknownVersionError(f"Tomcat version '{version}' is not in the version table")

        last_error: Optional[Exception] = None
        for url in candidates:
            try:
                path = self.download(url)
            except requests.RequestException as exc:
                logger.warning("Download of %s failed: %s", url, exc)
                last_error = exc
                continue

            if self.fetch_checksum_algorithm:
                self.fetch_reference(url, path.name)

            if not self.verifier.verify(path):
                raise ChecksumMismatchError(f"Checksum verification failed for {path} (downloaded from {url})")

            logger.info("Resolved Tomcat %s to %s", version, path)
            return Artifact(version=version, url=url, path=path)

        raise ResolutionFailedError(
            f"Unable to download Tomcat {version} from any of: {', '.join(candidates)}"
        ) from last_error

    def download(self, url: str) -> Path:
        destination = self.download_dir / artifact_filename(url)
        self.download_dir.mkdir(parents=True, exist_ok=True)

        logger.info("Downloading %s to %s", url, destination)
        with requests.get(url, stream=True, timeout=self.timeout) as response:
            response.raise_for_status()
            with open(destination, "wb") as fh:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        fh.write(chunk)
        return destination

    def fetch_reference(self, url: str, artifact_name: str) -> Optional[Path]:
        """
        Store the checksum published next to ``url`` when none is kept locally.

        Apache mirrors publish ``<archive>.sha512`` beside every archive. A failed
        fetch only logs a warning; verification then fails for lack of a reference.
        """
        existing = self.verifier.find_reference(artifact_name)
        if existing is not None:
            return existing

        algorithm = self.fetch_checksum_algorithm.lower()
        reference_url = f"{url}.{algorithm}"
        destination = self.verifier.checksums_dir / f"{artifact_name}.{algorithm}"
        try:
            with requests.get(reference_url, timeout=self.timeout) as response:
                response.raise_for_status()
                content = response.text
        except requests.RequestException as exc:
            logger.warning("Fetching checksum reference %s failed: %s", reference_url, exc)
            return None

        self.verifier.checksums_dir.mkdir(parents=True, exist_ok=True)
        destination.write_text(content, encoding="utf-8")
        logger.info("Stored checksum reference %s from %s", destination, reference_url)
        return destination

    def run(self, version: str) -> Dict[str, Any]:
        command = f"download_tomcat {version}"
        try:
            artifact = self.resolve(version)
        except (UnknownVersionError, ChecksumMismatchError, ResolutionFailedError, OSError, ValueError) as exc:
            logger.error("Resolving Tomcat %s failed: %s", version, exc)
            return self._failure(command, str(exc), [f"Exception: {exc}"])

        return self._success(
            command,
            f"Tomcat {version} downloaded to {artifact.path}",
            [f"Downloaded {artifact.url}", f"Checksum verified for {artifact.name}"],
            artifact=artifact,
        )
