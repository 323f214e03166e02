"""Verify downloaded archives against local checksum reference files."""

from __future__ import annotations

import glob
import hashlib
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from Tools.tool_base import Tool

logger = logging.getLogger(__name__)

DEFAULT_CHECKSUMS_DIR = "checksums"
CHUNK_SIZE = 1024 * 1024

# hex digest length -> algorithm, used when only the expected hash is known
DIGEST_LENGTHS = {32: "md5", 40: "sha1", 64: "sha256", 128: "sha512"}

BSD_TAG_PATTERN = re.compile(r"^(?P<alg>[A-Za-z0-9-]+) \((?P<name>.+)\) = (?P<hash>[0-9A-Fa-f]+)\s*$")


@dataclass(frozen=True)
class ChecksumRecord:
    algorithm: str
    expected_hash: str
    source: Optional[Path] = None


class ChecksumVerifier(Tool):
    """Compare an artifact's digest with ``checksums/<artifact name>.<algorithm>``."""

    def __init__(self, checksums_dir: str | os.PathLike = DEFAULT_CHECKSUMS_DIR) -> None:
        super().__init__(
            name="verify_checksum",
            description="Verify a downloaded archive against its checksum reference file",
            parameters={
                "file": {"type": "str", "description": "Path of the downloaded archive"},
                "algorithm": {"type": "str", "description": "Hash algorithm (default: reference file extension)"},
                "expected_hash": {"type": "str", "description": "Expected hex digest (default: reference file content)"},
            },
        )
        self.checksums_dir = Path(checksums_dir)

    def verify(
        self,
        file: str | os.PathLike,
        algorithm: Optional[str] = None,
        expected_hash: Optional[str] = None,
    ) -> bool:
        """
        Check ``file`` against an explicit or reference-file checksum.

        A missing reference file is not an error: a warning is logged and the
        verification fails because there is nothing to compare against.

        Returns:
            True if the computed digest equals the expected one (ignoring case)
        """
        path = Path(file)
        record = self.load_record(path, algorithm, expected_hash)
        if record is None:
            return False
        if not record.expected_hash:
            logger.warning("Checksum reference for %s is empty", path.name)
            return False

        actual = compute_digest(path, record.algorithm)
        if actual.lower() != record.expected_hash.lower():
            logger.warning(
                "Checksum mismatch for %s (%s): expected %s, got %s",
                path,
                record.algorithm,
                record.expected_hash,
                actual,
            )
            return False

        logger.info("Checksum verified for %s (%s)", path.name, record.algorithm)
        return True

    def load_record(
        self,
        path: Path,
        algorithm: Optional[str] = None,
        expected_hash: Optional[str] = None,
    ) -> Optional[ChecksumRecord]:
        if algorithm and expected_hash:
            return ChecksumRecord(algorithm.lower(), expected_hash.strip())

        if expected_hash:
            inferred = DIGEST_LENGTHS.get(len(expected_hash.strip()))
            if inferred is None:
                raise ValueError(
                    f"Cannot infer checksum algorithm for {path} from a "
                    f"{len(expected_hash.strip())}-character digest"
                )
            return ChecksumRecord(inferred, expected_hash.strip())

        reference = self.find_reference(path.name, algorithm)
        if reference is None:
            logger.warning(
                "No %schecksum reference for %s found in %s",
                f"{algorithm.lower()} " if algorithm else "",
                path.name,
                self.checksums_dir,
            )
            return None

        content = reference.read_text(encoding="utf-8").strip()
        tagged = BSD_TAG_PATTERN.match(content.splitlines()[0]) if content else None
        if tagged:
            ref_algorithm = tagged.group("alg").lower()
            ref_hash = tagged.group("hash")
        else:
            ref_algorithm = reference.suffix.lstrip(".").lower()
            ref_hash = content.split()[0] if content else ""

        return ChecksumRecord((algorithm or ref_algorithm).lower(), ref_hash, reference)

    def find_reference(self, artifact_name: str, algorithm: Optional[str] = None) -> Optional[Path]:
        if not self.checksums_dir.is_dir():
            return None
        if algorithm:
            # a reference for another algorithm cannot confirm this one
            exact = self.checksums_dir / f"{artifact_name}.{algorithm.lower()}"
            return exact if exact.is_file() else None
        # references named after a known hash algorithm win over e.g. ".asc"
        matches = sorted(
            (
                candidate
                for candidate in self.checksums_dir.glob(f"{glob.escape(artifact_name)}*")
                if candidate.is_file()
            ),
            key=lambda candidate: (
                candidate.suffix.lstrip(".").lower() not in hashlib.algorithms_available,
                candidate.name,
            ),
        )
        return matches[0] if matches else None

    def run(
        self,
        file: str,
        algorithm: Optional[str] = None,
        expected_hash: Optional[str] = None,
    ) -> Dict[str, Any]:
        command = f"verify_checksum {file}"
        try:
            verified = self.verify(file, algorithm, expected_hash)
        except (OSError, ValueError) as exc:
            logger.error("Checksum verification of %s failed: %s", file, exc)
            return self._failure(command, str(exc), [f"Exception: {exc}"])

        if verified:
            return self._success(command, f"Checksum verified for {file}", [])
        return self._failure(command, f"Checksum verification failed for {file}", [])


def compute_digest(path: Path, algorithm: str) -> str:
    try:
        digest = hashlib.new(algorithm)
    except ValueError as exc:
        raise ValueError(f"Unsupported checksum algorithm '{algorithm}' for {path}") from exc

    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()
