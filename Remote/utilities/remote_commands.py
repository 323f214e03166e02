"""Typed remote procedures rendered into POSIX shell text.

Every path is passed through ``shlex.quote`` so directories and archive names
containing spaces or shell metacharacters reach the remote shell intact.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from typing import Sequence

TARGET_EXISTS_EXIT_CODE = 10


class RemoteStep:
    def render(self) -> str:
        raise NotImplementedError("Remote steps must implement render()")


@dataclass(frozen=True)
class EnsureStagingDirectory(RemoteStep):
    path: str

    def render(self) -> str:
        return f"mkdir -p {shlex.quote(self.path)}"


@dataclass(frozen=True)
class EnsureTargetDirectory(RemoteStep):
    """Clear or refuse an existing target, then (re)create it.

    Without ``force`` an existing target makes the script exit with
    TARGET_EXISTS_EXIT_CODE before anything is touched.
    """

    path: str
    force: bool = False

    def render(self) -> str:
        quoted = shlex.quote(self.path)
        if self.force:
            guard = f"rm -rf {quoted}"
        else:
            guard = f"if [ -e {quoted} ]; then exit {TARGET_EXISTS_EXIT_CODE}; fi"
        return f"{guard} && mkdir -p {quoted}"


@dataclass(frozen=True)
class ExtractArchive(RemoteStep):
    archive: str
    target: str
    strip_components: int = 1

    def render(self) -> str:
        tar_cmd = "tar -xzf" if self.archive.endswith((".gz", ".tgz")) else "tar -xf"
        return (
            f"{tar_cmd} {shlex.quote(self.archive)} -C {shlex.quote(self.target)}"
            f" --strip-components={int(self.strip_components)}"
        )


@dataclass(frozen=True)
class MarkScriptsExecutable(RemoteStep):
    home: str

    def render(self) -> str:
        bin_dir = shlex.quote(f"{self.home.rstrip('/')}/bin")
        return f"if [ -d {bin_dir} ]; then find {bin_dir} -name '*.sh' -exec chmod +x {{}} +; fi"


@dataclass(frozen=True)
class Cleanup(RemoteStep):
    path: str

    def render(self) -> str:
        return f"rm -rf {shlex.quote(self.path)}"


@dataclass(frozen=True)
class RemoteScript(RemoteStep):
    """Steps chained with ``&&``; the first failing step ends the script."""

    steps: Sequence[RemoteStep]

    def render(self) -> str:
        return " && ".join(step.render() for step in self.steps)
