"""Discovery of the external remote-shell / file-copy tool pair."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, replace
from typing import Callable, Optional, Tuple

from Remote.errors import SshToolsUnavailableError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SshToolPair:
    """A remote shell binary and its matching file copy binary."""

    name: str
    shell: str
    copy: str
    shell_args: Tuple[str, ...] = ()
    copy_args: Tuple[str, ...] = ()


OPENSSH = SshToolPair(
    name="openssh",
    shell="ssh",
    copy="scp",
    shell_args=("-o", "BatchMode=yes"),
    copy_args=("-q", "-o", "BatchMode=yes"),
)

PUTTY = SshToolPair(
    name="putty",
    shell="plink",
    copy="pscp",
    shell_args=("-batch",),
    copy_args=("-batch", "-q"),
)


def discover_tool_pair(
    force_alternate: bool = False,
    which: Callable[[str], Optional[str]] = shutil.which,
) -> SshToolPair:
    """Pick OpenSSH when available, otherwise the PuTTY tools.

    The returned pair carries absolute binary paths as reported by ``which``.
    """
    candidates = (PUTTY,) if force_alternate else (OPENSSH, PUTTY)
    for pair in candidates:
        shell_path = which(pair.shell)
        copy_path = which(pair.copy)
        if shell_path and copy_path:
            logger.info("Using %s tools: %s, %s", pair.name, shell_path, copy_path)
            return replace(pair, shell=shell_path, copy=copy_path)
        logger.debug("%s tools not found on PATH", pair.name)

    names = ", ".join(f"{pair.shell}/{pair.copy}" for pair in candidates)
    raise SshToolsUnavailableError(f"No remote shell tools found on PATH (looked for {names})")
