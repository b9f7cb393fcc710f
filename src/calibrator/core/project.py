"""Project root discovery.

The project root is the top level of the enclosing git work tree, falling
back to the working directory when git is unavailable or the directory is
not inside a repository.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

from calibrator.core.logging import get_logger

_logger = get_logger("project")


def find_project_root(start: Path | None = None) -> Path:
    """Return the git top-level directory containing ``start``.

    Args:
        start: Directory to search from. Defaults to the current directory.

    Returns:
        The repository root, or ``start`` itself when no repository is found.
    """
    cwd = (start or Path.cwd()).resolve()
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            cwd=str(cwd),
            capture_output=True,
            text=True,
            timeout=10,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        _logger.debug("git_root_lookup_failed", error=str(e))
        return cwd

    top = result.stdout.strip()
    if result.returncode != 0 or not top:
        return cwd
    return Path(top)


__all__ = ["find_project_root"]
