"""Skill directory naming and allocation.

Skill names are derived from the pattern's situation text, which comes from
untrusted command output. Two guards apply to every candidate name:

1. Its resolved path must stay inside the skills directory.
2. It is claimed with a plain ``mkdir`` (no ``exist_ok``). The kernel makes
   that an atomic create-if-absent, so it doubles as the collision check:
   two promotions racing for the same name can never both win it.
"""

from __future__ import annotations

import re
from pathlib import Path

from calibrator.core.constants import DEFAULT_MAX_NAME_ATTEMPTS, SKILL_SLUG_MAX_CHARS
from calibrator.core.errors import NameAllocationError, PathContainmentError
from calibrator.core.logging import get_logger

_logger = get_logger("skills.naming")

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")

FALLBACK_SKILL_NAME = "skill"


def slugify(text: str, max_length: int = SKILL_SLUG_MAX_CHARS) -> str:
    """Derive a directory-safe base name from free text.

    Lowercases, collapses every run of characters outside ``[a-z0-9]`` into
    a single ``-``, trims separators at both ends and bounds the length,
    preferring to cut at a separator. Returns ``"skill"`` when nothing
    usable remains.

    Examples:
        >>> slugify("missing null check")
        'missing-null-check'
        >>> slugify("lint: 3:1  error  'x' is not defined")
        'lint-3-1-error-x-is-not-defined'
    """
    slug = _NON_SLUG_CHARS.sub("-", text.lower()).strip("-")
    if len(slug) > max_length:
        cut = slug[:max_length]
        head, sep, _ = cut.rpartition("-")
        slug = (head if sep and head else cut).strip("-")
    return slug or FALLBACK_SKILL_NAME


def candidate_names(base: str, max_attempts: int) -> list[str]:
    """``base`` followed by ``base-1`` .. ``base-<max_attempts>``."""
    return [base] + [f"{base}-{suffix}" for suffix in range(1, max_attempts + 1)]


def ensure_contained(path: Path, root: Path) -> Path:
    """Resolve ``path`` and verify it is strictly inside ``root``.

    Symlinks are followed, so a pre-planted link pointing elsewhere is
    rejected too.

    Raises:
        PathContainmentError: If the resolved path escapes ``root``.
    """
    resolved_root = root.resolve()
    resolved = path.resolve()
    if resolved == resolved_root or not resolved.is_relative_to(resolved_root):
        raise PathContainmentError(
            f"Invalid skill path detected (outside {resolved_root}): {path}"
        )
    return resolved


def allocate_skill_dir(
    skills_dir: Path,
    base: str,
    max_attempts: int = DEFAULT_MAX_NAME_ATTEMPTS,
) -> Path:
    """Create and return a fresh, uniquely named directory under ``skills_dir``.

    Args:
        skills_dir: Existing directory that receives skill directories.
        base: Preferred directory name.
        max_attempts: Number of numeric suffixes to try after ``base``.

    Returns:
        The newly created directory (resolved).

    Raises:
        PathContainmentError: If a candidate resolves outside ``skills_dir``.
        NameAllocationError: If every candidate already exists.
    """
    for name in candidate_names(base, max_attempts):
        candidate = ensure_contained(skills_dir / name, skills_dir)
        try:
            candidate.mkdir()
        except FileExistsError:
            continue
        _logger.debug("skill_dir_allocated", skill_dir=str(candidate))
        return candidate

    raise NameAllocationError(
        f"Failed to generate unique skill name after {max_attempts} attempts "
        f"(base name '{base}')"
    )


__all__ = [
    "FALLBACK_SKILL_NAME",
    "allocate_skill_dir",
    "candidate_names",
    "ensure_contained",
    "slugify",
]
