"""Exception hierarchy for Calibrator.

All Calibrator exceptions inherit from CalibratorError, enabling callers
to catch broad (CalibratorError) or narrow (e.g., NameAllocationError).
The CLI turns any CalibratorError into a single ``Error: ...`` line and a
non-zero exit.
"""

from __future__ import annotations


class CalibratorError(Exception):
    """Base exception for all Calibrator errors."""


class InvalidInputError(CalibratorError):
    """Raised when a caller-supplied argument is malformed.

    Examples: non-numeric pattern id, negative occurrence count.
    """


class PreconditionError(CalibratorError):
    """Raised when a required resource is missing before any side effect."""


class StoreNotFoundError(PreconditionError):
    """Raised when the pattern store file does not exist (not initialized)."""


class TemplateNotFoundError(PreconditionError):
    """Raised when the skill template cannot be read."""


class PatternNotFoundError(PreconditionError):
    """Raised when a pattern id has no matching row."""

    def __init__(self, pattern_id: int) -> None:
        super().__init__(f"Pattern not found (id={pattern_id})")
        self.pattern_id = pattern_id


class PathContainmentError(CalibratorError):
    """Raised when a skill path would resolve outside the skills directory."""


class NameAllocationError(CalibratorError):
    """Raised when no free skill directory name exists within the attempt budget."""


class SkillRenderError(CalibratorError):
    """Raised when the skill document cannot be rendered or written.

    The partially created skill directory has already been removed when
    this is raised.
    """


__all__ = [
    "CalibratorError",
    "InvalidInputError",
    "NameAllocationError",
    "PathContainmentError",
    "PatternNotFoundError",
    "PreconditionError",
    "SkillRenderError",
    "StoreNotFoundError",
    "TemplateNotFoundError",
]
