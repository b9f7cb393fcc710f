"""Promotion of patterns into skill directories.

A promotion claims a fresh directory under the skills root, renders the
skill document into it and finally flags the pattern as promoted. The
steps are ordered so that a failure leaves either nothing behind (name
allocation, rendering) or a complete skill (store update); see
``SkillPromoter.promote``.
"""

from __future__ import annotations

import shutil
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from calibrator.core.constants import DEFAULT_MAX_NAME_ATTEMPTS, SKILL_FILE_NAME
from calibrator.core.errors import PatternNotFoundError, SkillRenderError
from calibrator.core.logging import get_logger
from calibrator.skills.naming import allocate_skill_dir, slugify
from calibrator.skills.template import SkillContext, SkillTemplate

if TYPE_CHECKING:
    from calibrator.store import CalibratorStore

_logger = get_logger("skills.promoter")

STORE_UPDATE_WARNING = "Skill file created but database update failed"


@dataclass
class PromotionResult:
    """Outcome of a promotion.

    Attributes:
        pattern_id: The promoted pattern.
        skill_name: Final directory name (base name plus any suffix).
        skill_dir: The created skill directory.
        skill_file: The rendered document inside ``skill_dir``.
        store_updated: False when the skill exists on disk but the pattern
            row could not be marked as promoted.
        warning: Human-readable warning accompanying ``store_updated=False``.
    """

    pattern_id: int
    skill_name: str
    skill_dir: Path
    skill_file: Path
    store_updated: bool = True
    warning: str | None = None


class SkillPromoter:
    """Turns a pattern into a skill directory.

    Usage:
        promoter = SkillPromoter(store, skills_dir, SkillTemplate.from_path(path))
        result = promoter.promote(7, "missing null check", "Add a null guard", 4)
        print(result.skill_file)

    Promotion is deliberately not idempotent: promoting the same pattern
    twice produces two skills with distinct names. Callers that want
    at-most-once behavior check ``PatternRecord.promoted`` first.
    """

    def __init__(
        self,
        store: CalibratorStore,
        skills_dir: Path,
        template: SkillTemplate,
        max_attempts: int = DEFAULT_MAX_NAME_ATTEMPTS,
    ) -> None:
        self.store = store
        self.skills_dir = skills_dir
        self.template = template
        self.max_attempts = max_attempts

    def promote(
        self,
        pattern_id: int,
        situation: str,
        instruction: str,
        count: int,
    ) -> PromotionResult:
        """Promote a pattern to a skill.

        Steps:
        1. Look up the pattern for its first/last seen timestamps.
        2. Claim ``<slug>``, ``<slug>-1``, ... with an exclusive mkdir.
        3. Render the template into ``SKILL.md``; on failure the claimed
           directory is removed and the pattern is left untouched.
        4. Mark the pattern promoted (clearing any dismissal). If this
           fails the skill is kept and the result carries a warning.

        Args:
            pattern_id: Id of the pattern being promoted.
            situation: Situation text, also the source of the skill name.
            instruction: Remediation text.
            count: Occurrence count shown in the document.

        Returns:
            The promotion result.

        Raises:
            PatternNotFoundError: If ``pattern_id`` does not exist.
            PathContainmentError: If a candidate name escapes the skills dir.
            NameAllocationError: If no free name was found.
            SkillRenderError: If the document could not be rendered or written.
        """
        pattern = self.store.get_pattern(pattern_id)
        if pattern is None:
            raise PatternNotFoundError(pattern_id)

        self.skills_dir.mkdir(parents=True, exist_ok=True)
        skill_dir = allocate_skill_dir(
            self.skills_dir, slugify(situation), self.max_attempts
        )
        skill_file = skill_dir / SKILL_FILE_NAME

        context = SkillContext(
            skill_name=skill_dir.name,
            instruction=instruction,
            situation=situation,
            count=count,
            first_seen=pattern.first_seen,
            last_seen=pattern.last_seen,
        )
        try:
            skill_file.write_text(self.template.render(context), encoding="utf-8")
        except (SkillRenderError, OSError, ValueError) as e:
            # ValueError covers UnicodeEncodeError from unencodable input
            shutil.rmtree(skill_dir, ignore_errors=True)
            _logger.error(
                "skill_render_failed",
                pattern_id=pattern_id,
                skill_dir=str(skill_dir),
                error=str(e),
            )
            raise SkillRenderError(f"Failed to generate skill file: {e}") from e

        result = PromotionResult(
            pattern_id=pattern_id,
            skill_name=skill_dir.name,
            skill_dir=skill_dir,
            skill_file=skill_file,
        )

        try:
            updated = self.store.mark_promoted(pattern_id, skill_dir)
        except sqlite3.Error as e:
            _logger.warning(
                "promotion_store_update_failed",
                pattern_id=pattern_id,
                skill_file=str(skill_file),
                error=str(e),
            )
            updated = False

        if not updated:
            result.store_updated = False
            result.warning = STORE_UPDATE_WARNING
            return result

        _logger.info(
            "skill_created",
            pattern_id=pattern_id,
            skill_name=result.skill_name,
            skill_file=str(skill_file),
        )
        return result


__all__ = [
    "PromotionResult",
    "STORE_UPDATE_WARNING",
    "SkillPromoter",
]
