"""Skill promotion: naming, templating and the promoter itself."""

from calibrator.skills.naming import allocate_skill_dir, slugify
from calibrator.skills.promoter import PromotionResult, SkillPromoter
from calibrator.skills.template import PLACEHOLDERS, SkillContext, SkillTemplate

__all__ = [
    "PLACEHOLDERS",
    "PromotionResult",
    "SkillContext",
    "SkillPromoter",
    "SkillTemplate",
    "allocate_skill_dir",
    "slugify",
]
