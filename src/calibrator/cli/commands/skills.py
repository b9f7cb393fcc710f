"""Skill promotion command for the Calibrator CLI.

``create-skill`` is called by the review flow once the user has accepted a
pattern. Its stdout is parsed by the caller, so on success it prints exactly
one ``SKILL_CREATED: <path>`` line.
"""

from __future__ import annotations

import typer

from calibrator.skills import SkillPromoter, SkillTemplate

from ..helpers import cli_errors, load_config, open_store, parse_count, parse_pattern_id
from ..output import console, print_warning


def create_skill(
    pattern_id: str = typer.Argument(..., help="Id of the pattern to promote"),
    situation: str = typer.Argument(..., help="Situation text (also the skill name source)"),
    instruction: str = typer.Argument(..., help="Instruction text for the skill body"),
    count: str = typer.Argument(..., help="Occurrence count shown in the skill"),
) -> None:
    """Promote a pattern to a skill directory.

    Creates ``.claude/skills/<name>/SKILL.md`` from the skill template and
    marks the pattern as promoted. If the skill was written but the store
    could not be updated, a warning is printed and the command still
    succeeds.

    Examples:
        calibrator create-skill 7 "missing null check" "Add a null guard" 4
    """
    with cli_errors():
        # Argument checks come before any filesystem or store access
        pid = parse_pattern_id(pattern_id)
        occurrences = parse_count(count)

        config = load_config()
        store = open_store(config)
        template = SkillTemplate.from_path(config.skill_template_path)

        promoter = SkillPromoter(
            store,
            config.skills_path,
            template,
            max_attempts=config.max_name_attempts,
        )
        result = promoter.promote(pid, situation, instruction, occurrences)

    if not result.store_updated:
        print_warning(result.warning or "")
        console.print(f"   Skill path: {result.skill_file}", markup=False, soft_wrap=True)

    typer.echo(f"SKILL_CREATED: {result.skill_file}")


__all__ = ["create_skill"]
