"""Skill document templating.

Skill documents are rendered from a Markdown template using the six
placeholders ``{{SKILL_NAME}}``, ``{{INSTRUCTION}}``, ``{{SITUATION}}``,
``{{COUNT}}``, ``{{FIRST_SEEN}}`` and ``{{LAST_SEEN}}``.

Rendering goes through Jinja2. Substituted values are context data and are
never parsed as template source, so situation or instruction text that
contains ``{{``, ``{%``, backslashes or other syntax reaches the document
verbatim instead of altering its structure.

The template itself is Jinja2 source. Literal ``{%`` or ``{#`` in template
prose (a Markdown heading anchor such as ``{#usage}``, for example) must be
wrapped in ``{% raw %}...{% endraw %}`` or the template fails to compile.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import jinja2
from jinja2 import meta as jinja2_meta

from calibrator.core.errors import SkillRenderError, TemplateNotFoundError
from calibrator.core.logging import get_logger

_logger = get_logger("skills.template")

PLACEHOLDERS = frozenset({
    "SKILL_NAME",
    "INSTRUCTION",
    "SITUATION",
    "COUNT",
    "FIRST_SEEN",
    "LAST_SEEN",
})

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass
class SkillContext:
    """Values substituted into a skill template."""

    skill_name: str
    instruction: str
    situation: str
    count: int
    first_seen: datetime | None = None
    last_seen: datetime | None = None

    def to_dict(self) -> dict[str, str]:
        """Convert to the placeholder mapping used for rendering."""
        return {
            "SKILL_NAME": self.skill_name,
            "INSTRUCTION": self.instruction,
            "SITUATION": self.situation,
            "COUNT": str(self.count),
            "FIRST_SEEN": _format_timestamp(self.first_seen),
            "LAST_SEEN": _format_timestamp(self.last_seen),
        }


def _format_timestamp(value: datetime | None) -> str:
    return value.strftime(TIMESTAMP_FORMAT) if value else ""


class SkillTemplate:
    """A compiled skill template.

    Unknown placeholders are rejected when the template is compiled, before
    anything is written to disk. Missing ones only produce a warning since
    a terse template is still a valid template.
    """

    def __init__(
        self,
        source: str,
        name: str = "<string>",
        jinja_env: jinja2.Environment | None = None,
    ) -> None:
        """Compile a template.

        Args:
            source: Template text.
            name: Label used in error messages (usually the file path).
            jinja_env: Optional custom Jinja2 environment.

        Raises:
            SkillRenderError: If the template has a syntax error or uses
                placeholders other than the six supported ones.
        """
        self.name = name
        self.env = jinja_env or jinja2.Environment(
            undefined=jinja2.StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
        )
        try:
            ast = self.env.parse(source)
            self._template = self.env.from_string(source)
        except jinja2.TemplateSyntaxError as e:
            raise SkillRenderError(
                f"Invalid skill template {name} (line {e.lineno}): {e.message}"
            ) from e

        used = jinja2_meta.find_undeclared_variables(ast)
        unknown = used - PLACEHOLDERS
        if unknown:
            raise SkillRenderError(
                f"Skill template {name} uses unknown placeholders: "
                f"{', '.join(sorted(unknown))}"
            )
        missing = PLACEHOLDERS - used
        if missing:
            _logger.warning(
                "template_placeholders_missing",
                template=name,
                missing=sorted(missing),
            )

    @classmethod
    def from_path(cls, path: Path) -> SkillTemplate:
        """Read and compile a template file.

        Raises:
            TemplateNotFoundError: If the file cannot be read.
            SkillRenderError: If the template does not compile.
        """
        try:
            source = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise TemplateNotFoundError(f"Template file not found at {path}") from e
        return cls(source, name=str(path))

    def render(self, context: SkillContext) -> str:
        """Render the skill document.

        Raises:
            SkillRenderError: If rendering fails.
        """
        try:
            return self._template.render(context.to_dict())
        except jinja2.TemplateError as e:
            raise SkillRenderError(f"Failed to render skill template {self.name}: {e}") from e


__all__ = [
    "PLACEHOLDERS",
    "SkillContext",
    "SkillTemplate",
]
