"""Configuration model for Calibrator.

Defines the Pydantic v2 model holding the project layout and the tunables of
the skill promoter. Values are layered: model defaults, then the optional
project file ``.claude/calibrator/config.yaml``, then environment variables.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from calibrator.core.constants import (
    AUTO_DETECT_FLAG_NAME,
    CALIBRATOR_DIR,
    CONFIG_FILE_NAME,
    DEFAULT_MAX_NAME_ATTEMPTS,
    PLUGIN_TEMPLATE_PATH,
    SKILLS_DIR,
    STORE_FILE_NAME,
)
from calibrator.core.errors import InvalidInputError
from calibrator.core.logging import get_logger
from calibrator.core.project import find_project_root
from calibrator.skills.templates import DEFAULT_TEMPLATE_PATH

_logger = get_logger("config")

ENV_PROJECT_ROOT = "PROJECT_ROOT"
ENV_PLUGIN_ROOT = "CLAUDE_PLUGIN_ROOT"
ENV_MAX_NAME_ATTEMPTS = "CALIBRATOR_MAX_NAME_ATTEMPTS"


class CalibratorConfig(BaseModel):
    """Resolved Calibrator settings for one project.

    Relative ``skills_dir``/``template_path`` values are interpreted against
    ``project_root``.
    """

    project_root: Path = Field(
        description="Project root; all calibrator state lives beneath it",
    )
    plugin_root: Path | None = Field(
        default=None,
        description="Plugin installation directory. When set, the skill template "
        "is read from <plugin_root>/templates/skill-template.md",
    )
    max_name_attempts: int = Field(
        default=DEFAULT_MAX_NAME_ATTEMPTS,
        ge=1,
        le=10000,
        description="Numeric suffixes tried after the base skill name before giving up",
    )
    skills_dir: Path = Field(
        default=Path(SKILLS_DIR),
        description="Directory that receives promoted skill directories",
    )
    template_path: Path | None = Field(
        default=None,
        description="Skill template override (ignored when plugin_root is set)",
    )

    @property
    def calibrator_dir(self) -> Path:
        return self.project_root / CALIBRATOR_DIR

    @property
    def db_path(self) -> Path:
        return self.calibrator_dir / STORE_FILE_NAME

    @property
    def auto_detect_flag(self) -> Path:
        return self.calibrator_dir / AUTO_DETECT_FLAG_NAME

    @property
    def skills_path(self) -> Path:
        return self._under_root(self.skills_dir)

    @property
    def skill_template_path(self) -> Path:
        """Template location: plugin root, then explicit override, then bundled default."""
        if self.plugin_root is not None:
            return self.plugin_root / PLUGIN_TEMPLATE_PATH
        if self.template_path is not None:
            return self._under_root(self.template_path)
        return DEFAULT_TEMPLATE_PATH

    def _under_root(self, path: Path) -> Path:
        return path if path.is_absolute() else self.project_root / path

    @classmethod
    def load(
        cls,
        project_root: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CalibratorConfig:
        """Build the configuration for a project.

        Args:
            project_root: Explicit project root. Defaults to ``$PROJECT_ROOT``,
                then the enclosing git work tree, then the working directory.
            env: Environment mapping (defaults to ``os.environ``).

        Raises:
            InvalidInputError: If the config file or an environment override
                is malformed.
        """
        env = os.environ if env is None else env

        if project_root is None:
            env_root = env.get(ENV_PROJECT_ROOT)
            project_root = Path(env_root) if env_root else find_project_root()

        data: dict[str, Any] = {}
        config_file = project_root / CALIBRATOR_DIR / CONFIG_FILE_NAME
        if config_file.is_file():
            data.update(_load_config_file(config_file))

        if env.get(ENV_PLUGIN_ROOT):
            data["plugin_root"] = env[ENV_PLUGIN_ROOT]
        if env.get(ENV_MAX_NAME_ATTEMPTS):
            data["max_name_attempts"] = env[ENV_MAX_NAME_ATTEMPTS]

        data["project_root"] = project_root
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise InvalidInputError(f"Invalid calibrator configuration: {e}") from e


def _load_config_file(path: Path) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise InvalidInputError(f"Cannot read config file {path}: {e}") from e

    if not isinstance(loaded, dict):
        raise InvalidInputError(f"Config file {path} must contain a mapping")

    # project_root is always derived from where the file was found
    loaded.pop("project_root", None)
    _logger.debug("config_file_loaded", path=str(path), keys=sorted(loaded))
    return loaded


__all__ = [
    "CalibratorConfig",
    "ENV_MAX_NAME_ATTEMPTS",
    "ENV_PLUGIN_ROOT",
    "ENV_PROJECT_ROOT",
]
