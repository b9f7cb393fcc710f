"""Pytest fixtures for Calibrator tests."""

import logging
from collections.abc import Generator
from pathlib import Path

import pytest
import structlog

from calibrator.core.config import CalibratorConfig
from calibrator.skills import SkillTemplate
from calibrator.skills.templates import DEFAULT_TEMPLATE_PATH
from calibrator.store import CalibratorStore

_CALIBRATOR_ENV_VARS = (
    "PROJECT_ROOT",
    "CLAUDE_PLUGIN_ROOT",
    "CALIBRATOR_MAX_NAME_ATTEMPTS",
    "CALIBRATOR_LOG_LEVEL",
    "CALIBRATOR_LOG_FILE",
    "CALIBRATOR_LOG_FORMAT",
)


@pytest.fixture(autouse=True)
def reset_logging_state() -> Generator[None, None, None]:
    """Reset CLI and logging state before and after each test.

    This ensures test isolation for logging configuration.
    """
    from calibrator.cli import helpers

    helpers.reset_logging_state()
    structlog.reset_defaults()

    root_logger = logging.getLogger()
    original_handlers = root_logger.handlers[:]
    for handler in original_handlers:
        root_logger.removeHandler(handler)

    yield

    helpers.reset_logging_state()
    structlog.reset_defaults()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in original_handlers:
        root_logger.addHandler(handler)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's environment out of config resolution."""
    for name in _CALIBRATOR_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """An empty project directory."""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def config(project_root: Path) -> CalibratorConfig:
    """Configuration for ``project_root`` with no overrides."""
    return CalibratorConfig.load(project_root=project_root, env={})


@pytest.fixture
def store(config: CalibratorConfig) -> CalibratorStore:
    """An initialized, empty store inside ``project_root``."""
    return CalibratorStore.initialize(config.db_path)


@pytest.fixture
def template() -> SkillTemplate:
    """The bundled skill template."""
    return SkillTemplate.from_path(DEFAULT_TEMPLATE_PATH)


@pytest.fixture
def initialized_project(
    monkeypatch: pytest.MonkeyPatch,
    project_root: Path,
    store: CalibratorStore,
) -> Path:
    """A project with a store, selected through ``$PROJECT_ROOT``."""
    monkeypatch.setenv("PROJECT_ROOT", str(project_root))
    return project_root
