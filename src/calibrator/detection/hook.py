"""PostToolUse hook: record failing shell commands as observations.

The hook receives the tool payload as JSON on stdin and records one
observation per failing command. It captures WHAT failed; turning that
into HOW to fix it is the job of the review flow, which feeds patterns.

Nothing in here may disrupt the session that triggered it. Every exit
path is silent, and a failed store write is logged and swallowed:

- payload unparseable, no command, or exit code 0/absent → nothing
- project not initialized (no store file) → nothing
- auto-detection disabled (no sentinel file) → nothing
"""

from __future__ import annotations

import json
import os
import sqlite3
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from calibrator.core.config import ENV_PROJECT_ROOT, CalibratorConfig
from calibrator.core.constants import HOOK_EXPECTATION
from calibrator.core.errors import CalibratorError
from calibrator.core.logging import HookContext, get_logger, with_context
from calibrator.core.project import find_project_root
from calibrator.detection.signature import extract_signature
from calibrator.store import CalibratorStore

_logger = get_logger("hook")


def _coerce_exit_code(value: Any) -> int | None:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _as_text(value: Any) -> str:
    """Payload text with unencodable characters replaced, or "" for non-text."""
    if not isinstance(value, str):
        return ""
    return value.encode("utf-8", "replace").decode("utf-8")


@dataclass
class FailureEvent:
    """A finished shell command as reported by the hook payload."""

    command: str
    exit_code: int | None
    stdout: str = ""
    stderr: str = ""
    session_id: str | None = None
    tool_name: str | None = None
    cwd: str | None = None

    @property
    def output(self) -> str:
        """Combined output, stdout first."""
        return self.stdout + self.stderr

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> FailureEvent | None:
        """Build an event from a PostToolUse payload.

        Reads ``tool_input.command`` and ``tool_result.exit_code/stdout/
        stderr`` (``tool_response`` is accepted as an alias). Returns None
        when there is no command.
        """
        tool_input = payload.get("tool_input")
        if not isinstance(tool_input, Mapping):
            return None
        command = _as_text(tool_input.get("command"))
        if not command:
            return None

        result = payload.get("tool_result")
        if not isinstance(result, Mapping):
            result = payload.get("tool_response")
        if not isinstance(result, Mapping):
            result = {}

        session_id = payload.get("session_id")
        tool_name = payload.get("tool_name")
        cwd = payload.get("cwd")
        return cls(
            command=command,
            exit_code=_coerce_exit_code(result.get("exit_code")),
            stdout=_as_text(result.get("stdout")),
            stderr=_as_text(result.get("stderr")),
            session_id=session_id if isinstance(session_id, str) else None,
            tool_name=tool_name if isinstance(tool_name, str) else None,
            cwd=cwd if isinstance(cwd, str) else None,
        )


def is_detection_enabled(config: CalibratorConfig) -> bool:
    """Both gates: the store exists and the auto-detect sentinel is present."""
    return config.db_path.is_file() and config.auto_detect_flag.is_file()


def record_failure(event: FailureEvent, config: CalibratorConfig) -> int | None:
    """Record an observation for a failed command.

    Args:
        event: The finished command.
        config: Project configuration (store and sentinel locations).

    Returns:
        The new observation id, or None when nothing was recorded.
    """
    signature = extract_signature(event.command, event.exit_code, event.output)
    if signature is None:
        return None

    if not is_detection_enabled(config):
        return None

    try:
        store = CalibratorStore(config.db_path)
        return store.record_observation(
            signature.category, signature.situation, HOOK_EXPECTATION
        )
    except (sqlite3.Error, CalibratorError, OSError) as e:
        _logger.warning(
            "observation_record_failed",
            db_path=str(config.db_path),
            kind=signature.kind.value,
            error_type=type(e).__name__,
            error=str(e),
        )
        return None


def run_hook(
    raw_payload: str,
    project_root: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> int | None:
    """Handle one raw hook payload.

    Args:
        raw_payload: JSON text read from stdin.
        project_root: Explicit project root (tests); otherwise ``$PROJECT_ROOT``,
            then the git top level of the payload's ``cwd``.
        env: Environment mapping (defaults to ``os.environ``).

    Returns:
        The new observation id, or None when nothing was recorded.
    """
    env = os.environ if env is None else env
    try:
        payload = json.loads(raw_payload) if raw_payload.strip() else {}
    except json.JSONDecodeError:
        _logger.debug("hook_payload_invalid")
        return None
    if not isinstance(payload, Mapping):
        return None

    event = FailureEvent.from_payload(payload)
    if event is None or not event.exit_code:
        return None

    ctx = HookContext(session_id=event.session_id, tool_name=event.tool_name)
    with with_context(ctx):
        if project_root is None and event.cwd and not env.get(ENV_PROJECT_ROOT):
            project_root = find_project_root(Path(event.cwd))
        try:
            config = CalibratorConfig.load(project_root=project_root, env=env)
        except CalibratorError as e:
            _logger.warning("hook_config_invalid", error=str(e))
            return None
        return record_failure(event, config)


__all__ = [
    "FailureEvent",
    "is_detection_enabled",
    "record_failure",
    "run_hook",
]
