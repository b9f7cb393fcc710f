"""CLI command modules for Calibrator.

- skills.py: create-skill
- patterns.py: record-pattern, patterns, dismiss
- store.py: init, status, reset
- detect.py: hook, auto-detect
"""

from .detect import auto_detect, hook
from .patterns import dismiss, patterns_list, record_pattern
from .skills import create_skill
from .store import init, reset, status

__all__ = [
    "auto_detect",
    "create_skill",
    "dismiss",
    "hook",
    "init",
    "patterns_list",
    "record_pattern",
    "reset",
    "status",
]
