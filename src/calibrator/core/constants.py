"""Global constants for Calibrator.

Centralizes the column caps, truncation limits and file layout shared by
the hook, the store and the skill promoter.
"""

# =============================================================================
# Column caps (mirrored by CHECK constraints in the schema)
# =============================================================================

SITUATION_MAX_CHARS = 500
"""Maximum length of an observation or pattern situation."""

EXPECTATION_MAX_CHARS = 1000
"""Maximum length of an observation expectation."""

INSTRUCTION_MAX_CHARS = 2000
"""Maximum length of a pattern instruction."""

# =============================================================================
# Signature extraction
# =============================================================================

SITUATION_LINE_MAX_CHARS = 200
"""Maximum characters kept from the diagnostic line chosen as situation."""

UNKNOWN_ERROR = "Unknown error"
"""Situation text used when the command produced no output at all."""

HOOK_EXPECTATION = "Detected by hook - see auto-calibrate skill for learned pattern"
"""Placeholder expectation recorded for hook-detected observations."""

# =============================================================================
# Skill promotion
# =============================================================================

DEFAULT_MAX_NAME_ATTEMPTS = 100
"""Default number of numeric suffixes tried after the base skill name."""

SKILL_SLUG_MAX_CHARS = 50
"""Maximum length of a slugified skill base name."""

SKILL_FILE_NAME = "SKILL.md"
"""File written inside each skill directory."""

# =============================================================================
# Project layout (relative to the project root)
# =============================================================================

CALIBRATOR_DIR = ".claude/calibrator"
STORE_FILE_NAME = "patterns.db"
AUTO_DETECT_FLAG_NAME = "auto-detect.enabled"
CONFIG_FILE_NAME = "config.yaml"
SKILLS_DIR = ".claude/skills"
PLUGIN_TEMPLATE_PATH = "templates/skill-template.md"
"""Template location relative to ``$CLAUDE_PLUGIN_ROOT``."""

STORE_FILE_MODE = 0o600
"""Owner-only read/write for the store file."""

MAX_ROW_ID = 2**63 - 1
"""Largest value SQLite accepts as an INTEGER row id."""
