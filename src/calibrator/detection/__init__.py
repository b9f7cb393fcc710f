"""Failure detection: signature extraction and the PostToolUse hook."""

from calibrator.detection.signature import (
    CommandKind,
    Signature,
    classify_command,
    extract_signature,
    extract_situation,
    map_category,
)

__all__ = [
    "CommandKind",
    "Signature",
    "classify_command",
    "extract_signature",
    "extract_situation",
    "map_category",
]
