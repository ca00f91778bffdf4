"""Structured-response parsing for model stage outputs."""

from codegen_bot.parsing.exceptions import ResponseParseError, StageParseError
from codegen_bot.parsing.response_parser import (
    END_MARKER,
    START_MARKER,
    extract_marked_payload,
    find_balanced_json,
    is_truncated,
    parse_change_operations,
    parse_context_request,
    parse_intent_spec,
    parse_json_payload,
    parse_patch_plan,
    parse_validation_findings,
    sanitize_json_text,
    strip_code_fences,
)

__all__ = [
    "END_MARKER",
    "START_MARKER",
    "ResponseParseError",
    "StageParseError",
    "extract_marked_payload",
    "find_balanced_json",
    "is_truncated",
    "parse_change_operations",
    "parse_context_request",
    "parse_intent_spec",
    "parse_json_payload",
    "parse_patch_plan",
    "parse_validation_findings",
    "sanitize_json_text",
    "strip_code_fences",
]
