"""Structured-response parsing for model stage outputs.

Model responses may wrap their JSON in marker lines, markdown fences or
prose, and may be cut off mid-structure. Everything here turns such text
into the typed payload a stage expects, or raises StageParseError.
"""

import json
import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from codegen_bot.models import (
    ChangeOperation,
    ContextRequest,
    FindingCategory,
    IntentSpec,
    PatchPlan,
    StageKind,
    ValidationFinding,
)
from codegen_bot.parsing.exceptions import StageParseError

logger = logging.getLogger(__name__)

# Constants
START_MARKER = "__START_JSON__"
END_MARKER = "__END_JSON__"
MAX_JSON_CANDIDATES = 20  # Opening brackets tried when prose precedes the payload
PLAN_CODE_KEYS = frozenset({"content", "unifiedDiff", "diffHunks", "code"})
OPERATION_SYNONYMS = {
    "add": "create",
    "new": "create",
    "update": "modify",
    "edit": "modify",
    "remove": "delete",
}
CONTROL_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t", "\b": "\\b", "\f": "\\f"}

FENCE_RE = re.compile(r"```[A-Za-z]*[ \t]*\n?(.*?)```", re.DOTALL)
OPENER_RE = re.compile(r"[\[{]")

_CLOSERS = {"{": "}", "[": "]"}
_OPERATIONS_ADAPTER = TypeAdapter(list[ChangeOperation])

ModelT = TypeVar("ModelT", bound=BaseModel)


# ---------------------------------------------------------------------------
# Text extraction
# ---------------------------------------------------------------------------


def extract_marked_payload(raw: str) -> str:
    """Return the text between start/end markers, or the input if unmarked.

    A start marker without an end marker yields everything after the start
    marker so truncation can still be detected downstream.
    """
    start = raw.find(START_MARKER)
    if start == -1:
        return raw
    start += len(START_MARKER)
    end = raw.find(END_MARKER, start)
    return raw[start:] if end == -1 else raw[start:end]


def strip_code_fences(text: str) -> str:
    """Unwrap the first markdown code fence, tolerating a missing closing fence."""
    match = FENCE_RE.search(text)
    if match:
        return match.group(1)
    stripped = text.strip()
    if stripped.startswith("```"):
        # Unterminated fence: drop the opening line only
        newline = stripped.find("\n")
        return stripped[newline + 1:] if newline != -1 else ""
    return text


def _payload_text(raw: str) -> str:
    marked = extract_marked_payload(raw).strip()
    # Fences inside string values must not be mistaken for a wrapper
    if marked[:1] in ("{", "["):
        return marked
    return strip_code_fences(marked).strip()


@dataclass
class _ScanResult:
    end: int | None  # Exclusive end of the balanced value, None if not closed
    truncated: bool  # Ran off the end with open brackets or an open string


def _scan_value(text: str, start: int) -> _ScanResult:
    """Scan a JSON array/object starting at ``start``, honouring strings and escapes."""
    stack: list[str] = []
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char in _CLOSERS:
            stack.append(_CLOSERS[char])
        elif char in "}]":
            if not stack or stack.pop() != char:
                return _ScanResult(end=None, truncated=False)
            if not stack:
                return _ScanResult(end=index + 1, truncated=False)
    return _ScanResult(end=None, truncated=True)


def _json_candidates(text: str) -> Iterator[str]:
    """Yield balanced bracketed substrings in order of their opening bracket."""
    for count, match in enumerate(OPENER_RE.finditer(text)):
        if count >= MAX_JSON_CANDIDATES:
            return
        result = _scan_value(text, match.start())
        if result.end is not None:
            yield text[match.start():result.end]


def find_balanced_json(text: str) -> str | None:
    """Return the first balanced array/object in text that parses as JSON."""
    for candidate in _json_candidates(text):
        try:
            json.loads(sanitize_json_text(candidate))
        except json.JSONDecodeError:
            continue
        return candidate
    return None


def sanitize_json_text(text: str) -> str:
    """Escape raw control characters inside strings and drop trailing commas."""
    out: list[str] = []
    in_string = False
    escaped = False
    length = len(text)
    for index, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            elif char < " ":
                out.append(CONTROL_ESCAPES.get(char, f"\\u{ord(char):04x}"))
                continue
            out.append(char)
            continue

        if char == '"':
            in_string = True
        elif char == ",":
            lookahead = index + 1
            while lookahead < length and text[lookahead].isspace():
                lookahead += 1
            if lookahead < length and text[lookahead] in "}]":
                continue
        out.append(char)
    return "".join(out)


def is_truncated(raw: str) -> bool:
    """Heuristically decide whether a response was cut off mid-structure.

    True when a start marker has no end marker, or when the payload opens
    an array/object (or string) that never closes before the text ends.
    Balanced-but-invalid JSON is malformed, not truncated.
    """
    start = raw.find(START_MARKER)
    if start != -1 and raw.find(END_MARKER, start + len(START_MARKER)) == -1:
        return True

    text = _payload_text(raw)
    for count, match in enumerate(OPENER_RE.finditer(text)):
        if count >= MAX_JSON_CANDIDATES:
            break
        result = _scan_value(text, match.start())
        if result.truncated:
            return True
        if result.end is not None:
            try:
                json.loads(sanitize_json_text(text[match.start():result.end]))
            except json.JSONDecodeError:
                continue
            return False
    return False


def parse_json_payload(raw: str, stage: StageKind) -> Any:
    """Extract and decode the JSON value carried by a model response.

    Raises:
        StageParseError: If the response is empty or carries no valid JSON.
    """
    if not raw or not raw.strip():
        raise StageParseError(stage, "empty response")

    payload = _payload_text(raw)
    for attempt in (payload, sanitize_json_text(payload)):
        try:
            return json.loads(attempt)
        except json.JSONDecodeError:
            continue

    candidate = find_balanced_json(payload)
    if candidate is not None:
        return json.loads(sanitize_json_text(candidate))

    raise StageParseError(stage, "no valid JSON found in response", excerpt=raw)


# ---------------------------------------------------------------------------
# Typed stage parsers
# ---------------------------------------------------------------------------


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors()[:3]:
        location = ".".join(str(part) for part in error["loc"]) or "<root>"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


def _validate_model(model: type[ModelT], data: Any, stage: StageKind, raw: str) -> ModelT:
    if not isinstance(data, dict):
        raise StageParseError(
            stage, f"expected a JSON object, got {type(data).__name__}", excerpt=raw
        )
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise StageParseError(
            stage, f"response has wrong shape: {_describe(exc)}", excerpt=raw
        ) from exc


def _unwrap_list(data: Any, keys: tuple[str, ...]) -> Any:
    if isinstance(data, dict):
        for key in keys:
            if isinstance(data.get(key), list):
                return data[key]
    return data


def parse_context_request(raw: str) -> ContextRequest:
    data = parse_json_payload(raw, StageKind.CONTEXT)
    return _validate_model(ContextRequest, data, StageKind.CONTEXT, raw)


def parse_intent_spec(raw: str) -> IntentSpec:
    """Parse the intent stage response.

    Raises:
        StageParseError: If any required field is missing or mistyped.
    """
    data = parse_json_payload(raw, StageKind.INTENT)
    return _validate_model(IntentSpec, data, StageKind.INTENT, raw)


def parse_patch_plan(raw: str) -> PatchPlan:
    """Parse the planning stage response, discarding any embedded code."""
    data = parse_json_payload(raw, StageKind.PLAN)
    if isinstance(data, list):
        data = {"patches": data}
    if isinstance(data, dict):
        for patch in data.get("patches") or []:
            if isinstance(patch, dict) and PLAN_CODE_KEYS & patch.keys():
                logger.warning(
                    "Plan entry for %s carried code fields %s; dropped",
                    patch.get("filename", "?"),
                    sorted(PLAN_CODE_KEYS & patch.keys()),
                )
    return _validate_model(PatchPlan, data, StageKind.PLAN, raw)


def _normalize_operation(item: Any) -> Any:
    if not isinstance(item, dict):
        return item
    item = dict(item)
    operation = str(item.get("operation") or "").strip().lower()
    operation = OPERATION_SYNONYMS.get(operation, operation)
    if not operation:
        if item.get("unifiedDiff") or item.get("diffHunks"):
            operation = "modify"
        else:
            # Bare content means full replacement
            operation = "create"
    item["operation"] = operation
    return item


def parse_change_operations(
    raw: str,
    stage: StageKind = StageKind.GENERATE,
) -> list[ChangeOperation]:
    """Parse generated files into Create/Modify/Delete operations.

    Accepts a bare array or an object wrapping it under ``files`` or
    ``patches``.

    Raises:
        StageParseError: If the payload is not a list of valid operations.
    """
    data = _unwrap_list(parse_json_payload(raw, stage), ("files", "patches"))
    if not isinstance(data, list):
        raise StageParseError(stage, "expected a list of files", excerpt=raw)
    try:
        return _OPERATIONS_ADAPTER.validate_python([_normalize_operation(i) for i in data])
    except ValidationError as exc:
        raise StageParseError(
            stage, f"response has wrong shape: {_describe(exc)}", excerpt=raw
        ) from exc


def parse_validation_findings(raw: str) -> list[ValidationFinding]:
    """Parse model-reported review findings."""
    data = _unwrap_list(parse_json_payload(raw, StageKind.REVIEW), ("findings", "issues"))
    if not isinstance(data, list):
        raise StageParseError(StageKind.REVIEW, "expected a list of findings", excerpt=raw)

    findings: list[ValidationFinding] = []
    try:
        for item in data:
            if not isinstance(item, dict):
                raise StageParseError(
                    StageKind.REVIEW, "finding is not an object", excerpt=raw
                )
            findings.append(ValidationFinding.model_validate({
                "file": item.get("file", ""),
                "line": item.get("line"),
                "column": item.get("column"),
                "message": item.get("message"),
                "severity": str(item.get("severity", "warning")).lower(),
                "category": FindingCategory.MODEL_REVIEW,
                "suggestion": item.get("suggestion"),
            }))
    except ValidationError as exc:
        raise StageParseError(
            StageKind.REVIEW, f"finding has wrong shape: {_describe(exc)}", excerpt=raw
        ) from exc
    return findings
