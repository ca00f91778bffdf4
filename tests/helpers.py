"""Builders and doubles shared across the test modules."""

import json
from typing import Any

from codegen_bot.models import (
    FindingCategory,
    FindingSeverity,
    StageKind,
    ValidationFinding,
)
from codegen_bot.parsing import END_MARKER, START_MARKER


def wrap_json(payload: Any) -> str:
    """Render a payload the way a well-behaved model response looks."""
    return f"Here you go.\n{START_MARKER}\n{json.dumps(payload)}\n{END_MARKER}\n"


def make_finding(
    file: str,
    severity: FindingSeverity = FindingSeverity.ERROR,
    message: str = "Something is wrong",
    category: FindingCategory = FindingCategory.TYPESCRIPT,
    line: int | None = 1,
) -> ValidationFinding:
    return ValidationFinding(
        file=file,
        line=line,
        message=message,
        severity=severity,
        category=category,
    )


def make_intent(needs_changes: bool = True, target_files: list[str] | None = None) -> dict:
    return {
        "feature": "Add a greeting banner",
        "requirements": ["Show a banner on the home page"],
        "targetFiles": target_files if target_files is not None else ["src/app.ts"],
        "dependencies": [],
        "needsChanges": needs_changes,
        "reason": "" if needs_changes else "The banner already exists",
    }


def make_plan(paths: list[str], operation: str = "modify") -> dict:
    return {
        "patches": [
            {
                "filename": path,
                "operation": operation,
                "purpose": f"Update {path}",
                "changes": [
                    {"type": "replace", "target": "body", "description": "Update the body"}
                ],
            }
            for path in paths
        ],
        "implementationNotes": [],
    }


class ScriptedModelClient:
    """Model client double that replays queued responses per stage.

    Every call is recorded; an unexpected stage call fails the test loudly.
    """

    def __init__(self, responses: dict[StageKind, list[str]] | None = None) -> None:
        self.responses = {stage: list(queue) for stage, queue in (responses or {}).items()}
        self.calls: list[dict[str, Any]] = []

    async def call(
        self,
        system_prompt: str,
        user_prompt: str,
        stage_label: str,
        stage_kind: StageKind,
        max_tokens: int = 4000,
    ) -> str:
        self.calls.append({
            "system_prompt": system_prompt,
            "user_prompt": user_prompt,
            "stage_label": stage_label,
            "stage_kind": stage_kind,
            "max_tokens": max_tokens,
        })
        queue = self.responses.get(stage_kind)
        if not queue:
            raise AssertionError(f"Unexpected model call for stage {stage_kind.value}")
        return queue.pop(0)

    def stages(self) -> list[StageKind]:
        return [call["stage_kind"] for call in self.calls]
