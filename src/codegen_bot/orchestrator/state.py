"""State definition for the LangGraph code generation pipeline."""

import operator
from typing import Annotated, TypedDict

from codegen_bot.models import (
    ChangeOperation,
    ContextRequest,
    IntentSpec,
    PatchPlan,
    PipelineStatus,
    ValidationReport,
)


class PipelineState(TypedDict):
    """State for one pipeline run.

    Fields with Annotated[list, operator.add] reducers accumulate across nodes.
    All other fields use default overwrite semantics.
    """

    # Input
    request: str
    original_files: dict[str, str]

    # Context gathering
    context_request: ContextRequest | None
    context_notes: str

    # Intent and planning
    intent: IntentSpec | None
    plan: PatchPlan | None

    # Generation
    operations: list[ChangeOperation]
    files: dict[str, str]
    deleted_files: list[str]
    failed_files: list[str]

    # Validation and repair
    report: ValidationReport | None
    repair_paths: list[str]
    repair_attempted: bool
    status: PipelineStatus | None

    # Warning accumulation
    warnings: Annotated[list[str], operator.add]


def make_initial_state(request: str, files: dict[str, str]) -> PipelineState:
    """Create the initial state for a pipeline run.

    Args:
        request: The natural-language change request.
        files: Current project files, path -> content.

    Returns:
        PipelineState dict with all fields initialised to defaults. ``files``
        starts as a copy of the input so an early exit returns it unchanged.
    """
    return {
        "request": request,
        "original_files": dict(files),
        "context_request": None,
        "context_notes": "",
        "intent": None,
        "plan": None,
        "operations": [],
        "files": dict(files),
        "deleted_files": [],
        "failed_files": [],
        "report": None,
        "repair_paths": [],
        "repair_attempted": False,
        "status": None,
        "warnings": [],
    }
