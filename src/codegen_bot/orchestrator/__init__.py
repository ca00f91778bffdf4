"""LangGraph orchestration of the code generation stages."""

from codegen_bot.orchestrator.exceptions import (
    GraphBuildError,
    OrchestratorError,
    RepairMismatchError,
)
from codegen_bot.orchestrator.graph import build_graph
from codegen_bot.orchestrator.pipeline import CodegenPipeline, canonical_diffs
from codegen_bot.orchestrator.recovery import (
    MaterializedFiles,
    check_repair_scope,
    materialize_operations,
    merge_repair,
    offending_files,
    repair_findings,
)
from codegen_bot.orchestrator.state import PipelineState, make_initial_state

__all__ = [
    "CodegenPipeline",
    "GraphBuildError",
    "MaterializedFiles",
    "OrchestratorError",
    "PipelineState",
    "RepairMismatchError",
    "build_graph",
    "canonical_diffs",
    "check_repair_scope",
    "make_initial_state",
    "materialize_operations",
    "merge_repair",
    "offending_files",
    "repair_findings",
]
