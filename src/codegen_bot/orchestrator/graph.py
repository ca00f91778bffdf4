"""LangGraph orchestrator graph for the code generation pipeline.

Wires ContextGatherer, IntentParser, PatchPlanner, CodeGenerator and the
ValidationEngine into a StateGraph with a single bounded repair pass.
"""

from collections.abc import Awaitable, Callable

from langgraph.graph import END, START, StateGraph

from codegen_bot.agents import (
    AgentError,
    CodeGenerator,
    ContextGatherError,
    ContextGatherer,
    IntentParser,
    PatchPlanner,
)
from codegen_bot.config import PipelineConfig
from codegen_bot.models import PipelineStatus, ValidationReport
from codegen_bot.orchestrator.exceptions import GraphBuildError, RepairMismatchError
from codegen_bot.orchestrator.recovery import (
    check_repair_scope,
    materialize_operations,
    merge_repair,
    offending_files,
    repair_findings,
)
from codegen_bot.orchestrator.state import PipelineState
from codegen_bot.parsing import StageParseError
from codegen_bot.run_logging import LoggerLike
from codegen_bot.validation import ValidationEngine, ValidationEngineError

Node = Callable[[PipelineState], Awaitable[dict]]


def make_context_node(gatherer: ContextGatherer | None, logger: LoggerLike) -> Node:
    """Factory: returns a node closure that optionally gathers project context.

    On ContextGatherError: logs, records a warning and continues without context.
    """

    async def context_node(state: PipelineState) -> dict:
        if gatherer is None:
            return {}
        try:
            context, notes = await gatherer.gather(state["request"], state["original_files"])
        except ContextGatherError as exc:
            logger.warning("Continuing without context: %s", exc)
            return {"warnings": [f"context_node: {exc}"]}
        return {"context_request": context, "context_notes": notes}

    return context_node


def make_intent_node(intent_parser: IntentParser, logger: LoggerLike) -> Node:
    """Factory: returns a node closure that extracts the IntentSpec.

    Parse and timeout errors propagate and end the run.
    """

    async def intent_node(state: PipelineState) -> dict:
        intent = await intent_parser.parse(
            state["request"], state["original_files"], state["context_notes"]
        )
        if not intent.needs_changes:
            logger.info("No changes needed: %s", intent.reason or "no reason given")
            return {"intent": intent, "status": PipelineStatus.UNCHANGED}
        return {"intent": intent}

    return intent_node


def route_after_intent(state: PipelineState) -> str:
    """Router: "done" on an early exit, "plan" otherwise."""
    if state["status"] == PipelineStatus.UNCHANGED:
        return "done"
    return "plan"


def make_plan_node(planner: PatchPlanner, logger: LoggerLike) -> Node:
    async def plan_node(state: PipelineState) -> dict:
        plan = await planner.plan(
            state["request"], state["intent"], state["original_files"], state["context_notes"]
        )
        logger.info("Plan covers %d files", len(plan.patches))
        return {"plan": plan}

    return plan_node


def make_generate_node(
    generator: CodeGenerator,
    config: PipelineConfig,
    logger: LoggerLike,
) -> Node:
    """Factory: returns a node closure that generates and materializes code.

    Failed diffs keep the prior file content and are reported as warnings;
    generation errors (including timeouts) propagate and end the run.
    """

    async def generate_node(state: PipelineState) -> dict:
        operations = await generator.generate(
            state["request"], state["intent"], state["plan"], state["original_files"]
        )
        materialized = materialize_operations(
            state["original_files"],
            operations,
            max_change_ratio=config.max_change_ratio,
            min_lines_for_ratio=config.min_lines_for_ratio,
        )
        for warning in materialized.warnings:
            logger.warning("%s", warning)
        logger.info(
            "Materialized %d operations (%d deleted, %d failed)",
            len(operations), len(materialized.deleted_files), len(materialized.failed_files),
        )
        return {
            "operations": operations,
            "files": materialized.files,
            "deleted_files": materialized.deleted_files,
            "failed_files": materialized.failed_files,
            "warnings": materialized.warnings,
        }

    return generate_node


async def _validate(
    engine: ValidationEngine,
    files: dict[str, str],
    logger: LoggerLike,
) -> tuple[ValidationReport | None, list[str]]:
    try:
        return await engine.validate(files, logger=logger), []
    except ValidationEngineError as exc:
        logger.warning("Validation could not run: %s", exc)
        return None, [f"validation: {exc}"]


def make_validate_node(engine: ValidationEngine, logger: LoggerLike) -> Node:
    """Factory: returns a node closure that validates the generated files.

    Sets ``repair_paths`` to the files carrying Error findings. When errors
    cannot be attributed to a generated file, the run ends with known issues.
    """

    async def validate_node(state: PipelineState) -> dict:
        report, warnings = await _validate(engine, state["files"], logger)
        if report is None:
            return {"report": None, "status": PipelineStatus.KNOWN_ISSUES, "warnings": warnings}
        if report.success:
            return {"report": report, "status": PipelineStatus.SUCCESS}

        repair_paths = offending_files(report, state["files"])
        if not repair_paths:
            logger.warning("%d errors not attributable to any file; skipping repair", report.error_count)
            return {
                "report": report,
                "status": PipelineStatus.KNOWN_ISSUES,
                "warnings": ["validate_node: errors not attributable to generated files"],
            }
        return {"report": report, "repair_paths": repair_paths}

    return validate_node


def route_after_validation(state: PipelineState) -> str:
    """Router: "repair" when offending files exist and no verdict was reached."""
    if state["status"] is None and state["repair_paths"]:
        return "repair"
    return "done"


def make_repair_node(
    generator: CodeGenerator,
    config: PipelineConfig,
    logger: LoggerLike,
) -> Node:
    """Factory: returns a node closure that runs the single repair pass.

    Only the offending files and their errors are sent. Unrequested files in
    the response are dropped; requested files it omits keep their content.
    A failed repair call keeps the generated files and ends with known issues.
    """

    async def repair_node(state: PipelineState) -> dict:
        requested = state["repair_paths"]
        findings = repair_findings(state["report"], requested)
        logger.info("Repairing %d files: %s", len(requested), ", ".join(requested))

        try:
            operations = await generator.repair(state["files"], requested, findings)
        except (StageParseError, AgentError) as exc:
            logger.warning("Repair failed; keeping generated files: %s", exc)
            return {
                "repair_attempted": True,
                "status": PipelineStatus.KNOWN_ISSUES,
                "warnings": [f"repair_node: {exc}"],
            }

        warnings: list[str] = []
        try:
            check_repair_scope(requested, [op.path for op in operations])
        except RepairMismatchError as exc:
            logger.warning("%s", exc)
            warnings.append(f"repair_node: {exc}")

        merged, _ = merge_repair(
            state["files"],
            requested,
            operations,
            max_change_ratio=config.max_change_ratio,
            min_lines_for_ratio=config.min_lines_for_ratio,
        )
        for warning in merged.warnings:
            logger.warning("%s", warning)
        return {
            "files": merged.files,
            "failed_files": state["failed_files"] + merged.failed_files,
            "repair_attempted": True,
            "warnings": warnings + merged.warnings,
        }

    return repair_node


def make_revalidate_node(engine: ValidationEngine, logger: LoggerLike) -> Node:
    """Factory: returns a node closure for the final validation after repair."""

    async def revalidate_node(state: PipelineState) -> dict:
        if state["status"] is not None:
            return {}
        report, warnings = await _validate(engine, state["files"], logger)
        if report is None:
            return {"status": PipelineStatus.KNOWN_ISSUES, "warnings": warnings}
        if report.success:
            return {"report": report, "status": PipelineStatus.SUCCESS}
        logger.warning("Validation still failing after repair; returning with known issues")
        return {"report": report, "status": PipelineStatus.KNOWN_ISSUES}

    return revalidate_node


def build_graph(
    intent_parser: IntentParser,
    planner: PatchPlanner,
    generator: CodeGenerator,
    engine: ValidationEngine,
    config: PipelineConfig,
    logger: LoggerLike,
    gatherer: ContextGatherer | None = None,
):
    """Build and compile the pipeline StateGraph.

    Edge topology:
      START -> context_node -> intent_node
      intent_node -> conditional(route_after_intent) -> {plan_node, END}
      plan_node -> generate_node -> validate_node
      validate_node -> conditional(route_after_validation) -> {repair_node, END}
      repair_node -> revalidate_node -> END

    There is no edge back into generation, so repair runs at most once.

    Returns:
        CompiledStateGraph ready to ainvoke.

    Raises:
        GraphBuildError: If graph construction fails.
    """
    try:
        graph = StateGraph(PipelineState)

        graph.add_node("context_node", make_context_node(gatherer, logger))
        graph.add_node("intent_node", make_intent_node(intent_parser, logger))
        graph.add_node("plan_node", make_plan_node(planner, logger))
        graph.add_node("generate_node", make_generate_node(generator, config, logger))
        graph.add_node("validate_node", make_validate_node(engine, logger))
        graph.add_node("repair_node", make_repair_node(generator, config, logger))
        graph.add_node("revalidate_node", make_revalidate_node(engine, logger))

        graph.add_edge(START, "context_node")
        graph.add_edge("context_node", "intent_node")
        graph.add_conditional_edges(
            "intent_node",
            route_after_intent,
            {"plan": "plan_node", "done": END},
        )
        graph.add_edge("plan_node", "generate_node")
        graph.add_edge("generate_node", "validate_node")
        graph.add_conditional_edges(
            "validate_node",
            route_after_validation,
            {"repair": "repair_node", "done": END},
        )
        graph.add_edge("repair_node", "revalidate_node")
        graph.add_edge("revalidate_node", END)

        return graph.compile()

    except Exception as exc:
        raise GraphBuildError(f"Failed to build pipeline graph: {exc}") from exc
