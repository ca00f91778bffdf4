"""CodegenPipeline: the public entry point for one code generation run."""

import asyncio
import logging
import time
from collections.abc import Iterable, Mapping

from codegen_bot.agents import (
    CodeGenerator,
    CodeReviewer,
    ContextGatherer,
    IntentParser,
    ModelClient,
    PatchPlanner,
    StageRunner,
)
from codegen_bot.config import PipelineConfig
from codegen_bot.diff import compute_diff
from codegen_bot.models import (
    FileDiff,
    FileSnapshot,
    PipelineResult,
    PipelineStatus,
    contents_of,
    snapshot_mapping,
)
from codegen_bot.orchestrator.graph import build_graph
from codegen_bot.orchestrator.state import PipelineState, make_initial_state
from codegen_bot.run_logging import RunLogger, new_run_id
from codegen_bot.services import PatchHistory, ProjectFileService
from codegen_bot.tools import ToolCallExecutor
from codegen_bot.validation import ValidationEngine


def canonical_diffs(
    original: Mapping[str, str],
    final: Mapping[str, str],
    deleted_files: list[str],
    context_lines: int,
) -> list[FileDiff]:
    """Diff every changed, created or deleted path from input to output.

    Created files diff from "" and deleted files diff to "".
    """
    diffs: list[FileDiff] = []
    for path, content in final.items():
        before = original.get(path, "")
        if path in original and before == content:
            continue
        diff = compute_diff(before, content, path=path, context_lines=context_lines)
        if diff.hunks:
            diffs.append(diff)
    for path in deleted_files:
        if path in original and path not in final:
            diffs.append(compute_diff(original[path], "", path=path, context_lines=context_lines))
    return diffs


class CodegenPipeline:
    """Turns a request plus project files into a validated file set.

    Collaborators are injected; each run gets its own RunLogger, stage
    runner, agents and compiled graph, so concurrent runs share no state.
    """

    def __init__(
        self,
        model_client: ModelClient,
        validation_engine: ValidationEngine | None = None,
        tool_executor: ToolCallExecutor | None = None,
        history: PatchHistory | None = None,
        file_service: ProjectFileService | None = None,
        config: PipelineConfig | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.model_client = model_client
        self.validation_engine = validation_engine
        self.tool_executor = tool_executor
        self.history = history
        self.file_service = file_service
        self.config = config or PipelineConfig()
        self.logger = logger or logging.getLogger(__name__)

    async def run(
        self,
        request: str,
        files: Mapping[str, str] | Iterable[FileSnapshot],
        project_id: str | None = None,
        run_id: str | None = None,
    ) -> PipelineResult:
        """Run the pipeline once.

        Args:
            request: Natural-language change request.
            files: Current project files as path -> content or snapshots.
            project_id: When given, diffs go to the patch history and files
                to the file service.
            run_id: Optional id for log correlation; generated when omitted.

        Returns:
            PipelineResult with status unchanged, success or known_issues.

        Raises:
            StageParseError: If intent, plan or generated code cannot be parsed.
            StageTimeoutError: If a fatal stage times out.
            ModelCallError: If every model provider fails on a fatal stage.
            GraphBuildError: If the pipeline graph cannot be built.
        """
        run_id = run_id or new_run_id()
        log = RunLogger(self.logger, run_id)
        original = contents_of(snapshot_mapping(files))
        started = time.monotonic()

        runner = StageRunner(self.model_client, self.config, log)
        engine = self.validation_engine or ValidationEngine(
            self.config.validation, reviewer=CodeReviewer(runner).review
        )
        gatherer = (
            ContextGatherer(runner, self.tool_executor, self.config.max_tool_calls)
            if self.config.enable_context_gathering
            else None
        )
        graph = build_graph(
            IntentParser(runner),
            PatchPlanner(runner),
            CodeGenerator(runner),
            engine,
            self.config,
            log,
            gatherer=gatherer,
        )

        log.info("Starting run over %d files", len(original))
        final: PipelineState = await graph.ainvoke(make_initial_state(request, original))
        result = self._build_result(run_id, original, final)
        log.info(
            "Run finished with status %s in %.1fs: %d diffs, %d warnings",
            result.status.value, time.monotonic() - started,
            len(result.diffs), len(result.warnings),
        )

        if project_id is not None:
            await self._persist(project_id, result, log)
        return result

    def _build_result(
        self,
        run_id: str,
        original: dict[str, str],
        final: PipelineState,
    ) -> PipelineResult:
        status = final["status"] or PipelineStatus.SUCCESS
        context = final["context_request"]
        common = {
            "run_id": run_id,
            "status": status,
            "intent": final["intent"],
            "warnings": list(final["warnings"]),
            "context_summary": context.context_summary if context else "",
        }
        if status == PipelineStatus.UNCHANGED:
            return PipelineResult(files=dict(original), **common)

        return PipelineResult(
            files=dict(final["files"]),
            diffs=canonical_diffs(
                original, final["files"], final["deleted_files"], self.config.diff_context_lines
            ),
            deleted_files=list(final["deleted_files"]),
            failed_files=list(final["failed_files"]),
            plan=final["plan"],
            report=final["report"],
            repair_attempted=final["repair_attempted"],
            **common,
        )

    async def _persist(self, project_id: str, result: PipelineResult, log: RunLogger) -> None:
        if result.status == PipelineStatus.UNCHANGED:
            return
        if self.history is not None and result.diffs:
            await self.history.store(project_id, result.diffs)
            log.info("Stored %d diffs for project %s", len(result.diffs), project_id)
        if self.file_service is not None:
            await asyncio.to_thread(
                self.file_service.publish, project_id, result.files, result.deleted_files
            )
