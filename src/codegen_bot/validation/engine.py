"""Validation engine: runs checks over a candidate file set in a disposable workspace."""

import asyncio
import logging
import time
from collections.abc import Iterable, Mapping
from pathlib import Path

from codegen_bot.config import ValidationConfig
from codegen_bot.models import (
    FileFindingCounts,
    FindingSeverity,
    ValidationFinding,
    ValidationReport,
)
from codegen_bot.run_logging import LoggerLike
from codegen_bot.validation.checks import Reviewer, ValidationCheck, default_checks
from codegen_bot.validation.exceptions import ValidationCheckError
from codegen_bot.validation.workspace import disposable_workspace, filter_files

PROJECT_WIDE_KEY = "<project>"


def build_report(
    findings: list[ValidationFinding],
    checks_run: Iterable[str] = (),
    checks_failed: Iterable[str] = (),
    duration_seconds: float | None = None,
) -> ValidationReport:
    """Aggregate findings into a report; success means zero ERROR findings."""
    by_file: dict[str, FileFindingCounts] = {}
    error_count = warning_count = info_count = 0
    for finding in findings:
        counts = by_file.setdefault(finding.file or PROJECT_WIDE_KEY, FileFindingCounts())
        if finding.severity == FindingSeverity.ERROR:
            error_count += 1
            counts.errors += 1
        elif finding.severity == FindingSeverity.WARNING:
            warning_count += 1
            counts.warnings += 1
        else:
            info_count += 1
            counts.infos += 1

    return ValidationReport(
        success=error_count == 0,
        findings=list(findings),
        error_count=error_count,
        warning_count=warning_count,
        info_count=info_count,
        by_file=by_file,
        checks_run=list(checks_run),
        checks_failed=list(checks_failed),
        duration_seconds=duration_seconds,
    )


def _batches(checks: list[ValidationCheck], size: int) -> list[list[ValidationCheck]]:
    return [checks[i:i + size] for i in range(0, len(checks), size)]


class ValidationEngine:
    """Runs enabled checks in batches of at most ``max_concurrent_checks``.

    A check that errors or times out is recorded in ``checks_failed`` and
    logged as a warning; it never fails the whole validation.
    """

    def __init__(
        self,
        config: ValidationConfig | None = None,
        checks: list[ValidationCheck] | None = None,
        reviewer: Reviewer | None = None,
    ) -> None:
        self.config = config or ValidationConfig()
        self.checks = checks if checks is not None else default_checks(self.config, reviewer)

    async def validate(
        self,
        files: Mapping[str, str],
        logger: LoggerLike | None = None,
    ) -> ValidationReport:
        """Validate a complete candidate file set.

        Args:
            files: Relative path -> content of every file in the candidate project.
            logger: Run-scoped logger; defaults to the module logger.

        Returns:
            ValidationReport over the non-skipped files.

        Raises:
            WorkspaceError: If the workspace cannot be materialized.
        """
        log = logger or logging.getLogger(__name__)
        started = time.monotonic()

        candidates = filter_files(files, self.config.skip_patterns)
        skipped = len(files) - len(candidates)
        if skipped:
            log.debug("Skipping %d files matching skip patterns", skipped)

        applicable = [check for check in self.checks if check.applies_to(candidates)]
        findings: list[ValidationFinding] = []
        checks_failed: list[str] = []

        async with disposable_workspace(candidates, self.config.project_root) as workspace:
            for batch in _batches(applicable, self.config.max_concurrent_checks):
                results = await asyncio.gather(
                    *(self._run_check(check, workspace, candidates, log) for check in batch)
                )
                for check, result in zip(batch, results):
                    if result is None:
                        checks_failed.append(check.name)
                    else:
                        findings.extend(result)

        report = build_report(
            findings,
            checks_run=[check.name for check in applicable],
            checks_failed=checks_failed,
            duration_seconds=round(time.monotonic() - started, 3),
        )
        log.info(
            "Validation finished: %d errors, %d warnings, %d info across %d checks (%d failed)",
            report.error_count, report.warning_count, report.info_count,
            len(report.checks_run), len(checks_failed),
        )
        return report

    async def _run_check(
        self,
        check: ValidationCheck,
        workspace: Path,
        files: Mapping[str, str],
        log: LoggerLike,
    ) -> list[ValidationFinding] | None:
        try:
            findings = await asyncio.wait_for(
                check.run(workspace, files), timeout=self.config.timeout_seconds
            )
        except asyncio.TimeoutError:
            log.warning(
                "Check %s timed out after %.0fs; continuing without it",
                check.name, self.config.timeout_seconds,
            )
            return None
        except ValidationCheckError as exc:
            log.warning("Check %s failed: %s; continuing without it", check.name, exc)
            return None
        except Exception as exc:
            log.warning(
                "Check %s crashed: %s: %s; continuing without it",
                check.name, type(exc).__name__, exc, exc_info=True,
            )
            return None
        log.debug("Check %s produced %d findings", check.name, len(findings))
        return findings
