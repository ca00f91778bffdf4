"""Parsers turning external checker output into ValidationFindings."""

import json
import re
from pathlib import Path

from codegen_bot.models import FindingCategory, FindingSeverity, ValidationFinding

TSC_LINE_RE = re.compile(r"^(.+?)\((\d+),(\d+)\): (error|warning) (TS\d+): (.+)$")
SOLIDITY_LOCATION_RE = re.compile(r"(contracts/[^:\s]+):(\d+):(\d+)")
SOLIDITY_PREFIX_RE = re.compile(r"^\s*(Error|Warning):\s*")
BUILD_FILE_RE = re.compile(
    r"^\s*\.?/?([\w@()\[\]./-]+\.(?:tsx?|jsx?|mjs|cjs|css))(?::(\d+):(\d+))?\s*$"
)

TSC_SUGGESTIONS = {
    "TS2345": "Check that argument types match the parameter types",
    "TS2304": "Import or declare the missing name",
    "TS2339": "Check that the property exists on the type",
    "TS2551": "Check the spelling of the property name",
    "TS2322": "Make the assigned value match the declared type",
    "TS2344": "Make the type argument satisfy its constraint",
    "TS2307": "Fix the import path or add the missing module",
}
ESLINT_SUGGESTIONS = {
    "react-hooks/exhaustive-deps": "Add missing dependencies to the dependency array",
    "react-hooks/rules-of-hooks": "Only call hooks at the top level of React components",
    "@typescript-eslint/no-unused-vars": "Remove unused variables or prefix them with an underscore",
    "react/no-unescaped-entities": "Escape apostrophes and quotes in JSX text",
    "@typescript-eslint/no-explicit-any": "Replace any with a concrete type",
}
SOLIDITY_SUGGESTIONS = {
    "DeclarationError": "Check that every identifier is declared",
    "TypeError": "Check type compatibility and conversions",
    "ParserError": "Check syntax: brackets, semicolons and keywords",
}


def _relative(path: str, workspace: Path | None) -> str:
    path = path.strip().replace("\\", "/")
    if workspace is not None:
        candidate = Path(path)
        if candidate.is_absolute():
            try:
                return candidate.resolve().relative_to(workspace.resolve()).as_posix()
            except ValueError:
                return path
    return path[2:] if path.startswith("./") else path


def parse_tsc_output(output: str, workspace: Path | None = None) -> list[ValidationFinding]:
    """Parse ``tsc --pretty false`` diagnostics."""
    findings: list[ValidationFinding] = []
    for line in output.splitlines():
        match = TSC_LINE_RE.match(line.strip())
        if not match:
            continue
        file_path, row, column, level, code, message = match.groups()
        findings.append(ValidationFinding(
            file=_relative(file_path, workspace),
            line=int(row),
            column=int(column),
            message=message,
            severity=FindingSeverity.ERROR if level == "error" else FindingSeverity.WARNING,
            category=FindingCategory.TYPESCRIPT,
            code=code,
            suggestion=TSC_SUGGESTIONS.get(code),
        ))
    return findings


def parse_eslint_json(output: str, workspace: Path | None = None) -> list[ValidationFinding]:
    """Parse ``eslint --format json`` output.

    Raises:
        ValueError: If the output is not an ESLint JSON result list.
    """
    try:
        results = json.loads(output)
    except json.JSONDecodeError as exc:
        raise ValueError(f"ESLint output is not JSON: {exc}") from exc
    if not isinstance(results, list):
        raise ValueError("ESLint output is not a result list")

    findings: list[ValidationFinding] = []
    for result in results:
        file_path = _relative(result.get("filePath", ""), workspace)
        for message in result.get("messages", []):
            rule_id = message.get("ruleId")
            findings.append(ValidationFinding(
                file=file_path,
                line=message.get("line"),
                column=message.get("column"),
                message=f"{rule_id or 'eslint'}: {message.get('message', '')}",
                severity=(
                    FindingSeverity.ERROR if message.get("severity") == 2
                    else FindingSeverity.WARNING
                ),
                category=FindingCategory.ESLINT,
                code=rule_id,
                suggestion=ESLINT_SUGGESTIONS.get(rule_id or ""),
            ))
    return findings


def parse_build_output(output: str) -> list[ValidationFinding]:
    """Parse ``next build`` output.

    Next.js prints the offending file on the line before its error, so the
    most recent file line is attributed to following errors.
    """
    findings: list[ValidationFinding] = []
    last_file = ""
    last_line: int | None = None
    for line in output.splitlines():
        file_match = BUILD_FILE_RE.match(line)
        if file_match:
            last_file = file_match.group(1)
            last_line = int(file_match.group(2)) if file_match.group(2) else None
            continue
        lowered = line.lower()
        if "error:" in lowered or "failed to compile" in lowered:
            severity = FindingSeverity.ERROR
        elif "warning:" in lowered:
            severity = FindingSeverity.WARNING
        else:
            continue
        findings.append(ValidationFinding(
            file=last_file,
            line=last_line,
            message=line.strip(),
            severity=severity,
            category=FindingCategory.BUILD,
        ))
    return findings


def parse_solidity_output(output: str) -> list[ValidationFinding]:
    """Parse ``hardhat compile`` output.

    solc prints the ``--> contracts/X.sol:line:col`` location on a line of
    its own after the message; it is attached to the preceding finding.
    """
    findings: list[ValidationFinding] = []
    for line in output.splitlines():
        location = SOLIDITY_LOCATION_RE.search(line)
        if "Error:" not in line and "Warning:" not in line:
            if location and findings and not findings[-1].file:
                findings[-1].file = location.group(1)
                findings[-1].line = int(location.group(2))
                findings[-1].column = int(location.group(3))
            continue
        is_error = "Error:" in line
        message = SOLIDITY_PREFIX_RE.sub("", line).strip()
        suggestion = next(
            (text for key, text in SOLIDITY_SUGGESTIONS.items() if key in message),
            None,
        )
        findings.append(ValidationFinding(
            file=location.group(1) if location else "",
            line=int(location.group(2)) if location else None,
            column=int(location.group(3)) if location else None,
            message=message,
            severity=FindingSeverity.ERROR if is_error else FindingSeverity.WARNING,
            category=FindingCategory.SOLIDITY,
            suggestion=suggestion,
        ))
    return findings
