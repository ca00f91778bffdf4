"""Lightweight static scans for JS/TS sources using tree-sitter."""

import posixpath
from collections.abc import Iterator, Mapping
from pathlib import PurePosixPath

import tree_sitter_javascript as tsjs
import tree_sitter_typescript as tsts
from tree_sitter import Language, Node, Parser, Query, QueryCursor, Tree

from codegen_bot.models import FindingCategory, FindingSeverity, ValidationFinding

# Initialize language objects
JS_LANGUAGE = Language(tsjs.language())
TS_LANGUAGE = Language(tsts.language_typescript())
TSX_LANGUAGE = Language(tsts.language_tsx())

LANGUAGE_BY_SUFFIX = {
    ".js": JS_LANGUAGE,
    ".jsx": JS_LANGUAGE,
    ".mjs": JS_LANGUAGE,
    ".cjs": JS_LANGUAGE,
    ".ts": TS_LANGUAGE,
    ".tsx": TSX_LANGUAGE,
}
TIMER_CLEARS = {"setInterval": "clearInterval", "setTimeout": "clearTimeout"}
FUNCTION_TYPES = frozenset({
    "function_declaration",
    "function_expression",
    "function",
    "arrow_function",
    "method_definition",
    "generator_function_declaration",
})
TERMINATOR_TYPES = frozenset({"return_statement", "throw_statement"})
HOISTED_TYPES = frozenset({"function_declaration", "comment", "empty_statement"})
MAX_SYNTAX_FINDINGS = 3

# Import/export sources that must resolve inside the file set
RESOLVE_SUFFIXES = ("", ".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs", ".json",
                    "/index.ts", "/index.tsx", "/index.js", "/index.jsx")
SCRIPT_SUFFIXES = frozenset({"", ".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs", ".json"})
IMPORT_SOURCES_QUERY = """
    (import_statement source: (string) @source)
    (export_statement source: (string) @source)
"""


def get_language_for_file(path: str) -> Language | None:
    return LANGUAGE_BY_SUFFIX.get(PurePosixPath(path).suffix)


def parse_source(path: str, content: str) -> tuple[Tree, Language] | None:
    """Parse a JS/TS source, or return None for unsupported files."""
    language = get_language_for_file(path)
    if language is None:
        return None
    parser = Parser()
    parser.language = language
    return parser.parse(content.encode("utf-8")), language


def _walk(node: Node) -> Iterator[Node]:
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def _text(node: Node | None) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def _finding(
    path: str,
    node: Node,
    message: str,
    severity: FindingSeverity,
    category: FindingCategory = FindingCategory.HEURISTIC,
    suggestion: str | None = None,
) -> ValidationFinding:
    return ValidationFinding(
        file=path,
        line=node.start_point[0] + 1,
        column=node.start_point[1] + 1,
        message=message,
        severity=severity,
        category=category,
        suggestion=suggestion,
    )


def _callee_name(call: Node) -> str:
    callee = call.child_by_field_name("function")
    if callee is None:
        return ""
    if callee.type == "member_expression":
        return _text(callee.child_by_field_name("property"))
    return _text(callee)


def _is_undefined(node: Node | None) -> bool:
    return node is not None and (node.type == "undefined" or _text(node) == "undefined")


def _is_guarded(await_node: Node) -> bool:
    """True if an await sits inside a try block or ends in a .catch() chain."""
    argument = await_node.named_children[0] if await_node.named_children else None
    if argument is not None and argument.type == "call_expression" and _callee_name(argument) == "catch":
        return True

    child = await_node
    parent = await_node.parent
    while parent is not None:
        if parent.type in FUNCTION_TYPES:
            return False
        if parent.type == "try_statement" and parent.child_by_field_name("body") == child:
            return True
        child, parent = parent, parent.parent
    return False


def _unreachable_after(block: Node) -> Node | None:
    terminated = False
    for statement in block.named_children:
        if terminated and statement.type not in HOISTED_TYPES:
            return statement
        if statement.type in TERMINATOR_TYPES:
            terminated = True
    return None


def scan_source(path: str, content: str) -> list[ValidationFinding]:
    """Run heuristic scans over one JS/TS file.

    Flags syntax errors, timers without a matching clear call, awaits with
    no error handling, calls or event handlers bound to ``undefined``, and
    statements that follow a return/throw in the same block.

    Args:
        path: Relative path, used to pick the grammar and label findings.
        content: File content.

    Returns:
        Findings for this file; [] for unsupported file types.
    """
    parsed = parse_source(path, content)
    if parsed is None:
        return []
    tree, _ = parsed

    findings: list[ValidationFinding] = []
    syntax_errors = 0
    timers: list[tuple[str, Node]] = []
    clears: set[str] = set()

    for node in _walk(tree.root_node):
        if (node.type == "ERROR" or node.is_missing) and syntax_errors < MAX_SYNTAX_FINDINGS:
            syntax_errors += 1
            detail = f"missing {node.type}" if node.is_missing else "unexpected syntax"
            findings.append(_finding(
                path, node, f"Syntax error: {detail}", FindingSeverity.ERROR,
                suggestion="Check for unbalanced brackets, quotes or a truncated file",
            ))
        elif node.type == "call_expression":
            name = _callee_name(node)
            if name in TIMER_CLEARS:
                timers.append((name, node))
            elif name in TIMER_CLEARS.values():
                clears.add(name)
            elif _is_undefined(node.child_by_field_name("function")):
                findings.append(_finding(
                    path, node, "Call of undefined", FindingSeverity.ERROR,
                ))
        elif node.type == "await_expression" and not _is_guarded(node):
            findings.append(_finding(
                path, node, "Awaited call has no error handling", FindingSeverity.INFO,
                suggestion="Wrap in try/catch or chain .catch()",
            ))
        elif node.type == "jsx_attribute":
            children = node.named_children
            name = _text(children[0]) if children else ""
            value = children[1] if len(children) > 1 else None
            if (
                name.startswith("on")
                and value is not None
                and value.type == "jsx_expression"
                and value.named_children
                and _is_undefined(value.named_children[0])
            ):
                findings.append(_finding(
                    path, node, f"Event handler {name} is bound to undefined",
                    FindingSeverity.ERROR,
                    suggestion="Pass a defined handler function",
                ))
        elif node.type == "statement_block":
            unreachable = _unreachable_after(node)
            if unreachable is not None:
                findings.append(_finding(
                    path, unreachable, "Unreachable code after return/throw",
                    FindingSeverity.WARNING,
                ))

    for name, node in timers:
        if TIMER_CLEARS[name] not in clears:
            findings.append(_finding(
                path, node, f"{name} without {TIMER_CLEARS[name]}; timer is never cleaned up",
                FindingSeverity.WARNING,
                suggestion=f"Keep the handle and call {TIMER_CLEARS[name]} on cleanup",
            ))
    return findings


# ---------------------------------------------------------------------------
# Reference checks
# ---------------------------------------------------------------------------


def extract_import_sources(tree: Tree, language: Language) -> list[tuple[str, Node]]:
    """Return (module specifier, string node) for every import/re-export."""
    query = Query(language, IMPORT_SOURCES_QUERY)
    cursor = QueryCursor(query)
    sources: list[tuple[str, Node]] = []
    for _, captures in cursor.matches(tree.root_node):
        for node in captures.get("source", []):
            specifier = _text(node).strip("'\"`")
            if specifier:
                sources.append((specifier, node))
    return sources


def _candidate_bases(importer: str, specifier: str) -> list[str] | None:
    if specifier.startswith("@/"):
        rest = specifier[2:]
        return [f"src/{rest}", rest]
    if specifier.startswith(("./", "../")):
        return [posixpath.normpath(posixpath.join(posixpath.dirname(importer), specifier))]
    return None  # Package import, resolved by node_modules


def resolve_import(importer: str, specifier: str, known_paths: set[str]) -> bool | None:
    """Resolve a local import against the file set.

    Returns:
        True/False for local specifiers, None for package imports and
        non-script assets that cannot be checked here.
    """
    if PurePosixPath(specifier).suffix not in SCRIPT_SUFFIXES:
        return None
    bases = _candidate_bases(importer, specifier)
    if bases is None:
        return None
    # ESM-style "./util.js" may point at "./util.ts"
    bases += [base.rsplit(".", 1)[0] for base in bases if base.endswith((".js", ".jsx"))]
    return any(base + suffix in known_paths for base in bases for suffix in RESOLVE_SUFFIXES)


def check_references(files: Mapping[str, str]) -> list[ValidationFinding]:
    """Flag empty source files and local imports that resolve to nothing."""
    known_paths = set(files)
    findings: list[ValidationFinding] = []
    for path, content in files.items():
        suffix = PurePosixPath(path).suffix
        if suffix in LANGUAGE_BY_SUFFIX or suffix == ".sol":
            if not content.strip():
                findings.append(ValidationFinding(
                    file=path,
                    message="File is empty",
                    severity=FindingSeverity.ERROR,
                    category=FindingCategory.IMPORTS,
                    suggestion="Generate the full file content",
                ))
                continue

        parsed = parse_source(path, content)
        if parsed is None:
            continue
        tree, language = parsed
        for specifier, node in extract_import_sources(tree, language):
            if resolve_import(path, specifier, known_paths) is False:
                findings.append(_finding(
                    path, node, f"Cannot resolve import '{specifier}'",
                    FindingSeverity.ERROR, category=FindingCategory.IMPORTS,
                    suggestion="Create the imported file or fix the import path",
                ))
    return findings
