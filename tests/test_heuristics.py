"""Tests for tree-sitter heuristic scans and reference checks."""

import pytest

from codegen_bot.models import FindingCategory, FindingSeverity
from codegen_bot.validation import check_references, scan_source
from codegen_bot.validation.heuristics import resolve_import


def messages(findings):
    return [f.message for f in findings]


# ---------------------------------------------------------------------------
# scan_source
# ---------------------------------------------------------------------------

class TestScanSource:
    def test_clean_file(self):
        source = "export const add = (a: number, b: number): number => a + b;\n"
        assert scan_source("src/math.ts", source) == []

    def test_unsupported_file_type(self):
        assert scan_source("src/styles.css", "body { color: red }") == []

    def test_interval_without_clear(self):
        source = "export function start() {\n  setInterval(() => tick(), 1000);\n}\n"
        findings = scan_source("src/timer.ts", source)
        assert messages(findings) == ["setInterval without clearInterval; timer is never cleaned up"]
        assert findings[0].severity == FindingSeverity.WARNING
        assert findings[0].line == 2

    def test_interval_with_clear(self):
        source = (
            "export function start() {\n"
            "  const id = setInterval(() => tick(), 1000);\n"
            "  return () => clearInterval(id);\n"
            "}\n"
        )
        assert scan_source("src/timer.ts", source) == []

    def test_unguarded_await(self):
        source = "export async function load() {\n  const res = await fetch('/api');\n  return res;\n}\n"
        findings = scan_source("src/load.ts", source)
        assert messages(findings) == ["Awaited call has no error handling"]
        assert findings[0].severity == FindingSeverity.INFO

    def test_await_inside_try(self):
        source = (
            "export async function load() {\n"
            "  try {\n"
            "    return await fetch('/api');\n"
            "  } catch (err) {\n"
            "    return null;\n"
            "  }\n"
            "}\n"
        )
        assert scan_source("src/load.ts", source) == []

    def test_await_with_catch_chain(self):
        source = "export async function load() {\n  return await fetch('/api').catch(() => null);\n}\n"
        assert scan_source("src/load.ts", source) == []

    def test_call_of_undefined(self):
        findings = scan_source("src/bad.js", "undefined();\n")
        assert messages(findings) == ["Call of undefined"]
        assert findings[0].severity == FindingSeverity.ERROR

    def test_event_handler_bound_to_undefined(self):
        source = "export function Button() {\n  return <button onClick={undefined}>Go</button>;\n}\n"
        findings = scan_source("src/Button.tsx", source)
        assert messages(findings) == ["Event handler onClick is bound to undefined"]

    def test_unreachable_code(self):
        source = "function f() {\n  return 1;\n  console.log('never');\n}\n"
        findings = scan_source("src/f.js", source)
        assert messages(findings) == ["Unreachable code after return/throw"]
        assert findings[0].line == 3

    def test_function_declaration_after_return_is_hoisted(self):
        source = "function f() {\n  return g();\n  function g() { return 1; }\n}\n"
        assert scan_source("src/f.js", source) == []

    def test_syntax_error(self):
        findings = scan_source("src/broken.ts", "export function f( {\n  return 1\n")
        assert findings
        assert all(f.message.startswith("Syntax error") for f in findings if f.severity == FindingSeverity.ERROR)
        assert any(f.severity == FindingSeverity.ERROR for f in findings)
        assert all(f.category == FindingCategory.HEURISTIC for f in findings)


# ---------------------------------------------------------------------------
# check_references
# ---------------------------------------------------------------------------

class TestCheckReferences:
    def test_resolved_relative_import(self):
        files = {
            "src/app.ts": "import { add } from './math';\nexport const x = add(1, 2);\n",
            "src/math.ts": "export const add = (a: number, b: number) => a + b;\n",
        }
        assert check_references(files) == []

    def test_unresolved_relative_import(self):
        files = {"src/app.ts": "import { add } from './math';\n"}
        findings = check_references(files)
        assert messages(findings) == ["Cannot resolve import './math'"]
        assert findings[0].severity == FindingSeverity.ERROR
        assert findings[0].category == FindingCategory.IMPORTS
        assert findings[0].file == "src/app.ts"

    def test_alias_import(self):
        files = {
            "src/app/page.tsx": "import { api } from '@/lib/api';\nexport default function Page() { return null; }\n",
            "src/lib/api.ts": "export const api = {};\n",
        }
        assert check_references(files) == []

    def test_unresolved_alias_import(self):
        files = {"src/app/page.tsx": "import { api } from '@/lib/api';\n"}
        assert messages(check_references(files)) == ["Cannot resolve import '@/lib/api'"]

    def test_reexport_checked(self):
        files = {"src/index.ts": "export { Banner } from './components/Banner';\n"}
        assert messages(check_references(files)) == ["Cannot resolve import './components/Banner'"]

    def test_index_file_resolution(self):
        files = {
            "src/app.ts": "import { Banner } from './components';\n",
            "src/components/index.ts": "export const Banner = 1;\n",
        }
        assert check_references(files) == []

    def test_package_and_asset_imports_ignored(self):
        files = {"src/app.tsx": "import React from 'react';\nimport './globals.css';\n"}
        assert check_references(files) == []

    def test_empty_source_file(self):
        findings = check_references({"src/empty.ts": "   \n"})
        assert messages(findings) == ["File is empty"]
        assert findings[0].severity == FindingSeverity.ERROR


@pytest.mark.parametrize("importer,specifier,known,expected", [
    ("src/a.ts", "./util.js", {"src/util.ts"}, True),
    ("src/lib/a.ts", "../util", {"src/util.tsx"}, True),
    ("src/a.ts", "./missing", {"src/util.ts"}, False),
    ("src/a.ts", "react", set(), None),
    ("src/a.ts", "./logo.svg", set(), None),
])
def test_resolve_import(importer, specifier, known, expected):
    assert resolve_import(importer, specifier, known) is expected
