"""Tests for parsing external checker output into findings."""

import json

import pytest

from codegen_bot.models import FindingCategory, FindingSeverity
from codegen_bot.validation.output_parsers import (
    parse_build_output,
    parse_eslint_json,
    parse_solidity_output,
    parse_tsc_output,
)


class TestTsc:
    def test_relative_paths(self):
        output = (
            "src/app.ts(3,5): error TS2304: Cannot find name 'foo'.\n"
            "src/lib/api.ts(10,1): warning TS6133: 'x' is declared but never used.\n"
            "Found 2 errors.\n"
        )
        findings = parse_tsc_output(output)
        assert [(f.file, f.line, f.column) for f in findings] == [("src/app.ts", 3, 5), ("src/lib/api.ts", 10, 1)]
        assert findings[0].severity == FindingSeverity.ERROR
        assert findings[0].code == "TS2304"
        assert findings[0].suggestion == "Import or declare the missing name"
        assert findings[1].severity == FindingSeverity.WARNING
        assert all(f.category == FindingCategory.TYPESCRIPT for f in findings)

    def test_absolute_paths_made_relative_to_workspace(self, tmp_path):
        output = f"{tmp_path}/src/app.ts(1,1): error TS2307: Cannot find module './x'.\n"
        findings = parse_tsc_output(output, tmp_path)
        assert findings[0].file == "src/app.ts"

    def test_noise_ignored(self):
        assert parse_tsc_output("Version 5.4.0\n\n") == []


class TestESLint:
    def test_messages(self, tmp_path):
        output = json.dumps([{
            "filePath": f"{tmp_path}/src/app.tsx",
            "messages": [
                {"ruleId": "react-hooks/exhaustive-deps", "severity": 1, "message": "Missing dep", "line": 4, "column": 6},
                {"ruleId": None, "severity": 2, "message": "Parsing error", "line": 1, "column": 1},
            ],
        }])
        findings = parse_eslint_json(output, tmp_path)
        assert [f.file for f in findings] == ["src/app.tsx", "src/app.tsx"]
        assert findings[0].severity == FindingSeverity.WARNING
        assert findings[0].message == "react-hooks/exhaustive-deps: Missing dep"
        assert findings[0].suggestion == "Add missing dependencies to the dependency array"
        assert findings[1].severity == FindingSeverity.ERROR
        assert findings[1].message == "eslint: Parsing error"

    def test_clean_result(self):
        assert parse_eslint_json('[{"filePath": "src/a.ts", "messages": []}]') == []

    @pytest.mark.parametrize("output", ["Oops! Something went wrong", '{"errors": 1}'])
    def test_invalid_output_raises(self, output):
        with pytest.raises(ValueError):
            parse_eslint_json(output)


class TestBuild:
    def test_type_error_attributed_to_preceding_file(self):
        output = (
            "Creating an optimized production build ...\n"
            "Failed to compile.\n"
            "\n"
            "./src/app/page.tsx:12:5\n"
            "Type error: Property 'title' does not exist on type 'Props'.\n"
        )
        findings = parse_build_output(output)
        assert len(findings) == 2
        assert findings[0].file == ""
        assert (findings[1].file, findings[1].line) == ("src/app/page.tsx", 12)
        assert findings[1].severity == FindingSeverity.ERROR
        assert findings[1].category == FindingCategory.BUILD

    def test_warning(self):
        findings = parse_build_output("./src/a.ts\nWarning: unused export\n")
        assert findings[0].severity == FindingSeverity.WARNING
        assert findings[0].file == "src/a.ts"

    def test_successful_build(self):
        assert parse_build_output("Compiled successfully\nRoute (app)  Size\n") == []


class TestSolidity:
    def test_location_on_following_line(self):
        output = (
            "DeclarationError: Undeclared identifier.\n"
            "  --> contracts/Token.sol:12:5:\n"
            "   |\n"
            "12 |     totl += 1;\n"
        )
        findings = parse_solidity_output(output)
        assert len(findings) == 1
        finding = findings[0]
        assert (finding.file, finding.line, finding.column) == ("contracts/Token.sol", 12, 5)
        assert finding.severity == FindingSeverity.ERROR
        assert finding.suggestion == "Check that every identifier is declared"

    def test_inline_location_and_warning(self):
        output = "Warning: Unused local variable. contracts/Vault.sol:3:9\n"
        finding = parse_solidity_output(output)[0]
        assert finding.severity == FindingSeverity.WARNING
        assert finding.message.startswith("Unused local variable")
        assert finding.file == "contracts/Vault.sol"

    def test_clean_compile(self):
        assert parse_solidity_output("Compiled 3 Solidity files successfully\n") == []
