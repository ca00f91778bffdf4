from pathlib import Path

import pytest

from codegen_bot.config import PipelineConfig, ValidationConfig


@pytest.fixture
def pipeline_config():
    """Config with context gathering off and no external checks."""
    return PipelineConfig(
        enable_context_gathering=False,
        validation=ValidationConfig(
            enable_typescript=False,
            enable_eslint=False,
            enable_build=False,
            enable_solidity=False,
        ),
    )


@pytest.fixture
def project_tree(tmp_path) -> Path:
    """Small on-disk project used by the tool executor tests."""
    root = tmp_path / "project"
    (root / "src" / "components").mkdir(parents=True)
    (root / "src" / "app.ts").write_text(
        "import { Banner } from './components/Banner';\nexport const title = 'Home';\n"
    )
    (root / "src" / "components" / "Banner.tsx").write_text(
        "export function Banner() {\n  return <div>Hello</div>;\n}\n"
    )
    (root / "package.json").write_text('{"name": "demo"}\n')
    return root
