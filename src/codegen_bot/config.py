"""Configuration for the code generation pipeline."""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from codegen_bot.models import StageKind

# Constants
DEFAULT_SKIP_PATTERNS = [
    "node_modules/**",
    "**/node_modules/**",
    ".next/**",
    ".git/**",
    "dist/**",
    "build/**",
    "coverage/**",
    "*.min.js",
    "*.min.css",
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
]
DEFAULT_STAGE_TOKENS = {
    StageKind.CONTEXT: 2000,
    StageKind.INTENT: 4000,
    StageKind.PLAN: 12000,
    StageKind.GENERATE: 20000,
    StageKind.REPAIR: 20000,
    StageKind.REVIEW: 4000,
}
DEFAULT_STAGE_TIMEOUT = 60.0
LONG_STAGE_TIMEOUT = 180.0  # Code generation and repair emit whole files
LONG_STAGES = frozenset({StageKind.GENERATE, StageKind.REPAIR})


class StageBudget(BaseModel):
    model_config = ConfigDict(frozen=False)

    max_tokens: int
    timeout_seconds: float = DEFAULT_STAGE_TIMEOUT
    retry_token_multiplier: float = 2.0  # Applied once on truncation
    max_token_ceiling: int = 64000

    def retry_tokens(self) -> int:
        return min(int(self.max_tokens * self.retry_token_multiplier), self.max_token_ceiling)


def default_stage_budgets() -> dict[StageKind, StageBudget]:
    return {
        stage: StageBudget(
            max_tokens=tokens,
            timeout_seconds=LONG_STAGE_TIMEOUT if stage in LONG_STAGES else DEFAULT_STAGE_TIMEOUT,
        )
        for stage, tokens in DEFAULT_STAGE_TOKENS.items()
    }


class ValidationConfig(BaseModel):
    model_config = ConfigDict(frozen=False)

    enable_typescript: bool = True
    enable_eslint: bool = True
    enable_build: bool = True
    enable_solidity: bool = True
    enable_heuristics: bool = True
    enable_references: bool = True
    enable_model_review: bool = False
    timeout_seconds: float = 120.0          # Per check
    max_concurrent_checks: int = Field(default=4, ge=1)
    skip_patterns: list[str] = Field(default_factory=lambda: list(DEFAULT_SKIP_PATTERNS))
    project_root: str | None = None         # Seeds config files and node_modules


class PipelineConfig(BaseModel):
    model_config = ConfigDict(frozen=False)

    diff_context_lines: int = Field(default=3, ge=0)
    max_change_ratio: float = Field(default=0.9, gt=0, le=1)
    min_lines_for_ratio: int = 20
    enable_context_gathering: bool = True
    max_tool_calls: int = Field(default=3, ge=0)
    stage_budgets: dict[StageKind, StageBudget] = Field(default_factory=default_stage_budgets)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)

    def budget_for(self, stage: StageKind) -> StageBudget:
        budget = self.stage_budgets.get(stage)
        if budget is None:
            return StageBudget(max_tokens=DEFAULT_STAGE_TOKENS[stage])
        return budget

    @classmethod
    def from_env(cls, env_file: str | None = None) -> "PipelineConfig":
        """Build a config from CODEGEN_* environment variables.

        Loads a .env file first (python-dotenv); variables already set in the
        environment win.

        Args:
            env_file: Optional explicit path to a .env file.

        Raises:
            ValueError: If a numeric variable cannot be parsed.
        """
        load_dotenv(env_file)
        config = cls()

        context_lines = os.getenv("CODEGEN_DIFF_CONTEXT_LINES")
        if context_lines:
            config.diff_context_lines = int(context_lines)

        enable_context = os.getenv("CODEGEN_ENABLE_CONTEXT")
        if enable_context:
            config.enable_context_gathering = enable_context.strip().lower() in {"1", "true", "yes"}

        max_concurrent = os.getenv("CODEGEN_MAX_CONCURRENT_CHECKS")
        if max_concurrent:
            config.validation.max_concurrent_checks = max(1, int(max_concurrent))

        check_timeout = os.getenv("CODEGEN_CHECK_TIMEOUT")
        if check_timeout:
            config.validation.timeout_seconds = float(check_timeout)

        project_root = os.getenv("CODEGEN_PROJECT_ROOT")
        if project_root:
            config.validation.project_root = project_root

        return config
