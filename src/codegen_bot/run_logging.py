"""Per-run logging scoped by run id."""

import logging
import uuid
from collections.abc import MutableMapping
from typing import Any

LoggerLike = logging.Logger | logging.LoggerAdapter


def new_run_id() -> str:
    return uuid.uuid4().hex[:12]


class RunLogger(logging.LoggerAdapter):
    """Prefixes every record with the pipeline run id.

    The run id is also attached to the record as ``extra["run_id"]`` so
    handlers can filter or format on it.
    """

    def __init__(self, logger: logging.Logger, run_id: str) -> None:
        super().__init__(logger, {"run_id": run_id})
        self.run_id = run_id

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        extra.setdefault("run_id", self.run_id)
        kwargs["extra"] = extra
        return f"[run {self.run_id}] {msg}", kwargs
