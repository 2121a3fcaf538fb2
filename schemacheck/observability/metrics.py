"""Run counters for a validation pipeline, exportable as JSON."""
from __future__ import annotations

import contextlib
import time
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator

import orjson
import structlog

LOGGER = structlog.get_logger(__name__)

# Always present in snapshots, even when a run never touches them.
RUN_COUNTERS = (
    "schemas_fetched",
    "fetch_failures",
    "fetch_timeouts",
    "refs_indexed",
    "duplicate_refs",
    "documents_valid",
    "documents_invalid",
    "validation_errors",
    "pipeline_errors",
    "run_duration_ms",
)


@dataclass
class MetricsRegistry:
    """Counters owned by one CLI invocation."""

    counters: Counter = field(default_factory=lambda: Counter(dict.fromkeys(RUN_COUNTERS, 0)))

    def incr(self, name: str, value: int = 1) -> None:
        self.counters[name] += value

    def get(self, name: str) -> int:
        return self.counters[name]

    def snapshot(self) -> Dict[str, int]:
        return dict(sorted(self.counters.items()))

    def export(self, *, path: Path, run_id: str) -> Path:
        """Write the snapshot to ``path``, creating parent directories."""
        path.parent.mkdir(parents=True, exist_ok=True)
        document = {
            "run_id": run_id,
            "generated_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "counters": self.snapshot(),
        }
        path.write_bytes(orjson.dumps(document, option=orjson.OPT_INDENT_2))
        LOGGER.debug("metrics_exported", path=str(path), run_id=run_id)
        return path


@contextlib.contextmanager
def record_duration(registry: MetricsRegistry, metric_name: str) -> Iterator[None]:
    """Add the block's wall time in milliseconds to ``metric_name``."""
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        registry.incr(metric_name, elapsed_ms)
        LOGGER.info("timer_stop", metric=metric_name, duration_ms=elapsed_ms)
