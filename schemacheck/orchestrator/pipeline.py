"""End-to-end validation pipeline.

A run moves strictly forward through::

    Start -> InputLoaded -> ParentFetched -> Indexed -> TypeResolved
          -> SubSchemaFetched -> SchemaPrepared -> Compiled -> Reported

Any stage failure jumps straight to ``Reported(Errored)`` with the error that
caused it; nothing is retried or resumed.
"""
from __future__ import annotations

import contextlib
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Iterator, List, Optional

import structlog

from schemacheck.catalog.ref_index import RefIndex, index_refs
from schemacheck.catalog.type_resolver import resolve_entity_type
from schemacheck.errors import (
    EXIT_INVALID,
    EXIT_VALID,
    SchemaCheckError,
)
from schemacheck.fetch.fetcher import (
    DEFAULT_FETCH_TIMEOUT,
    fetch_schema,
    prepare_schema,
    strip_metadata,
)
from schemacheck.fetch.session import FetchSession
from schemacheck.ingest.loader import METADATA_KEY, load_document
from schemacheck.observability.metrics import MetricsRegistry, record_duration
from schemacheck.observability.tracing import clear_context, set_context, span
from schemacheck.quality.validate import ValidationEngine, ValidationOutcome

LOGGER = structlog.get_logger(__name__)


class Stage(str, Enum):
    START = "Start"
    INPUT_LOADED = "InputLoaded"
    PARENT_FETCHED = "ParentFetched"
    INDEXED = "Indexed"
    TYPE_RESOLVED = "TypeResolved"
    SUB_SCHEMA_FETCHED = "SubSchemaFetched"
    SCHEMA_PREPARED = "SchemaPrepared"
    COMPILED = "Compiled"
    REPORTED = "Reported"


class Verdict(str, Enum):
    VALID = "Valid"
    INVALID = "Invalid"
    ERRORED = "Errored"


@dataclass
class PipelineReport:
    """Terminal state of a pipeline run."""

    verdict: Verdict
    input_path: Optional[Path]
    stages: List[Stage] = field(default_factory=list)
    entity_type: Optional[str] = None
    schema_locator: Optional[str] = None
    outcome: Optional[ValidationOutcome] = None
    error: Optional[SchemaCheckError] = None

    @property
    def state(self) -> str:
        return f"{Stage.REPORTED.value}({self.verdict.value})"

    @property
    def failed_stage(self) -> Optional[Stage]:
        if self.error is None or self.error.stage is None:
            return None
        return Stage(self.error.stage)

    @property
    def exit_code(self) -> int:
        if self.verdict is Verdict.VALID:
            return EXIT_VALID
        if self.verdict is Verdict.INVALID:
            return EXIT_INVALID
        return self.error.exit_code if self.error is not None else EXIT_INVALID


class ValidationPipeline:
    """Sequences load, fetch, index, resolve, prepare, compile and validate."""

    def __init__(
        self,
        *,
        session: FetchSession,
        engine: ValidationEngine,
        metrics: MetricsRegistry,
        parent_url: str,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
        duplicate_policy: str = "last",
    ) -> None:
        self._session = session
        self._engine = engine
        self._metrics = metrics
        self._parent_url = parent_url
        self._timeout = timeout
        self._duplicate_policy = duplicate_policy
        self.stage = Stage.START
        self.history: List[Stage] = [Stage.START]

    @contextlib.contextmanager
    def _transition(self, target: Stage) -> Iterator[None]:
        try:
            with span(name=target.value):
                yield
        except SchemaCheckError as exc:
            if exc.stage is None:
                exc.stage = target.value
            raise
        self.stage = target
        self.history.append(target)

    async def _fetch(self, locator: str) -> dict:
        return await fetch_schema(
            session=self._session,
            locator=locator,
            metrics=self._metrics,
            timeout=self._timeout,
        )

    async def catalog(self) -> RefIndex:
        """Fetch the parent schema and index its entity-type references."""
        with self._transition(Stage.PARENT_FETCHED):
            parent = await self._fetch(self._parent_url)
        with self._transition(Stage.INDEXED):
            index = index_refs(parent, duplicate_policy=self._duplicate_policy, metrics=self._metrics)
        return index

    async def run(self, input_path: Path) -> PipelineReport:
        """Validate the document at ``input_path`` and report the result."""
        set_context(run_id=uuid.uuid4().hex[:12], input_path=str(input_path))
        report = PipelineReport(verdict=Verdict.ERRORED, input_path=input_path)
        try:
            with record_duration(self._metrics, "run_duration_ms"):
                try:
                    await self._execute(input_path, report)
                except SchemaCheckError as exc:
                    if exc.stage is None:
                        # raised while applying the compiled validator
                        exc.stage = Stage.REPORTED.value
                    self._metrics.incr("pipeline_errors")
                    report.verdict = Verdict.ERRORED
                    report.error = exc
            self.stage = Stage.REPORTED
            self.history.append(Stage.REPORTED)
            report.stages = list(self.history)
            LOGGER.info(
                "pipeline_reported",
                verdict=report.verdict.value,
                failed_stage=report.error.stage if report.error else None,
                entity_type=report.entity_type,
            )
            return report
        finally:
            clear_context()

    async def _execute(self, input_path: Path, report: PipelineReport) -> None:
        with self._transition(Stage.INPUT_LOADED):
            document = load_document(input_path)

        index = await self.catalog()

        with self._transition(Stage.TYPE_RESOLVED):
            entity_type = resolve_entity_type(document)
            report.entity_type = entity_type
            locator = index.locator_for(entity_type)
            report.schema_locator = locator

        with self._transition(Stage.SUB_SCHEMA_FETCHED):
            sub_schema = await self._fetch(locator)

        with self._transition(Stage.SCHEMA_PREPARED):
            dialect = sub_schema.get(METADATA_KEY)
            prepared = prepare_schema(sub_schema)

        with self._transition(Stage.COMPILED):
            validator = self._engine.compile(
                prepared,
                dialect=dialect if isinstance(dialect, str) else None,
                locator=locator,
            )

        outcome = self._engine.validate(validator, _instance(document))
        report.outcome = outcome
        if outcome.valid:
            report.verdict = Verdict.VALID
            self._metrics.incr("documents_valid")
        else:
            report.verdict = Verdict.INVALID
            self._metrics.incr("documents_invalid")
            self._metrics.incr("validation_errors", len(outcome.errors))


def _instance(document: Any) -> Any:
    if isinstance(document, dict):
        return strip_metadata(document)
    return document
