"""Command-line entrypoint for schema-catalog validation."""
from __future__ import annotations

import argparse
import asyncio
import sys
import uuid
from pathlib import Path
from typing import List, Optional

import httpx
import orjson
from dotenv import load_dotenv

from schemacheck.catalog.ref_index import RefIndex
from schemacheck.errors import SchemaCheckError, UsageError
from schemacheck.fetch.session import create_fetch_session
from schemacheck.ingest.loader import resolve_input_path
from schemacheck.observability.log import configure_logging
from schemacheck.observability.metrics import MetricsRegistry
from schemacheck.orchestrator.pipeline import PipelineReport, ValidationPipeline, Verdict
from schemacheck.orchestrator.report import render_json, render_text
from schemacheck.quality.validate import ValidationEngine
from schemacheck.settings import DEFAULT_SETTINGS_PATH, Settings, load_settings

DEFAULT_LOGGING_PATH = Path("config/logging.yaml")


def build_arg_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="schemacheck",
        description="Validate a JSON document against the sub-schema its entity type maps to in a parent schema catalog",
    )
    parser.add_argument("inputs", nargs="*", metavar="INPUT", help="JSON document, relative to the resources directory")
    parser.add_argument("--settings", default=str(DEFAULT_SETTINGS_PATH), help="Path to settings TOML")
    parser.add_argument("--logging", default=str(DEFAULT_LOGGING_PATH), help="Path to logging YAML")
    parser.add_argument("--parent-url", help="Override the parent schema URL")
    parser.add_argument("--resources-dir", help="Override the directory input paths are resolved against")
    parser.add_argument("--timeout", type=float, help="Per-fetch timeout in seconds")
    parser.add_argument("--list-types", action="store_true", help="Print the entity types found in the parent schema and exit")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    parser.add_argument("--metrics-out", help="Write run counters to this JSON file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def _single_input(inputs: List[str]) -> str:
    if len(inputs) != 1:
        raise UsageError(f"Expected exactly one input JSON file, got {len(inputs)}")
    return inputs[0]


def _settings_from_args(args: argparse.Namespace) -> Settings:
    return load_settings(
        Path(args.settings),
        overrides={
            "schemas": {"parent_url": args.parent_url},
            "app": {"resources_dir": args.resources_dir},
            "fetch": {"timeout_seconds": args.timeout},
        },
    )


def _pipeline(session, settings: Settings, metrics: MetricsRegistry, engine: ValidationEngine) -> ValidationPipeline:
    return ValidationPipeline(
        session=session,
        engine=engine,
        metrics=metrics,
        parent_url=settings.schemas.parent_url,
        timeout=settings.fetch.timeout_seconds,
        duplicate_policy=settings.schemas.duplicate_refs,
    )


async def run_validation(
    settings: Settings,
    input_path: Path,
    *,
    metrics: MetricsRegistry,
    engine: Optional[ValidationEngine] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> PipelineReport:
    """Execute one pipeline run for ``input_path``."""
    engine = engine or ValidationEngine()
    async with create_fetch_session(
        user_agent=settings.fetch.user_agent,
        timeout=settings.fetch.timeout_seconds,
        transport=transport,
    ) as session:
        return await _pipeline(session, settings, metrics, engine).run(input_path)


async def list_types(
    settings: Settings,
    *,
    metrics: MetricsRegistry,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> RefIndex:
    """Fetch and index the parent schema without validating anything."""
    async with create_fetch_session(
        user_agent=settings.fetch.user_agent,
        timeout=settings.fetch.timeout_seconds,
        transport=transport,
    ) as session:
        return await _pipeline(session, settings, metrics, ValidationEngine()).catalog()


def main(argv: Optional[List[str]] = None, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> int:
    """Entry point for the CLI; returns the process exit code."""
    load_dotenv()
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    configure_logging(Path(args.logging), verbose=args.verbose)
    metrics = MetricsRegistry()

    try:
        settings = _settings_from_args(args)
        if args.list_types:
            index = asyncio.run(list_types(settings, metrics=metrics, transport=transport))
            print(orjson.dumps(index.as_dict(), option=orjson.OPT_INDENT_2).decode("utf-8"))
            return 0
        raw_input = _single_input(args.inputs)
    except SchemaCheckError as exc:
        where = f" at stage {exc.stage}" if exc.stage else ""
        print(f"{type(exc).__name__}{where}: {exc.message}", file=sys.stderr)
        return exc.exit_code

    input_path = resolve_input_path(raw_input, settings.app.resources_dir)
    report = asyncio.run(run_validation(settings, input_path, metrics=metrics, transport=transport))

    if args.json:
        print(render_json(report))
    elif report.verdict is Verdict.VALID:
        print(render_text(report))
    else:
        print(render_text(report), file=sys.stderr)

    if args.metrics_out:
        metrics.export(path=Path(args.metrics_out), run_id=uuid.uuid4().hex[:12])
    return report.exit_code


def run() -> None:
    """Console script wrapper."""
    raise SystemExit(main())


if __name__ == "__main__":
    run()
