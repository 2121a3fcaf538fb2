"""Rendering pipeline reports for the operator."""
from __future__ import annotations

from typing import Any, Dict, List

import orjson

from schemacheck.errors import SchemaFetchError
from schemacheck.orchestrator.pipeline import PipelineReport, Verdict


def report_payload(report: PipelineReport) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "state": report.state,
        "valid": report.verdict is Verdict.VALID,
        "exit_code": report.exit_code,
        "input": str(report.input_path) if report.input_path is not None else None,
        "entity_type": report.entity_type,
        "schema": report.schema_locator,
        "errors": [],
    }
    if report.outcome is not None:
        payload["errors"] = [issue.as_dict() for issue in report.outcome.errors]
    if report.error is not None:
        failure: Dict[str, Any] = {
            "stage": report.error.stage,
            "kind": type(report.error).__name__,
            "message": report.error.message,
        }
        if isinstance(report.error, SchemaFetchError):
            failure["locator"] = report.error.locator
            failure["timed_out"] = report.error.timed_out
        payload["failure"] = failure
    return payload


def render_json(report: PipelineReport) -> str:
    return orjson.dumps(report_payload(report), option=orjson.OPT_INDENT_2).decode("utf-8")


def render_text(report: PipelineReport) -> str:
    if report.verdict is Verdict.VALID:
        return f"The file is valid: {report.input_path} ({report.entity_type})"
    if report.verdict is Verdict.INVALID:
        lines: List[str] = [f"Validation errors in {report.input_path} ({report.entity_type}):"]
        for issue in report.outcome.errors if report.outcome else []:
            lines.append(f"  {issue.path}: {issue.message}")
        return "\n".join(lines)
    error = report.error
    return f"Validation aborted at stage {error.stage}: {type(error).__name__}: {error.message}"
