"""
Analysis service: sample → build request → call the model → decode.

Three tracks are exposed:

  - ``perform_analysis``   main analysis, fails loudly with typed errors
  - ``generate_insights_summary``   holistic insight pass, fails loudly
  - ``get_prediction_suggestions``  non-critical aid, degrades to ``[]``
"""

from __future__ import annotations

import logging

from pydantic import TypeAdapter, ValidationError

from smartinsights.config import Settings
from smartinsights.errors import SchemaValidationError, WorkbenchError
from smartinsights.llm_client import LLMClient
from smartinsights.llm_gate import decode_json
from smartinsights.models import (
    RESULT_MODELS,
    AnalysisKind,
    AnalysisOptions,
    AnalysisResult,
    Insight,
    Suggestion,
)
from smartinsights.prompts import (
    MAX_SUGGESTIONS,
    AnalysisRequest,
    build_analysis_request,
    build_insights_request,
    build_suggestion_request,
)
from smartinsights.sampling import sample_csv

logger = logging.getLogger(__name__)

_SUGGESTIONS = TypeAdapter(list[Suggestion])
_INSIGHTS = TypeAdapter(list[Insight])


async def _generate(client: LLMClient, request: AnalysisRequest, csv_text: str, max_rows: int, timeout: int):
    sampled = sample_csv(csv_text, max_rows)
    raw = await client.generate(
        prompt=request.with_data(sampled),
        schema=request.schema,
        system_instruction=request.system_instruction,
        timeout=timeout,
    )
    return decode_json(raw, request.schema)


async def perform_analysis(
    client: LLMClient,
    csv_text: str,
    kind: AnalysisKind,
    options: AnalysisOptions | None = None,
    settings: Settings | None = None,
) -> AnalysisResult:
    settings = settings or Settings()
    kind = AnalysisKind(kind)
    # ConfigurationError surfaces here, before any request is sent.
    request = build_analysis_request(kind, options)
    logger.info("Running %s on a sample of %s rows", kind.value, settings.analysis_sample_rows)
    payload = await _generate(client, request, csv_text, settings.analysis_sample_rows, settings.llm_timeout_seconds)
    try:
        return RESULT_MODELS[kind].model_validate({**payload, "kind": kind})
    except ValidationError as exc:
        raise SchemaValidationError(f"Response for {kind.value} does not match the expected shape.") from exc


async def get_prediction_suggestions(
    client: LLMClient,
    csv_text: str,
    settings: Settings | None = None,
) -> list[Suggestion]:
    settings = settings or Settings()
    request = build_suggestion_request()
    try:
        payload = await _generate(
            client, request, csv_text, settings.suggestion_sample_rows, settings.llm_timeout_seconds
        )
        suggestions = _SUGGESTIONS.validate_python(payload)
    except (WorkbenchError, ValidationError) as exc:
        logger.warning("Prediction suggestions unavailable: %s", exc)
        return []
    return suggestions[:MAX_SUGGESTIONS]


async def generate_insights_summary(
    client: LLMClient,
    csv_text: str,
    settings: Settings | None = None,
) -> list[Insight]:
    settings = settings or Settings()
    request = build_insights_request()
    payload = await _generate(client, request, csv_text, settings.insight_sample_rows, settings.llm_timeout_seconds)
    try:
        return _INSIGHTS.validate_python(payload)
    except ValidationError as exc:
        raise SchemaValidationError("Insights summary does not match the expected shape.") from exc
