"""
Per-session workbench state.

Each of the three asynchronous tracks (suggestions, analysis, insights) owns
an explicit TrackState. The analysis result and the insight summary share one
display slot: every operation that changes what is displayed bumps
``_display_epoch``, and a completion only writes its outcome when its epoch is
still current. Suggestions are gated the same way by ``_suggestion_epoch``,
which only ingestion advances.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from smartinsights.analysis_service import generate_insights_summary, get_prediction_suggestions, perform_analysis
from smartinsights.config import Settings
from smartinsights.errors import describe_failure, describe_insights_failure
from smartinsights.ingest import Dataset, dataset_from_records
from smartinsights.llm_client import LLMClient
from smartinsights.models import AnalysisKind, AnalysisOptions, AnalysisResult, Insight, Suggestion

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TrackStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class TrackError:
    code: str
    message: str


class TrackState(Generic[T]):
    """Status of one asynchronous track. Value and error are only set in their own status."""

    def __init__(self) -> None:
        self._status = TrackStatus.IDLE
        self._value: T | None = None
        self._error: TrackError | None = None

    @property
    def status(self) -> TrackStatus:
        return self._status

    @property
    def value(self) -> T | None:
        return self._value

    @property
    def error(self) -> TrackError | None:
        return self._error

    def reset(self) -> None:
        self._status, self._value, self._error = TrackStatus.IDLE, None, None

    def start(self) -> None:
        self._status, self._value, self._error = TrackStatus.LOADING, None, None

    def succeed(self, value: T) -> None:
        self._status, self._value, self._error = TrackStatus.SUCCESS, value, None

    def fail(self, code: str, message: str) -> None:
        self._status, self._value, self._error = TrackStatus.ERROR, None, TrackError(code, message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self._status.value,
            "value": _dump(self._value),
            "error": {"code": self._error.code, "message": self._error.message} if self._error else None,
        }


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, list):
        return [_dump(item) for item in value]
    return value


class WorkbenchController:
    def __init__(self, client: LLMClient, settings: Settings | None = None) -> None:
        self.client = client
        self.settings = settings or Settings()
        self.dataset: Dataset | None = None
        self.selected_analysis: AnalysisKind | None = None
        self.options = AnalysisOptions()
        self.suggestions: TrackState[list[Suggestion]] = TrackState()
        self.analysis: TrackState[AnalysisResult] = TrackState()
        self.insights: TrackState[list[Insight]] = TrackState()
        self.suggestion_task: asyncio.Task | None = None
        self._display_epoch = 0
        self._suggestion_epoch = 0

    @property
    def error(self) -> str | None:
        for track in (self.analysis, self.insights):
            if track.error is not None:
                return track.error.message
        return None

    def _clear_display(self) -> int:
        self._display_epoch += 1
        self.analysis.reset()
        self.insights.reset()
        return self._display_epoch

    def load_dataset(self, dataset: Dataset) -> asyncio.Task:
        """Replace the active dataset and start a fresh suggestion fetch.

        Must be called from a running event loop; the returned task is also
        kept on ``suggestion_task``.
        """
        self.dataset = dataset
        self.selected_analysis = None
        self.options = AnalysisOptions()
        self._clear_display()
        self._suggestion_epoch += 1
        self.suggestions.reset()
        logger.info("Loaded dataset %s (%s rows, %s columns)", dataset.filename, dataset.row_count, len(dataset.headers))
        self.suggestion_task = asyncio.get_running_loop().create_task(self.fetch_suggestions())
        return self.suggestion_task

    def apply_cleaned_data(self, records: list[dict[str, Any]]) -> asyncio.Task:
        if self.dataset is None:
            raise ValueError("No dataset loaded.")
        return self.load_dataset(dataset_from_records(self.dataset.filename, records))

    def select_analysis(self, kind: AnalysisKind | str) -> None:
        self.selected_analysis = AnalysisKind(kind)
        self._clear_display()

    def set_options(self, options: AnalysisOptions) -> None:
        self.options = options

    def apply_suggestion(self, suggestion: Suggestion) -> None:
        self.selected_analysis = suggestion.analysis_type
        self.options = suggestion.options.model_copy(deep=True)
        self._clear_display()

    async def fetch_suggestions(self) -> list[Suggestion]:
        if self.dataset is None:
            return []
        epoch = self._suggestion_epoch
        self.suggestions.start()
        result = await get_prediction_suggestions(self.client, self.dataset.csv_text, self.settings)
        if epoch == self._suggestion_epoch:
            self.suggestions.succeed(result)
        else:
            logger.debug("Dropping suggestions for a replaced dataset")
        return result

    async def run_analysis(self) -> dict[str, Any] | None:
        """Run the selected analysis on the active dataset.

        Returns this run's recorded outcome (``TrackState.to_dict()``), or None
        when nothing ran or a newer request superseded it.
        """
        if self.dataset is None or self.selected_analysis is None:
            return None
        kind = self.selected_analysis
        options = self.options
        csv_text = self.dataset.csv_text
        epoch = self._clear_display()
        self.analysis.start()
        try:
            result = await perform_analysis(self.client, csv_text, kind, options, self.settings)
        except Exception as exc:
            logger.error("%s failed: %s", kind.value, exc)
            if epoch != self._display_epoch:
                return None
            self.analysis.fail(getattr(exc, "code", "unknown_error"), describe_failure(exc, kind.value))
            return self.analysis.to_dict()
        if epoch != self._display_epoch:
            logger.debug("Dropping superseded %s result", kind.value)
            return None
        self.analysis.succeed(result)
        return self.analysis.to_dict()

    async def generate_insights(self) -> dict[str, Any] | None:
        if self.dataset is None:
            return None
        csv_text = self.dataset.csv_text
        self.selected_analysis = None
        epoch = self._clear_display()
        self.insights.start()
        try:
            result = await generate_insights_summary(self.client, csv_text, self.settings)
        except Exception as exc:
            logger.error("Insights summary failed: %s", exc)
            if epoch != self._display_epoch:
                return None
            self.insights.fail(getattr(exc, "code", "unknown_error"), describe_insights_failure(exc))
            return self.insights.to_dict()
        if epoch != self._display_epoch:
            logger.debug("Dropping superseded insights summary")
            return None
        self.insights.succeed(result)
        return self.insights.to_dict()

    def snapshot(self) -> dict[str, Any]:
        return {
            "dataset": self.dataset.describe() if self.dataset else None,
            "selected_analysis": self.selected_analysis.value if self.selected_analysis else None,
            "options": self.options.model_dump(mode="json", by_alias=True),
            "suggestions": self.suggestions.to_dict(),
            "analysis": self.analysis.to_dict(),
            "insights": self.insights.to_dict(),
            "error": self.error,
        }
