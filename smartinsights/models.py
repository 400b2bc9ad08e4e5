from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Confidence = Literal["High", "Medium", "Low"]


class AnalysisKind(str, Enum):
    DATA_CLEANING = "Data Cleaning"
    EDA = "Exploratory Data Analysis"
    CLUSTERING = "Clustering"
    CLASSIFICATION = "Classification"
    REGRESSION = "Regression"
    TIME_SERIES = "Time-Series Forecasting"
    THREAT_ANALYSIS = "Threat & Relationship Analysis"


SUGGESTABLE_KINDS = (AnalysisKind.CLASSIFICATION, AnalysisKind.REGRESSION, AnalysisKind.TIME_SERIES)


class CamelModel(BaseModel):
    """Base for payloads exchanged with the model and the UI (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnalysisOptions(CamelModel):
    clustering_columns: list[str] = Field(default_factory=list)
    classification_target: str | None = None
    regression_target: str | None = None
    time_series_date_col: str | None = None
    time_series_value_col: str | None = None
    threat_text_col: str | None = None
    threat_entity_col: str | None = None


# Result shapes


class SummaryStat(CamelModel):
    column_name: str
    mean: float
    std: float
    min: float
    p25: float
    p50: float
    p75: float
    max: float


class ValueCountItem(CamelModel):
    value: str
    count: int


class ValueCount(CamelModel):
    column_name: str
    counts: list[ValueCountItem]


class MissingValue(CamelModel):
    column_name: str
    count: int


class CorrelationCell(CamelModel):
    column_name: str
    value: float


class CorrelationRow(CamelModel):
    column_name: str
    values: list[CorrelationCell]


class FeatureImportance(CamelModel):
    feature: str
    importance: float


class ClusterPoint(CamelModel):
    x: float
    y: float
    cluster: int


class ClusterCenter(CamelModel):
    x: float
    y: float


class ClassificationReportItem(CamelModel):
    class_name: str
    precision: float
    recall: float
    f1_score: float
    support: float


class PredictionPoint(CamelModel):
    actual: float
    predicted: float


class SeriesPoint(CamelModel):
    date: str
    value: float


class FlaggedEntity(CamelModel):
    entity_id: str
    threat_level: Confidence
    reason: str
    evidence: list[str]


class Relationship(CamelModel):
    entities: list[str]
    description: str
    sentiment: str


class CleaningResult(CamelModel):
    kind: Literal[AnalysisKind.DATA_CLEANING] = AnalysisKind.DATA_CLEANING
    cleaned_data: list[dict[str, Any]]
    cleaning_summary: list[str]


class EDAResult(CamelModel):
    kind: Literal[AnalysisKind.EDA] = AnalysisKind.EDA
    summary_stats: list[SummaryStat]
    value_counts: list[ValueCount]
    missing_values: list[MissingValue]
    correlations: list[CorrelationRow] | None = None


class ClusteringResult(CamelModel):
    kind: Literal[AnalysisKind.CLUSTERING] = AnalysisKind.CLUSTERING
    plot_data: list[ClusterPoint]
    cluster_centers: list[ClusterCenter]
    k: int


class ClassificationResult(CamelModel):
    kind: Literal[AnalysisKind.CLASSIFICATION] = AnalysisKind.CLASSIFICATION
    accuracy: float
    report: list[ClassificationReportItem]
    feature_importances: list[FeatureImportance]


class RegressionResult(CamelModel):
    kind: Literal[AnalysisKind.REGRESSION] = AnalysisKind.REGRESSION
    rmse: float
    r2: float
    feature_importances: list[FeatureImportance]
    predictions: list[PredictionPoint]


class TimeSeriesResult(CamelModel):
    kind: Literal[AnalysisKind.TIME_SERIES] = AnalysisKind.TIME_SERIES
    historical: list[SeriesPoint]
    forecast: list[SeriesPoint]


class ThreatAnalysisResult(CamelModel):
    kind: Literal[AnalysisKind.THREAT_ANALYSIS] = AnalysisKind.THREAT_ANALYSIS
    summary: str
    flagged_entities: list[FlaggedEntity]
    relationships: list[Relationship]


AnalysisResult = Annotated[
    Union[
        CleaningResult,
        EDAResult,
        ClusteringResult,
        ClassificationResult,
        RegressionResult,
        TimeSeriesResult,
        ThreatAnalysisResult,
    ],
    Field(discriminator="kind"),
]

RESULT_MODELS: dict[AnalysisKind, type[CamelModel]] = {
    AnalysisKind.DATA_CLEANING: CleaningResult,
    AnalysisKind.EDA: EDAResult,
    AnalysisKind.CLUSTERING: ClusteringResult,
    AnalysisKind.CLASSIFICATION: ClassificationResult,
    AnalysisKind.REGRESSION: RegressionResult,
    AnalysisKind.TIME_SERIES: TimeSeriesResult,
    AnalysisKind.THREAT_ANALYSIS: ThreatAnalysisResult,
}


class Suggestion(CamelModel):
    title: str
    analysis_type: AnalysisKind
    options: AnalysisOptions = Field(default_factory=AnalysisOptions)
    justification: str


class Insight(CamelModel):
    title: str
    description: str
    confidence: Confidence
