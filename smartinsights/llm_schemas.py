from __future__ import annotations

from smartinsights.models import SUGGESTABLE_KINDS, AnalysisKind

CONFIDENCE_LEVELS = ["High", "Medium", "Low"]


def _array_of(properties: dict, required: list[str]) -> dict:
    return {
        "type": "array",
        "items": {"type": "object", "required": required, "properties": properties},
    }


_FEATURE_IMPORTANCES = _array_of(
    {"feature": {"type": "string"}, "importance": {"type": "number"}},
    ["feature", "importance"],
)

_DATED_SERIES = _array_of(
    {"date": {"type": "string"}, "value": {"type": "number"}},
    ["date", "value"],
)


DATA_CLEANING_SCHEMA: dict = {
    "type": "object",
    "required": ["cleanedData", "cleaningSummary"],
    "properties": {
        "cleanedData": {
            "type": "array",
            "description": "The cleaned rows, each an object keyed by column header.",
            "items": {"type": "object"},
        },
        "cleaningSummary": {
            "type": "array",
            "description": "Human-readable list of the cleaning actions performed.",
            "items": {"type": "string"},
        },
    },
}


EDA_SCHEMA: dict = {
    "type": "object",
    "required": ["summaryStats", "valueCounts", "missingValues"],
    "properties": {
        "summaryStats": {
            "description": "Summary statistics for each numeric column.",
            **_array_of(
                {
                    "columnName": {"type": "string"},
                    "mean": {"type": "number"},
                    "std": {"type": "number"},
                    "min": {"type": "number"},
                    "p25": {"type": "number", "description": "25th percentile"},
                    "p50": {"type": "number", "description": "50th percentile (median)"},
                    "p75": {"type": "number", "description": "75th percentile"},
                    "max": {"type": "number"},
                },
                ["columnName", "mean", "std", "min", "p25", "p50", "p75", "max"],
            ),
        },
        "valueCounts": {
            "description": "Top value counts for each categorical column.",
            **_array_of(
                {
                    "columnName": {"type": "string"},
                    "counts": {
                        **_array_of(
                            {"value": {"type": "string"}, "count": {"type": "integer", "minimum": 0}},
                            ["value", "count"],
                        ),
                        "maxItems": 10,
                    },
                },
                ["columnName", "counts"],
            ),
        },
        "missingValues": {
            "description": "Missing value counts for each column.",
            **_array_of(
                {"columnName": {"type": "string"}, "count": {"type": "integer", "minimum": 0}},
                ["columnName", "count"],
            ),
        },
        "correlations": {
            "description": "Correlation matrix as an array of row objects.",
            **_array_of(
                {
                    "columnName": {"type": "string"},
                    "values": _array_of(
                        {"columnName": {"type": "string"}, "value": {"type": "number"}},
                        ["columnName", "value"],
                    ),
                },
                ["columnName", "values"],
            ),
        },
    },
}


CLUSTERING_SCHEMA: dict = {
    "type": "object",
    "required": ["plotData", "clusterCenters", "k"],
    "properties": {
        "plotData": _array_of(
            {"x": {"type": "number"}, "y": {"type": "number"}, "cluster": {"type": "integer", "minimum": 0}},
            ["x", "y", "cluster"],
        ),
        "clusterCenters": {
            **_array_of({"x": {"type": "number"}, "y": {"type": "number"}}, ["x", "y"]),
            "maxItems": 5,
        },
        "k": {"type": "integer", "minimum": 1, "maximum": 5, "description": "The number of clusters found."},
    },
}


CLASSIFICATION_SCHEMA: dict = {
    "type": "object",
    "required": ["accuracy", "report", "featureImportances"],
    "properties": {
        "accuracy": {"type": "number"},
        "report": {
            "description": "Classification report, one object per class.",
            **_array_of(
                {
                    "className": {"type": "string"},
                    "precision": {"type": "number"},
                    "recall": {"type": "number"},
                    "f1Score": {"type": "number", "description": "The F1-score for the class."},
                    "support": {"type": "number"},
                },
                ["className", "precision", "recall", "f1Score", "support"],
            ),
        },
        "featureImportances": _FEATURE_IMPORTANCES,
    },
}


REGRESSION_SCHEMA: dict = {
    "type": "object",
    "required": ["rmse", "r2", "featureImportances", "predictions"],
    "properties": {
        "rmse": {"type": "number"},
        "r2": {"type": "number"},
        "featureImportances": _FEATURE_IMPORTANCES,
        "predictions": _array_of(
            {"actual": {"type": "number"}, "predicted": {"type": "number"}},
            ["actual", "predicted"],
        ),
    },
}


TIME_SERIES_SCHEMA: dict = {
    "type": "object",
    "required": ["forecast", "historical"],
    "properties": {
        "forecast": _DATED_SERIES,
        "historical": _DATED_SERIES,
    },
}


THREAT_ANALYSIS_SCHEMA: dict = {
    "type": "object",
    "required": ["summary", "flaggedEntities", "relationships"],
    "properties": {
        "summary": {"type": "string", "description": "A high-level summary of the findings."},
        "flaggedEntities": {
            "description": "Entities flagged for problematic behavior.",
            **_array_of(
                {
                    "entityId": {"type": "string"},
                    "threatLevel": {"type": "string", "enum": CONFIDENCE_LEVELS},
                    "reason": {"type": "string"},
                    "evidence": {"type": "array", "items": {"type": "string"}},
                },
                ["entityId", "threatLevel", "reason", "evidence"],
            ),
        },
        "relationships": {
            "description": "Key relationships between entities.",
            **_array_of(
                {
                    "entities": {"type": "array", "items": {"type": "string"}},
                    "description": {"type": "string"},
                    "sentiment": {"type": "string"},
                },
                ["entities", "description", "sentiment"],
            ),
        },
    },
}


ANALYSIS_SCHEMAS: dict[AnalysisKind, dict] = {
    AnalysisKind.DATA_CLEANING: DATA_CLEANING_SCHEMA,
    AnalysisKind.EDA: EDA_SCHEMA,
    AnalysisKind.CLUSTERING: CLUSTERING_SCHEMA,
    AnalysisKind.CLASSIFICATION: CLASSIFICATION_SCHEMA,
    AnalysisKind.REGRESSION: REGRESSION_SCHEMA,
    AnalysisKind.TIME_SERIES: TIME_SERIES_SCHEMA,
    AnalysisKind.THREAT_ANALYSIS: THREAT_ANALYSIS_SCHEMA,
}


SUGGESTIONS_SCHEMA: dict = {
    "type": "array",
    "items": {
        "type": "object",
        "required": ["title", "analysisType", "options", "justification"],
        "properties": {
            "title": {
                "type": "string",
                "description": "A short, catchy title for the suggested analysis (e.g., 'Predict Sales Volume').",
            },
            "analysisType": {"type": "string", "enum": [kind.value for kind in SUGGESTABLE_KINDS]},
            "options": {
                "type": "object",
                "description": "The column(s) to use. Only include the properties relevant to the analysisType.",
                "properties": {
                    "classificationTarget": {"type": "string"},
                    "regressionTarget": {"type": "string"},
                    "timeSeriesDateCol": {"type": "string"},
                    "timeSeriesValueCol": {"type": "string"},
                },
            },
            "justification": {
                "type": "string",
                "description": "Why this is a useful prediction to make from this data.",
            },
        },
    },
}


INSIGHTS_SCHEMA: dict = {
    "type": "array",
    "items": {
        "type": "object",
        "required": ["title", "description", "confidence"],
        "properties": {
            "title": {"type": "string", "description": "A short, catchy title for the insight."},
            "description": {"type": "string", "description": "The detailed, human-readable insight or prediction."},
            "confidence": {
                "type": "string",
                "enum": CONFIDENCE_LEVELS,
                "description": "Confidence in this prediction based on the data sample.",
            },
        },
    },
}
