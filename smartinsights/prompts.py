"""
Prompt and output-schema construction for every analysis the workbench offers.

Everything here is pure: no network access, no sampling. The caller appends
the dataset sample to ``AnalysisRequest.prompt`` before sending it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from smartinsights.errors import ConfigurationError
from smartinsights.llm_schemas import ANALYSIS_SCHEMAS, INSIGHTS_SCHEMA, SUGGESTIONS_SCHEMA
from smartinsights.models import SUGGESTABLE_KINDS, AnalysisKind, AnalysisOptions

MAX_CLUSTERS = 5
TOP_VALUE_COUNTS = 10
HISTORICAL_POINTS = 50
FORECAST_POINTS = 20
PREDICTION_SAMPLE_POINTS = 100
MAX_SUGGESTIONS = 3

SYSTEM_INSTRUCTION = (
    "You are a world-class data scientist AI assistant. Your task is to perform data analysis on "
    "user-provided CSV data and return the results in a structured JSON format that strictly adheres "
    "to the provided schema. Do not include any markdown formatting (like ```json) in your output."
)


@dataclass(frozen=True)
class AnalysisRequest:
    prompt: str
    schema: dict[str, Any]
    system_instruction: str = SYSTEM_INSTRUCTION
    kind: AnalysisKind | None = None

    def with_data(self, sampled_csv: str) -> str:
        return f"{self.prompt}\n\nHere is the CSV data:\n\n{sampled_csv}"


def _data_cleaning_prompt(options: AnalysisOptions) -> str:
    return (
        "Act as a meticulous data cleaning specialist. Clean the provided CSV data sample.\n"
        "- Handle missing values sensibly (impute with the column median or mode, or drop rows that are unusable).\n"
        "- Standardize inconsistent formats (dates, casing, units, stray whitespace).\n"
        "- Remove exact duplicate rows.\n"
        "- Correct obvious data entry errors and flag or cap extreme outliers.\n"
        "Return 'cleanedData' as an array of row objects keyed by the original column headers, "
        "keeping the original column order, and 'cleaningSummary' as a list of short sentences "
        "describing each cleaning action you performed."
    )


def _eda_prompt(options: AnalysisOptions) -> str:
    return (
        "Perform a comprehensive Exploratory Data Analysis on the provided CSV data sample. "
        "Return the results as structured arrays of objects.\n"
        "- For summary statistics on numeric columns, provide an array where each object contains the "
        "column name and its stats (mean, std, min, p25, p50, p75, max).\n"
        "- For missing values, provide an array of objects, each with the column name and the count of "
        "missing values.\n"
        "- For value counts of categorical columns, provide an array of objects. Each object should have "
        "the column name and a 'counts' array of objects, where each inner object contains a category "
        f"'value' and its 'count'. Limit to the top {TOP_VALUE_COUNTS} most frequent values per column.\n"
        "- For the correlation matrix of numeric columns, provide an array representing the rows of the "
        "matrix. Each object should have a 'columnName' for the row and a 'values' array of objects, where "
        "each inner object has a 'columnName' and the correlation 'value'."
    )


def _clustering_prompt(options: AnalysisOptions) -> str:
    columns = ", ".join(options.clustering_columns) or "the first two numeric columns"
    return (
        f"Perform K-Means clustering on the provided CSV data sample using these columns: {columns}. "
        f"Determine an optimal number of clusters (k), but do not exceed {MAX_CLUSTERS}. Return the cluster "
        "assignment for each data point using the selected columns for x and y coordinates, and the "
        "coordinates of the cluster centers."
    )


def _classification_prompt(options: AnalysisOptions) -> str:
    target = options.classification_target or "the last column"
    return (
        "Train a Random Forest Classifier on the provided CSV data sample to predict the target column "
        f"'{target}'. Use a standard 80/20 train-test split. Return the model's overall accuracy, a "
        "classification report as an array of objects (each object containing 'className', 'precision', "
        "'recall', 'f1Score', and 'support'), and feature importances. Do not include an 'accuracy' "
        "summary row in the report array."
    )


def _regression_prompt(options: AnalysisOptions) -> str:
    target = options.regression_target or "the last column"
    return (
        "Train a Random Forest Regressor on the provided CSV data sample to predict the numeric target "
        f"column '{target}'. Use an 80/20 train-test split. Return the Root Mean Squared Error (RMSE), the "
        f"R-squared value, feature importances, and a sample of {PREDICTION_SAMPLE_POINTS} actual vs. "
        "predicted values for a scatter plot."
    )


def _time_series_prompt(options: AnalysisOptions) -> str:
    date_col = options.time_series_date_col or "the first column"
    value_col = options.time_series_value_col or "the second column"
    return (
        "Perform a time-series forecast using an appropriate model (like ARIMA) on the provided CSV data "
        f"sample. The date/time column is '{date_col}' and the value column to forecast is '{value_col}'. "
        f"Provide the last {HISTORICAL_POINTS} historical data points and the next {FORECAST_POINTS} "
        "forecasted data points. The dates should be in a consistent, chartable format (e.g., 'YYYY-MM-DD')."
    )


def _threat_analysis_prompt(options: AnalysisOptions) -> str:
    text_col = options.threat_text_col
    entity_col = options.threat_entity_col
    if not text_col or not entity_col:
        raise ConfigurationError("Text column and Entity column must be selected for Threat Analysis.")
    return (
        f"Act as a security and relationship analyst. Analyze the text content in the '{text_col}' column "
        "to identify potential threats, harassment, or problematic behavior associated with entities from "
        f"the '{entity_col}' column.\n"
        "- Identify and flag entities exhibiting negative or threatening behavior. Assign a threat level "
        "('High', 'Medium', 'Low') and provide a brief reason and supporting text evidence.\n"
        "- Analyze the interactions to identify key relationships between entities (e.g., antagonism, "
        "collaboration). Describe these relationships and their overall sentiment.\n"
        "- Provide a brief overall summary of your findings.\n"
        "This analysis is for preliminary screening; treat results with caution."
    )


_PROMPT_BUILDERS = {
    AnalysisKind.DATA_CLEANING: _data_cleaning_prompt,
    AnalysisKind.EDA: _eda_prompt,
    AnalysisKind.CLUSTERING: _clustering_prompt,
    AnalysisKind.CLASSIFICATION: _classification_prompt,
    AnalysisKind.REGRESSION: _regression_prompt,
    AnalysisKind.TIME_SERIES: _time_series_prompt,
    AnalysisKind.THREAT_ANALYSIS: _threat_analysis_prompt,
}


def build_analysis_request(kind: AnalysisKind, options: AnalysisOptions | None = None) -> AnalysisRequest:
    """Map an analysis kind and column options to a prompt and output schema.

    Raises ConfigurationError when the options for the kind are incomplete.
    """
    kind = AnalysisKind(kind)
    prompt = _PROMPT_BUILDERS[kind](options or AnalysisOptions())
    return AnalysisRequest(prompt=prompt, schema=ANALYSIS_SCHEMAS[kind], kind=kind)


def build_suggestion_request() -> AnalysisRequest:
    kinds = "\n".join(f'  - "{kind.value}"' for kind in SUGGESTABLE_KINDS)
    prompt = (
        "As a data analyst, your task is to suggest potential machine learning prediction tasks based on a "
        "sample of a CSV file. Analyze the column headers and the first few rows of data. Provide up to "
        f"{MAX_SUGGESTIONS} diverse and relevant suggestions. For each suggestion, specify the analysis type "
        "(from the provided enum), the columns to be used, a short, catchy title, and a brief justification "
        "explaining why this would be a useful prediction.\n\n"
        f"Possible Analysis Types:\n{kinds}\n\n"
        "Focus on the most plausible and high-value predictions. For example, a column with many unique "
        "string values is likely an ID and not a good target. A column with two distinct values is a great "
        "classification target. A column with continuous numbers could be a regression target. A date "
        "column paired with a numeric column is ideal for time-series forecasting."
    )
    return AnalysisRequest(
        prompt=prompt,
        schema=SUGGESTIONS_SCHEMA,
        system_instruction="You are a data analyst. Respond with a JSON array only.",
    )


def build_insights_request() -> AnalysisRequest:
    prompt = (
        "You are an expert data scientist. Your task is to analyze a sample of a CSV dataset and generate "
        "a summary of the most significant, human-readable predictive insights.\n"
        "- First, identify key columns that could be used as targets for prediction (both classification "
        "and regression).\n"
        "- Then, reason about the relationships between features and these targets.\n"
        "- Finally, synthesize your findings into 3-5 key insights. Each insight should be a concise, "
        "impactful statement about a potential prediction. Frame them as if you are explaining the findings "
        "to a non-technical stakeholder.\n"
        "- For each insight, provide a title, a clear description, and a confidence level ('High', "
        "'Medium', 'Low') based on how clear the pattern seems from the data sample."
    )
    return AnalysisRequest(
        prompt=prompt,
        schema=INSIGHTS_SCHEMA,
        system_instruction="You are an expert data scientist. Respond with a JSON array only.",
    )
