import asyncio
import json

import pytest

from smartinsights.analysis_service import generate_insights_summary, get_prediction_suggestions, perform_analysis
from smartinsights.config import Settings
from smartinsights.errors import ConfigurationError, MalformedResponseError, SchemaValidationError, TransportError
from smartinsights.models import AnalysisKind, AnalysisOptions, ClassificationResult


def test_classification_scenario(make_client, churn_csv, classification_payload) -> None:
    client = make_client(analysis=[classification_payload])
    result = asyncio.run(
        perform_analysis(
            client, churn_csv, AnalysisKind.CLASSIFICATION, AnalysisOptions(classification_target="churn")
        )
    )
    assert isinstance(result, ClassificationResult)
    assert result.accuracy == 0.87
    assert [item.class_name for item in result.report] == ["yes", "no"]
    assert result.feature_importances[0].feature == "income"

    prompt = client.calls[0]["prompt"]
    assert "'churn'" in prompt and "80/20" in prompt
    data = prompt.split("Here is the CSV data:\n\n", 1)[1]
    assert len(data.split("\n")) == 201


def test_sample_cap_comes_from_settings(make_client, churn_csv, classification_payload) -> None:
    client = make_client(analysis=[classification_payload])
    asyncio.run(perform_analysis(client, churn_csv, AnalysisKind.CLASSIFICATION, settings=Settings(analysis_sample_rows=5)))
    data = client.calls[0]["prompt"].split("Here is the CSV data:\n\n", 1)[1]
    assert len(data.split("\n")) == 6


def test_configuration_error_is_raised_before_any_call(make_client, churn_csv) -> None:
    client = make_client()
    with pytest.raises(ConfigurationError):
        asyncio.run(perform_analysis(client, churn_csv, AnalysisKind.THREAT_ANALYSIS, AnalysisOptions()))
    assert client.calls == []


def test_analysis_failures_are_typed(make_client, churn_csv) -> None:
    client = make_client(analysis=['{"accuracy": 0.9,', TransportError("network rejected"), '{"accuracy": 0.9}'])
    with pytest.raises(MalformedResponseError):
        asyncio.run(perform_analysis(client, churn_csv, AnalysisKind.CLASSIFICATION))
    with pytest.raises(TransportError):
        asyncio.run(perform_analysis(client, churn_csv, AnalysisKind.CLASSIFICATION))
    with pytest.raises(SchemaValidationError):
        asyncio.run(perform_analysis(client, churn_csv, AnalysisKind.CLASSIFICATION))


def test_suggestions_parse_and_use_small_sample(make_client, churn_csv, suggestions_payload) -> None:
    client = make_client(suggestions=[f"```json\n{suggestions_payload}\n```"])
    suggestions = asyncio.run(get_prediction_suggestions(client, churn_csv))
    assert suggestions[0].analysis_type is AnalysisKind.CLASSIFICATION
    assert suggestions[0].options.classification_target == "churn"
    data = client.calls[0]["prompt"].split("Here is the CSV data:\n\n", 1)[1]
    assert len(data.split("\n")) == 51


@pytest.mark.parametrize("failure", [TransportError("down"), "not json", '[{"title": "x"}]'])
def test_suggestions_degrade_to_empty_list(make_client, churn_csv, failure) -> None:
    client = make_client(suggestions=[failure])
    assert asyncio.run(get_prediction_suggestions(client, churn_csv)) == []


def test_insights_summary(make_client, churn_csv, insights_payload) -> None:
    client = make_client(insights=[insights_payload, "{oops"])
    insights = asyncio.run(generate_insights_summary(client, churn_csv))
    assert [insight.confidence for insight in insights] == ["High", "Low"]
    with pytest.raises(MalformedResponseError):
        asyncio.run(generate_insights_summary(client, churn_csv))


def test_extra_suggestions_are_trimmed_not_discarded(make_client, churn_csv, suggestions_payload) -> None:
    item = json.loads(suggestions_payload)[0]
    client = make_client(suggestions=[json.dumps([item] * 4)])
    suggestions = asyncio.run(get_prediction_suggestions(client, churn_csv))
    assert len(suggestions) == 3
    assert all(suggestion.options.classification_target == "churn" for suggestion in suggestions)
