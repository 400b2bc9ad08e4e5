import asyncio
import json

from smartinsights.controller import TrackStatus, WorkbenchController
from smartinsights.errors import TransportError
from smartinsights.ingest import ingest_csv
from smartinsights.models import AnalysisKind, AnalysisOptions, Suggestion


async def _loaded(client, csv_text: str, name: str = "churn.csv") -> WorkbenchController:
    controller = WorkbenchController(client)
    await controller.load_dataset(ingest_csv(name, csv_text))
    return controller


def test_run_analysis_is_noop_without_dataset_or_selection(make_client, churn_csv) -> None:
    async def scenario():
        client = make_client()
        controller = WorkbenchController(client)
        controller.select_analysis(AnalysisKind.EDA)
        await controller.run_analysis()
        await controller.generate_insights()
        assert controller.analysis.status is TrackStatus.IDLE
        assert controller.insights.status is TrackStatus.IDLE

        controller = await _loaded(client, churn_csv)
        await controller.run_analysis()
        assert controller.analysis.status is TrackStatus.IDLE
        assert client.calls_for("analysis") == []

    asyncio.run(scenario())


def test_analysis_and_insights_are_mutually_exclusive(
    make_client, churn_csv, classification_payload, insights_payload
) -> None:
    async def scenario():
        insights_gate = asyncio.Event()
        analysis_gate = asyncio.Event()

        async def slow_insights():
            await insights_gate.wait()
            return insights_payload

        async def slow_analysis():
            await analysis_gate.wait()
            return classification_payload

        client = make_client(analysis=[classification_payload, slow_analysis], insights=[slow_insights])
        controller = await _loaded(client, churn_csv)
        controller.select_analysis(AnalysisKind.CLASSIFICATION)
        await controller.run_analysis()
        assert controller.analysis.status is TrackStatus.SUCCESS

        task = asyncio.create_task(controller.generate_insights())
        await asyncio.sleep(0)
        assert controller.analysis.value is None
        assert controller.insights.status is TrackStatus.LOADING
        insights_gate.set()
        await task
        assert controller.insights.status is TrackStatus.SUCCESS
        assert controller.selected_analysis is None

        controller.select_analysis(AnalysisKind.CLASSIFICATION)
        assert controller.insights.value is None
        task = asyncio.create_task(controller.run_analysis())
        await asyncio.sleep(0)
        assert controller.insights.status is TrackStatus.IDLE
        analysis_gate.set()
        await task
        assert controller.analysis.value.accuracy == 0.87
        assert controller.insights.value is None

    asyncio.run(scenario())


def test_superseded_response_is_dropped(make_client, churn_csv, classification_payload, insights_payload) -> None:
    async def scenario():
        gate = asyncio.Event()

        async def late_analysis():
            await gate.wait()
            return classification_payload

        client = make_client(analysis=[late_analysis], insights=[insights_payload])
        controller = await _loaded(client, churn_csv)
        controller.select_analysis(AnalysisKind.CLASSIFICATION)
        analysis_task = asyncio.create_task(controller.run_analysis())
        await asyncio.sleep(0)
        await controller.generate_insights()
        gate.set()
        await analysis_task
        return controller

    controller = asyncio.run(scenario())
    assert controller.insights.status is TrackStatus.SUCCESS
    assert len(controller.insights.value) == 2
    assert controller.analysis.status is TrackStatus.IDLE
    assert controller.analysis.value is None


def test_new_dataset_resets_state_and_refetches_suggestions(
    make_client, churn_csv, classification_payload, suggestions_payload
) -> None:
    async def scenario():
        client = make_client(analysis=[classification_payload], suggestions=[suggestions_payload, "[]"])
        controller = await _loaded(client, churn_csv)
        assert len(controller.suggestions.value) == 1
        controller.select_analysis(AnalysisKind.CLASSIFICATION)
        controller.set_options(AnalysisOptions(classification_target="churn"))
        await controller.run_analysis()
        assert controller.analysis.status is TrackStatus.SUCCESS

        task = controller.load_dataset(ingest_csv("other.csv", "x,y\n1,2"))
        assert controller.analysis.status is TrackStatus.IDLE
        assert controller.selected_analysis is None
        assert controller.error is None
        assert controller.options == AnalysisOptions()
        await task
        assert controller.suggestions.value == []
        assert len(client.calls_for("suggestions")) == 2
        assert controller.dataset.headers == ["x", "y"]

    asyncio.run(scenario())


def test_stale_suggestions_do_not_replace_fresh_ones(make_client, churn_csv, suggestions_payload) -> None:
    async def scenario():
        gate = asyncio.Event()

        async def late_suggestions():
            await gate.wait()
            return suggestions_payload

        client = make_client(suggestions=[late_suggestions, "[]"])
        controller = WorkbenchController(client)
        first = controller.load_dataset(ingest_csv("a.csv", churn_csv))
        await asyncio.sleep(0)
        second = controller.load_dataset(ingest_csv("b.csv", "x,y\n1,2"))
        await second
        gate.set()
        await first
        return controller

    controller = asyncio.run(scenario())
    assert controller.suggestions.value == []


def test_suggestion_transport_error_is_silent(make_client, churn_csv) -> None:
    async def scenario():
        client = make_client(suggestions=[TransportError("network rejected")])
        return await _loaded(client, churn_csv)

    controller = asyncio.run(scenario())
    assert controller.suggestions.status is TrackStatus.SUCCESS
    assert controller.suggestions.value == []
    assert controller.error is None


def test_errors_become_user_messages(make_client, churn_csv) -> None:
    async def scenario():
        client = make_client(analysis=['{"accuracy": ', TransportError("down")], insights=[TransportError("down")])
        controller = await _loaded(client, churn_csv)
        messages = []

        controller.select_analysis(AnalysisKind.THREAT_ANALYSIS)
        await controller.run_analysis()
        messages.append((controller.analysis.error.code, controller.error))

        controller.select_analysis(AnalysisKind.CLASSIFICATION)
        await controller.run_analysis()
        messages.append((controller.analysis.error.code, controller.error))
        await controller.run_analysis()
        messages.append((controller.analysis.error.code, controller.error))

        await controller.generate_insights()
        messages.append((controller.insights.error.code, controller.error))
        assert controller.analysis.status is TrackStatus.IDLE
        assert len(client.calls_for("analysis")) == 2
        return messages

    messages = asyncio.run(scenario())
    assert messages[0] == ("configuration_error", "Text column and Entity column must be selected for Threat Analysis.")
    assert messages[1][0] == "malformed_response"
    assert "malformed response for Classification" in messages[1][1]
    assert messages[2][0] == "transport_error"
    assert messages[2][1].startswith("Failed to perform Classification.")
    assert messages[3] == (
        "transport_error",
        "Failed to generate the insights summary. The model may be temporarily unavailable or could not process the data.",
    )


def test_apply_suggestion_sets_kind_and_options(make_client, churn_csv, classification_payload) -> None:
    async def scenario():
        client = make_client(analysis=[classification_payload])
        controller = await _loaded(client, churn_csv)
        controller.select_analysis(AnalysisKind.CLASSIFICATION)
        await controller.run_analysis()
        suggestion = Suggestion(
            title="Forecast income",
            analysis_type=AnalysisKind.TIME_SERIES,
            options=AnalysisOptions(time_series_date_col="age", time_series_value_col="income"),
            justification="numeric over time",
        )
        controller.apply_suggestion(suggestion)
        return controller

    controller = asyncio.run(scenario())
    assert controller.selected_analysis is AnalysisKind.TIME_SERIES
    assert controller.options.time_series_value_col == "income"
    assert controller.analysis.status is TrackStatus.IDLE


def test_apply_cleaned_data_replaces_dataset(make_client, churn_csv) -> None:
    async def scenario():
        client = make_client()
        controller = await _loaded(client, churn_csv)
        await controller.apply_cleaned_data([{"age": 30, "churn": "no"}, {"age": 41, "churn": "yes"}])
        return controller, client

    controller, client = asyncio.run(scenario())
    assert controller.dataset.filename == "churn.csv"
    assert controller.dataset.headers == ["age", "churn"]
    assert controller.dataset.row_count == 2
    assert len(client.calls_for("suggestions")) == 2


def test_snapshot_is_json_serialisable(make_client, churn_csv, classification_payload) -> None:
    async def scenario():
        client = make_client(analysis=[classification_payload])
        controller = await _loaded(client, churn_csv)
        controller.select_analysis(AnalysisKind.CLASSIFICATION)
        await controller.run_analysis()
        return controller.snapshot()

    snapshot = asyncio.run(scenario())
    encoded = json.loads(json.dumps(snapshot))
    assert encoded["selected_analysis"] == "Classification"
    assert encoded["analysis"]["status"] == "success"
    assert encoded["analysis"]["value"]["featureImportances"][0]["feature"] == "income"
    assert encoded["analysis"]["value"]["kind"] == "Classification"


def test_superseded_run_reports_no_outcome(make_client, churn_csv, classification_payload) -> None:
    async def scenario():
        gate = asyncio.Event()

        async def held_analysis():
            await gate.wait()
            return classification_payload

        client = make_client(analysis=[held_analysis, TransportError("down")])
        controller = await _loaded(client, churn_csv)
        controller.select_analysis(AnalysisKind.CLASSIFICATION)
        first = asyncio.create_task(controller.run_analysis())
        await asyncio.sleep(0)
        second = await controller.run_analysis()
        gate.set()
        return await first, second

    first, second = asyncio.run(scenario())
    assert first is None
    assert second["status"] == "error"
    assert second["error"]["code"] == "transport_error"
