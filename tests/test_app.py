import json

import pytest
import requests
from streamlit.testing.v1 import AppTest

HEADERS = ["age", "income", "churn"]


class FakeResponse:
    def __init__(self, payload) -> None:
        self.status_code = 200
        self._payload = payload
        self.content = json.dumps(payload).encode("utf-8")
        self.text = self.content.decode("utf-8")

    def json(self):
        return self._payload


@pytest.fixture
def backend(monkeypatch):
    calls = []
    routes = {
        ("POST", "/sessions"): {"session_id": "sess_test"},
        ("GET", "/sessions/sess_test/state"): {
            "dataset": {"filename": "churn.csv", "headers": HEADERS, "rows": 1},
            "options": {},
        },
        ("GET", "/sessions/sess_test/suggestions"): {"suggestions": []},
        ("GET", "/sessions/sess_test/preview"): {"headers": HEADERS, "rows": [["30", "51000", "no"]]},
        ("POST", "/sessions/sess_test/select"): {"selected_analysis": "Regression"},
    }

    def fake_request(method, url, timeout=None, **kwargs):
        path = url.split("/api/v1", 1)[1]
        calls.append((method, path, kwargs.get("json")))
        return FakeResponse(routes[(method, path)])

    monkeypatch.setattr(requests, "request", fake_request)
    return calls


def test_changing_analysis_clears_result_and_selects(backend) -> None:
    at = AppTest.from_file("../app.py")
    at.run(timeout=30)
    assert not at.exception

    at.session_state["error"] = "Failed to perform Classification."
    at.radio(key="analysis_type").set_value("Regression").run(timeout=30)

    assert ("POST", "/sessions/sess_test/select", {"analysis_type": "Regression"}) in backend
    assert "error" not in at.session_state
    assert len(at.error) == 0
