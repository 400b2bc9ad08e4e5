from __future__ import annotations

import json
from typing import Any

import pytest

from smartinsights.llm_client import LLMClient
from smartinsights.llm_schemas import INSIGHTS_SCHEMA, SUGGESTIONS_SCHEMA


class FakeLLMClient(LLMClient):
    """Scripted client. Each queue item is a str, an exception, or an async callable returning one."""

    def __init__(
        self,
        analysis: list[Any] | None = None,
        suggestions: list[Any] | None = None,
        insights: list[Any] | None = None,
        chat: list[Any] | None = None,
    ) -> None:
        self.queues = {
            "analysis": list(analysis or []),
            "suggestions": list(suggestions or []),
            "insights": list(insights or []),
            "chat": list(chat or []),
        }
        self.calls: list[dict[str, Any]] = []

    @staticmethod
    def _track(schema: dict[str, Any]) -> str:
        if schema is SUGGESTIONS_SCHEMA:
            return "suggestions"
        if schema is INSIGHTS_SCHEMA:
            return "insights"
        return "analysis"

    async def _next(self, track: str) -> str:
        queue = self.queues[track]
        if not queue:
            if track == "suggestions":
                return "[]"
            raise AssertionError(f"unexpected {track} call")
        item = queue.pop(0)
        if callable(item):
            item = await item()
        if isinstance(item, BaseException):
            raise item
        return item

    async def generate(self, prompt, schema, system_instruction, timeout=120):
        track = self._track(schema)
        self.calls.append({"track": track, "prompt": prompt, "schema": schema, "system": system_instruction})
        return await self._next(track)

    async def chat(self, messages, system_instruction, timeout=120):
        self.calls.append({"track": "chat", "messages": [dict(m) for m in messages]})
        return await self._next("chat")

    def calls_for(self, track: str) -> list[dict[str, Any]]:
        return [call for call in self.calls if call["track"] == track]


@pytest.fixture
def make_client():
    return FakeLLMClient


@pytest.fixture
def churn_csv() -> str:
    rows = [f"{20 + i % 50},{30000 + i * 10},{'yes' if i % 3 == 0 else 'no'}" for i in range(500)]
    return "\n".join(["age,income,churn", *rows])


@pytest.fixture
def classification_payload() -> str:
    return json.dumps(
        {
            "accuracy": 0.87,
            "report": [
                {"className": "yes", "precision": 0.8, "recall": 0.75, "f1Score": 0.77, "support": 33},
                {"className": "no", "precision": 0.9, "recall": 0.92, "f1Score": 0.91, "support": 67},
            ],
            "featureImportances": [
                {"feature": "income", "importance": 0.6},
                {"feature": "age", "importance": 0.4},
            ],
        }
    )


@pytest.fixture
def insights_payload() -> str:
    return json.dumps(
        [
            {"title": "Income drives churn", "description": "Lower income customers churn more.", "confidence": "High"},
            {"title": "Age is weak", "description": "Age shows little relationship with churn.", "confidence": "Low"},
        ]
    )


@pytest.fixture
def suggestions_payload() -> str:
    return json.dumps(
        [
            {
                "title": "Predict Churn",
                "analysisType": "Classification",
                "options": {"classificationTarget": "churn"},
                "justification": "churn has two distinct values.",
            }
        ]
    )
