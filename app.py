from __future__ import annotations

import os
from typing import Any

import pandas as pd
import requests
import streamlit as st

API_BASE_URL = os.getenv("BACKEND_API_URL", "http://localhost:8000").rstrip("/") + "/api/v1"
REQUEST_TIMEOUT = int(os.getenv("REQUEST_TIMEOUT", "300"))

ANALYSIS_TYPES = [
    "Data Cleaning",
    "Exploratory Data Analysis",
    "Clustering",
    "Classification",
    "Regression",
    "Time-Series Forecasting",
    "Threat & Relationship Analysis",
]

st.set_page_config(page_title="SmartInsights", layout="wide")


def _api_request(method: str, path: str, **kwargs: Any) -> dict[str, Any]:
    url = f"{API_BASE_URL}{path}"
    response = requests.request(method=method, url=url, timeout=REQUEST_TIMEOUT, **kwargs)
    if response.status_code >= 400:
        detail = response.text
        try:
            detail = response.json().get("detail", detail)
        except ValueError:
            pass
        raise RuntimeError(str(detail))
    if response.content:
        return response.json()
    return {}


def _ensure_session() -> str:
    if st.session_state.get("session_id"):
        return st.session_state.session_id
    created = _api_request("POST", "/sessions")
    st.session_state.session_id = created["session_id"]
    return st.session_state.session_id


def _option_pickers(analysis_type: str, headers: list[str], options: dict[str, Any]) -> dict[str, Any]:
    choices = [""] + headers

    def _select(label: str, key: str) -> None:
        current = options.get(key) or ""
        index = choices.index(current) if current in choices else 0
        value = st.sidebar.selectbox(label, choices, index=index, key=f"opt_{key}")
        options[key] = value or None

    if analysis_type == "Clustering":
        options["clusteringColumns"] = st.sidebar.multiselect(
            "Columns to cluster", headers, default=[c for c in options.get("clusteringColumns", []) if c in headers]
        )
    elif analysis_type == "Classification":
        _select("Target column", "classificationTarget")
    elif analysis_type == "Regression":
        _select("Target column", "regressionTarget")
    elif analysis_type == "Time-Series Forecasting":
        _select("Date column", "timeSeriesDateCol")
        _select("Value column", "timeSeriesValueCol")
    elif analysis_type == "Threat & Relationship Analysis":
        _select("Text column", "threatTextCol")
        _select("Entity column", "threatEntityCol")
    return options


def _on_analysis_change(session_id: str) -> None:
    for key in ("result", "insights", "error"):
        st.session_state.pop(key, None)
    analysis_type = st.session_state.get("analysis_type")
    if not analysis_type:
        return
    try:
        _api_request("POST", f"/sessions/{session_id}/select", json={"analysis_type": analysis_type})
    except RuntimeError as exc:
        st.session_state.error = str(exc)


def _render_result(analysis_type: str, result: dict[str, Any], session_id: str) -> None:
    if analysis_type == "Data Cleaning":
        st.subheader("Cleaning Summary")
        for action in result.get("cleaningSummary", []):
            st.markdown(f"- {action}")
        st.dataframe(pd.DataFrame(result.get("cleanedData", [])), use_container_width=True)
        if st.button("Apply & Use Cleaned Data", disabled=not result.get("cleanedData")):
            _api_request(
                "POST", f"/sessions/{session_id}/cleaned-data/apply", json={"records": result["cleanedData"]}
            )
            st.session_state.pop("result", None)
            st.rerun()
        return

    if analysis_type == "Classification":
        st.metric("Accuracy", f"{result['accuracy']:.2%}")
        st.dataframe(pd.DataFrame(result["report"]), use_container_width=True)
        st.dataframe(pd.DataFrame(result["featureImportances"]), use_container_width=True)
        return

    if analysis_type == "Regression":
        left, right = st.columns(2)
        left.metric("RMSE", f"{result['rmse']:.4f}")
        right.metric("R²", f"{result['r2']:.4f}")
        st.dataframe(pd.DataFrame(result["featureImportances"]), use_container_width=True)
        st.dataframe(pd.DataFrame(result["predictions"]), use_container_width=True)
        return

    if analysis_type == "Threat & Relationship Analysis":
        st.write(result["summary"])
        st.dataframe(pd.DataFrame(result["flaggedEntities"]), use_container_width=True)
        st.dataframe(pd.DataFrame(result["relationships"]), use_container_width=True)
        return

    st.json(result)


st.title("SmartInsights")
st.caption("An AI-powered data analytics workbench. Upload a CSV file to begin.")

try:
    session_id = _ensure_session()
except RuntimeError as exc:
    st.error(f"Backend unavailable: {exc}")
    st.stop()

uploaded = st.file_uploader("CSV file", type=["csv"])
if uploaded is not None and st.session_state.get("uploaded_name") != uploaded.name:
    _api_request(
        "POST", f"/sessions/{session_id}/upload", files={"file": (uploaded.name, uploaded.getvalue(), "text/csv")}
    )
    st.session_state.uploaded_name = uploaded.name
    for key in ("result", "insights", "error"):
        st.session_state.pop(key, None)

state = _api_request("GET", f"/sessions/{session_id}/state")
dataset = state.get("dataset")
if not dataset:
    st.stop()

st.subheader(f"Dataset: {dataset['filename']}")

if "pending_analysis_type" in st.session_state:
    st.session_state.analysis_type = st.session_state.pop("pending_analysis_type")
analysis_type = st.sidebar.radio(
    "Analysis",
    ANALYSIS_TYPES,
    index=None,
    key="analysis_type",
    on_change=_on_analysis_change,
    args=(session_id,),
)
options = _option_pickers(analysis_type or "", dataset["headers"], dict(state.get("options") or {}))

if st.sidebar.button("Run Analysis", disabled=analysis_type is None):
    st.session_state.pop("insights", None)
    with st.spinner(f"Running {analysis_type}..."):
        try:
            payload = _api_request(
                "POST",
                f"/sessions/{session_id}/analysis",
                json={"analysis_type": analysis_type, "options": options},
            )
            st.session_state.result = (analysis_type, payload["result"])
            st.session_state.pop("error", None)
        except RuntimeError as exc:
            st.session_state.pop("result", None)
            st.session_state.error = str(exc)

if st.button("Generate Insights Summary"):
    st.session_state.pop("result", None)
    with st.spinner("Analyzing..."):
        try:
            st.session_state.insights = _api_request("POST", f"/sessions/{session_id}/insights")["insights"]
            st.session_state.pop("error", None)
        except RuntimeError as exc:
            st.session_state.pop("insights", None)
            st.session_state.error = str(exc)

if st.session_state.get("error"):
    st.error(st.session_state.error)
elif st.session_state.get("insights"):
    for insight in st.session_state.insights:
        st.markdown(f"**{insight['title']}** ({insight['confidence']} confidence)")
        st.write(insight["description"])
elif st.session_state.get("result"):
    kind, result = st.session_state.result
    _render_result(kind, result, session_id)
else:
    suggestions = _api_request("GET", f"/sessions/{session_id}/suggestions").get("suggestions", [])
    for index, suggestion in enumerate(suggestions):
        with st.container(border=True):
            st.markdown(f"**{suggestion['title']}** · {suggestion['analysisType']}")
            st.caption(suggestion["justification"])
            if st.button("Use this suggestion", key=f"suggestion_{index}"):
                _api_request("POST", f"/sessions/{session_id}/suggestions/apply", json=suggestion)
                st.session_state.pending_analysis_type = suggestion["analysisType"]
                st.rerun()
    preview = _api_request("GET", f"/sessions/{session_id}/preview", params={"rows": 20})
    preview_df = pd.DataFrame(preview["rows"])
    if len(preview_df.columns) == len(preview["headers"]):
        preview_df.columns = preview["headers"]
    st.dataframe(preview_df, use_container_width=True)

with st.expander("Chat with SmartBot"):
    message = st.text_input("Message", key="chat_message")
    if st.button("Send") and message:
        reply = _api_request("POST", f"/sessions/{session_id}/chat", json={"message": message})
        st.session_state.chat_transcript = reply["transcript"]
    for turn in st.session_state.get("chat_transcript", []):
        st.markdown(f"**{'You' if turn['role'] == 'user' else 'SmartBot'}:** {turn['text']}")
