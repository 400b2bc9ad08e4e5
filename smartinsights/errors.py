from __future__ import annotations


class WorkbenchError(RuntimeError):
    code = "workbench_error"


class ConfigurationError(WorkbenchError, ValueError):
    """Raised when the options for an analysis are incomplete."""

    code = "configuration_error"


class TransportError(WorkbenchError):
    code = "transport_error"


class EmptyResponseError(TransportError):
    code = "empty_response"


class LLMCircuitOpenError(TransportError):
    code = "circuit_open"


class MalformedResponseError(WorkbenchError, ValueError):
    code = "malformed_response"


class SchemaValidationError(MalformedResponseError):
    code = "schema_validation_error"


def describe_failure(exc: BaseException, action: str) -> str:
    """Turn a failed analysis into the message shown to the user."""
    if isinstance(exc, ConfigurationError):
        return str(exc)
    if isinstance(exc, MalformedResponseError):
        return (
            f"The API returned a malformed response for {action}. "
            "This may be a temporary issue, please try again."
        )
    return (
        f"Failed to perform {action}. Please check your data and column selections. "
        "The API may be temporarily unavailable or the data could not be processed."
    )


def describe_insights_failure(exc: BaseException) -> str:
    if isinstance(exc, MalformedResponseError):
        return describe_failure(exc, "the insights summary")
    return (
        "Failed to generate the insights summary. "
        "The model may be temporarily unavailable or could not process the data."
    )
