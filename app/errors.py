## Error taxonomy shared by the handlers
"""
Every failure a handler can surface is a PipelineError subclass. The class
decides the HTTP status, the stage that failed and whether diagnostics may be
returned to the caller (only the two LLM-parsing failures do that).
"""
from typing import Any


class PipelineError(Exception):
    status_code = 500
    stage = "internal"
    default_message = "Unexpected server error."
    exposes_diagnostics = False

    def __init__(self, message: str | None = None, *, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def diagnostics(self) -> dict[str, Any]:
        return {}

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": False, "error": self.message, "stage": self.stage}
        if self.exposes_diagnostics:
            payload["details"] = self.diagnostics()
        elif self.details is not None:
            payload["details"] = self.details
        return payload


class ConfigurationError(PipelineError):
    stage = "config"
    default_message = "Server configuration error."


class InvalidInput(PipelineError):
    status_code = 400
    stage = "input"
    default_message = "Invalid request."


class NotFound(PipelineError):
    status_code = 404
    stage = "lookup"
    default_message = "Not found."


class UpstreamUnavailable(PipelineError):
    status_code = 502
    stage = "invoke"
    default_message = "LLM provider is unavailable."


class UpstreamError(PipelineError):
    status_code = 502
    stage = "invoke"
    default_message = "LLM provider returned an error."

    def __init__(self, message: str | None = None, *, status: int, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


class UnparsableReply(PipelineError):
    status_code = 502
    stage = "normalize"
    default_message = "Failed to parse LLM response as JSON."
    exposes_diagnostics = True

    def __init__(self, message: str | None = None, *, raw_text: str, parse_error: str):
        super().__init__(message)
        self.raw_text = raw_text
        self.parse_error = parse_error

    def diagnostics(self) -> dict[str, Any]:
        return {"raw_text": self.raw_text, "parse_error": self.parse_error}


class SchemaViolation(PipelineError):
    status_code = 502
    stage = "validate"
    default_message = "LLM response did not match the expected format."
    exposes_diagnostics = True

    def __init__(
        self,
        message: str | None = None,
        *,
        field_path: str,
        expected: str,
        actual: Any = None,
        raw_text: str | None = None,
    ):
        super().__init__(message or f"Invalid field '{field_path or '<root>'}': expected {expected}")
        self.field_path = field_path
        self.expected = expected
        self.actual = actual
        self.raw_text = raw_text

    def diagnostics(self) -> dict[str, Any]:
        return {
            "field_path": self.field_path,
            "expected": self.expected,
            "actual": self.actual,
            "raw_text": self.raw_text,
        }


class PersistenceError(PipelineError):
    stage = "persist"
    default_message = "Failed to save to database."
