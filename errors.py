"""
Error taxonomy for checklist generation.

Every error carries a machine-readable kind and the HTTP status the route
layer answers with.
"""
from typing import Any, Dict, Optional


class ChecklistError(Exception):
    kind = "checklist_error"
    status_code = 500

    def __init__(self, message: str, raw_output: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.raw_output = raw_output

    def to_response(self) -> Dict[str, Any]:
        body = {"error": self.kind, "message": self.message}
        if self.raw_output is not None:
            body["rawOutput"] = self.raw_output
        return body


class ConfigurationError(ChecklistError):
    """Required startup configuration is missing or invalid"""
    kind = "configuration_error"


class RequestValidationError(ChecklistError):
    kind = "validation_error"
    status_code = 400


class QuotaExceededError(ChecklistError):
    kind = "quota_exceeded"
    status_code = 429

    def __init__(self, message: str, reason: str):
        super().__init__(message)
        self.reason = reason

    def to_response(self) -> Dict[str, Any]:
        body = super().to_response()
        body["reason"] = self.reason
        return body


class UpstreamCallFailedError(ChecklistError):
    kind = "upstream_call_failed"
    status_code = 502


class EmptyOutputError(ChecklistError):
    kind = "empty_output"
    status_code = 502


class TruncatedOutputError(ChecklistError):
    kind = "truncated_output"
    status_code = 502


class MalformedJsonError(ChecklistError):
    kind = "malformed_json"
    status_code = 502
