"""
Turns raw model output into trusted, pure-ASCII checklist JSON.
"""
import json
import logging

from pydantic import ValidationError

from errors import EmptyOutputError, MalformedJsonError, TruncatedOutputError
from models import ChecklistResult

logger = logging.getLogger(__name__)

FENCE_OPEN = "```json"
FENCE_CLOSE = "```"
MIN_OUTPUT_LENGTH = 10


def strip_code_fence(text: str) -> str:
    """Removes a ```json ... ``` wrapper; other text passes through unchanged"""
    stripped = text.strip()
    if not stripped.startswith(FENCE_OPEN):
        return text
    stripped = stripped[len(FENCE_OPEN):].strip()
    if stripped.endswith(FENCE_CLOSE):
        stripped = stripped[:-len(FENCE_CLOSE)].strip()
    return stripped


def escape_non_ascii(text: str) -> str:
    """Escapes every character above U+007F as \\uXXXX (UTF-16 units)"""
    out = []
    for char in text:
        code = ord(char)
        if code <= 127:
            out.append(char)
        elif code > 0xFFFF:
            code -= 0x10000
            out.append("\\u%04x\\u%04x" % (0xD800 + (code >> 10), 0xDC00 + (code & 0x3FF)))
        else:
            out.append("\\u%04x" % code)
    return "".join(out)


def parse_checklist(text: str) -> ChecklistResult:
    try:
        return ChecklistResult.model_validate(json.loads(text))
    except (ValueError, ValidationError) as e:
        logger.error("Could not parse model output: %s. Raw output: %s", e, text)
        raise MalformedJsonError("Failed to parse model output", raw_output=text) from e


def sanitize(raw_text: str) -> bytes:
    """Fence-strip, guard, validate and re-encode model output as ASCII JSON"""
    cleaned = strip_code_fence(raw_text or "").strip()
    if not cleaned:
        raise EmptyOutputError("Model returned no text")
    if len(cleaned) < MIN_OUTPUT_LENGTH:
        logger.error("Received truncated model output: %r", cleaned)
        raise TruncatedOutputError("Received incomplete model output", raw_output=cleaned)

    result = parse_checklist(cleaned)
    canonical = json.dumps(result.to_payload(), ensure_ascii=False, separators=(",", ":"))
    return escape_non_ascii(canonical).encode("ascii")
