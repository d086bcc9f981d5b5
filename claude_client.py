import time
from typing import Any, Callable, Dict

from anthropic import Anthropic, APIError

from retry_backoff import CallExhaustedError, call_with_backoff
from errors import EmptyOutputError, UpstreamCallFailedError
from models import GenerationRequest

SYSTEM_PROMPT = """You are a productivity assistant that creates detailed checklists to help users complete their tasks.

Generate the checklist in valid JSON format. The JSON object must have a key 'checklist' that maps to an array of checklist items. Each checklist item should be an object with the following keys:
* 'description': A clear, concise description of the step or sub-task.
* 'estimatedTime': An estimated duration in minutes for that step, as an integer.
* 'isCompleted': A boolean value, set to false.

Do not include any extra text or explanation outside the JSON.
Generate the checklist in the same language as the task title and description."""


def build_prompt(request: GenerationRequest) -> str:
    """Task details plus scheduling hints for the user message"""
    return (
        f'Title: "{request.task_title}"\n'
        f'Description: "{request.task_description}"\n'
        "\n"
        "Additional details:\n"
        f"- Work Hours: {request.work_hours.start} to {request.work_hours.end}\n"
        f"- Notification Hours: {request.notification_hours.start} to {request.notification_hours.end}\n"
        f"- Morning Productivity Peak: {request.morning_peak:g}%\n"
        f"- Afternoon Productivity Peak: {request.afternoon_peak:g}%\n"
        f'- Category: "{request.category}"\n'
        f"- Preferred language hint: {request.language}"
    )


def build_payload(prompt: str, model: str, max_tokens: int) -> Dict[str, Any]:
    return {
        "model": model,
        "max_tokens": max_tokens,
        "system": SYSTEM_PROMPT,
        "messages": [
            {"role": "user", "content": prompt}
        ],
    }


def extract_text(response: Any) -> str:
    """Joins the text blocks of a Messages API response"""
    blocks = getattr(response, "content", None) or []
    text = "".join(
        getattr(block, "text", "") for block in blocks
        if getattr(block, "type", "text") == "text"
    )
    if not text:
        raise EmptyOutputError("No text generated", raw_output=repr(response))
    return text


def build_anthropic_client(api_key: str, timeout_s: float) -> Anthropic:
    # Retries are owned by call_with_backoff, not the SDK
    return Anthropic(api_key=api_key, max_retries=0, timeout=timeout_s)


class ChecklistGenerator:
    """Sends checklist prompts to Claude with bounded retries"""

    def __init__(
        self,
        client: Anthropic,
        model: str = "claude-sonnet-4-20250514",
        max_tokens: int = 2048,
        timeout_s: float = 120.0,
        max_retries: int = 2,
        initial_delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self.timeout_s = timeout_s
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.sleep = sleep

    def _send(self, payload: Dict[str, Any]) -> Any:
        return self.client.messages.create(**payload, timeout=self.timeout_s)

    def generate_text(self, request: GenerationRequest) -> str:
        payload = build_payload(build_prompt(request), self.model, self.max_tokens)
        try:
            response = call_with_backoff(
                self._send,
                payload,
                max_retries=self.max_retries,
                initial_delay=self.initial_delay,
                retry_on=(APIError,),
                sleep=self.sleep,
                description="Claude API call",
            )
        except CallExhaustedError as e:
            raise UpstreamCallFailedError(f"Error calling LLM API: {e.last_error}") from e
        return extract_text(response)
