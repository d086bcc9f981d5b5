from datetime import datetime
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest
import pytz

from checklist_service import ChecklistService
from claude_client import ChecklistGenerator
from quota import QuotaTracker

VALID_OUTPUT = (
    '```json\n{"checklist":[{"description":"Outline the report","estimatedTime":15,'
    '"isCompleted":false},{"description":"Write the draft","estimatedTime":45,'
    '"isCompleted":false}]}\n```'
)


def text_response(text: str) -> SimpleNamespace:
    return SimpleNamespace(content=[SimpleNamespace(type="text", text=text)])


class FakeMessages:
    """Stands in for `Anthropic().messages`, replaying scripted outcomes"""

    def __init__(self, outcomes: List[Any]):
        self.outcomes = list(outcomes)
        self.calls: List[Dict[str, Any]] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return text_response(outcome) if isinstance(outcome, str) else outcome


class FakeClaude:
    def __init__(self, *outcomes: Any):
        self.messages = FakeMessages(list(outcomes) or [VALID_OUTPUT])


@pytest.fixture
def now():
    return datetime(2024, 5, 17, 10, 30, tzinfo=pytz.utc)


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def fake_claude():
    return FakeClaude()


@pytest.fixture
def make_service(sleeps):
    def _make(client=None, quota_charge="admission", **quota_kwargs):
        generator = ChecklistGenerator(
            client or FakeClaude(),
            model="claude-test",
            max_retries=2,
            initial_delay=1.0,
            sleep=sleeps.append,
        )
        return ChecklistService(
            generator,
            quota=QuotaTracker(**quota_kwargs),
            quota_charge=quota_charge,
        )
    return _make


@pytest.fixture
def request_body():
    return {
        "userId": "user-1",
        "taskId": "task-1",
        "taskTitle": "Write quarterly report",
        "taskDescription": "Summarize the sales numbers for Q2",
    }
