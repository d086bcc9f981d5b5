from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from errors import RequestValidationError

MAX_TITLE = 50
MAX_DESCRIPTION = 150
MAX_CATEGORY = 30


class TimeWindow(BaseModel):
    start: str = Field(description="Time of day, e.g. '09:00'")
    end: str = Field(description="Time of day, e.g. '17:00'")


class GenerationRequest(BaseModel):
    """One checklist generation call, with every optional field resolved"""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId", min_length=1)
    task_id: str = Field(alias="taskId", min_length=1)
    task_title: str = Field(alias="taskTitle")
    task_description: str = Field(alias="taskDescription")
    category: str = "General"
    work_hours: TimeWindow = Field(
        default_factory=lambda: TimeWindow(start="09:00", end="17:00"),
        alias="workHours",
    )
    notification_hours: TimeWindow = Field(
        default_factory=lambda: TimeWindow(start="08:00", end="20:00"),
        alias="notificationHours",
    )
    morning_peak: float = Field(default=50, alias="morningPeak")
    afternoon_peak: float = Field(default=50, alias="afternoonPeak")
    language: str = "en"

    @field_validator("task_title")
    @classmethod
    def _trim_title(cls, value: str) -> str:
        return value[:MAX_TITLE]

    @field_validator("task_description")
    @classmethod
    def _trim_description(cls, value: str) -> str:
        return value[:MAX_DESCRIPTION]

    @field_validator("category")
    @classmethod
    def _trim_category(cls, value: str) -> str:
        return value[:MAX_CATEGORY]

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "GenerationRequest":
        """Build a request from a raw JSON body, raising RequestValidationError"""
        if not isinstance(payload, dict):
            raise RequestValidationError("request body must be a JSON object")

        # Report missing identity fields the same way the clients expect
        for field in ("userId", "taskId", "taskTitle", "taskDescription"):
            value = payload.get(field)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise RequestValidationError(f"{field} is required")

        # Absent and null optional fields both fall back to defaults
        cleaned = {key: value for key, value in payload.items() if value is not None}
        try:
            return cls.model_validate(cleaned)
        except ValidationError as e:
            raise RequestValidationError(f"invalid request: {e}") from e


class ChecklistItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    description: str = Field(description="A clear, concise description of the step")
    estimated_time: int = Field(
        alias="estimatedTime", ge=0, strict=True, description="Estimated duration in minutes"
    )
    is_completed: bool = Field(default=False, alias="isCompleted")

    @field_validator("is_completed")
    @classmethod
    def _never_completed(cls, value: bool) -> bool:
        # Freshly generated steps are never done
        return False


class ChecklistResult(BaseModel):
    checklist: List[ChecklistItem]

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
