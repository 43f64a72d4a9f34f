from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from typing import Any, Optional


class TaskOutput(BaseModel):
    name: Optional[str] = None
    result: Any = None  # usually text, runners sometimes post numbers or objects


class TaskInput(BaseModel):
    query_post: Optional[str] = None  # echo of the submitted query


class TaskResultPayload(BaseModel):
    """Body the task runner posts to the capture endpoint."""
    input: Optional[TaskInput] = None
    result: Any = None
    task_output: list[TaskOutput] = Field(default_factory=list)

    @field_validator("task_output", mode="before")
    @classmethod
    def _null_task_output(cls, value):
        return [] if value is None else value

    @property
    def query_text(self) -> Optional[str]:
        if self.input is None:
            return None
        return self.input.query_post


class CapturedRequest(BaseModel):
    """One delivery recorded by the capture endpoint."""
    uuid: str
    content: Optional[str] = None


class CapturedRequestPage(BaseModel):
    data: list[CapturedRequest] = Field(default_factory=list)


# Task API Request/Response models

class TaskCreateRequest(BaseModel):
    webhook: str = Field(..., description="URL the runner posts results to")
    query_post: Optional[str] = Field(None, description="Command argument text")


class TaskCreateResponse(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    task_id: str = Field(validation_alias=AliasChoices("Task_id", "task_id", "id"))
