"""Schemas for the run endpoints (/run, /run_async, /result)."""

from typing import Any

from pydantic import BaseModel, Field, field_validator


class FileRef(BaseModel):
    """An attachment the agent should see; downloaded from `url` and uploaded to OpenAI."""

    name: str | None = Field(None, description="File name shown to the agent; defaults to the URL's last path segment.")
    url: str = Field(..., min_length=1, description="Public (or pre-signed) URL of the file.")


class RunRequest(BaseModel):
    """Request body for POST /run and POST /run_async."""

    text: str = Field("", description="User message for the agent.")
    files: list[FileRef] = Field(default_factory=list, description="Optional attachments.")
    chat_id: str | int | None = Field(None, description="Caller's conversation id; sent to OpenAI as metadata.")
    meta: dict[str, Any] | None = Field(None, description="Extra metadata passed through to the upstream call.")

    @field_validator("text", mode="before")
    @classmethod
    def null_text_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("files", mode="before")
    @classmethod
    def null_files_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "text": "Summarize the attached tender",
                    "files": [{"name": "tender.pdf", "url": "https://example.com/tender.pdf"}],
                    "chat_id": 123456,
                }
            ]
        }
    }


class RunResponse(BaseModel):
    """Response for POST /run."""

    ok: bool = True
    answer: str = Field(..., description="Answer text extracted from the agent result.")


class RunAsyncResponse(BaseModel):
    """Response for POST /run_async; poll GET /result with job_id."""

    ok: bool = True
    job_id: str


class JobResponse(BaseModel):
    """Response for GET /result."""

    ok: bool = True
    job_id: str
    status: str = Field(..., description="pending | done | error")
    result: Any = None
    error: str | None = None


class ErrorResponse(BaseModel):
    """Uniform failure body."""

    ok: bool = False
    error: str
