"""
API handlers: call services, map results/errors to HTTP.

Responsibility: Bridge HTTP types and services. Every failure becomes
{"ok": false, "error": ...} with a non-2xx status, so callers parse one shape.
Lives in the API layer so services stay free of FastAPI/HTTP types.
"""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from agent_relay.core.config import EMPTY_ANSWER_TEXT
from agent_relay.core.errors import FileIngestionError, ServiceUnavailableError, UpstreamError
from agent_relay.core.jobs import JobRegistry
from agent_relay.schemas.run import ErrorResponse, JobResponse, RunAsyncResponse, RunRequest, RunResponse
from agent_relay.services.agent_service import AgentService

logger = logging.getLogger(__name__)

_KNOWN_ERRORS = (ServiceUnavailableError, UpstreamError, FileIngestionError)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


def exception_to_response(e: Exception) -> JSONResponse:
    """Known service errors keep their status and message; anything else is a 500."""
    if isinstance(e, _KNOWN_ERRORS):
        return error_response(e.status_code, e.message)
    return error_response(500, str(e) or "Agent error")


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request body validation failures in the same {ok, error} shape."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg', 'invalid')}" if loc else err.get("msg", "invalid"))
    return error_response(422, "; ".join(parts) or "Invalid request")


async def handle_run(body: RunRequest, agent: AgentService) -> RunResponse | JSONResponse:
    """One synchronous agent run; the answer is never empty."""
    try:
        answer = await agent.answer(body.text, files=body.files, chat_id=body.chat_id, meta=body.meta)
    except _KNOWN_ERRORS as e:
        logger.warning("[api:run] %s: %s", type(e).__name__, e.message)
        return exception_to_response(e)
    except Exception as e:
        logger.exception("[api:run] agent failed")
        return exception_to_response(e)
    return RunResponse(answer=answer or EMPTY_ANSWER_TEXT)


def handle_run_async(body: RunRequest, agent: AgentService, jobs: JobRegistry) -> RunAsyncResponse:
    """Queue the same work as /run and return the job id at once."""

    async def work() -> str:
        answer = await agent.answer(body.text, files=body.files, chat_id=body.chat_id, meta=body.meta)
        return answer or EMPTY_ANSWER_TEXT

    job_id = jobs.submit(work)
    return RunAsyncResponse(job_id=job_id)


def handle_result(job_id: str, jobs: JobRegistry) -> JobResponse | JSONResponse:
    if not job_id or not job_id.strip():
        return error_response(400, "Query parameter 'job_id' is required")
    job = jobs.get(job_id.strip())
    if job is None:
        return error_response(404, "job not found")
    data = job.to_dict()
    return JobResponse(job_id=data.pop("id"), **data)
