"""
API route aggregator: register endpoints; no logic — only delegate to handlers.
"""

import logging

from fastapi import APIRouter, Depends, Request

from agent_relay.api.handlers import handle_result, handle_run, handle_run_async
from agent_relay.core.jobs import JobRegistry
from agent_relay.schemas.run import ErrorResponse, JobResponse, RunAsyncResponse, RunRequest, RunResponse
from agent_relay.services.agent_service import AgentService

logger = logging.getLogger(__name__)
router = APIRouter()

_ERRORS = {
    400: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


def get_agent_service(request: Request) -> AgentService:
    return request.app.state.agent


def get_job_registry(request: Request) -> JobRegistry:
    return request.app.state.jobs


# --- System ---

@router.get("/health", tags=["system"])
@router.get("/healthz", tags=["system"], include_in_schema=False)
def health(jobs: JobRegistry = Depends(get_job_registry)) -> dict:
    return {"ok": True, "jobs": jobs.counts()}


# --- Agent ---

@router.post(
    "/run",
    response_model=RunResponse,
    responses=_ERRORS,
    tags=["agent"],
    summary="Run the agent (sync)",
    description="Send text and optional file URLs; receive the agent's answer. 4xx/5xx with {ok: false, error} on failure.",
)
async def post_run(body: RunRequest, agent: AgentService = Depends(get_agent_service)):
    logger.info("[api:post_run] IN  text_len=%d files=%d chat_id=%s", len(body.text), len(body.files), body.chat_id)
    return await handle_run(body, agent)


@router.post(
    "/run_async",
    response_model=RunAsyncResponse,
    responses=_ERRORS,
    tags=["agent"],
    summary="Run the agent in the background",
    description="Returns a job_id immediately; poll GET /result?job_id=... for the answer.",
)
async def post_run_async(
    body: RunRequest,
    agent: AgentService = Depends(get_agent_service),
    jobs: JobRegistry = Depends(get_job_registry),
) -> RunAsyncResponse:
    logger.info("[api:post_run_async] IN  text_len=%d files=%d chat_id=%s", len(body.text), len(body.files), body.chat_id)
    return handle_run_async(body, agent, jobs)


@router.get(
    "/result",
    response_model=JobResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    tags=["agent"],
    summary="Poll a background run",
    description="Job status: pending, done (with result), or error (with message). 404 for unknown job_id.",
)
def get_result(job_id: str = "", jobs: JobRegistry = Depends(get_job_registry)):
    return handle_result(job_id, jobs)
