# Run from project root: uvicorn agent_relay.main:app --reload

import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from agent_relay.api.handlers import validation_error_handler
from agent_relay.api.routes import router
from agent_relay.core.config import LOG_LEVEL, PORT
from agent_relay.core.jobs import JobRegistry
from agent_relay.services.agent_service import AgentService

logging.basicConfig(level=LOG_LEVEL)


def create_app(agent: AgentService | None = None, jobs: JobRegistry | None = None) -> FastAPI:
    """App with its own agent service and job registry (one of each per process)."""
    app = FastAPI(title="Agent Relay")
    app.state.agent = agent if agent is not None else AgentService()
    app.state.jobs = jobs if jobs is not None else JobRegistry()
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=PORT)
