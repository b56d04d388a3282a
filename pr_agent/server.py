"""FastAPI front end for the PR agent.

POST /run with ``{"repo": "...", "goal": "..."}`` runs the pipeline in
process and responds with the RunResult JSON. The pipeline shells out to git
and the test runner synchronously, so each run gets its own event loop on a
worker thread and the server loop stays free for other requests.
"""

from __future__ import annotations

import asyncio
import os
from functools import lru_cache
from typing import Any

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from . import __version__
from .agent import PRAgent
from .agent_modules.config import AgentConfig
from .agent_modules.data_types import RunResult
from .agent_modules.utils import make_run_id

PORT = int(os.getenv("PORT", "8787"))
SERVICE_NAME = "PR Agent API"

app = FastAPI(title=SERVICE_NAME, description="Run the PR agent against a repository and goal")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


@lru_cache(maxsize=1)
def get_config() -> AgentConfig:
    return AgentConfig.from_env()


def _run_blocking(config: AgentConfig, run_id: str, repo: str, goal: str) -> RunResult:
    return asyncio.run(PRAgent(config, run_id=run_id).run(repo, goal))


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": message})


@app.get("/")
async def index() -> dict[str, Any]:
    """Describe the service and its endpoints."""

    return {
        "service": SERVICE_NAME,
        "version": __version__,
        "endpoints": {
            "POST /run": "Run PR Agent with { repo, goal }",
            "GET /health": "Liveness check",
        },
    }


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@app.post("/run")
async def run(request: Request, config: AgentConfig = Depends(get_config)):
    """Validate the request body, run the agent once, and return its RunResult."""

    try:
        body = await request.json()
    except ValueError as exc:
        return _bad_request(f"Invalid JSON: {exc}")

    if not isinstance(body, dict):
        return _bad_request("Request body must be a JSON object")

    repo = body.get("repo")
    goal = body.get("goal")
    if not isinstance(repo, str) or not repo.strip():
        return _bad_request('Missing or invalid "repo" field')
    if not isinstance(goal, str) or not goal.strip():
        return _bad_request('Missing or invalid "goal" field')

    run_id = make_run_id()
    print(f"Running agent run_id={run_id} repo={repo} goal={goal}")

    result = await run_in_threadpool(_run_blocking, config, run_id, repo, goal)

    print(f"Agent complete run_id={run_id} status={result.status}")
    return result.to_payload()


def main() -> None:
    print(f"Starting PR agent server on http://0.0.0.0:{PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)


if __name__ == "__main__":
    main()


__all__ = ["app", "get_config", "main"]
