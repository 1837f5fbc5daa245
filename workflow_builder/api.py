"""FastAPI service for the workflow builder.

Two groups of endpoints:

  1. Steps:      GET  /steps                 registered action types
                 POST /steps/{action_type}   run one step with a raw input
       Step failures are results, not HTTP errors: the response is always
       {"success": false, "error": "..."} with status 200. Only an unknown
       action type is a 404.

  2. Workflows:  POST /workflows/validate    correct a candidate graph
                 POST /workflows/generate    prompt → AI graph → validated →
                                             created / updated workflow
       Incomplete node configuration is a 422 carrying the user-facing
       diagnostic; backend failures are a 502.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Body, Depends, FastAPI, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from workflow_builder.assembly import generate_and_apply
from workflow_builder.client import WorkflowClient, WorkflowClientError
from workflow_builder.graph import IncompleteNodeConfigurationError, validate_graph
from workflow_builder.steps import default_registry

logger = logging.getLogger("workflow_builder.api")

_GENERATE_RATE_LIMIT: str = os.environ.get("WORKFLOW_GENERATE_RATE_LIMIT", "10/minute")

# ---------------------------------------------------------------------------
# API key authentication (optional, enabled when WORKFLOW_BUILDER_API_KEY is set)
# ---------------------------------------------------------------------------

_bearer = HTTPBearer(auto_error=False)


def _verify_api_key(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
) -> None:
    """Verify Bearer token matches WORKFLOW_BUILDER_API_KEY.

    If WORKFLOW_BUILDER_API_KEY is not set, all requests are allowed (open dev mode).
    """
    api_key = os.getenv("WORKFLOW_BUILDER_API_KEY")
    if not api_key:
        return  # open access in dev mode
    if not credentials or credentials.credentials != api_key:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")


# ---------------------------------------------------------------------------
# Lifespan: create the backend client once at startup, close it on shutdown
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load .env, build the workflow backend client, register built-in steps."""
    try:
        from dotenv import load_dotenv
        load_dotenv()
    except ImportError:
        pass

    client = WorkflowClient.from_env()
    registry = default_registry()
    app.state.workflow_client = client
    logger.info("Workflow builder started with %d registered step(s)", len(registry))
    try:
        yield
    finally:
        await client.close()


limiter = Limiter(key_func=get_remote_address)

app = FastAPI(
    title="Workflow Builder",
    description="Step execution and AI workflow-graph validation service.",
    version="0.1.0",
    lifespan=lifespan,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------


class ValidateRequest(BaseModel):
    candidate: Any = Field(..., description="Candidate graph (object or JSON string).")
    existing: Any = Field(default=None, description="Graph being replaced, if any.")


class GenerateRequest(BaseModel):
    prompt: str = Field(..., min_length=1, description="Natural-language description.")
    workflow_id: str | None = Field(default=None, description="Workflow to update; omit to create.")
    existing: Any = Field(default=None, description="Current editor graph, sent to the AI as context.")


class StepInfo(BaseModel):
    actionType: str
    integration: str | None
    label: str


def _incomplete_detail(e: IncompleteNodeConfigurationError) -> dict[str, Any]:
    return {
        "error": "incomplete_node_configuration",
        "message": str(e),
        "count": e.count,
        "nodeIds": e.node_ids,
        "supportedActions": list(e.supported_actions),
    }


def _workflow_client(request: Request) -> WorkflowClient:
    client = getattr(request.app.state, "workflow_client", None)
    if client is None:
        raise HTTPException(status_code=503, detail="Workflow backend client is not initialised")
    return client


# ---------------------------------------------------------------------------
# System
# ---------------------------------------------------------------------------


@app.get("/health", tags=["system"])
async def health() -> dict[str, Any]:
    return {"status": "ok", "steps": len(default_registry())}


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------


@app.get("/steps", response_model=list[StepInfo], tags=["steps"], dependencies=[Depends(_verify_api_key)])
async def list_steps() -> list[dict[str, Any]]:
    return [e.to_dict() for e in default_registry().entries()]


@app.post("/steps/{action_type:path}", tags=["steps"], dependencies=[Depends(_verify_api_key)])
async def run_step(action_type: str, raw_input: dict[str, Any] | None = Body(default=None)) -> dict[str, Any]:
    """Run a registered step. The body is the raw step input."""
    registry = default_registry()
    if action_type not in registry:
        raise HTTPException(status_code=404, detail=f"Unknown action type: {action_type!r}")
    result = await registry.run(action_type, raw_input or {})
    return result.to_dict()


# ---------------------------------------------------------------------------
# Workflows
# ---------------------------------------------------------------------------


@app.post("/workflows/validate", tags=["workflows"], dependencies=[Depends(_verify_api_key)])
async def validate_workflow(body: ValidateRequest) -> dict[str, Any]:
    try:
        result = validate_graph(body.candidate, body.existing)
    except IncompleteNodeConfigurationError as e:
        raise HTTPException(status_code=422, detail=_incomplete_detail(e))
    return result.to_dict()


@app.post("/workflows/generate", tags=["workflows"], dependencies=[Depends(_verify_api_key)])
@limiter.limit(_GENERATE_RATE_LIMIT)
async def generate_workflow(request: Request, body: GenerateRequest) -> dict[str, Any]:
    client = _workflow_client(request)
    try:
        outcome = await generate_and_apply(
            client, body.prompt, workflow_id=body.workflow_id, existing=body.existing,
        )
    except IncompleteNodeConfigurationError as e:
        raise HTTPException(status_code=422, detail=_incomplete_detail(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except WorkflowClientError as e:
        logger.error("Workflow backend failure during generate: %s (%s)", e, e.detail)
        raise HTTPException(status_code=502, detail=f"Workflow backend error: {e}")
    return outcome.to_dict()


# ---------------------------------------------------------------------------
# Entry point (for uvicorn programmatic launch)
# ---------------------------------------------------------------------------


def serve(host: str = "0.0.0.0", port: int = 8000, reload: bool = False) -> None:
    """Launch the FastAPI server via uvicorn."""
    import uvicorn
    logging.basicConfig(level=logging.INFO)
    uvicorn.run(
        "workflow_builder.api:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


if __name__ == "__main__":
    serve()
