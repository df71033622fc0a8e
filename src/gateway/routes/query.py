"""
Query routes: POST /api/projects/{project_id}/query and
GET /api/projects/{project_id}/tracked.
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from src.cpg.pipeline import CpgPipeline
from src.gateway.dependencies import get_pipeline, get_query_gateway
from src.query.gateway import QueryGateway
from src.query.projector import GraphData
from src.shared.exceptions import QueryAccessDeniedError, QueryExecutionError
from src.shared.logging import setup_logging

logger = setup_logging("gateway.routes.query", level="INFO")

router = APIRouter()


# ─── Request/Response Models ────────────────────────────────


class QueryRequest(BaseModel):
    """Request model for POST /api/projects/{project_id}/query."""

    query: str = Field(..., min_length=1, description="Read-only Cypher query")


class TrackedVariablesResponse(BaseModel):
    """Response model for GET /api/projects/{project_id}/tracked."""

    project_id: str
    variables: list[str] = Field(default_factory=list)


# ─── POST /api/projects/{project_id}/query ──────────────────


@router.post("/projects/{project_id}/query", response_model=GraphData)
async def run_query(
    project_id: str,
    request: QueryRequest,
    gateway: QueryGateway = Depends(get_query_gateway),
) -> GraphData:
    """Run a read-only query scoped to one project.

    The query is rejected (403) if it contains a write or admin keyword and
    reported as 400 if it fails to execute. At most 150 records are returned.
    """
    try:
        return await gateway.query(project_id, request.query)
    except QueryAccessDeniedError as e:
        raise HTTPException(status_code=403, detail=e.message)
    except QueryExecutionError as e:
        raise HTTPException(status_code=400, detail=e.message)


# ─── GET /api/projects/{project_id}/tracked ─────────────────


@router.get("/projects/{project_id}/tracked", response_model=TrackedVariablesResponse)
async def tracked_variables(
    project_id: str,
    pipeline: CpgPipeline = Depends(get_pipeline),
) -> TrackedVariablesResponse:
    """Names of the variables tagged as tracked during the last analysis."""
    try:
        variables = await pipeline.tracked_variables(project_id)
    except Exception as e:
        logger.exception("Could not read tracked variables for %s: %s", project_id, e)
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")
    return TrackedVariablesResponse(project_id=project_id, variables=variables)
