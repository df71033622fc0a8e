"""
Analysis routes: POST /api/projects/{project_id}/analyze and
GET /api/jobs/{job_id}.
"""

from pathlib import Path
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from pydantic import BaseModel, Field

from src.cpg.jobs import create_job, get_job, job_to_dict, run_analysis_job
from src.cpg.pipeline import CpgPipeline
from src.gateway.dependencies import get_pipeline
from src.shared.logging import setup_logging

logger = setup_logging("gateway.routes.analysis", level="INFO")

router = APIRouter()


# ─── Request/Response Models ────────────────────────────────


class AnalyzeRequest(BaseModel):
    """Request model for POST /api/projects/{project_id}/analyze."""

    graph_file: str = Field(..., description="Path to the exported program graph (JSON)")


class AnalyzeResponse(BaseModel):
    """Response model for POST /api/projects/{project_id}/analyze."""

    job_id: str = Field(..., description="Job ID for tracking progress")
    status: str = Field(..., description="Initial job status")
    message: str = Field(..., description="Human-readable status message")


class JobStatusResponse(BaseModel):
    """Response model for GET /api/jobs/{job_id}."""

    job_id: str
    project_id: str
    status: str = Field(..., description="pending, running, completed or failed")
    progress: str = ""
    created_at: str = ""
    completed_at: str | None = None
    result: dict[str, Any] | None = None
    error: str | None = None


# ─── POST /api/projects/{project_id}/analyze ────────────────


@router.post("/projects/{project_id}/analyze", response_model=AnalyzeResponse, status_code=202)
async def start_analysis(
    project_id: str,
    request: AnalyzeRequest,
    background_tasks: BackgroundTasks,
    pipeline: CpgPipeline = Depends(get_pipeline),
) -> AnalyzeResponse:
    """Replace the project's stored graph with the given export, in the background.

    Poll GET /api/jobs/{job_id} for progress. A failed job may leave a
    partially written graph behind; re-run the analysis to replace it.
    """
    if not Path(request.graph_file).is_file():
        raise HTTPException(status_code=404, detail=f"Graph file not found: {request.graph_file}")

    job = create_job(project_id)
    background_tasks.add_task(run_analysis_job, job, pipeline, request.graph_file)
    logger.info("Analysis job created: job_id=%s, project=%s", job.job_id, project_id)

    return AnalyzeResponse(job_id=job.job_id, status=job.status, message="Analysis started")


# ─── GET /api/jobs/{job_id} ─────────────────────────────────


@router.get("/jobs/{job_id}", response_model=JobStatusResponse)
async def job_status(job_id: str) -> JobStatusResponse:
    """Status of an analysis job."""
    job = get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Unknown job: {job_id}")
    return JobStatusResponse(**job_to_dict(job))
