"""
Background analysis jobs.

A job loads an exported program graph, persists it for a project and
records the tracked variables. Callers poll the job registry for status.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from src.cpg.loader import load_graph
from src.cpg.pipeline import CpgPipeline
from src.shared.logging import setup_logging

logger = setup_logging("cpg.jobs", level="INFO")


# ─── Job Management ──────────────────────────────────────────


@dataclass
class Job:
    """Tracks a background analysis run."""

    job_id: str
    project_id: str
    status: str = "pending"           # pending -> running -> completed | failed
    progress: str = ""
    result: dict | None = None
    error: str | None = None
    created_at: str = ""
    completed_at: str | None = None


_jobs: dict[str, Job] = {}


def create_job(project_id: str) -> Job:
    """Create and register a new background job."""
    job = Job(
        job_id=uuid.uuid4().hex[:12],
        project_id=project_id,
        created_at=datetime.now(timezone.utc).isoformat(),
    )
    _jobs[job.job_id] = job
    return job


def get_job(job_id: str) -> Job | None:
    return _jobs.get(job_id)


def job_to_dict(job: Job) -> dict:
    """Serialize a Job for JSON output."""
    d = {
        "job_id": job.job_id,
        "project_id": job.project_id,
        "status": job.status,
        "progress": job.progress,
        "created_at": job.created_at,
        "completed_at": job.completed_at,
    }
    if job.result is not None:
        d["result"] = job.result
    if job.error is not None:
        d["error"] = job.error
    return d


# ─── Background worker ───────────────────────────────────────


async def run_analysis_job(job: Job, pipeline: CpgPipeline, graph_file: str | Path) -> None:
    """Load, persist and summarise one project's graph, updating the job as it goes."""
    try:
        job.status = "running"

        job.progress = "Loading program graph..."
        nodes = load_graph(graph_file)

        job.progress = f"Persisting {len(nodes)} program nodes..."
        summary = await pipeline.persist_graph(job.project_id, nodes)

        job.progress = "Collecting tracked variables..."
        summary["tracked_variables"] = await pipeline.tracked_variables(job.project_id)

        job.result = summary
        job.status = "completed"
        job.progress = "Done"
        logger.info("Analysis job %s completed: %s", job.job_id, summary)
    except Exception as e:
        job.status = "failed"
        job.error = str(e)
        logger.exception("Analysis job %s failed", job.job_id)
    finally:
        job.completed_at = datetime.now(timezone.utc).isoformat()
