"""
Health route: GET /api/health.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from src.gateway.dependencies import get_handler
from src.shared.database import Neo4jHandler
from src.shared.logging import setup_logging

logger = setup_logging("gateway.routes.health", level="INFO")

router = APIRouter()


class HealthResponse(BaseModel):
    """Overall service health."""

    status: str = Field(..., description="healthy or degraded")
    neo4j: str = Field(..., description="reachable or unreachable")
    uri: str


@router.get("/health", response_model=HealthResponse)
async def health(handler: Neo4jHandler = Depends(get_handler)) -> HealthResponse:
    """Report whether the graph store is reachable."""
    reachable = await handler.verify()
    if not reachable:
        logger.warning("Neo4j at %s is unreachable", handler.uri)
    return HealthResponse(
        status="healthy" if reachable else "degraded",
        neo4j="reachable" if reachable else "unreachable",
        uri=handler.uri,
    )
