"""
Request-scoped access to the shared services created at startup.

Routes depend on these functions so tests can swap them through
``app.dependency_overrides``.
"""

from fastapi import HTTPException, Request

from src.cpg.pipeline import CpgPipeline
from src.query.gateway import QueryGateway
from src.shared.database import Neo4jHandler


def _state(request: Request, name: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(status_code=503, detail=f"{name} is not initialised")
    return service


def get_handler(request: Request) -> Neo4jHandler:
    return _state(request, "handler")


def get_query_gateway(request: Request) -> QueryGateway:
    return _state(request, "query_gateway")


def get_pipeline(request: Request) -> CpgPipeline:
    return _state(request, "pipeline")
