"""
FastAPI Gateway: HTTP API layer.

Exposes project-scoped graph queries, tracked variables, background
analysis jobs and a health check. One Neo4j driver is shared by all routes.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.cpg.config import PersistenceSettings
from src.cpg.pipeline import CpgPipeline
from src.gateway.config import GatewaySettings
from src.gateway.routes import analysis, health, query
from src.query.config import QuerySettings
from src.query.gateway import QueryGateway
from src.shared.config import StoreSettings
from src.shared.database import Neo4jHandler
from src.shared.logging import setup_logging

logger = setup_logging("gateway.app", level="INFO")

# Global settings
settings = GatewaySettings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for the FastAPI app.

    Connects the shared Neo4j handler on startup and closes it on shutdown.
    """
    logger.info("Starting FastAPI Gateway")

    handler = Neo4jHandler(settings=StoreSettings())
    await handler.connect()

    app.state.handler = handler
    app.state.query_gateway = QueryGateway(handler, QuerySettings())
    app.state.pipeline = CpgPipeline(handler, PersistenceSettings())

    logger.info("Gateway initialized successfully")

    yield

    logger.info("Shutting down FastAPI Gateway")
    await handler.close()


app = FastAPI(
    title="CPG Graph Store",
    description="Persist program graphs per project and query them safely",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(query.router, prefix="/api", tags=["Query"])
app.include_router(analysis.router, prefix="/api", tags=["Analysis"])
app.include_router(health.router, prefix="/api", tags=["Health"])


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with basic info."""
    return {
        "name": "CPG Graph Store",
        "version": "0.1.0",
        "status": "operational",
        "endpoints": {
            "query": "/api/projects/{project_id}/query",
            "tracked": "/api/projects/{project_id}/tracked",
            "analyze": "/api/projects/{project_id}/analyze",
            "job": "/api/jobs/{job_id}",
            "health": "/api/health",
        }
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.gateway.app:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level="info",
    )
