"""
HTTP-level tests for the gateway routes.

Services are injected through ``app.dependency_overrides``; the lifespan
(which would connect to Neo4j) is never entered.
"""

import json
import logging

import pytest
from fastapi.testclient import TestClient

from src.cpg.pipeline import CpgPipeline
from src.gateway.app import app
from src.gateway.dependencies import get_handler, get_pipeline, get_query_gateway
from src.query.config import QuerySettings
from src.query.gateway import QueryGateway


@pytest.fixture
def client(handler):
    app.dependency_overrides[get_handler] = lambda: handler
    app.dependency_overrides[get_query_gateway] = lambda: QueryGateway(handler, QuerySettings())
    app.dependency_overrides[get_pipeline] = lambda: CpgPipeline(handler)
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestRoot:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "operational"

    def test_services_missing_without_startup(self):
        response = TestClient(app).get("/api/health")
        assert response.status_code == 503


class TestQueryRoute:

    def test_read_query(self, client, handler):
        response = client.post("/api/projects/p1/query", json={"query": "MATCH (n)\nRETURN n"})

        assert response.status_code == 200
        assert response.json() == {"nodes": [], "edges": []}
        _, params = handler.execute_read.await_args.args
        assert params == {"projectId": "p1"}

    def test_write_query_is_forbidden(self, client, handler):
        response = client.post("/api/projects/p1/query", json={"query": "MATCH (n) DETACH DELETE n"})

        assert response.status_code == 403
        assert "Access denied" in response.json()["detail"]
        handler.execute_read.assert_not_awaited()

    def test_unscoped_query_is_forbidden(self, client, handler):
        response = client.post(
            "/api/projects/p1/query", json={"query": "MATCH (:Block)\nRETURN count(*)"}
        )

        assert response.status_code == 403
        handler.execute_read.assert_not_awaited()

    def test_failing_query_is_bad_request(self, client, handler):
        handler.execute_read.side_effect = RuntimeError("Invalid input")

        response = client.post("/api/projects/p1/query", json={"query": "MATCH (n)\nRETRUN n"})

        assert response.status_code == 400
        assert response.json()["detail"].startswith("Query execution failed")

    def test_empty_query_is_rejected(self, client):
        response = client.post("/api/projects/p1/query", json={"query": ""})
        assert response.status_code == 422


class TestTrackedRoute:

    def test_tracked_variables(self, client, handler):
        handler.execute_read.return_value = [["counter"], ["x"]]

        response = client.get("/api/projects/p1/tracked")

        assert response.status_code == 200
        assert response.json() == {"project_id": "p1", "variables": ["counter", "x"]}


class TestAnalysisRoutes:

    def test_missing_graph_file(self, client, tmp_path):
        response = client.post(
            "/api/projects/p1/analyze", json={"graph_file": str(tmp_path / "missing.json")}
        )
        assert response.status_code == 404

    def test_analysis_job_runs(self, client, handler, tmp_path):
        path = tmp_path / "graph.json"
        path.write_text(json.dumps({
            "nodes": [
                {"key": "lang", "kind": "Language", "id": 1, "name": "LLVMIRLanguage"},
                {"key": "f", "kind": "FunctionDeclaration", "id": 2,
                 "name": "_ZN4demo4main17h0123456789abcdefE",
                 "relationships": {"LANGUAGE": "lang"}},
            ]
        }), encoding="utf-8")

        response = client.post("/api/projects/p1/analyze", json={"graph_file": str(path)})

        assert response.status_code == 202
        job_id = response.json()["job_id"]

        # TestClient runs background tasks before returning.
        status = client.get(f"/api/jobs/{job_id}").json()
        assert status["status"] == "completed"
        assert status["project_id"] == "p1"
        assert status["result"]["nodes"] == 2
        assert status["result"]["tracked_variables"] == []

    def test_job_creation_is_logged_lazily(self, client, tmp_path, caplog):
        path = tmp_path / "graph.json"
        path.write_text(json.dumps({"nodes": []}), encoding="utf-8")
        caplog.set_level(logging.INFO, logger="gateway.routes.analysis")

        job_id = client.post("/api/projects/p1/analyze", json={"graph_file": str(path)}).json()["job_id"]

        (record,) = [r for r in caplog.records if r.name == "gateway.routes.analysis"]
        assert record.args == (job_id, "p1")
        assert record.getMessage() == f"Analysis job created: job_id={job_id}, project=p1"

    def test_unknown_job(self, client):
        assert client.get("/api/jobs/does-not-exist").status_code == 404


class TestHealthRoute:

    def test_healthy(self, client, handler):
        handler.verify.return_value = True

        response = client.get("/api/health")

        assert response.json() == {
            "status": "healthy", "neo4j": "reachable", "uri": "bolt://localhost:7687",
        }

    def test_degraded(self, client, handler):
        handler.verify.return_value = False
        assert client.get("/api/health").json()["status"] == "degraded"
