"""
Entry point: persists an exported program graph for one project directly.

This bypasses the HTTP gateway and runs the persistence pipeline as a
standalone async operation. Useful for loading a graph from the command line.

Usage:
    python main.py <project_id> <graph.json>

For the HTTP gateway:
    python -m src.gateway.app
"""

import argparse
import asyncio

from src.cpg.jobs import create_job, run_analysis_job
from src.cpg.pipeline import CpgPipeline
from src.shared.database import Neo4jHandler


async def main(project_id: str, graph_file: str) -> int:
    async with Neo4jHandler() as handler:
        job = create_job(project_id)
        await run_analysis_job(job, CpgPipeline(handler), graph_file)

    if job.status == "completed":
        print("Analysis complete:", job.result)
        return 0
    print("Analysis failed:", job.error)
    return 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Persist a program graph into Neo4j")
    parser.add_argument("project_id", help="Project the graph belongs to")
    parser.add_argument("graph_file", help="JSON export of the program graph")
    args = parser.parse_args()
    raise SystemExit(asyncio.run(main(args.project_id, args.graph_file)))
