"""Program graph model, symbol demangling and persistence into Neo4j."""

from src.cpg.demangle import demangle
from src.cpg.persister import GraphPersister
from src.cpg.pipeline import CpgPipeline
from src.cpg.relationships import RelationshipCollector, RelationshipRecord

__all__ = [
    "demangle",
    "GraphPersister",
    "CpgPipeline",
    "RelationshipCollector",
    "RelationshipRecord",
]
