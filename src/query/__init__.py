"""Project-scoped ad-hoc queries over the stored program graph."""

from src.query.gateway import QueryGateway
from src.query.projector import GenericEdge, GenericNode, GraphData, ResultProjector

__all__ = [
    "QueryGateway",
    "ResultProjector",
    "GraphData",
    "GenericNode",
    "GenericEdge",
]
