"""
Unit tests for ResultProjector.

Neo4j graph values are stood in for by MagicMocks specced on the driver's
Node, Relationship and Path classes.
"""

from unittest.mock import MagicMock

from neo4j.graph import Node, Path, Relationship

from src.query.projector import GenericEdge, ResultProjector, primary_label


def make_node(element_id, labels, **props):
    node = MagicMock(spec=Node)
    node.element_id = element_id
    node.labels = frozenset(labels)
    node.items.return_value = list(props.items())
    return node


def make_rel(element_id, start, end, rel_type, **props):
    rel = MagicMock(spec=Relationship)
    rel.element_id = element_id
    rel.start_node = start
    rel.end_node = end
    rel.type = rel_type
    rel.items.return_value = list(props.items())
    return rel


def make_path(nodes, rels):
    path = MagicMock(spec=Path)
    path.nodes = tuple(nodes)
    path.relationships = tuple(rels)
    return path


class TestPrimaryLabel:

    def test_prefers_specific_label(self):
        assert primary_label(["Block", "Node", "Statement"]) == "Block"

    def test_generic_only(self):
        assert primary_label(["Node"]) == "Node"
        assert primary_label([]) == "Node"

    def test_deepest_kind_wins_over_alphabetical_order(self):
        labels = sorted(["Node", "Declaration", "ValueDeclaration", "VariableDeclaration"])
        assert primary_label(labels) == "VariableDeclaration"
        assert primary_label(sorted(["Node", "Statement", "Expression", "CallExpression"])) == "CallExpression"

    def test_tags_outrank_kinds(self):
        labels = sorted([
            "Node", "Declaration", "ValueDeclaration", "VariableDeclaration", "TrackedVariable",
        ])
        assert primary_label(labels) == "TrackedVariable"
        labels = sorted([
            "Node", "Declaration", "ValueDeclaration", "FunctionDeclaration", "MainFunctionDeclaration",
        ])
        assert primary_label(labels) == "MainFunctionDeclaration"

    def test_unknown_labels_fall_back(self):
        assert primary_label(["Custom", "Node"]) == "Custom"
        assert primary_label(["Custom", "Node", "Block", "Statement"]) == "Block"


class TestResultProjector:

    def test_node_shape(self):
        node = make_node("4:a:1", ["Node", "FunctionDeclaration"], name="demo::main", id=7, code=None)

        data = ResultProjector().project([[node]])

        (projected,) = data.nodes
        assert projected.id == "4:a:1"
        assert projected.labels == ["FunctionDeclaration", "Node"]
        assert projected.label == "FunctionDeclaration"
        assert projected.title == {"name": "demo::main", "id": "7", "code": ""}

    def test_tracked_variable_node(self):
        node = make_node(
            "4:a:2",
            ["Node", "Declaration", "ValueDeclaration", "VariableDeclaration", "TrackedVariable"],
            name="x",
        )

        (projected,) = ResultProjector().project([[node]]).nodes

        assert projected.label == "TrackedVariable"
        assert projected.labels == sorted(projected.labels)

    def test_relationship_shape(self):
        a = make_node("n1", ["Node"])
        b = make_node("n2", ["Node"])
        rel = make_rel("r1", a, b, "EOG", branch=True)

        data = ResultProjector().project([[rel]])

        (edge,) = data.edges
        assert edge.from_ == "n1"
        assert edge.to == "n2"
        assert edge.label == "EOG"
        assert edge.title == {"branch": "True"}
        assert edge.model_dump(by_alias=True)["from"] == "n1"
        # Endpoints are not added unless returned.
        assert data.nodes == []

    def test_overlapping_paths_are_deduplicated(self):
        a = make_node("n1", ["Node", "Block"])
        b = make_node("n2", ["Node", "Block"])
        c = make_node("n3", ["Node", "Block"])
        ab = make_rel("r1", a, b, "EOG")
        bc = make_rel("r2", b, c, "EOG")

        rows = [
            [make_path([a, b], [ab])],
            [make_path([a, b, c], [ab, bc])],
            [a, [b, c]],
        ]
        data = ResultProjector().project(rows)

        assert [n.id for n in data.nodes] == ["n1", "n2", "n3"]
        assert [e.id for e in data.edges] == ["r1", "r2"]

    def test_scalars_are_ignored(self):
        data = ResultProjector().project([[1, "x", None, {"a": 1}]])
        assert data.nodes == []
        assert data.edges == []


class TestGenericEdge:

    def test_accepts_alias_or_field_name(self):
        by_alias = GenericEdge.model_validate({"id": "r", "from": "a", "to": "b", "label": "DFG"})
        by_name = GenericEdge(id="r", from_="a", to="b", label="DFG")
        assert by_alias == by_name
