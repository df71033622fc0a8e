"""
Unit tests for relationship collection and node gathering.
"""

from src.cpg.models import UnknownType
from src.cpg.relationships import RelationshipCollector, RelationshipRecord, gather_nodes


def _id_map(nodes):
    """Plain dict lookup, skipping the kinds the persister filters."""
    return {
        node: f"n{i}"
        for i, node in enumerate(nodes)
        if not isinstance(node, UnknownType)
    }


class TestRelationshipCollector:

    def test_no_dangling_endpoints(self, program):
        ids = _id_map(program.nodes)
        records = RelationshipCollector().collect(program.nodes, ids)

        persisted = set(ids.values())
        assert records
        for record in records:
            assert record.start_id in persisted
            assert record.end_id in persisted

    def test_edges_to_filtered_nodes_are_skipped(self, program):
        ids = _id_map(program.nodes)
        records = RelationshipCollector().collect(program.nodes, ids)

        x_bb1 = ids[program.x_bb1]
        assert not [r for r in records if r.start_id == x_bb1 and r.type == "TYPE"]

    def test_language_edges_dropped(self, program):
        records = RelationshipCollector().collect(program.nodes, _id_map(program.nodes))
        assert all(r.type != "LANGUAGE" for r in records)

    def test_custom_filter_keeps_language(self, program):
        records = RelationshipCollector(filtered_edges=()).collect(
            program.nodes, _id_map(program.nodes)
        )
        assert any(r.type == "LANGUAGE" for r in records)

    def test_edge_properties_are_carried(self, program):
        ids = _id_map(program.nodes)
        records = RelationshipCollector().collect(program.nodes, ids)

        dfg = [r for r in records if r.type == "DFG"]
        assert len(dfg) == 1
        assert dfg[0].start_id == ids[program.x_bb0]
        assert dfg[0].end_id == ids[program.dbg_call]
        assert dfg[0].properties == {"granularity": "full"}

        statements = [r for r in records if r.type == "STATEMENTS" and r.start_id == ids[program.bb1]]
        assert sorted(r.properties["index"] for r in statements) == [0, 1]

    def test_node_lists_and_single_targets(self, program):
        ids = _id_map(program.nodes)
        records = RelationshipCollector().collect(program.nodes, ids)
        pairs = {(r.start_id, r.end_id, r.type) for r in records}

        assert (ids[program.helper_call], ids[program.helper], "INVOKES") in pairs
        assert (ids[program.main], ids[program.body], "BODY") in pairs
        assert (ids[program.scope], ids[program.main], "SCOPE_OF") in pairs
        assert (ids[program.bb0], ids[program.bb1], "EOG") in pairs

    def test_nodes_outside_the_map_are_skipped(self, program):
        ids = {program.main: "m"}
        assert RelationshipCollector().collect([program.main], ids) == []


class TestRelationshipRecord:

    def test_params_carry_project_id(self):
        record = RelationshipRecord("a", "b", "EOG", {"branch": True})
        assert record.to_params("p1") == {
            "startId": "a",
            "endId": "b",
            "type": "EOG",
            "properties": {"branch": True, "projectId": "p1"},
        }
        assert record.properties == {"branch": True}


class TestGatherNodes:

    def test_adds_directly_referenced_nodes(self, program):
        selection = gather_nodes([program.main])
        assert selection == [program.main, program.language, program.i32, program.body]

    def test_each_object_once(self, program):
        selection = gather_nodes([program.main, program.main, program.language])
        assert selection.count(program.main) == 1
        assert selection.count(program.language) == 1
        assert selection[:2] == [program.main, program.language]

    def test_full_batch_is_closed(self, program):
        selection = gather_nodes(program.nodes)
        assert len(selection) == len(program.nodes)
