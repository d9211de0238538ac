import pytest

from osm2graph.classification import ClassificationEngine, UNTRAVERSABLE
from osm2graph.config import ClassificationConfig, TopologyConfig
from osm2graph.context import DEGENERATE_EDGE, UNRESOLVED_WAY
from osm2graph.errors import ModelStateError
from osm2graph.topology import TopologyBuilder, LengthCalculator

from conftest import line_nodes

# 0.001 degrees of longitude on the equator
STEP_M = 111.19


def build_edges(model, rules, topology_config=None, classification_config=None):
    engine = ClassificationEngine(rules, classification_config or ClassificationConfig())
    resolved = engine.resolve_all(model)
    return TopologyBuilder(topology_config or TopologyConfig()).build(model, resolved)


def endpoints(edges):
    return [(e.source_node_id, e.target_node_id) for e in edges]


def test_ways_split_at_shared_node(build_model, rules):
    nodes = line_nodes(4)
    nodes.update({5: (0.002, 0.001), 6: (0.002, 0.002)})
    model = build_model(nodes, [
        (1, [1, 2, 3, 4], {"highway": "residential"}),
        (2, [3, 5, 6], {"highway": "residential"}),
    ])
    edges = build_edges(model, rules)

    assert endpoints(edges) == [(1, 3), (3, 4), (3, 6)]
    assert [e.id for e in edges] == [1, 2, 3]
    assert [e.parent_way_id for e in edges] == [1, 1, 2]
    assert edges[0].geometry == (1, 2, 3)
    assert edges[0].interior_node_ids == (2,)


def test_shared_endpoints_do_not_split(build_model, rules):
    model = build_model(line_nodes(5), [
        (1, [1, 2, 3], {"highway": "residential"}),
        (2, [3, 4, 5], {"highway": "residential"}),
    ])
    edges = build_edges(model, rules)
    assert endpoints(edges) == [(1, 3), (3, 5)]


def test_interior_nodes_have_single_reference(build_model, rules):
    nodes = line_nodes(6)
    nodes.update({7: (0.002, 0.001), 8: (0.004, 0.001)})
    model = build_model(nodes, [
        (1, [1, 2, 3, 4, 5, 6], {"highway": "primary"}),
        (2, [7, 3], {"highway": "residential"}),
        (3, [8, 5], {"highway": "residential"}),
    ])
    edges = build_edges(model, rules)
    for edge in edges:
        for node_id in edge.interior_node_ids:
            assert model.ref_count(node_id) == 1


def test_closed_way_becomes_self_loop(build_model, rules):
    nodes = {1: (0.0, 0.0), 2: (0.001, 0.0), 3: (0.001, 0.001)}
    model = build_model(nodes, [(1, [1, 2, 3, 1], {"highway": "residential"})])
    edges = build_edges(model, rules)

    assert len(edges) == 1
    assert edges[0].is_self_loop
    assert edges[0].geometry == (1, 2, 3, 1)
    assert edges[0].length > 0


def test_closed_way_split_where_another_way_joins(build_model, rules):
    nodes = {1: (0.0, 0.0), 2: (0.001, 0.0), 3: (0.001, 0.001), 4: (0.002, 0.001)}
    model = build_model(nodes, [
        (1, [1, 2, 3, 1], {"highway": "residential"}),
        (2, [3, 4], {"highway": "residential"}),
    ])
    edges = build_edges(model, rules)
    assert endpoints(edges) == [(1, 3), (3, 1), (3, 4)]


def test_two_node_way_is_one_edge(build_model, rules):
    model = build_model(line_nodes(2), [(1, [1, 2], {"highway": "residential"})])
    edges = build_edges(model, rules)
    assert endpoints(edges) == [(1, 2)]
    assert edges[0].length == pytest.approx(STEP_M, rel=1e-3)


def test_edge_lengths_add_up_to_way_length(build_model, rules):
    nodes = line_nodes(4)
    nodes.update({5: (0.002, 0.001), 6: (0.002, 0.002)})
    model = build_model(nodes, [
        (1, [1, 2, 3, 4], {"highway": "residential"}),
        (2, [3, 5, 6], {"highway": "residential"}),
    ])
    edges = build_edges(model, rules)

    calculator = LengthCalculator(TopologyConfig())
    way_length = calculator.length([nodes[n] for n in (1, 2, 3, 4)])
    split_length = sum(e.length for e in edges if e.parent_way_id == 1)
    assert split_length == pytest.approx(way_length, rel=1e-9)
    assert way_length == pytest.approx(3 * STEP_M, rel=1e-3)


def test_edge_ids_independent_of_arrival_order(build_model, rules):
    nodes = line_nodes(4)
    nodes.update({5: (0.002, 0.001), 6: (0.002, 0.002)})
    ways = [
        (1, [1, 2, 3, 4], {"highway": "residential"}),
        (2, [3, 5, 6], {"highway": "residential"}),
    ]
    first = build_edges(build_model(nodes, ways), rules)
    second = build_edges(build_model(dict(reversed(list(nodes.items()))), list(reversed(ways))), rules)
    assert first == second


def test_first_edge_id_configurable(build_model, rules):
    model = build_model(line_nodes(2), [(1, [1, 2], {"highway": "residential"})])
    edges = build_edges(model, rules, TopologyConfig(first_edge_id=100))
    assert edges[0].id == 100


def test_unclassified_way_still_splits_others(build_model, rules):
    nodes = line_nodes(3)
    nodes[4] = (0.001, 0.001)
    model = build_model(nodes, [
        (1, [1, 2, 3], {"highway": "residential"}),
        (2, [2, 4], {"waterway": "ditch"}),
    ])
    edges = build_edges(model, rules)
    assert endpoints(edges) == [(1, 2), (2, 3)]
    assert all(e.parent_way_id == 1 for e in edges)


def test_unresolved_way_produces_no_edges_but_splits_others(build_model, rules):
    model = build_model(line_nodes(3), [
        (1, [1, 2, 3], {"highway": "residential"}),
        (2, [2, 99], {"highway": "residential"}),
    ])
    edges = build_edges(model, rules)
    assert model.ref_count(2) == 2
    assert endpoints(edges) == [(1, 2), (2, 3)]
    assert all(e.parent_way_id == 1 for e in edges)
    assert model.context.defect_count(UNRESOLVED_WAY) == 1


def test_repeated_node_run_is_degenerate(build_model, rules):
    nodes = line_nodes(3)
    nodes[4] = (0.001, 0.001)
    model = build_model(nodes, [
        (1, [1, 2, 2, 3], {"highway": "residential"}),
        (2, [2, 4], {"highway": "residential"}),
    ])
    edges = build_edges(model, rules)

    assert endpoints(edges) == [(1, 2), (2, 3), (2, 4)]
    assert model.context.defect_count(DEGENERATE_EDGE) == 1


def test_single_node_way_is_degenerate(build_model, rules):
    model = build_model(line_nodes(1), [(1, [1], {"highway": "residential"})])
    edges = build_edges(model, rules)
    assert edges == []
    assert model.context.defect_count(DEGENERATE_EDGE) == 1


def test_costs_scale_with_length(build_model, rules):
    model = build_model(line_nodes(2), [(1, [1, 2], {"highway": "primary"})])
    edge = build_edges(model, rules)[0]
    assert edge.cost == pytest.approx(edge.length * 3.6 / 90)
    assert edge.reverse_cost == pytest.approx(edge.length * 3.6 / 72)
    assert edge.class_id == 106


def test_one_way_edge_has_negative_reverse_cost(build_model, rules):
    model = build_model(line_nodes(2), [(1, [1, 2], {"highway": "residential", "oneway": "yes"})])
    edge = build_edges(model, rules)[0]
    assert edge.cost > 0
    assert edge.reverse_cost < 0
    assert edge.reverse_cost == pytest.approx(UNTRAVERSABLE * edge.length)


def test_build_requires_finalized_model(build_model, rules):
    model = build_model(line_nodes(2), [(1, [1, 2], {"highway": "residential"})], finalize=False)
    with pytest.raises(ModelStateError):
        TopologyBuilder(TopologyConfig()).build(model, [])


def test_projected_lengths_close_to_haversine():
    coords = [(0.0, 0.0), (0.001, 0.0)]
    haversine = LengthCalculator(TopologyConfig()).length(coords)
    projected = LengthCalculator(
        TopologyConfig(length_metric="projected", local_crs="EPSG:32631")
    ).length(coords)
    assert projected == pytest.approx(haversine, rel=0.01)
